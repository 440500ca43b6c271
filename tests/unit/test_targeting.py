"""
Unit tests for the partner targeting engine.
"""

import pytest
from unittest.mock import MagicMock

from nasu_app.exceptions import ConflictError, ValidationError
from nasu_app.models.targeting import base_customer_count, clamp_accuracy, target_customer_count
from nasu_app.services.matching_service import LOG_STATUS_SUCCESS, MatchingService


class TestAudienceEstimate:
    """Tests for the audience formulas."""

    @pytest.mark.parametrize("industry_key,expected", [
        ("restaurant_cafe", 800),
        ("beauty_salon", 800),
        ("lodging", 400),
        ("pet_related", 400),
        ("general", 200),
        ("", 200),
    ])
    def test_base_customer_count(self, industry_key, expected):
        assert base_customer_count(industry_key) == expected

    def test_clamp_accuracy(self):
        assert clamp_accuracy(10) == 60
        assert clamp_accuracy(150) == 100
        assert clamp_accuracy(75) == 75

    def test_loosest_accuracy_keeps_everyone(self):
        assert target_customer_count(800, 60) == 800

    def test_strictest_accuracy_keeps_thirty_percent(self):
        assert target_customer_count(800, 100) == 240

    def test_midpoint(self):
        # ratio 0.3 + 0.7 * 0.5 = 0.65
        assert target_customer_count(200, 80) == 130

    def test_zero_base(self):
        assert target_customer_count(0, 80) == 0


class TestRunTargetingEngine:
    """Tests for MatchingService.run_targeting_engine with a mocked Firestore."""

    @pytest.fixture
    def stores(self):
        return MagicMock()

    @pytest.fixture
    def logs(self):
        logs = MagicMock()
        logs.where.return_value.limit.return_value.stream.return_value = []
        return logs

    @pytest.fixture
    def service(self, mock_firebase, stores, logs):
        def artifact_collection(*path):
            return logs if path[-1] == "ai_match_logs" else stores

        mock_firebase.artifact_collection.side_effect = artifact_collection
        return MatchingService(mock_firebase, MagicMock())

    def test_run_logs_success(self, service, stores, logs, make_doc):
        stores.limit.return_value.stream.return_value = [make_doc("s1", {
            "selectedAiTargets": ["子育て世代", "観光客"],
            "normalizedIndustryKey": "lodging",
        })]

        metrics = service.run_targeting_engine("partner_002", 80)

        assert metrics.base_count == 400
        assert metrics.target_count == 260
        assert metrics.accuracy == 0.8
        assert metrics.segment_name == "子育て世代, 観光客"
        logged = logs.add.call_args[0][0]
        assert logged["status"] == LOG_STATUS_SUCCESS
        assert logged["targetCount"] == 260

    def test_requires_targets(self, service, stores, make_doc):
        stores.limit.return_value.stream.return_value = [make_doc("s1", {"selectedAiTargets": []})]

        with pytest.raises(ValidationError):
            service.run_targeting_engine("partner_002", 80)

    def test_running_engine_conflicts(self, service, stores, logs, make_doc):
        stores.limit.return_value.stream.return_value = [make_doc("s1", {"selectedAiTargets": ["観光客"]})]
        logs.where.return_value.limit.return_value.stream.return_value = [make_doc("log1", {"status": "RUNNING"})]

        with pytest.raises(ConflictError):
            service.run_targeting_engine("partner_002", 80)
        logs.add.assert_not_called()
