"""
Unit tests for the job matching score engine.
"""

import pytest
from unittest.mock import MagicMock

from nasu_app.config import settings
from nasu_app.models.job_match import (
    MAX_REASONS,
    MAX_SCORE,
    JobMatchScorer,
    calculate_match_score,
    day_match,
    semantic_similarity,
)
from nasu_app.schemas.matching import CompanyProfile, JobPosting, JobSeekerProfile, MatchValues
from nasu_app.services.matching_service import MatchingService


class TestSimilarityHelpers:
    """Tests for the text and day helpers."""

    def test_semantic_similarity_share_of_required_words(self):
        assert semantic_similarity("python, sql", "python sql excel java") == 0.5

    def test_semantic_similarity_ignores_single_characters(self):
        assert semantic_similarity("a b", "a b") == 0.0

    def test_semantic_similarity_empty_text(self):
        assert semantic_similarity("", "python") == 0.0
        assert semantic_similarity("python", "") == 0.0

    def test_day_match(self):
        assert day_match(["月", "火", "水"], ["月", "火", "水", "木"]) == 0.75

    def test_day_match_empty(self):
        assert day_match([], ["月"]) == 0.0
        assert day_match(["月"], []) == 0.0


class TestJobMatchScorer:
    """Tests for JobMatchScorer."""

    @pytest.fixture
    def scorer(self):
        return JobMatchScorer()

    @pytest.fixture
    def seeker(self):
        return JobSeekerProfile(
            id="user_001",
            desired_salary_min=250000,
            desired_salary_max=300000,
            desired_job_types=["販売"],
            desired_employment_type="正社員",
            skills="接客 レジ 英語",
            preferred_working_days=["月", "火", "水", "木", "金"],
            preferred_working_hours="9:00 18:00",
            matching_values=MatchValues(atmosphere=["アットホーム"], wlb=["残業少なめ"]),
        )

    @pytest.fixture
    def job(self):
        return JobPosting(
            id="job_001",
            job_title="店舗スタッフ",
            salary_min=260000,
            salary_max=290000,
            job_category="販売",
            employment_type="正社員",
            required_skills="接客 レジ",
            working_days=["月", "火", "水", "木", "金"],
            working_hours="9:00 18:00",
            appeal_points=MatchValues(atmosphere=["アットホーム"], wlb=["残業少なめ"]),
        )

    def test_strong_match_is_capped(self, scorer, seeker, job):
        score, reasons = scorer.calculate(seeker, job)

        # 35 -> 30 salary, 20 category, 5 type, 10 skills, 10 days, 5 hours, 4 values
        assert score == 84
        assert score <= MAX_SCORE
        assert len(reasons) == MAX_REASONS
        assert reasons[0].startswith("AIスコア84点")
        assert "上回っています" in reasons[0]

    def test_reasons_are_unique(self, scorer, seeker, job):
        _, reasons = scorer.calculate(seeker, job)
        assert len(reasons) == len(set(reasons))

    def test_company_minimum_score(self, scorer, seeker, job):
        score, reasons = scorer.calculate(seeker, job, CompanyProfile(min_match_score=90))
        assert score < 90
        assert "下回っています" in reasons[0]
        assert "(90点)" in reasons[0]

    def test_no_overlap_scores_low(self, scorer):
        seeker = JobSeekerProfile(desired_salary_min=500000, desired_salary_max=600000)
        job = JobPosting(salary_min=200000, salary_max=250000, job_category="製造")

        score, reasons = scorer.calculate(seeker, job)

        # only the empty employment types match
        assert score == 5
        assert "下回っています" in reasons[0]

    def test_higher_offer_counts_as_satisfying(self, scorer):
        seeker = JobSeekerProfile(desired_salary_min=200000, desired_salary_max=220000)
        job = JobPosting(salary_min=300000, salary_max=350000)

        _, reasons = scorer.calculate(seeker, job)
        assert "求人の提示額があなたの希望を充足しています" in reasons

    def test_values_points_capped(self, scorer):
        tags = [f"tag{i}" for i in range(15)]
        seeker = JobSeekerProfile(matching_values=MatchValues(growth=tags))
        job = JobPosting(appeal_points=MatchValues(growth=tags))
        assert scorer._values_score(seeker, job) == 20

    def test_module_shortcut(self, seeker, job):
        assert calculate_match_score(seeker, job) == JobMatchScorer().calculate(seeker, job)


class TestRecalculateAllMatches:
    """Tests for MatchingService.recalculate_all_matches with a mocked Firestore."""

    @pytest.fixture
    def service(self, mock_firebase):
        return MatchingService(mock_firebase, MagicMock())

    @pytest.fixture
    def matches(self, collections):
        return collections(settings.firestore_collection_matches)

    def test_scores_every_pair(self, service, collections, matches, make_doc):
        collections(settings.firestore_collection_users).stream.return_value = [
            make_doc("u1", {"desiredJobTypes": ["営業"]}),
            make_doc("u2", {}),
        ]
        collections(settings.firestore_collection_jobs).stream.return_value = [
            make_doc("j1", {"jobCategory": "営業"}),
        ]

        assert service.recalculate_all_matches() == 2

        written = [c[0][0] for c in matches.document.call_args_list]
        assert written == ["u1_j1", "u2_j1"]
        fields, = matches.document.return_value.set.call_args_list[0][0]
        assert fields["userId"] == "u1"
        assert fields["jobId"] == "j1"
        assert matches.document.return_value.set.call_args_list[0].kwargs == {"merge": True}

    def test_null_fields_use_defaults(self, service, collections, matches, make_doc):
        collections(settings.firestore_collection_users).stream.return_value = [
            make_doc("u1", {"desiredJobTypes": None, "skills": None, "matchingValues": {"wlb": None}}),
            make_doc("u2", {"desiredJobTypes": ["営業"]}),
        ]
        collections(settings.firestore_collection_jobs).stream.return_value = [
            make_doc("j1", {"jobCategory": "営業", "workingDays": None}),
        ]

        assert service.recalculate_all_matches() == 2
        assert [c[0][0] for c in matches.document.call_args_list] == ["u1_j1", "u2_j1"]

    def test_malformed_document_is_skipped(self, service, collections, matches, make_doc):
        collections(settings.firestore_collection_users).stream.return_value = [
            make_doc("u1", {"desiredSalaryMin": "相談"}),
            make_doc("u2", {"desiredJobTypes": ["営業"]}),
        ]
        collections(settings.firestore_collection_jobs).stream.return_value = [
            make_doc("j1", {"jobCategory": "営業"}),
            make_doc("j2", {"workingDays": "平日"}),
        ]

        assert service.recalculate_all_matches() == 1
        matches.document.assert_called_once_with("u2_j1")
