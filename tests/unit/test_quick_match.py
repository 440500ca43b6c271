"""
Unit tests for the quick-match wizard and the category catalogue.
"""

import pydantic
import pytest
from unittest.mock import MagicMock

from nasu_app.config import settings
from nasu_app.data.categories import (
    ANYWHERE_AREA,
    CATEGORY_DATA,
    DEFAULT_OPTION_SCORE,
    OTHER_SUBCATEGORY,
    get_score_for_option,
    get_value_options,
)
from nasu_app.exceptions import ValidationError
from nasu_app.models.quick_match import EXIT_DESTINATION, MAX_SELECTION, QuickMatchWizard
from nasu_app.schemas.matching import MatchRecordRequest, QuickMatchSubmission
from nasu_app.services.matching_service import MatchingService, build_results_query, counter_update, get_catalogue


class TestCategoryCatalogue:
    """Tests for the static category data."""

    def test_every_main_category_offers_other(self):
        for subs in CATEGORY_DATA.values():
            assert OTHER_SUBCATEGORY in subs

    def test_known_option_score(self):
        assert get_score_for_option("飲食", "カフェ", "自家焙煎のコーヒー") == 5
        assert get_score_for_option("飲食", "カフェ", "テラス席あり") == 2

    def test_unknown_option_scores_default(self):
        assert get_score_for_option("飲食", "カフェ", "存在しない強み") == DEFAULT_OPTION_SCORE

    def test_subcategory_outside_main_scores_default(self):
        """A subcategory is only scored under its own main category."""
        assert get_score_for_option("ペット", "カフェ", "自家焙煎のコーヒー") == DEFAULT_OPTION_SCORE

    def test_other_has_no_value_options(self):
        assert get_value_options(OTHER_SUBCATEGORY) == []

    def test_catalogue_lists_only_subcategories_with_questions(self):
        catalogue = get_catalogue()
        assert catalogue["maxSelection"] == MAX_SELECTION
        assert OTHER_SUBCATEGORY not in catalogue["valueQuestions"]
        assert "カフェ" in catalogue["valueQuestions"]
        assert ANYWHERE_AREA in catalogue["areas"]


class TestQuickMatchWizard:
    """Tests for QuickMatchWizard transitions."""

    @pytest.fixture
    def wizard(self):
        return QuickMatchWizard()

    def test_full_flow(self, wizard):
        wizard.select_main("飲食")
        wizard.select_sub("カフェ")
        wizard.select_area("那須町")
        assert wizard.step == 4

        wizard.toggle_value("子連れ歓迎")
        wizard.finish()

        assert wizard.results_query() == {
            "mainCategory": "飲食",
            "subCategory": "カフェ",
            "area": "那須町",
            "values": "子連れ歓迎",
        }

    def test_other_subcategory_completes_after_area(self, wizard):
        wizard.select_main("暮らし")
        wizard.select_sub(OTHER_SUBCATEGORY)
        wizard.select_area(ANYWHERE_AREA)

        assert wizard.completed is True
        assert wizard.step == 3
        assert wizard.results_query()["values"] == ""

    def test_selection_limit(self, wizard):
        wizard.select_main("飲食")
        wizard.select_sub("カフェ")
        wizard.select_area("那須町")
        for value in get_value_options("カフェ"):
            wizard.toggle_value(value)

        assert len(wizard.values) == MAX_SELECTION

    def test_toggle_removes_selected_value(self, wizard):
        wizard.toggle_value("子連れ歓迎")
        wizard.toggle_value("子連れ歓迎")
        assert wizard.values == []

    def test_changing_main_category_resets_answers(self, wizard):
        wizard.select_main("飲食")
        wizard.select_sub("カフェ")
        wizard.select_main("ペット")

        assert wizard.sub_category is None
        assert wizard.step == 2

    def test_unknown_category_rejected(self, wizard):
        with pytest.raises(ValidationError):
            wizard.select_main("宇宙旅行")

    def test_subcategory_must_belong_to_main(self, wizard):
        wizard.select_main("ペット")
        with pytest.raises(ValidationError):
            wizard.select_sub("カフェ")

    def test_back_from_first_step_exits(self, wizard):
        assert wizard.back() == EXIT_DESTINATION

    def test_back_moves_one_step(self, wizard):
        wizard.select_main("飲食")
        assert wizard.back() is None
        assert wizard.step == 1

    def test_results_query_requires_completion(self, wizard):
        wizard.select_main("飲食")
        with pytest.raises(ValidationError):
            wizard.results_query()


class TestBuildResultsQuery:
    """Tests for replaying a posted wizard state."""

    def test_valid_submission(self):
        submission = QuickMatchSubmission(
            main_category="飲食",
            sub_category="ラーメン",
            area="大田原市",
            values=["自家製麺", "無化調スープ"],
        )
        query = build_results_query(submission)
        assert query["values"] == "自家製麺,無化調スープ"

    def test_too_many_values(self):
        submission = QuickMatchSubmission(
            main_category="飲食",
            sub_category="カフェ",
            area="那須町",
            values=get_value_options("カフェ")[:4],
        )
        with pytest.raises(ValidationError):
            build_results_query(submission)

    def test_value_from_another_subcategory(self):
        submission = QuickMatchSubmission(
            main_category="飲食",
            sub_category="カフェ",
            area="那須町",
            values=["自家製麺"],
        )
        with pytest.raises(ValidationError):
            build_results_query(submission)


class TestCounterUpdate:
    """Tests for match counter arithmetic."""

    def test_new_counter(self):
        assert counter_update(None, 4) == {"totalActualMatches": 4, "totalPotentialMatches": 12}

    def test_existing_counter_accumulates(self):
        existing = {"totalActualMatches": 10, "totalPotentialMatches": 30}
        assert counter_update(existing, 2) == {"totalActualMatches": 12, "totalPotentialMatches": 36}


@pytest.mark.usefixtures("inline_transactions")
class TestRecordMatch:
    """Tests for MatchingService.record_match with a mocked Firestore."""

    @pytest.fixture
    def service(self, mock_firebase):
        return MatchingService(mock_firebase, MagicMock())

    @pytest.fixture
    def transaction(self, mock_firebase):
        return mock_firebase.db.transaction.return_value

    @pytest.fixture
    def counter_ref(self, collections):
        return collections(settings.firestore_collection_match_counters).document.return_value

    def test_zero_count_records_nothing(self, service, transaction, counter_ref):
        result = service.record_match(MatchRecordRequest(store_id="s1", actual_count=0, matched_user_id="u1"))

        assert result == {"message": "No match recorded (Actual count is 0)"}
        transaction.set.assert_not_called()
        transaction.update.assert_not_called()
        counter_ref.collection.assert_not_called()

    def test_missing_fields(self, service):
        with pytest.raises(ValidationError):
            service.record_match(MatchRecordRequest(store_id="s1", actual_count=2))

    def test_creates_counter(self, service, transaction, counter_ref, make_doc):
        counter_ref.get.return_value = make_doc("s1", None)

        result = service.record_match(MatchRecordRequest(store_id="s1", actual_count=2, matched_user_id="u1"))

        assert result["potentialCount"] == 6
        ref, fields = transaction.set.call_args[0]
        assert ref is counter_ref
        assert fields["storeId"] == "s1"
        assert fields["totalActualMatches"] == 2
        assert fields["totalPotentialMatches"] == 6
        transaction.update.assert_not_called()

    def test_updates_existing_counter(self, service, transaction, counter_ref, make_doc):
        counter_ref.get.return_value = make_doc("s1", {"totalActualMatches": 5, "totalPotentialMatches": 15})

        service.record_match(MatchRecordRequest(store_id="s1", actual_count=1, matched_user_id="u1"))

        ref, fields = transaction.update.call_args[0]
        assert ref is counter_ref
        assert fields["totalActualMatches"] == 6
        assert fields["totalPotentialMatches"] == 18
        transaction.set.assert_not_called()

    def test_adds_match_record(self, service, counter_ref, make_doc):
        counter_ref.get.return_value = make_doc("s1", None)

        service.record_match(MatchRecordRequest(store_id="s1", actual_count=3, matched_user_id="u1"))

        counter_ref.collection.assert_called_once_with("records")
        record = counter_ref.collection.return_value.document.return_value.set.call_args[0][0]
        assert record["userId"] == "u1"
        assert record["matchScore"] == 3
        assert record["isApproached"] is False

    @pytest.mark.parametrize("raw,expected", [(2, 2), (2.0, 2), (None, None)])
    def test_count_accepts_json_numbers(self, raw, expected):
        assert MatchRecordRequest.model_validate({"actualCount": raw}).actual_count == expected

    @pytest.mark.parametrize("raw", ["3", True, 2.5])
    def test_count_rejects_non_integers(self, raw):
        with pytest.raises(pydantic.ValidationError):
            MatchRecordRequest.model_validate({"actualCount": raw})
