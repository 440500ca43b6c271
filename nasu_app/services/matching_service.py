"""
Matching service: quick-match results and counters, the AI store finder,
job match recalculation and the partner targeting engine.
"""

from typing import Any, Dict, List, Optional
import pydantic
from fastapi.concurrency import run_in_threadpool
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter
from loguru import logger

from ..config import settings
from ..data.categories import AREAS, CATEGORY_DATA, MAIN_CATEGORIES, get_value_options
from ..exceptions import ConflictError, ValidationError
from ..models.job_match import calculate_match_score
from ..models.quick_match import MAX_SELECTION, QuickMatchWizard
from ..models.store_match import calculate_match_rates, score_stores
from ..models.targeting import base_customer_count, clamp_accuracy, target_customer_count
from ..schemas.matching import (
    FindStoresRequest,
    JobPosting,
    JobSeekerProfile,
    MatchCount,
    MatchRecordRequest,
    QuickMatchSubmission,
    SearchCriteria,
    StoreMatch,
    TargetingMetrics,
)
from ..utils.api_clients import GeminiClient
from ..utils.firebase_client import FirebaseClient
from ..utils.validators import summarize_errors

POTENTIAL_MULTIPLIER = 3
LOG_STATUS_RUNNING = "RUNNING"
LOG_STATUS_SUCCESS = "SUCCESS"

SEARCH_CRITERIA_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "keywords": {
            "type": "ARRAY",
            "description": "ユーザーの回答から抽出した検索キーワード",
            "items": {"type": "STRING"},
        },
        "priceRange": {
            "type": "STRING",
            "description": "価格帯",
            "enum": ["low", "mid", "high", "any"],
        },
        "mustHaves": {
            "type": "ARRAY",
            "description": "絶対に必要な条件",
            "items": {"type": "STRING"},
        },
    },
    "required": ["keywords"],
}


def get_catalogue() -> Dict[str, Any]:
    """Static catalogue for the quick-match wizard."""
    return {
        "mainCategories": MAIN_CATEGORIES,
        "categoryData": CATEGORY_DATA,
        "areas": AREAS,
        "valueQuestions": {
            sub: get_value_options(sub)
            for subs in CATEGORY_DATA.values()
            for sub in subs
            if get_value_options(sub)
        },
        "maxSelection": MAX_SELECTION,
    }


def build_results_query(submission: QuickMatchSubmission) -> Dict[str, str]:
    """Validate a wizard submission and return the results page query."""
    return QuickMatchWizard.from_submission(submission).results_query()


def counter_update(existing: Optional[Dict[str, Any]], actual_count: int) -> Dict[str, Any]:
    """
    New totals for a match counter.

    Args:
        existing: Current counter document, or None when it does not exist yet
        actual_count: Matches to add

    Returns:
        Fields to write
    """
    potential_count = actual_count * POTENTIAL_MULTIPLIER
    if existing is None:
        return {
            "totalActualMatches": actual_count,
            "totalPotentialMatches": potential_count,
        }
    return {
        "totalActualMatches": (existing.get("totalActualMatches") or 0) + actual_count,
        "totalPotentialMatches": (existing.get("totalPotentialMatches") or 0) + potential_count,
    }


def build_criteria_prompt(category: str, answers_text: str) -> str:
    return (
        "あなたは、ユーザーの回答から最適な店舗を検索するための検索条件を抽出するAIアシスタントです。\n"
        f"ユーザーは「{category}」の店舗を探しており、以下の回答をしました。\n"
        "---ユーザーの回答---\n"
        f"{answers_text}\n"
        "---\n"
        "これらの回答から、ユーザーのニーズを最も正確に表す検索条件をJSON形式で生成してください。"
    )


class MatchingService:
    """Store and job matching on top of Firestore and Gemini."""

    def __init__(self, firebase: FirebaseClient, gemini: GeminiClient):
        self.firebase = firebase
        self.gemini = gemini

    @property
    def db(self):
        return self.firebase.db

    # ---- quick match ----

    def find_quick_match_results(
        self,
        main_category: str,
        sub_category: str,
        area: Optional[str],
        values: List[str],
    ) -> List[Dict[str, Any]]:
        """
        Score approved stores of a subcategory against the wizard answers.

        Args:
            main_category: Main category
            sub_category: Subcategory
            area: Area filter ("どこでも" for none)
            values: Preferred strengths

        Returns:
            Scored stores, best first
        """
        if not main_category or not sub_category:
            raise ValidationError("カテゴリが指定されていません。")

        query = (
            self.db.collection(settings.firestore_collection_stores)
            .where(filter=FieldFilter("mainCategory", "==", main_category))
            .where(filter=FieldFilter("subCategory", "==", sub_category))
            .where(filter=FieldFilter("status", "==", "approved"))
        )
        stores = [{"id": doc.id, **doc.to_dict()} for doc in query.stream()]
        results = score_stores(stores, main_category, sub_category, area, values)
        logger.info(
            f"Quick match {main_category}/{sub_category}/{area}: "
            f"{len(results)} of {len(stores)} stores matched"
        )
        return results

    def record_match(self, request: MatchRecordRequest) -> Dict[str, Any]:
        """
        Add a quick-match result to the store's counters.

        Args:
            request: Store, number of matches and the matched user

        Returns:
            Message and the potential count added
        """
        if not request.store_id or request.actual_count is None or not request.matched_user_id:
            raise ValidationError("Missing storeId, actualCount, or matchedUserId")

        if request.actual_count == 0:
            return {"message": "No match recorded (Actual count is 0)"}

        counter_ref = self.db.collection(settings.firestore_collection_match_counters).document(request.store_id)
        record_ref = counter_ref.collection("records").document()
        transaction = self.db.transaction()

        @firestore.transactional
        def update_counter(transaction):
            snapshot = counter_ref.get(transaction=transaction)
            if snapshot.exists:
                fields = counter_update(snapshot.to_dict(), request.actual_count)
                fields["updatedAt"] = firestore.SERVER_TIMESTAMP
                transaction.update(counter_ref, fields)
            else:
                fields = counter_update(None, request.actual_count)
                fields.update({
                    "storeId": request.store_id,
                    "createdAt": firestore.SERVER_TIMESTAMP,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                })
                transaction.set(counter_ref, fields)

        update_counter(transaction)

        record_ref.set({
            "userId": request.matched_user_id,
            "matchScore": request.actual_count,
            "timestamp": firestore.SERVER_TIMESTAMP,
            "isApproached": False,
        })

        potential_count = request.actual_count * POTENTIAL_MULTIPLIER
        logger.info(f"Recorded {request.actual_count} matches for store {request.store_id}")
        return {"message": "Match recorded successfully", "potentialCount": potential_count}

    def get_match_count(self, store_id: str) -> MatchCount:
        """Counter totals for a store; zeros when it has none."""
        data = self.firebase.get_document(settings.firestore_collection_match_counters, store_id)
        if data is None:
            return MatchCount()
        return MatchCount(
            total_actual_matches=data.get("totalActualMatches") or 0,
            total_potential_matches=data.get("totalPotentialMatches") or 0,
        )

    # ---- AI store finder ----

    async def extract_criteria(self, category: str, answers_text: str) -> SearchCriteria:
        """Ask Gemini for search criteria."""
        result = await self.gemini.generate_json(
            build_criteria_prompt(category, answers_text),
            SEARCH_CRITERIA_SCHEMA,
            temperature=settings.store_criteria_temperature,
        )
        return SearchCriteria.model_validate(result if isinstance(result, dict) else {})

    def fetch_profile_stores(self, category: str) -> List[Dict[str, Any]]:
        """Store profiles of every partner for one main category."""
        stores: List[Dict[str, Any]] = []
        for user_ref in self.firebase.artifact_collection("users").list_documents():
            query = user_ref.collection("stores").where(filter=FieldFilter("mainCategory", "==", category))
            for doc in query.stream():
                stores.append({"id": doc.id, **doc.to_dict()})
        return stores

    async def find_stores(self, request: FindStoresRequest) -> List[StoreMatch]:
        """
        Turn the finder answers into criteria and rate every store of the category.

        Args:
            request: Category and question/answer pairs

        Returns:
            Top stores by match rate
        """
        if not request.category or not request.answers:
            raise ValidationError("カテゴリと回答が必要です。")
        self.gemini.ensure_configured()

        answers_text = "\n\n".join(f"{a.q}\n回答: {a.a}" for a in request.answers)
        criteria = await self.extract_criteria(request.category, answers_text)
        stores = await run_in_threadpool(self.fetch_profile_stores, request.category)
        results = calculate_match_rates(criteria, stores)
        logger.info(
            f"Store finder '{request.category}': keywords={criteria.keywords} "
            f"stores={len(stores)} returned={len(results)}"
        )
        return results

    # ---- job matching ----

    def recalculate_all_matches(self) -> int:
        """
        Score every user against every job and merge the results into `matches`.

        Documents that cannot be read as a profile or posting are logged and skipped.

        Returns:
            Number of match documents written
        """
        users = list(self.db.collection(settings.firestore_collection_users).stream())
        job_docs = self.db.collection(settings.firestore_collection_jobs).stream()
        matches = self.db.collection(settings.firestore_collection_matches)

        jobs: List[JobPosting] = []
        for job_doc in job_docs:
            try:
                jobs.append(JobPosting.model_validate({**(job_doc.to_dict() or {}), "id": job_doc.id}))
            except pydantic.ValidationError as e:
                logger.warning(f"Skipping job {job_doc.id}: {summarize_errors(e.errors())}")

        written = 0
        for user_doc in users:
            try:
                profile = JobSeekerProfile.model_validate({**(user_doc.to_dict() or {}), "id": user_doc.id})
            except pydantic.ValidationError as e:
                logger.warning(f"Skipping user {user_doc.id}: {summarize_errors(e.errors())}")
                continue
            for job in jobs:
                score, reasons = calculate_match_score(profile, job)
                matches.document(f"{user_doc.id}_{job.id}").set(
                    {
                        "userId": user_doc.id,
                        "jobId": job.id,
                        "score": score,
                        "reasons": reasons,
                        "updatedAt": firestore.SERVER_TIMESTAMP,
                    },
                    merge=True,
                )
                written += 1

        logger.info(f"Recalculated {written} job matches ({len(users)} users x {len(jobs)} jobs)")
        return written

    # ---- partner targeting ----

    def run_targeting_engine(self, uid: str, accuracy_setting: float) -> TargetingMetrics:
        """
        Run the AI targeting engine for a paid partner and log the run.

        Args:
            uid: Partner UID
            accuracy_setting: Slider value (60-100)

        Returns:
            Estimated audience for this run
        """
        stores = list(self.firebase.artifact_collection("users", uid, "stores").limit(1).stream())
        store = stores[0].to_dict() if stores else {}
        targets = store.get("selectedAiTargets") or []
        if not targets:
            raise ValidationError("ターゲット層をプロフィール画面で設定してください。")

        logs = self.firebase.artifact_collection("users", uid, "ai_match_logs")
        running = list(logs.where(filter=FieldFilter("status", "==", LOG_STATUS_RUNNING)).limit(1).stream())
        if running:
            raise ConflictError("AIエンジンは現在実行中です。")

        industry_key = store.get("normalizedIndustryKey") or "general"
        accuracy = clamp_accuracy(accuracy_setting)
        base_count = base_customer_count(industry_key)
        target_count = target_customer_count(base_count, accuracy)
        segment_name = ", ".join(targets)

        logs.add({
            "timestamp": firestore.SERVER_TIMESTAMP,
            "status": LOG_STATUS_SUCCESS,
            "targetCount": target_count,
            "segmentName": segment_name,
            "accuracySetting": accuracy,
            "resultDetails": f"配信完了。{target_count}人のアプリ会員とのマッチングリストを作成",
        })
        logger.info(f"Targeting engine run for {uid}: base={base_count} target={target_count}")

        return TargetingMetrics(
            target_count=target_count,
            base_count=base_count,
            accuracy=accuracy / 100,
            segment_name=segment_name,
            industry_key=industry_key,
        )
