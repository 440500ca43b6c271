"""
Mood tracker service.
"""

from collections import Counter
from typing import Any, Dict, Iterable, List
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter
from loguru import logger

from ..exceptions import ResourceNotFoundError, ValidationError
from ..schemas.mood import MOOD_OPTIONS, MoodLog, MoodLogRequest, MoodShare, WeeklyMoodSummary
from ..utils.firebase_client import FirebaseClient
from ..utils.helpers import round_half_up

WEEK_LENGTH = 7
NO_RECORDS_MESSAGE = "過去7日間の記録がありません。"


def weekly_summary(logs: Iterable[MoodLog]) -> WeeklyMoodSummary:
    """
    Mood frequencies over the latest seven logs.

    Args:
        logs: Logs ordered by date, newest first

    Returns:
        Share of each mood, most frequent first
    """
    latest = list(logs)[:WEEK_LENGTH]
    if not latest:
        return WeeklyMoodSummary(message=NO_RECORDS_MESSAGE)

    total = len(latest)
    counts = Counter(log.mood for log in latest)
    moods = [
        MoodShare(mood=mood, count=count, percentage=f"{round_half_up(count / total * 100)}%")
        for mood, count in sorted(counts.items(), key=lambda item: item[1], reverse=True)
    ]
    return WeeklyMoodSummary(message=f"過去7日間の傾向 ({total}件)", moods=moods)


class MoodService:
    """Per-user mood logs under the app's artifact namespace."""

    def __init__(self, firebase: FirebaseClient):
        self.firebase = firebase

    def _logs(self, uid: str):
        return self.firebase.artifact_collection("users", uid, "moodLogs")

    def save_log(self, uid: str, request: MoodLogRequest) -> Dict[str, Any]:
        """
        Save today's mood; an existing log for the same date is updated.

        Args:
            uid: Owner UID
            request: Date, mood and memo

        Returns:
            Log ID and whether it was created
        """
        if not request.date or request.mood not in MOOD_OPTIONS:
            raise ValidationError("日付と気分を選択してください。")

        logs = self._logs(uid)
        data = {"date": request.date, "mood": request.mood, "memo": request.memo}
        existing = list(logs.where(filter=FieldFilter("date", "==", request.date)).limit(1).stream())
        if existing:
            existing[0].reference.update({**data, "updatedAt": firestore.SERVER_TIMESTAMP})
            logger.info(f"Updated mood log {existing[0].id} for {uid}")
            return {"id": existing[0].id, "created": False}

        _, doc_ref = logs.add({**data, "createdAt": firestore.SERVER_TIMESTAMP})
        logger.info(f"Added mood log {doc_ref.id} for {uid}")
        return {"id": doc_ref.id, "created": True}

    def list_logs(self, uid: str) -> List[MoodLog]:
        """All logs, newest date first."""
        query = self._logs(uid).order_by("date", direction=firestore.Query.DESCENDING)
        return [MoodLog.model_validate({"id": doc.id, **doc.to_dict()}) for doc in query.stream()]

    def delete_log(self, uid: str, log_id: str) -> None:
        ref = self._logs(uid).document(log_id)
        if not ref.get().exists:
            raise ResourceNotFoundError("記録が見つかりません。")
        ref.delete()
        logger.info(f"Deleted mood log {log_id} for {uid}")

    def get_weekly_summary(self, uid: str) -> WeeklyMoodSummary:
        return weekly_summary(self.list_logs(uid))
