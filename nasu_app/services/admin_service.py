"""
Admin service: dashboard counts, user export and point adjustments.
"""

from typing import Any, Dict, List
from google.cloud import firestore
from loguru import logger

from ..config import settings
from ..exceptions import ResourceNotFoundError, ValidationError
from ..schemas.user import AdjustPointsRequest, UserRole
from ..utils.firebase_client import FirebaseClient
from ..utils.helpers import UTF8_BOM, rows_to_csv, to_iso

EXPORT_FILENAME = "users_export.csv"


def export_row(uid: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """One CSV row for a user document."""
    roles = data.get("roles")
    return {
        "UID": uid,
        "Email": data.get("email") or "",
        "Name": data.get("name") or data.get("displayName") or "",
        "PhoneNumber": data.get("phoneNumber") or "",
        "Roles": "|".join(roles) if roles else UserRole.USER.value,
        "ReferredBy": data.get("referredBy") or "",
        "SubscriptionStatus_ADVER": data.get("adverSubscriptionStatus") or "",
        "SubscriptionStatus_RECRUIT": data.get("recruitSubscriptionStatus") or "",
        "CreatedAt": to_iso(data.get("createdAt")),
    }


class AdminService:
    """Operations behind the admin panels."""

    def __init__(self, firebase: FirebaseClient):
        self.firebase = firebase

    @property
    def users(self):
        return self.firebase.db.collection(settings.firestore_collection_users)

    def get_dashboard(self) -> Dict[str, int]:
        total_users = len(list(self.users.stream()))
        total_partners = len(list(self.firebase.db.collection(settings.firestore_collection_partners).stream()))
        return {"totalUsers": total_users, "totalPartners": total_partners}

    def export_users_csv(self) -> str:
        """
        All users as CSV, newest first, with a UTF-8 BOM for spreadsheet apps.

        Raises:
            ResourceNotFoundError: If there are no users
        """
        query = self.users.order_by("createdAt", direction=firestore.Query.DESCENDING)
        rows: List[Dict[str, Any]] = [export_row(doc.id, doc.to_dict() or {}) for doc in query.stream()]
        if not rows:
            raise ResourceNotFoundError("No users found to export.")

        logger.info(f"Exporting {len(rows)} users")
        return UTF8_BOM + rows_to_csv(rows)

    def adjust_points(self, request: AdjustPointsRequest) -> Dict[str, Any]:
        """
        Add (or subtract) usable points for a user.

        Args:
            request: Target user, signed amount and reason

        Returns:
            Message and the new usable balance
        """
        if not request.uid or request.amount is None or not request.reason.strip():
            raise ValidationError("Missing parameters")

        user_ref = self.users.document(request.uid)
        snap = user_ref.get()
        if not snap.exists:
            raise ResourceNotFoundError("User not found")

        current = ((snap.to_dict() or {}).get("points") or {}).get("usableBalance") or 0
        new_balance = current + request.amount
        user_ref.update({
            "points.usableBalance": new_balance,
            "points.lastAdjustedAt": firestore.SERVER_TIMESTAMP,
            "points.lastAdjustedReason": request.reason,
        })
        logger.info(f"Adjusted points of {request.uid} by {request.amount}: {request.reason}")
        return {"message": "Points adjusted successfully", "newBalance": new_balance}
