"""
Deal service: store search, point deals, ticket redemption and partner announcements.
"""

from typing import Any, Dict, List, Optional
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter
from loguru import logger

from ..config import settings
from ..exceptions import (
    ConflictError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from ..schemas.store import StoreDealRequest
from ..utils.firebase_client import FirebaseClient
from ..utils.helpers import now_jst
from ..utils.validators import is_blank


def check_purchase(user_data: Optional[Dict[str, Any]], deal_data: Optional[Dict[str, Any]]) -> int:
    """
    Validate a point purchase.

    Args:
        user_data: Buyer's user document
        deal_data: Deal document

    Returns:
        Price in points

    Raises:
        ResourceNotFoundError: If the user or the deal is missing
        ValidationError: If the deal has no price or the balance is too low
    """
    if user_data is None:
        raise ResourceNotFoundError("User not found")
    if deal_data is None:
        raise ResourceNotFoundError("Deal not found")

    price = deal_data.get("price")
    if not price:
        raise ValidationError("Invalid data")

    balance = (user_data.get("points") or {}).get("usableBalance") or 0
    if balance < price:
        raise ValidationError("Insufficient points")
    return price


def check_redeem(ticket: Optional[Dict[str, Any]], partner_id: str) -> int:
    """
    Validate a ticket redemption by a partner.

    Args:
        ticket: Purchased deal document
        partner_id: UID of the redeeming partner

    Returns:
        Price to credit to the partner

    Raises:
        ResourceNotFoundError: If the ticket does not exist
        ConflictError: If it was already used
        PermissionDeniedError: If it belongs to another store
    """
    if ticket is None:
        raise ResourceNotFoundError("Purchased ticket not found.")
    if ticket.get("used"):
        raise ConflictError("This ticket has already been redeemed.")
    if ticket.get("partnerId") != partner_id:
        raise PermissionDeniedError("This ticket does not belong to your store.")
    return ticket.get("price") or 0


def deal_owner(deal: Dict[str, Any]) -> Optional[str]:
    """Owner UID of a food-loss deal (older documents use partnerUid)."""
    return deal.get("partnerId") or deal.get("partnerUid")


class DealService:
    """Stores, point deals and partner announcements on Firestore."""

    def __init__(self, firebase: FirebaseClient):
        self.firebase = firebase

    @property
    def db(self):
        return self.firebase.db

    def search_stores(self, main_category: str, sub_category: str, area: str) -> List[Dict[str, Any]]:
        """
        Approved stores filtered by category and area, ordered by name.

        Empty values skip that filter.
        """
        query = self.db.collection(settings.firestore_collection_stores).where(
            filter=FieldFilter("status", "==", "approved")
        )
        if main_category:
            query = query.where(filter=FieldFilter("mainCategory", "==", main_category))
        if sub_category:
            query = query.where(filter=FieldFilter("subCategory", "==", sub_category))
        if area:
            query = query.where(filter=FieldFilter("area", "==", area))
        query = query.order_by("storeName", direction=firestore.Query.ASCENDING)

        return [{"id": doc.id, **doc.to_dict()} for doc in query.stream()]

    def purchase_deal(self, uid: str, deal_id: str) -> Dict[str, Any]:
        """
        Buy a deal with points.

        Args:
            uid: Buyer UID
            deal_id: Deal document ID

        Returns:
            Success message
        """
        if not deal_id:
            raise ValidationError("Deal ID is required")

        user_ref = self.db.collection(settings.firestore_collection_users).document(uid)
        deal_ref = self.db.collection(settings.firestore_collection_deals).document(deal_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def purchase(transaction):
            user_snap = user_ref.get(transaction=transaction)
            deal_snap = deal_ref.get(transaction=transaction)
            user_data = user_snap.to_dict() if user_snap.exists else None
            deal_data = deal_snap.to_dict() if deal_snap.exists else None
            price = check_purchase(user_data, deal_data)

            transaction.update(user_ref, {
                "points.usableBalance": firestore.Increment(-price),
                "lastTransactionAt": firestore.SERVER_TIMESTAMP,
            })
            transaction.set(user_ref.collection("purchasedDeals").document(deal_id), {
                **deal_data,
                "purchasedAt": firestore.SERVER_TIMESTAMP,
                "used": False,
            })
            transaction.set(self.db.collection(settings.firestore_collection_transactions).document(), {
                "userId": uid,
                "storeId": deal_data.get("partnerId"),
                "amount": price,
                "type": "deal_purchase",
                "dealId": deal_id,
                "dealTitle": deal_data.get("title"),
                "status": "completed",
                "createdAt": firestore.SERVER_TIMESTAMP,
            })
            return price

        price = purchase(transaction)
        logger.info(f"User {uid} purchased deal {deal_id} for {price} points")
        return {"success": True, "message": "Purchase successful"}

    def redeem_ticket(self, partner_id: str, user_id: str, purchased_deal_id: str) -> Dict[str, Any]:
        """
        Mark a purchased ticket as used and credit the partner.

        Args:
            partner_id: Redeeming partner UID
            user_id: Ticket owner UID
            purchased_deal_id: Purchased deal document ID

        Returns:
            Success message
        """
        if not user_id or not purchased_deal_id:
            raise ValidationError("User ID and Purchased Deal ID are required")

        users = self.db.collection(settings.firestore_collection_users)
        ticket_ref = users.document(user_id).collection("purchasedDeals").document(purchased_deal_id)
        partner_ref = users.document(partner_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def redeem(transaction):
            snap = ticket_ref.get(transaction=transaction)
            price = check_redeem(snap.to_dict() if snap.exists else None, partner_id)
            transaction.update(ticket_ref, {
                "used": True,
                "redeemedAt": firestore.SERVER_TIMESTAMP,
            })
            transaction.update(partner_ref, {
                "payouts.pendingBalance": firestore.Increment(price),
            })
            return price

        price = redeem(transaction)
        logger.info(f"Partner {partner_id} redeemed ticket {purchased_deal_id} of {user_id} ({price})")
        return {"success": True, "message": "Ticket successfully redeemed."}

    def create_store_deal(self, partner_id: str, request: StoreDealRequest) -> Dict[str, Any]:
        """
        Publish an announcement for the partner's store.

        Args:
            partner_id: Partner UID
            request: Announcement content

        Returns:
            The created announcement
        """
        profile = self.firebase.get_user(partner_id) or {}
        store_name = profile.get("storeName")
        address = profile.get("address")
        phone_number = profile.get("phoneNumber")
        if is_blank(store_name) or is_blank(address) or is_blank(phone_number):
            raise ValidationError("プロフィール情報が不足しています。")
        if is_blank(request.title):
            raise ValidationError("タイトルは必須です。")

        created_at = now_jst()
        data = {
            "partnerUid": partner_id,
            "storeName": store_name,
            "address": address,
            "phoneNumber": phone_number,
            "title": request.title.strip(),
            "description": request.description or "",
            "linkUrl": request.link_url or "",
            "imageUrl": request.image_url or "",
            "isActive": True,
            "createdAt": created_at,
        }
        _, doc_ref = self.db.collection(settings.firestore_collection_store_deals).add(data)
        logger.info(f"Partner {partner_id} created store deal {doc_ref.id}")

        return {
            "id": doc_ref.id,
            "title": data["title"],
            "description": data["description"],
            "imageUrl": data["imageUrl"],
            "linkUrl": data["linkUrl"],
            "createdAt": created_at.isoformat(),
        }

    def _get_food_loss_deal(self, deal_id: str):
        if not deal_id:
            raise ValidationError("Deal ID is required.")
        ref = self.db.collection(settings.firestore_collection_food_loss_deals).document(deal_id)
        snap = ref.get()
        return ref, (snap.to_dict() if snap.exists else None)

    def close_food_loss_deal(self, partner_id: str, deal_id: str) -> Dict[str, Any]:
        """Close a food-loss deal owned by the partner."""
        ref, deal = self._get_food_loss_deal(deal_id)
        if deal is None:
            raise ResourceNotFoundError("Deal not found.")
        if deal_owner(deal) != partner_id:
            raise PermissionDeniedError("You are not authorized to close this deal.")

        ref.update({"status": "closed", "closedAt": now_jst().isoformat()})
        logger.info(f"Food-loss deal {deal_id} closed by {partner_id}")
        return {"message": "Deal closed successfully."}

    def end_food_loss_deal(self, partner_id: str, deal_id: str) -> Dict[str, Any]:
        """Stop showing a food-loss deal owned by the partner."""
        ref, deal = self._get_food_loss_deal(deal_id)
        if deal is None or deal_owner(deal) != partner_id:
            raise ResourceNotFoundError("対象の情報が見つからないか、操作権限がありません。")

        ref.update({"isActive": False, "endedAt": now_jst()})
        logger.info(f"Food-loss deal {deal_id} ended by {partner_id}")
        return {"success": True}
