"""
Unit tests for point deals, ticket redemption and partner announcements.
"""

import pytest
from unittest.mock import MagicMock

from nasu_app.config import settings
from nasu_app.exceptions import ConflictError, PermissionDeniedError, ResourceNotFoundError, ValidationError
from nasu_app.schemas.store import StoreDealRequest
from nasu_app.services.deal_service import DealService, check_purchase, check_redeem, deal_owner


class TestPurchaseChecks:
    """Tests for check_purchase."""

    def test_returns_price(self):
        assert check_purchase({"points": {"usableBalance": 500}}, {"price": 300}) == 300

    def test_exact_balance_is_enough(self):
        assert check_purchase({"points": {"usableBalance": 300}}, {"price": 300}) == 300

    def test_insufficient_points(self):
        with pytest.raises(ValidationError, match="Insufficient points"):
            check_purchase({"points": {"usableBalance": 100}}, {"price": 300})

    def test_user_without_points(self):
        with pytest.raises(ValidationError, match="Insufficient points"):
            check_purchase({}, {"price": 300})

    def test_missing_user(self):
        with pytest.raises(ResourceNotFoundError, match="User not found"):
            check_purchase(None, {"price": 300})

    def test_missing_deal(self):
        with pytest.raises(ResourceNotFoundError, match="Deal not found"):
            check_purchase({"points": {"usableBalance": 500}}, None)

    def test_deal_without_price(self):
        with pytest.raises(ValidationError, match="Invalid data"):
            check_purchase({"points": {"usableBalance": 500}}, {"title": "無料券"})


class TestRedeemChecks:
    """Tests for check_redeem."""

    def test_returns_price(self):
        assert check_redeem({"partnerId": "partner_001", "price": 800, "used": False}, "partner_001") == 800

    def test_missing_ticket(self):
        with pytest.raises(ResourceNotFoundError):
            check_redeem(None, "partner_001")

    def test_used_ticket(self):
        with pytest.raises(ConflictError) as exc_info:
            check_redeem({"partnerId": "partner_001", "used": True}, "partner_001")
        assert exc_info.value.status_code == 409

    def test_other_store(self):
        with pytest.raises(PermissionDeniedError):
            check_redeem({"partnerId": "partner_999", "used": False}, "partner_001")

    def test_deal_owner_falls_back_to_partner_uid(self):
        assert deal_owner({"partnerId": "a"}) == "a"
        assert deal_owner({"partnerUid": "b"}) == "b"
        assert deal_owner({}) is None


class TestDealService:
    """Tests for DealService with a mocked Firestore."""

    @pytest.fixture
    def service(self, mock_firebase):
        return DealService(mock_firebase)

    @pytest.fixture
    def collection(self, mock_firebase):
        return mock_firebase.db.collection.return_value

    def test_search_skips_empty_filters(self, service, collection, make_doc):
        query = collection.where.return_value
        query.order_by.return_value.stream.return_value = [make_doc("s1", {"storeName": "那須の湯"})]

        results = service.search_stores("", "", "")

        assert results == [{"id": "s1", "storeName": "那須の湯"}]
        collection.where.assert_called_once()
        query.where.assert_not_called()

    def test_search_applies_every_filter(self, service, collection):
        service.search_stores("飲食", "カフェ", "那須町")
        assert collection.where.return_value.where.return_value.where.return_value.where.called

    def test_create_store_deal(self, service, mock_firebase, collection):
        mock_firebase.get_user.return_value = {
            "storeName": "那須ベーカリー",
            "address": "那須町湯本1",
            "phoneNumber": "0287-00-0000",
        }
        collection.add.return_value = (None, MagicMock(id="deal_1"))

        deal = service.create_store_deal("partner_001", StoreDealRequest(title=" 新作パン ", description="限定"))

        assert deal["id"] == "deal_1"
        assert deal["title"] == "新作パン"
        assert deal["linkUrl"] == ""
        saved = collection.add.call_args[0][0]
        assert saved["partnerUid"] == "partner_001"
        assert saved["isActive"] is True

    def test_create_store_deal_requires_profile(self, service, mock_firebase):
        mock_firebase.get_user.return_value = {"storeName": "那須ベーカリー"}

        with pytest.raises(ValidationError, match="プロフィール情報"):
            service.create_store_deal("partner_001", StoreDealRequest(title="新作パン"))

    def test_create_store_deal_requires_title(self, service, mock_firebase):
        mock_firebase.get_user.return_value = {"storeName": "a", "address": "b", "phoneNumber": "c"}

        with pytest.raises(ValidationError, match="タイトル"):
            service.create_store_deal("partner_001", StoreDealRequest(title="  "))

    def test_close_food_loss_deal(self, service, collection, make_doc):
        collection.document.return_value.get.return_value = make_doc("fl_1", {"partnerId": "partner_001"})

        result = service.close_food_loss_deal("partner_001", "fl_1")

        assert result == {"message": "Deal closed successfully."}
        assert collection.document.return_value.update.call_args[0][0]["status"] == "closed"

    def test_close_food_loss_deal_of_other_partner(self, service, collection, make_doc):
        collection.document.return_value.get.return_value = make_doc("fl_1", {"partnerId": "partner_999"})

        with pytest.raises(PermissionDeniedError):
            service.close_food_loss_deal("partner_001", "fl_1")

    def test_end_food_loss_deal_hides_other_owner(self, service, collection, make_doc):
        collection.document.return_value.get.return_value = make_doc("fl_1", {"partnerUid": "partner_999"})

        with pytest.raises(ResourceNotFoundError):
            service.end_food_loss_deal("partner_001", "fl_1")
        collection.document.return_value.update.assert_not_called()

    def test_end_food_loss_deal(self, service, collection, make_doc):
        collection.document.return_value.get.return_value = make_doc("fl_1", {"partnerUid": "partner_001"})

        assert service.end_food_loss_deal("partner_001", "fl_1") == {"success": True}
        assert collection.document.return_value.update.call_args[0][0]["isActive"] is False


@pytest.mark.usefixtures("inline_transactions")
class TestDealTransactions:
    """Tests for the purchase and redeem transaction bodies."""

    @pytest.fixture
    def service(self, mock_firebase):
        return DealService(mock_firebase)

    @pytest.fixture
    def transaction(self, mock_firebase):
        return mock_firebase.db.transaction.return_value

    @pytest.fixture
    def users(self, collections):
        return collections(settings.firestore_collection_users)

    def test_purchase_deal(self, service, transaction, users, collections, make_doc):
        deals = collections(settings.firestore_collection_deals)
        users.document.return_value.get.return_value = make_doc("user_001", {"points": {"usableBalance": 1000}})
        deals.document.return_value.get.return_value = make_doc("deal_1", {
            "title": "ランチ券",
            "price": 300,
            "partnerId": "partner_001",
        })

        result = service.purchase_deal("user_001", "deal_1")

        assert result == {"success": True, "message": "Purchase successful"}
        user_ref, balance = transaction.update.call_args[0]
        assert user_ref is users.document.return_value
        assert balance["points.usableBalance"].value == -300

        (ticket_ref, ticket), (_, record) = [c[0] for c in transaction.set.call_args_list]
        users.document.return_value.collection.assert_called_once_with("purchasedDeals")
        assert ticket_ref is users.document.return_value.collection.return_value.document.return_value
        assert ticket["used"] is False
        assert ticket["title"] == "ランチ券"
        assert record["type"] == "deal_purchase"
        assert record["status"] == "completed"
        assert record["amount"] == 300
        assert record["storeId"] == "partner_001"

    def test_purchase_with_insufficient_points_writes_nothing(self, service, transaction, users, collections, make_doc):
        users.document.return_value.get.return_value = make_doc("user_001", {"points": {"usableBalance": 100}})
        collections(settings.firestore_collection_deals).document.return_value.get.return_value = make_doc(
            "deal_1", {"price": 300}
        )

        with pytest.raises(ValidationError, match="Insufficient points"):
            service.purchase_deal("user_001", "deal_1")

        transaction.update.assert_not_called()
        transaction.set.assert_not_called()

    def test_redeem_ticket(self, service, transaction, users, make_doc):
        ticket_ref = users.document.return_value.collection.return_value.document.return_value
        ticket_ref.get.return_value = make_doc("deal_1", {"partnerId": "partner_001", "price": 800, "used": False})

        result = service.redeem_ticket("partner_001", "user_001", "deal_1")

        assert result["success"] is True
        (used_ref, used), (partner_ref, credit) = [c[0] for c in transaction.update.call_args_list]
        assert used_ref is ticket_ref
        assert used["used"] is True
        assert "redeemedAt" in used
        assert partner_ref is users.document.return_value
        assert credit["payouts.pendingBalance"].value == 800

    def test_redeem_used_ticket_writes_nothing(self, service, transaction, users, make_doc):
        ticket_ref = users.document.return_value.collection.return_value.document.return_value
        ticket_ref.get.return_value = make_doc("deal_1", {"partnerId": "partner_001", "price": 800, "used": True})

        with pytest.raises(ConflictError):
            service.redeem_ticket("partner_001", "user_001", "deal_1")

        transaction.update.assert_not_called()
