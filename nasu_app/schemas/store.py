"""
Store, deal and ticket request models.
"""

from typing import Optional
from pydantic import Field

from .common import ApiModel


class PurchaseDealRequest(ApiModel):
    """Point purchase of a deal."""

    deal_id: str = Field(default="", description="Deal document ID")


class RedeemTicketRequest(ApiModel):
    """Ticket presented at the store."""

    user_id: str = Field(default="", description="Ticket owner UID")
    purchased_deal_id: str = Field(default="", description="Purchased deal document ID")


class StoreDealRequest(ApiModel):
    """Announcement published by a partner."""

    title: str = ""
    description: Optional[str] = None
    link_url: Optional[str] = None
    image_url: Optional[str] = None
