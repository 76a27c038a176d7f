"""
Credit Service Event Models

Event data models for committed credit mutations.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Event Type Definitions (Service-Specific)
# =============================================================================

class CreditEventType(str, Enum):
    """
    Events published by credit_service.

    Subjects: credit.>
    """
    CREDIT_DEBITED = "credit.debited"
    CREDIT_GRANTED = "credit.granted"


# ============================================================================
# Credit Mutation Event Models
# ============================================================================


class CreditDebitedEventData(BaseModel):
    """
    Event: credit.debited
    Triggered after a debit commits (never for replays or rejected debits)
    """

    organization_id: str = Field(..., description="Organization charged")
    entry_id: str = Field(..., description="Ledger entry ID")
    credits_deducted: int = Field(..., gt=0, description="Credits consumed")
    balance_after: int = Field(..., ge=0, description="Balance after the debit")
    action_type: str = Field(..., description="Billable action")
    platform: Optional[str] = Field(None, description="Content platform")
    user_id: Optional[str] = Field(None, description="Acting user")
    article_id: Optional[str] = Field(None, description="Billable artifact")
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "organization_id": "org_acme",
                "entry_id": "ledger_3f9a0c1b2d4e",
                "credits_deducted": 10,
                "balance_after": 90,
                "action_type": "ARTICLE_CREATE",
                "platform": "blog",
                "user_id": "usr_xyz789",
                "article_id": "art_001",
                "timestamp": "2025-12-18T10:00:00Z",
            }
        }
    )


class CreditGrantedEventData(BaseModel):
    """
    Event: credit.granted
    Triggered after an administrative grant commits
    """

    organization_id: str = Field(..., description="Organization credited")
    grant_id: str = Field(..., description="Grant record ID")
    entry_id: str = Field(..., description="Ledger entry ID")
    credits_granted: int = Field(..., gt=0, description="Credits added")
    balance_after: int = Field(..., ge=0, description="Balance after the grant")
    granted_by: Optional[str] = Field(None, description="Granting administrator")
    reason: Optional[str] = Field(None, description="Grant reason")
    timestamp: datetime = Field(default_factory=_utcnow)


# ============================================================================
# Helper Functions
# ============================================================================


def create_credit_debited_event_data(
    organization_id: str,
    ledger_entry: Dict[str, Any],
    credits_deducted: int,
) -> CreditDebitedEventData:
    """Create credit debited event data from a committed ledger entry"""
    return CreditDebitedEventData(
        organization_id=organization_id,
        entry_id=ledger_entry["entry_id"],
        credits_deducted=credits_deducted,
        balance_after=ledger_entry["balance_after"],
        action_type=ledger_entry["action_type"],
        platform=ledger_entry.get("platform"),
        user_id=ledger_entry.get("user_id"),
        article_id=ledger_entry.get("article_id"),
    )


def create_credit_granted_event_data(
    organization_id: str,
    grant: Dict[str, Any],
    balance_after: int,
) -> CreditGrantedEventData:
    """Create credit granted event data from a committed grant record"""
    return CreditGrantedEventData(
        organization_id=organization_id,
        grant_id=grant["grant_id"],
        entry_id=grant["ledger_entry_id"],
        credits_granted=grant["credits_amount"],
        balance_after=balance_after,
        granted_by=grant.get("granted_by_user_id"),
        reason=grant.get("reason"),
    )
