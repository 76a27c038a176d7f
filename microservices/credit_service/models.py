"""
Credit Service Data Models

Organization credit balances, the append-only credit ledger, administrative
grants and the credit price list.
"""

from enum import Enum
from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator


# ====================
# Enumerations
# ====================

class PlatformEnum(str, Enum):
    """Content platforms a billable action can target"""
    BLOG = "blog"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    REDDIT = "reddit"


class ActionTypeEnum(str, Enum):
    """Known ledger action types"""
    ARTICLE_CREATE = "ARTICLE_CREATE"
    CREDIT_GRANT = "CREDIT_GRANT"


class PricingPolicyEnum(str, Enum):
    """Where the debit amount comes from"""
    TABLE = "table"
    CALLER = "caller"
    CALLER_WITH_TABLE_FALLBACK = "caller_with_table_fallback"


# Seeded price list (credits per action and platform)
DEFAULT_PRICING: Dict[tuple, int] = {
    (ActionTypeEnum.ARTICLE_CREATE.value, PlatformEnum.BLOG.value): 10,
    (ActionTypeEnum.ARTICLE_CREATE.value, PlatformEnum.LINKEDIN.value): 5,
    (ActionTypeEnum.ARTICLE_CREATE.value, PlatformEnum.TWITTER.value): 3,
    (ActionTypeEnum.ARTICLE_CREATE.value, PlatformEnum.REDDIT.value): 5,
}

VALID_PLATFORMS = {p.value for p in PlatformEnum}

# Storage columns are 32-bit INTEGER
MAX_CREDITS = 2**31 - 1


def _validate_platform(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if v not in VALID_PLATFORMS:
        raise ValueError(f"platform must be one of: {sorted(VALID_PLATFORMS)}")
    return v


def _validate_action_type(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("action_type cannot be empty")
    return v.strip().upper()


# ====================
# Core Data Models
# ====================

class CreditBalance(BaseModel):
    """
    Credit balance model - the single source of truth for an organization's
    spendable credits. Created lazily with balance 0 on first mutation.
    """
    organization_id: str = Field(..., min_length=1, description="Organization ID")
    balance: int = Field(default=0, ge=0, description="Current spendable balance")
    updated_at: Optional[datetime] = None


class CreditPricing(BaseModel):
    """Price list row - credits required per (action_type, platform)"""
    action_type: str = Field(..., min_length=1, description="Billable action")
    platform: PlatformEnum = Field(..., description="Content platform")
    credits_required: int = Field(..., gt=0, description="Credits charged per action")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreditLedgerEntry(BaseModel):
    """
    Credit ledger entry - immutable record of one balance change.
    Negative credits_delta for consumption, positive for grants.
    """
    entry_id: str = Field(..., min_length=1, description="Unique entry identifier")
    organization_id: str = Field(..., min_length=1, description="Organization ID")

    # Provenance
    user_id: Optional[str] = Field(None, description="Acting user")
    article_id: Optional[str] = Field(None, description="Billable artifact")
    action_type: str = Field(..., min_length=1, description="Action type")
    platform: Optional[PlatformEnum] = Field(None, description="Content platform")

    # Balance tracking
    credits_delta: int = Field(..., description="Signed balance change")
    balance_after: int = Field(..., ge=0, description="Balance right after this entry")

    idempotency_key: Optional[str] = Field(None, max_length=128, description="Client request token")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional context")

    created_at: Optional[datetime] = None


class CreditGrant(BaseModel):
    """Administrative top-up, linked 1:1 to a positive ledger entry"""
    grant_id: str = Field(..., min_length=1, description="Unique grant identifier")
    organization_id: str = Field(..., min_length=1, description="Organization ID")
    granted_by_user_id: Optional[str] = Field(None, description="Administrator who granted")
    credits_amount: int = Field(..., gt=0, description="Credits granted")
    reason: Optional[str] = Field(None, max_length=500, description="Grant reason")
    ledger_entry_id: str = Field(..., min_length=1, description="Linked ledger entry")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional metadata")
    created_at: Optional[datetime] = None


# ====================
# Request Models
# ====================

class CheckCreditsRequest(BaseModel):
    """Request for the advisory (non-locking) sufficiency check"""
    action_type: str = Field(default=ActionTypeEnum.ARTICLE_CREATE.value, description="Billable action")
    platform: str = Field(..., description="Content platform")
    required_credits: Optional[StrictInt] = Field(None, description="Caller-computed price")

    @field_validator('action_type')
    @classmethod
    def validate_action_type(cls, v):
        return _validate_action_type(v)

    @field_validator('platform')
    @classmethod
    def validate_platform(cls, v):
        return _validate_platform(v)


class DebitCreditsRequest(BaseModel):
    """Request to debit credits for a billable action"""
    platform: str = Field(..., description="Content platform")
    required_credits: Optional[StrictInt] = Field(None, description="Caller-computed price")
    action_type: str = Field(default=ActionTypeEnum.ARTICLE_CREATE.value, description="Billable action")
    user_id: Optional[str] = Field(None, max_length=100, description="Acting user (defaults to caller)")
    article_id: Optional[str] = Field(None, max_length=100, description="Billable artifact ID")
    idempotency_key: Optional[str] = Field(None, min_length=1, max_length=128, description="Client request token")
    metadata: Optional[Dict[str, Any]] = Field(default_factory=dict, description="Additional context")

    @field_validator('platform')
    @classmethod
    def validate_platform(cls, v):
        return _validate_platform(v)

    @field_validator('action_type')
    @classmethod
    def validate_action_type(cls, v):
        return _validate_action_type(v)


class GrantCreditsRequest(BaseModel):
    """Request to grant credits to an organization"""
    amount: StrictInt = Field(..., description="Credits to add")
    reason: Optional[str] = Field(None, max_length=500, description="Grant reason")
    metadata: Optional[Dict[str, Any]] = Field(default_factory=dict, description="Additional metadata")


class LedgerQueryRequest(BaseModel):
    """Request to page through an organization's ledger"""
    start_date: Optional[datetime] = Field(None, description="Inclusive lower bound on created_at")
    end_date: Optional[datetime] = Field(None, description="Inclusive upper bound on created_at")
    platform: Optional[str] = Field(None, description="Filter by platform")
    action_type: Optional[str] = Field(None, description="Filter by action type")
    page: int = Field(default=1, description="Page number (1-based)")
    page_size: Optional[int] = Field(None, description="Items per page (clamped to 1-100, default 50)")

    @field_validator('platform')
    @classmethod
    def validate_platform(cls, v):
        return _validate_platform(v)

    @field_validator('action_type')
    @classmethod
    def validate_action_type(cls, v):
        if v is None:
            return v
        return _validate_action_type(v)

    def to_filters(self) -> Dict[str, Any]:
        filters = {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "platform": self.platform,
            "action_type": self.action_type,
        }
        return {k: v for k, v in filters.items() if v is not None}


class SetPricingRequest(BaseModel):
    """Request to create or update a price list row"""
    action_type: str = Field(..., description="Billable action")
    platform: str = Field(..., description="Content platform")
    credits_required: StrictInt = Field(..., description="Credits charged per action")

    @field_validator('action_type')
    @classmethod
    def validate_action_type(cls, v):
        return _validate_action_type(v)

    @field_validator('platform')
    @classmethod
    def validate_platform(cls, v):
        return _validate_platform(v)


# ====================
# Response Models
# ====================

class BalanceResponse(BaseModel):
    """Current balance of an organization"""
    organization_id: str = Field(..., description="Organization ID")
    balance: int = Field(..., ge=0, description="Current balance")


class CreditCheckResponse(BaseModel):
    """Advisory sufficiency check result"""
    sufficient: bool = Field(..., description="Whether the balance covers the price")
    balance: int = Field(..., ge=0, description="Balance at read time")
    required: int = Field(..., gt=0, description="Credits the action costs")


class DebitResponse(BaseModel):
    """Result of a committed (or replayed) debit"""
    success: bool = Field(default=True)
    organization_id: str = Field(..., description="Organization ID")
    balance_after: int = Field(..., ge=0, description="Balance after the debit")
    credits_deducted: int = Field(..., gt=0, description="Credits consumed")
    entry_id: str = Field(..., description="Ledger entry ID")
    replayed: bool = Field(default=False, description="True when an idempotency key matched")


class GrantResponse(BaseModel):
    """Result of a committed grant"""
    success: bool = Field(default=True)
    organization_id: str = Field(..., description="Organization ID")
    balance_after: int = Field(..., ge=0, description="Balance after the grant")
    credits_granted: int = Field(..., gt=0, description="Credits added")
    grant_id: str = Field(..., description="Grant record ID")
    entry_id: str = Field(..., description="Ledger entry ID")


class CreditLedgerEntryResponse(BaseModel):
    """Ledger entry as returned to clients"""
    entry_id: str
    organization_id: str
    user_id: Optional[str] = None
    article_id: Optional[str] = None
    action_type: str
    platform: Optional[str] = None
    credits_delta: int
    balance_after: int = Field(..., ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaginatedLedgerResponse(BaseModel):
    """One page of ledger entries, most recent first"""
    entries: List[CreditLedgerEntryResponse] = Field(..., description="Ledger entries")
    total: int = Field(..., ge=0, description="Entries matching the filters")
    page: int = Field(..., ge=1, description="Current page")
    page_size: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(..., ge=0, description="Number of pages")


class CreditGrantResponse(BaseModel):
    """Grant record as returned to clients"""
    grant_id: str
    organization_id: str
    granted_by_user_id: Optional[str] = None
    credits_amount: int = Field(..., gt=0)
    reason: Optional[str] = None
    ledger_entry_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GrantListResponse(BaseModel):
    """One page of grant records, most recent first"""
    grants: List[CreditGrantResponse] = Field(..., description="Grant records")
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)


class CreditPricingResponse(BaseModel):
    """Price list row as returned to clients"""
    action_type: str
    platform: str
    credits_required: int = Field(..., gt=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReconciliationResponse(BaseModel):
    """Stored balance compared with the sum of ledger deltas"""
    organization_id: str
    balance: int = Field(..., ge=0)
    ledger_sum: int
    entry_count: int = Field(..., ge=0)
    consistent: bool


# ====================
# Health & System Models
# ====================

class HealthCheckResponse(BaseModel):
    """Standard health check response"""
    status: str = Field(..., description="Health status")
    service: str = Field(..., description="Service name")
    port: int = Field(..., description="Service port")
    version: str = Field(..., description="Service version")
    timestamp: str = Field(..., description="Timestamp ISO format")
    dependencies: Dict[str, str] = Field(default_factory=dict, description="Dependency status")


class ErrorResponse(BaseModel):
    """Standard error response"""
    error: Optional[str] = Field(None, description="Error type")
    detail: str = Field(..., description="Error detail")
    required: Optional[int] = Field(None, description="Credits required (insufficient credits only)")
    available: Optional[int] = Field(None, description="Credits available (insufficient credits only)")
    timestamp: Optional[datetime] = Field(None, description="Error timestamp")
