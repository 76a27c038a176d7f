"""
Credit Service Event Package

Publishing: credit mutation events (debited, granted), emitted after commit
"""

from .models import (
    CreditEventType,
    CreditDebitedEventData,
    CreditGrantedEventData,
    create_credit_debited_event_data,
    create_credit_granted_event_data,
)

from .publishers import (
    publish_credit_debited,
    publish_credit_granted,
)

__all__ = [
    # Event types
    "CreditEventType",
    # Event models
    "CreditDebitedEventData",
    "CreditGrantedEventData",
    # Helper functions
    "create_credit_debited_event_data",
    "create_credit_granted_event_data",
    # Publishers
    "publish_credit_debited",
    "publish_credit_granted",
]
