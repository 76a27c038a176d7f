"""
Credit Service Event Publishers

Publish events for committed credit mutations. Publishing happens after the
transaction commits; a failed publish is logged and never undoes the mutation.
"""

import logging
from typing import Any, Dict

from .models import (
    CreditEventType,
    create_credit_debited_event_data,
    create_credit_granted_event_data,
)

logger = logging.getLogger(__name__)


async def publish_credit_debited(
    event_bus,
    organization_id: str,
    ledger_entry: Dict[str, Any],
    credits_deducted: int,
):
    """
    Publish credit.debited event

    Args:
        event_bus: Event bus instance (EventBusProtocol)
        organization_id: Organization charged
        ledger_entry: Committed ledger entry
        credits_deducted: Credits consumed
    """
    if not event_bus:
        return

    try:
        event_data = create_credit_debited_event_data(
            organization_id=organization_id,
            ledger_entry=ledger_entry,
            credits_deducted=credits_deducted,
        )

        await event_bus.publish(
            CreditEventType.CREDIT_DEBITED.value,
            event_data.model_dump(mode='json'),
        )
        logger.info(
            f"Published credit.debited for organization {organization_id}: {credits_deducted} credits"
        )

    except Exception as e:
        logger.error(f"Failed to publish credit.debited: {e}")


async def publish_credit_granted(
    event_bus,
    organization_id: str,
    grant: Dict[str, Any],
    balance_after: int,
):
    """
    Publish credit.granted event

    Args:
        event_bus: Event bus instance (EventBusProtocol)
        organization_id: Organization credited
        grant: Committed grant record
        balance_after: Balance after the grant
    """
    if not event_bus:
        return

    try:
        event_data = create_credit_granted_event_data(
            organization_id=organization_id,
            grant=grant,
            balance_after=balance_after,
        )

        await event_bus.publish(
            CreditEventType.CREDIT_GRANTED.value,
            event_data.model_dump(mode='json'),
        )
        logger.info(
            f"Published credit.granted for organization {organization_id}: "
            f"{grant['credits_amount']} credits"
        )

    except Exception as e:
        logger.error(f"Failed to publish credit.granted: {e}")
