"""
Credit Service In-Memory Repository

Implements CreditRepositoryProtocol with Python dictionaries:
- One asyncio.Lock per organization (no global lock)
- Critical section has no await points once the lock is held
- State lost on restart (not persistent)
- Single process only (no horizontal scaling)

Useful for: local development, component tests, CI pipelines
"""

import asyncio
import copy
import itertools
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .models import MAX_CREDITS
from .protocols import BalanceMutation, MutationCallback, StorageFailureError

logger = logging.getLogger(__name__)


class InMemoryCreditRepository:
    """Transient credit storage guarded by per-organization asyncio locks"""

    def __init__(self, pricing: Optional[Dict[Tuple[str, str], int]] = None):
        # Balances: {organization_id: {organization_id, balance, updated_at}}
        self._balances: Dict[str, Dict[str, Any]] = {}

        # Append-only history
        self._ledger: List[Dict[str, Any]] = []
        self._grants: List[Dict[str, Any]] = []

        # Idempotency index: {(organization_id, key): ledger entry}
        self._idempotency: Dict[Tuple[str, str], Dict[str, Any]] = {}

        # Price list: {(action_type, platform): pricing row}
        self._pricing: Dict[Tuple[str, str], Dict[str, Any]] = {}

        # Locks exist only while an organization has a mutation in flight
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._seq = itertools.count(1)

        now = datetime.now(timezone.utc)
        for (action_type, platform), credits in (pricing or {}).items():
            self._pricing[(action_type, platform)] = {
                "action_type": action_type,
                "platform": platform,
                "credits_required": credits,
                "created_at": now,
                "updated_at": now,
            }

        logger.info("Initialized InMemoryCreditRepository")

    async def initialize(self):
        logger.info("Credit repository initialized in memory")

    async def close(self):
        logger.info("Credit repository (memory) closed")

    async def health_check(self) -> Dict[str, Any]:
        return {"healthy": True, "backend": "memory"}

    # ====================
    # Balance Store
    # ====================

    async def get_balance(self, organization_id: str) -> Optional[Dict[str, Any]]:
        row = self._balances.get(organization_id)
        return dict(row) if row else None

    @asynccontextmanager
    async def _org_lock(self, organization_id: str):
        """Hold the organization's lock; drop it once no caller is using or waiting on it"""
        lock = self._locks.get(organization_id)
        if lock is None:
            lock = self._locks[organization_id] = asyncio.Lock()
        self._lock_users[organization_id] = self._lock_users.get(organization_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[organization_id] -= 1
            if not self._lock_users[organization_id]:
                del self._lock_users[organization_id]
                del self._locks[organization_id]

    def held_lock_count(self) -> int:
        """Organizations with a mutation in flight or queued"""
        return len(self._locks)

    async def apply_mutation(
        self,
        organization_id: str,
        mutate: MutationCallback,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        async with self._org_lock(organization_id):
            if idempotency_key:
                existing = self._idempotency.get((organization_id, idempotency_key))
                if existing:
                    logger.info(
                        f"Replaying ledger entry {existing['entry_id']} for "
                        f"organization {organization_id}, idempotency_key={idempotency_key}"
                    )
                    return {
                        "balance_after": existing["balance_after"],
                        "ledger_entry": copy.deepcopy(existing),
                        "grant": None,
                        "replayed": True,
                    }

            row = self._balances.get(organization_id)
            current_balance = row["balance"] if row else 0

            mutation = mutate(current_balance)
            self._check_mutation(organization_id, current_balance, mutation)

            now = datetime.now(timezone.utc)
            entry = copy.deepcopy(mutation.ledger_entry)
            entry.update({
                "organization_id": organization_id,
                "balance_after": mutation.new_balance,
                "idempotency_key": idempotency_key,
                "entry_seq": next(self._seq),
                "created_at": now,
            })
            entry.setdefault("metadata", {})

            grant = None
            if mutation.grant is not None:
                grant = copy.deepcopy(mutation.grant)
                grant.update({
                    "organization_id": organization_id,
                    "ledger_entry_id": entry["entry_id"],
                    "created_at": now,
                })
                grant.setdefault("metadata", {})

            self._commit(organization_id, mutation.new_balance, entry, grant, now)

            return {
                "balance_after": mutation.new_balance,
                "ledger_entry": copy.deepcopy(entry),
                "grant": copy.deepcopy(grant) if grant else None,
                "replayed": False,
            }

    def _check_mutation(self, organization_id: str, current_balance: int, mutation: BalanceMutation):
        """Same constraints the database enforces"""
        delta = mutation.ledger_entry.get("credits_delta")
        if mutation.new_balance < 0:
            raise StorageFailureError(
                f"Balance for organization {organization_id} would become negative",
                reason="check_violation",
            )
        if mutation.new_balance > MAX_CREDITS:
            raise StorageFailureError(
                f"Balance for organization {organization_id} would exceed {MAX_CREDITS}",
                reason="check_violation",
            )
        if delta is None or current_balance + delta != mutation.new_balance:
            raise StorageFailureError(
                f"Ledger delta {delta} does not move balance {current_balance} "
                f"to {mutation.new_balance}",
                reason="check_violation",
            )

    def _commit(
        self,
        organization_id: str,
        new_balance: int,
        entry: Dict[str, Any],
        grant: Optional[Dict[str, Any]],
        now: datetime,
    ):
        self._balances[organization_id] = {
            "organization_id": organization_id,
            "balance": new_balance,
            "updated_at": now,
        }
        self._ledger.append(entry)
        if entry.get("idempotency_key"):
            self._idempotency[(organization_id, entry["idempotency_key"])] = entry
        if grant is not None:
            self._grants.append(grant)

    # ====================
    # Ledger Queries
    # ====================

    async def list_ledger_entries(
        self,
        organization_id: str,
        filters: Dict[str, Any],
        limit: int,
        offset: int,
    ) -> Dict[str, Any]:
        matched = [
            entry for entry in self._ledger
            if entry["organization_id"] == organization_id and self._matches(entry, filters)
        ]
        matched.sort(key=lambda e: (e["created_at"], e["entry_seq"]), reverse=True)

        return {
            "entries": [copy.deepcopy(e) for e in matched[offset:offset + limit]],
            "total": len(matched),
        }

    @staticmethod
    def _matches(entry: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        if filters.get("start_date") and entry["created_at"] < filters["start_date"]:
            return False
        if filters.get("end_date") and entry["created_at"] > filters["end_date"]:
            return False
        if filters.get("platform") and entry.get("platform") != filters["platform"]:
            return False
        if filters.get("action_type") and entry.get("action_type") != filters["action_type"]:
            return False
        return True

    async def get_ledger_summary(self, organization_id: str) -> Dict[str, int]:
        deltas = [e["credits_delta"] for e in self._ledger if e["organization_id"] == organization_id]
        return {"ledger_sum": sum(deltas), "entry_count": len(deltas)}

    async def list_grants(self, organization_id: str, limit: int, offset: int) -> Dict[str, Any]:
        matched = [g for g in self._grants if g["organization_id"] == organization_id]
        matched.reverse()
        return {
            "grants": [copy.deepcopy(g) for g in matched[offset:offset + limit]],
            "total": len(matched),
        }

    # ====================
    # Price List
    # ====================

    async def get_pricing(self, action_type: str, platform: str) -> Optional[Dict[str, Any]]:
        row = self._pricing.get((action_type, platform))
        return dict(row) if row else None

    async def list_pricing(self) -> List[Dict[str, Any]]:
        return [dict(row) for _, row in sorted(self._pricing.items())]

    async def upsert_pricing(self, action_type: str, platform: str, credits_required: int) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        existing = self._pricing.get((action_type, platform))
        row = {
            "action_type": action_type,
            "platform": platform,
            "credits_required": credits_required,
            "created_at": existing["created_at"] if existing else now,
            "updated_at": now,
        }
        self._pricing[(action_type, platform)] = row
        logger.info(f"Set price {action_type}/{platform} = {credits_required}")
        return dict(row)


__all__ = ["InMemoryCreditRepository"]
