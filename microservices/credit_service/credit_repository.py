"""
Credit Service Data Repository

Data access layer - PostgreSQL (Async, asyncpg)
Implements CreditRepositoryProtocol from protocols.py
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import asyncpg

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClientWrapper

from .models import MAX_CREDITS
from .protocols import (
    CreditServiceError,
    MutationCallback,
    StorageFailureError,
)

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# Errors that mean the database (not the caller) failed
STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def _failure_reason(error: Exception) -> str:
    if isinstance(error, asyncpg.LockNotAvailableError):
        return "lock_timeout"
    if isinstance(error, asyncpg.CheckViolationError):
        return "check_violation"
    if isinstance(error, asyncpg.UniqueViolationError):
        return "unique_violation"
    # Server class 22 errors and client-side argument encoding errors
    if isinstance(error, (asyncpg.DataError, asyncpg.NumericValueOutOfRangeError, ValueError)):
        return "invalid_data"
    if isinstance(error, (OSError, asyncpg.InterfaceError)):
        return "connection"
    if isinstance(error, asyncio.TimeoutError):
        return "timeout"
    return "database"


class CreditRepository:
    """Credit service data repository - PostgreSQL (Async)"""

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        db: Optional[PostgresClientWrapper] = None,
    ):
        if config is None:
            config = ConfigManager("credit_service")
        service_config = config.get_service_config()

        # Priority: explicit client -> environment / service discovery
        self.db = db or PostgresClientWrapper("credit_service", config=config)
        self.lock_timeout_ms = int(service_config.lock_timeout_ms)

        self.schema = service_config.db_schema
        self.balances_table = "credit_balances"
        self.pricing_table = "credit_pricing"
        self.ledger_table = "credit_ledger"
        self.grants_table = "credit_grants"

    async def initialize(self):
        """Initialize database connection"""
        try:
            await self.db.connect()
        except STORAGE_ERRORS as e:
            logger.error(f"Error connecting credit repository: {e}", exc_info=True)
            raise StorageFailureError(f"Database unavailable: {e}", reason=_failure_reason(e)) from e
        logger.info("Credit repository initialized with PostgreSQL")

    async def apply_migrations(self) -> List[str]:
        """
        Run the bundled SQL migrations in filename order; all are idempotent.

        Migrations name tables as {schema}.table and are applied to the
        configured schema.
        """
        applied = []
        for path in sorted(MIGRATIONS_DIR.glob("*.sql")):
            await self.db.execute(path.read_text().replace("{schema}", self.schema))
            applied.append(path.name)
            logger.info(f"Applied credit migration {path.name}")
        return applied

    async def close(self):
        """Close database connection"""
        await self.db.close()
        logger.info("Credit repository database connection closed")

    async def health_check(self) -> Dict[str, Any]:
        result = await self.db.health_check()
        return {"backend": "postgres", **(result or {"healthy": False})}

    # ====================
    # Balance Store
    # ====================

    async def get_balance(self, organization_id: str) -> Optional[Dict[str, Any]]:
        """Read the balance row (no lock, no lazy create)"""
        try:
            query = f'''
                SELECT organization_id, balance, updated_at
                FROM {self.schema}.{self.balances_table}
                WHERE organization_id = $1
            '''
            result = await self.db.query_row(query, params=[organization_id])
            return self._row_to_dict(result) if result else None

        except STORAGE_ERRORS as e:
            logger.error(f"Error getting balance for organization {organization_id}: {e}")
            raise StorageFailureError(f"Failed to read balance: {e}", reason=_failure_reason(e)) from e

    async def apply_mutation(
        self,
        organization_id: str,
        mutate: MutationCallback,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Lock the organization's balance row and commit mutate()'s result.

        Everything runs in one transaction: the lazy zero-balance insert, the
        row lock, the balance update, the ledger insert and the optional grant
        insert. Any exception rolls all of it back.
        """
        try:
            async with self.db.transaction() as conn:
                # Bounded wait for a contended row lock
                await conn.execute(f"SET LOCAL lock_timeout = '{self.lock_timeout_ms}ms'")

                await conn.execute(
                    f'''
                    INSERT INTO {self.schema}.{self.balances_table} (organization_id, balance, updated_at)
                    VALUES ($1, 0, $2)
                    ON CONFLICT (organization_id) DO NOTHING
                    ''',
                    organization_id,
                    datetime.now(timezone.utc),
                )

                locked = await conn.fetchrow(
                    f'''
                    SELECT balance FROM {self.schema}.{self.balances_table}
                    WHERE organization_id = $1
                    FOR UPDATE
                    ''',
                    organization_id,
                )
                current_balance = locked["balance"]

                if idempotency_key:
                    existing = await conn.fetchrow(
                        f'''
                        SELECT * FROM {self.schema}.{self.ledger_table}
                        WHERE organization_id = $1 AND idempotency_key = $2
                        ''',
                        organization_id,
                        idempotency_key,
                    )
                    if existing:
                        logger.info(
                            f"Replaying ledger entry {existing['entry_id']} for "
                            f"organization {organization_id}, idempotency_key={idempotency_key}"
                        )
                        entry = self._row_to_dict(existing)
                        return {
                            "balance_after": entry["balance_after"],
                            "ledger_entry": entry,
                            "grant": None,
                            "replayed": True,
                        }

                mutation = mutate(current_balance)
                if mutation.new_balance > MAX_CREDITS:
                    raise StorageFailureError(
                        f"Balance for organization {organization_id} would exceed {MAX_CREDITS}",
                        reason="check_violation",
                    )
                now = datetime.now(timezone.utc)

                await conn.execute(
                    f'''
                    UPDATE {self.schema}.{self.balances_table}
                    SET balance = $2, updated_at = $3
                    WHERE organization_id = $1
                    ''',
                    organization_id,
                    mutation.new_balance,
                    now,
                )

                draft = mutation.ledger_entry
                entry_row = await conn.fetchrow(
                    f'''
                    INSERT INTO {self.schema}.{self.ledger_table} (
                        entry_id, organization_id, user_id, article_id, action_type,
                        platform, credits_delta, balance_after, idempotency_key,
                        metadata, created_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                    RETURNING *
                    ''',
                    draft["entry_id"],
                    organization_id,
                    draft.get("user_id"),
                    draft.get("article_id"),
                    draft["action_type"],
                    draft.get("platform"),
                    draft["credits_delta"],
                    mutation.new_balance,
                    idempotency_key,
                    draft.get("metadata") or {},
                    now,
                )

                grant_row = None
                if mutation.grant is not None:
                    grant = mutation.grant
                    grant_row = await conn.fetchrow(
                        f'''
                        INSERT INTO {self.schema}.{self.grants_table} (
                            grant_id, organization_id, granted_by_user_id, credits_amount,
                            reason, ledger_entry_id, metadata, created_at
                        ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                        RETURNING *
                        ''',
                        grant["grant_id"],
                        organization_id,
                        grant.get("granted_by_user_id"),
                        grant["credits_amount"],
                        grant.get("reason"),
                        draft["entry_id"],
                        grant.get("metadata") or {},
                        now,
                    )

            return {
                "balance_after": mutation.new_balance,
                "ledger_entry": self._row_to_dict(entry_row),
                "grant": self._row_to_dict(grant_row) if grant_row else None,
                "replayed": False,
            }

        except CreditServiceError:
            raise
        except STORAGE_ERRORS as e:
            logger.error(
                f"Credit mutation rolled back for organization {organization_id}: {e}",
                exc_info=True,
            )
            raise StorageFailureError(
                f"Credit mutation failed: {e}", reason=_failure_reason(e)
            ) from e

    # ====================
    # Ledger Queries
    # ====================

    def _ledger_where(self, organization_id: str, filters: Dict[str, Any]):
        conditions = ["organization_id = $1"]
        params: List[Any] = [organization_id]
        param_count = 1

        if filters.get("start_date"):
            param_count += 1
            conditions.append(f"created_at >= ${param_count}")
            params.append(filters["start_date"])

        if filters.get("end_date"):
            param_count += 1
            conditions.append(f"created_at <= ${param_count}")
            params.append(filters["end_date"])

        if filters.get("platform"):
            param_count += 1
            conditions.append(f"platform = ${param_count}")
            params.append(filters["platform"])

        if filters.get("action_type"):
            param_count += 1
            conditions.append(f"action_type = ${param_count}")
            params.append(filters["action_type"])

        return " AND ".join(conditions), params

    async def list_ledger_entries(
        self,
        organization_id: str,
        filters: Dict[str, Any],
        limit: int,
        offset: int,
    ) -> Dict[str, Any]:
        """Filtered page of ledger entries, most recent first"""
        try:
            where_clause, params = self._ledger_where(organization_id, filters)
            next_param = len(params) + 1

            count_query = f'''
                SELECT COUNT(*) AS total FROM {self.schema}.{self.ledger_table}
                WHERE {where_clause}
            '''
            query = f'''
                SELECT * FROM {self.schema}.{self.ledger_table}
                WHERE {where_clause}
                ORDER BY created_at DESC, entry_seq DESC
                LIMIT ${next_param} OFFSET ${next_param + 1}
            '''

            count_row = await self.db.query_row(count_query, params=params)
            results = await self.db.query(query, params=params + [limit, offset])

            return {
                "entries": [self._row_to_dict(row) for row in results] if results else [],
                "total": count_row["total"] if count_row else 0,
            }

        except STORAGE_ERRORS as e:
            logger.error(f"Error listing ledger for organization {organization_id}: {e}")
            raise StorageFailureError(f"Failed to read ledger: {e}", reason=_failure_reason(e)) from e

    async def get_ledger_summary(self, organization_id: str) -> Dict[str, int]:
        try:
            query = f'''
                SELECT COALESCE(SUM(credits_delta), 0) AS ledger_sum, COUNT(*) AS entry_count
                FROM {self.schema}.{self.ledger_table}
                WHERE organization_id = $1
            '''
            result = await self.db.query_row(query, params=[organization_id])
            return {
                "ledger_sum": int(result["ledger_sum"]),
                "entry_count": int(result["entry_count"]),
            }

        except STORAGE_ERRORS as e:
            logger.error(f"Error summarizing ledger for organization {organization_id}: {e}")
            raise StorageFailureError(f"Failed to read ledger: {e}", reason=_failure_reason(e)) from e

    async def list_grants(self, organization_id: str, limit: int, offset: int) -> Dict[str, Any]:
        try:
            count_query = f'''
                SELECT COUNT(*) AS total FROM {self.schema}.{self.grants_table}
                WHERE organization_id = $1
            '''
            query = f'''
                SELECT g.* FROM {self.schema}.{self.grants_table} g
                JOIN {self.schema}.{self.ledger_table} l ON l.entry_id = g.ledger_entry_id
                WHERE g.organization_id = $1
                ORDER BY l.entry_seq DESC
                LIMIT $2 OFFSET $3
            '''
            count_row = await self.db.query_row(count_query, params=[organization_id])
            results = await self.db.query(query, params=[organization_id, limit, offset])

            return {
                "grants": [self._row_to_dict(row) for row in results] if results else [],
                "total": count_row["total"] if count_row else 0,
            }

        except STORAGE_ERRORS as e:
            logger.error(f"Error listing grants for organization {organization_id}: {e}")
            raise StorageFailureError(f"Failed to read grants: {e}", reason=_failure_reason(e)) from e

    # ====================
    # Price List
    # ====================

    async def get_pricing(self, action_type: str, platform: str) -> Optional[Dict[str, Any]]:
        try:
            query = f'''
                SELECT * FROM {self.schema}.{self.pricing_table}
                WHERE action_type = $1 AND platform = $2
            '''
            result = await self.db.query_row(query, params=[action_type, platform])
            return self._row_to_dict(result) if result else None

        except STORAGE_ERRORS as e:
            logger.error(f"Error getting pricing {action_type}/{platform}: {e}")
            raise StorageFailureError(f"Failed to read pricing: {e}", reason=_failure_reason(e)) from e

    async def list_pricing(self) -> List[Dict[str, Any]]:
        try:
            query = f'''
                SELECT * FROM {self.schema}.{self.pricing_table}
                ORDER BY action_type, platform
            '''
            results = await self.db.query(query)
            return [self._row_to_dict(row) for row in results] if results else []

        except STORAGE_ERRORS as e:
            logger.error(f"Error listing pricing: {e}")
            raise StorageFailureError(f"Failed to read pricing: {e}", reason=_failure_reason(e)) from e

    async def upsert_pricing(self, action_type: str, platform: str, credits_required: int) -> Dict[str, Any]:
        try:
            now = datetime.now(timezone.utc)
            query = f'''
                INSERT INTO {self.schema}.{self.pricing_table} (
                    action_type, platform, credits_required, created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $4)
                ON CONFLICT (action_type, platform)
                DO UPDATE SET credits_required = EXCLUDED.credits_required,
                              updated_at = EXCLUDED.updated_at
                RETURNING *
            '''
            result = await self.db.query_row(query, params=[action_type, platform, credits_required, now])
            logger.info(f"Set price {action_type}/{platform} = {credits_required}")
            return self._row_to_dict(result)

        except STORAGE_ERRORS as e:
            logger.error(f"Error setting pricing {action_type}/{platform}: {e}")
            raise StorageFailureError(f"Failed to write pricing: {e}", reason=_failure_reason(e)) from e

    def _row_to_dict(self, row: Any) -> Dict[str, Any]:
        """Convert database row to dictionary"""
        if not row:
            return {}

        result = {}
        for key, value in dict(row).items():
            # jsonb arrives decoded; tolerate text payloads
            if key == "metadata":
                if isinstance(value, str):
                    try:
                        result[key] = json.loads(value)
                    except (json.JSONDecodeError, TypeError):
                        result[key] = {}
                else:
                    result[key] = value or {}
            else:
                result[key] = value

        return result


__all__ = ["CreditRepository"]
