"""
PostgreSQL Client Wrapper

Centralized asyncpg pool wrapper with service discovery integration and a
consistent database access pattern.

Usage:
    from core.postgres_client import PostgresClientWrapper

    db = PostgresClientWrapper("credit_service")

    # Execute queries
    rows = await db.query("SELECT * FROM credit.credit_ledger WHERE organization_id = $1", [org_id])

    # Run several statements in one transaction
    async with db.transaction() as conn:
        await conn.execute(...)
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

from core.config import InfraConfig

logger = logging.getLogger(__name__)


async def _init_connection(conn: asyncpg.Connection):
    """Decode json/jsonb columns to Python objects"""
    for typename in ("json", "jsonb"):
        await conn.set_type_codec(
            typename,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


class PostgresClientWrapper:
    """
    PostgreSQL client wrapper with service discovery integration.

    Wraps an asyncpg pool and provides:
    - Service discovery for host/port configuration
    - Lazy pool creation
    - Dict rows for query results
    - Transaction context manager
    """

    def __init__(
        self,
        service_name: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        infra: Optional[InfraConfig] = None,
        config=None,
    ):
        """
        Initialize PostgreSQL client wrapper.

        Args:
            service_name: Name of the service using this client
            host: PostgreSQL host (defaults to env/service discovery)
            port: PostgreSQL port (defaults to 5432)
            database: Database name (defaults to POSTGRES_DB)
            username: Database username
            password: Database password
            infra: Infrastructure config (loaded from env if not provided)
            config: Optional ConfigManager used for host/port discovery
        """
        self.service_name = service_name
        infra = infra or InfraConfig.from_env()

        discovered_host, discovered_port = infra.postgres_host, infra.postgres_port
        if config is not None:
            discovered_host, discovered_port = config.discover_service(
                service_name="postgres_service",
                default_host=infra.postgres_host,
                default_port=infra.postgres_port,
                env_host_key="POSTGRES_HOST",
                env_port_key="POSTGRES_PORT",
            )

        # Apply overrides
        self.host = host or discovered_host
        self.port = port or discovered_port
        self.database = database or infra.postgres_db
        self.username = username or infra.postgres_user
        self.password = password if password is not None else infra.postgres_password
        self.min_size = infra.postgres_pool_min_size
        self.max_size = infra.postgres_pool_max_size
        self.command_timeout = infra.postgres_command_timeout

        self._pool: Optional[asyncpg.Pool] = None

        logger.info(f"PostgreSQL client initialized for {service_name}: {self.host}:{self.port}/{self.database}")

    async def connect(self) -> asyncpg.Pool:
        """Create the connection pool if needed"""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.username,
                password=self.password,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
                init=_init_connection,
            )
            logger.info(f"PostgreSQL pool created for {self.service_name}")
        return self._pool

    @property
    def pool(self) -> Optional[asyncpg.Pool]:
        """Get underlying asyncpg pool"""
        return self._pool

    async def __aenter__(self):
        """Async context manager entry"""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Pool stays open across requests; close() releases it"""
        return None

    async def health_check(self) -> Optional[Dict]:
        """Check database health"""
        try:
            pool = await self.connect()
            async with pool.acquire() as conn:
                version = await conn.fetchval("SELECT version()")
            return {"healthy": True, "version": version}
        except (asyncpg.PostgresError, OSError) as e:
            logger.warning(f"PostgreSQL health check failed: {e}")
            return {"healthy": False, "error": str(e)}

    async def query(self, sql: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Execute query and return results"""
        pool = await self.connect()
        async with pool.acquire() as conn:
            rows = await conn.fetch(sql, *(params or []))
        return [dict(row) for row in rows]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return single row"""
        pool = await self.connect()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(sql, *(params or []))
        return dict(row) if row else None

    async def execute(self, sql: str, params: Optional[List[Any]] = None) -> str:
        """Execute SQL statement"""
        pool = await self.connect()
        async with pool.acquire() as conn:
            return await conn.execute(sql, *(params or []))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection and run the block inside one transaction"""
        pool = await self.connect()
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def close(self):
        """Close connection pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")

