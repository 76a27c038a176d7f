"""
Credit Service Routes Registry
Defines all API routes exposed by the service, for the service info endpoint.
"""
from typing import List, Dict, Any

BASE_PATH = "/api/v1/credits"

SERVICE_ROUTES: List[Dict[str, Any]] = [
    # Health and Service Info
    {
        "path": "/health",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Basic health check endpoint"
    },
    {
        "path": "/api/v1/credits/health",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Service health check (API v1)"
    },
    {
        "path": "/health/detailed",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Detailed health check with dependencies"
    },
    {
        "path": "/api/v1/credits/info",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Service metadata and route summary"
    },
    # Balance Operations
    {
        "path": "/api/v1/credits/organizations/{organization_id}/balance",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Current organization balance"
    },
    {
        "path": "/api/v1/credits/organizations/{organization_id}/check",
        "methods": ["POST"],
        "auth_required": False,
        "description": "Advisory sufficiency check (non-locking)"
    },
    # Credit Operations
    {
        "path": "/api/v1/credits/organizations/{organization_id}/debit",
        "methods": ["POST"],
        "auth_required": False,
        "description": "Debit credits for a billable action"
    },
    {
        "path": "/api/v1/credits/organizations/{organization_id}/grants",
        "methods": ["GET", "POST"],
        "auth_required": True,
        "description": "List grants (GET) or grant credits (POST)"
    },
    # Ledger
    {
        "path": "/api/v1/credits/organizations/{organization_id}/ledger",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Paginated ledger, most recent first"
    },
    {
        "path": "/api/v1/credits/organizations/{organization_id}/reconciliation",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Compare balance with the sum of ledger deltas"
    },
    # Price List
    {
        "path": "/api/v1/credits/pricing",
        "methods": ["GET", "PUT"],
        "auth_required": True,
        "description": "List prices (GET) or set a price (PUT)"
    },
    {
        "path": "/api/v1/credits/pricing/{action_type}/{platform}",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Price for one action/platform pair"
    },
]


def get_route_summary() -> Dict[str, Any]:
    """
    Generate compact route metadata.

    Returns:
        Dict with compact route metadata grouped by area
    """
    health_routes = []
    organization_routes = []
    pricing_routes = []
    other_routes = []
    for route in SERVICE_ROUTES:
        path = route["path"]
        compact_path = path.replace(f"{BASE_PATH}/", "")
        if path.startswith("/health") or path.endswith("/health"):
            health_routes.append(compact_path)
        elif "/organizations/" in path:
            organization_routes.append(compact_path.replace("organizations/{organization_id}/", ""))
        elif "/pricing" in path:
            pricing_routes.append(compact_path)
        else:
            other_routes.append(compact_path)
    return {
        "route_count": str(len(SERVICE_ROUTES)),
        "base_path": BASE_PATH,
        "health": ",".join(health_routes),
        "organizations": ",".join(organization_routes),
        "pricing": ",".join(pricing_routes),
        "other": ",".join(other_routes),
        "methods": "GET,POST,PUT",
        "public_count": str(sum(1 for r in SERVICE_ROUTES if not r["auth_required"])),
        "protected_count": str(sum(1 for r in SERVICE_ROUTES if r["auth_required"])),
    }


# Service metadata
SERVICE_METADATA = {
    "service_name": "credit_service",
    "version": "1.0.0",
    "tags": ["v1", "credit", "ledger", "billing"],
    "capabilities": [
        "organization_balances",
        "atomic_debit",
        "credit_grants",
        "credit_ledger",
        "pricing_table",
        "reconciliation",
        "event_driven"
    ]
}
