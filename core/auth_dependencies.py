"""
FastAPI Authentication Dependencies for Microservices

Resolves the caller identity from gateway-supplied headers. Session issuance
and token validation happen upstream; services only read the resolved id.
"""

from fastapi import Header, HTTPException, status, Request
from typing import Optional
import logging

from core.config import ServiceConfig

logger = logging.getLogger(__name__)

INTERNAL_SERVICE_ID = "internal-service"


def _internal_secret() -> str:
    return ServiceConfig.from_env().internal_service_secret


async def require_auth_or_internal_service(
    request: Request,
    user_id: Optional[str] = Header(None, alias="user-id"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_internal_service: Optional[str] = Header(None, alias="X-Internal-Service"),
    x_internal_service_secret: Optional[str] = Header(None, alias="X-Internal-Service-Secret"),
) -> str:
    """
    Require a user or an internal service caller.

    Priority:
    1. Internal service credentials (X-Internal-Service + X-Internal-Service-Secret)
    2. User id (user-id or X-User-Id)

    Returns:
        user id, or "internal-service"

    Raises:
        HTTPException 401: no usable identity
    """
    if x_internal_service == "true" and x_internal_service_secret:
        if x_internal_service_secret == _internal_secret():
            logger.debug(f"Internal service request to {request.url.path}")
            return INTERNAL_SERVICE_ID
        else:
            client_host = request.client.host if request.client else "unknown"
            logger.warning(f"Invalid internal service secret from {client_host}")

    user_id_value = user_id or x_user_id
    if user_id_value:
        return user_id_value

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="User authentication required"
    )


async def optional_auth_or_internal_service(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    user_id: Optional[str] = Header(None, alias="user-id"),
    x_internal_service: Optional[str] = Header(None, alias="X-Internal-Service"),
    x_internal_service_secret: Optional[str] = Header(None, alias="X-Internal-Service-Secret"),
) -> Optional[str]:
    """
    Optional identity: anonymous, user, or internal service.

    Returns:
        user id, "internal-service" or None
    """
    if x_internal_service == "true" and x_internal_service_secret == _internal_secret():
        return INTERNAL_SERVICE_ID

    return user_id or x_user_id


def is_internal_service_request(user_id: Optional[str]) -> bool:
    """True when the resolved identity is the internal service marker"""
    return user_id == INTERNAL_SERVICE_ID


def acting_user_id(user_id: Optional[str]) -> Optional[str]:
    """Identity to record as the actor; internal callers are recorded as None"""
    if not user_id or is_internal_service_request(user_id):
        return None
    return user_id


__all__ = [
    "INTERNAL_SERVICE_ID",
    "require_auth_or_internal_service",
    "optional_auth_or_internal_service",
    "is_internal_service_request",
    "acting_user_id",
]
