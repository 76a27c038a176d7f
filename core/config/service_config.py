#!/usr/bin/env python3
"""Service runtime configuration

HTTP listener and request-level settings shared by the credit microservice.
"""
import os
from dataclasses import dataclass


def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class ServiceConfig:
    """Runtime settings for a single microservice"""

    service_name: str = "credit_service"
    service_host: str = "0.0.0.0"
    service_port: int = 8229
    debug: bool = False
    log_level: str = "INFO"

    # Shared secret for service-to-service calls (X-Internal-Service-Secret)
    internal_service_secret: str = "dev-internal-secret-change-in-production"

    @classmethod
    def from_env(cls, service_name: str = "credit_service") -> 'ServiceConfig':
        """Load service configuration from environment variables"""
        prefix = service_name.upper()
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            service_name=service_name,
            service_host=os.getenv(f"{prefix}_HOST", os.getenv("SERVICE_HOST", "0.0.0.0")),
            service_port=_int(os.getenv(f"{prefix}_PORT", os.getenv("SERVICE_PORT", "8229")), 8229),
            debug=_bool(os.getenv("DEBUG", "true" if env == "development" else "false")),
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if env == "development" else "INFO"),
            internal_service_secret=os.getenv(
                "INTERNAL_SERVICE_SECRET", "dev-internal-secret-change-in-production"
            ),
        )
