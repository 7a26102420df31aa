"""Health check utilities for dependency verification."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.config import Config
from core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


def check_database_health(pool) -> Dict[str, Any]:
    """Check relational store connectivity."""
    if not pool.is_initialized():
        return {
            "status": "unhealthy",
            "message": "Database pool not initialized"
        }
    try:
        result = pool.execute_scalar("SELECT 1")
        if result == 1:
            return {
                "status": "healthy",
                "message": "Database connection working",
                "pool": pool.get_pool_status(),
            }

        return {
            "status": "degraded",
            "message": "Unexpected query result"
        }
    except (DatabaseError, SQLAlchemyError) as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "message": str(e)
        }


def check_vault_config(config: type = Config) -> Dict[str, Any]:
    """Check vault credentials are configured (no network call)."""
    missing = [
        name for name in ("VOICEPRINT_APP_ID", "VOICEPRINT_API_KEY", "VOICEPRINT_API_SECRET")
        if not getattr(config, name, "")
    ]
    if missing:
        return {
            "status": "unhealthy",
            "message": f"Vault credentials not configured: {', '.join(missing)}"
        }

    return {
        "status": "healthy",
        "message": "Vault configured",
        "url": config.vault_url(),
        "group_id": config.VOICEPRINT_GROUP_ID,
    }


def get_comprehensive_health(pool=None, config: Optional[type] = None) -> Dict[str, Any]:
    """Get comprehensive health check for all dependencies."""

    checks = {}

    if pool is not None:
        checks["database"] = check_database_health(pool)

    checks["vault"] = check_vault_config(config or Config)

    # Determine overall status
    all_healthy = all(
        check.get("status") == "healthy"
        for check in checks.values()
    )

    any_unhealthy = any(
        check.get("status") == "unhealthy"
        for check in checks.values()
    )

    if all_healthy:
        overall_status = "healthy"
    elif any_unhealthy:
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks
    }
