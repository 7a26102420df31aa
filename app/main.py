"""Application bootstrap - logging, configuration check and service wiring."""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Dict

from prometheus_client import generate_latest

from app import dependencies
from app.config import Config
from app.logging_config import setup_logging
from core.exceptions import VaultError
from core.health import get_comprehensive_health
from services.interfaces.i_voiceprint_service import IVoiceprintService

logger = logging.getLogger(__name__)

_startup_status: Dict[str, Any] = {"stage": "pending", "error": None}


def startup(create_group: bool = False) -> IVoiceprintService:
    """Configure logging, validate settings and build the voiceprint service.

    With create_group the configured vault group is created; a vault
    rejection (e.g. the group already exists) is logged and startup continues.
    """
    global _startup_status
    setup_logging()
    logger.info(f"Starting {Config.APP_TITLE} | version={Config.APP_VERSION}")
    start = time.time()

    try:
        _startup_status = {"stage": "wiring", "error": None}
        service = dependencies.get_voiceprint_service()
    except Exception as e:
        _startup_status = {"stage": "error", "error": str(e)}
        logger.error(f"Startup failed | error={e}")
        raise

    if create_group:
        _startup_status = {"stage": "creating_group", "error": None}
        try:
            service.ensure_group()
        except VaultError as e:
            logger.warning(f"Vault group not created | group_id={Config.VOICEPRINT_GROUP_ID} | {e.detailed_message()}")

    _startup_status = {"stage": "complete", "error": None}
    logger.info(f"Startup complete | elapsed_ms={int((time.time() - start) * 1000)}")
    return service


def health() -> Dict[str, Any]:
    """Dependency health plus startup stage."""
    pool = dependencies.get_database_pool() if _startup_status["stage"] == "complete" else None
    status = get_comprehensive_health(pool=pool)
    status["startup"] = dict(_startup_status)
    return status


def metrics() -> bytes:
    """Prometheus exposition text."""
    return generate_latest()


def shutdown() -> None:
    global _startup_status
    logger.info("Shutting down")
    dependencies.shutdown()
    _startup_status = {"stage": "pending", "error": None}


def run() -> int:
    """Start, print a health report and exit non-zero when unhealthy."""
    create_group = "--create-group" in sys.argv[1:]
    try:
        startup(create_group=create_group)
        report = health()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    finally:
        shutdown()

    print(json.dumps(report, indent=2, default=str))
    return 0 if report["status"] == "healthy" else 1


if __name__ == "__main__":
    sys.exit(run())
