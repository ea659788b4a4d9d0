"""
Health Check Endpoints

1. /health/live - Liveness probe (is the process alive?)
2. /health/ready - Readiness probe (can it serve traffic?)
"""

import time
import logging
from datetime import datetime, timezone
from typing import Dict, Any
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__, url_prefix='/health')

_startup_time = time.time()


def get_uptime_seconds() -> float:
    return time.time() - _startup_time


def check_database_health() -> Dict[str, Any]:
    """
    Check database connectivity.

    Returns dict with:
    - healthy: bool
    - latency_ms: response time
    - error: error message if unhealthy
    """
    start = time.time()
    dialect = db.engine.dialect.name
    try:
        db.session.execute(text("SELECT 1")).fetchone()
        db.session.rollback()  # Don't leave open transaction
        return {
            "healthy": True,
            "latency_ms": round((time.time() - start) * 1000, 2),
            "type": dialect
        }
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning(f"Database health check failed: {e}")
        return {
            "healthy": False,
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": str(e)[:100],
            "type": dialect
        }


def check_notifications_health() -> Dict[str, Any]:
    """Redis is optional: notifications are simply dropped without it."""
    notifications = current_app.extensions.get('notifications')
    if notifications is None or not notifications.publisher.enabled:
        return {
            "healthy": True,
            "status": "not_configured",
        }
    return {"healthy": True, "status": "connected", "type": "redis"}


@health_bp.route('/live')
def liveness():
    """Liveness probe: no external dependencies."""
    return jsonify({
        "status": "alive",
        "uptime_seconds": round(get_uptime_seconds(), 2)
    }), 200


@health_bp.route('/ready')
def readiness():
    """
    Readiness probe - can the application serve traffic?

    Returns 503 when the database is unreachable.
    """
    checks = {
        "database": check_database_health(),
        "notifications": check_notifications_health(),
    }
    is_ready = checks["database"].get("healthy", False)

    return jsonify({
        "status": "ready" if is_ready else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }), 200 if is_ready else 503
