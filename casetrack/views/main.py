"""
Service-level routes for the Case & Report Tracker.
"""

from datetime import datetime, timezone

from flask import Blueprint, jsonify

from casetrack import get_services
from casetrack.utils.logging_config import get_logger

main_bp = Blueprint("main", __name__)


@main_bp.route("/health")
def health():
    """Liveness probe with the persistence chain and database reachability"""
    logger = get_logger("health")
    services = get_services()

    database = "disabled"
    pool = None
    if services.db_connection is not None:
        database = "ok" if services.db_connection.test_connection() else "unreachable"
        pool = services.db_connection.get_connection_stats()
        if database == "unreachable":
            logger.warning("Health check: database unreachable", extra={"event": "health_degraded", "pool": pool})

    return jsonify(
        {
            "success": True,
            "status": "ok" if database != "unreachable" else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "persistence_backends": services.writer.store.backend_names,
            "database": database,
            "connection_pool": pool,
            "prosecutor_backend": services.prosecutors.backend,
        }
    )
