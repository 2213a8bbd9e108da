"""Health check endpoint."""

from datetime import datetime, timezone

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..models import db
from ..utils.logging import get_logger

health_bp = Blueprint('health', __name__)
logger = get_logger("health")


@health_bp.route('/health', methods=['GET'])
def health_index():
    """Liveness plus a database round trip; 503 when the database is unreachable."""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'healthy'
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        db.session.rollback()
        database = 'unhealthy'

    status_code = 200 if database == 'healthy' else 503
    return jsonify({
        'status': 'healthy' if status_code == 200 else 'degraded',
        'database': database,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }), status_code
