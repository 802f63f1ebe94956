"""
Main Routes

FLOW OVERVIEW
- / [GET]
  • Service index listing the public endpoints.
- /health [GET]
  • Liveness plus a database round trip.
"""

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from ..models import db

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    """Service index"""
    return jsonify({
        'service': 'BuildingPulse',
        'endpoints': {
            'chart_timeseries': '/api/v1/data/timeseries',
            'decimate': '/api/decimate',
            'readings': '/api/readings/timeseries',
            'readings_chart': '/api/readings/chart',
            'summary': '/api/readings/summary',
            'patterns': '/api/readings/patterns',
            'metrics': '/api/metrics'
        }
    })


@main_bp.route('/health')
def health():
    """Health check endpoint"""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'ok'
    except Exception as e:
        current_app.logger.error(f"Health check database error: {str(e)}")
        database = 'unavailable'

    status_code = 200 if database == 'ok' else 503
    return jsonify({
        'status': 'healthy' if database == 'ok' else 'degraded',
        'database': database
    }), status_code
