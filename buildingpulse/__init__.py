"""
BuildingPulse Application Package

FLOW OVERVIEW
- create_app(test_config=None)
  • Build Flask app, apply config (test or env-based), init the database extension.
  • Register blueprints: main (/), api (/api), readings (/api/readings).
  • Record per-endpoint request metrics and register global error handlers.
"""

import time
from flask import Flask, request, g
from .models import db
from .routes import main_bp, api_bp, readings_bp
from .config import Config
from .utils.prom_metrics import observe_request


def create_app(test_config=None):
    """Application factory pattern for production deployment"""
    app = Flask(__name__)

    # Configuration
    if test_config:
        # Use test configuration if provided
        app.config.update(test_config)
    else:
        # Use environment-based configuration
        app.config.from_object(Config())

    # Initialize extensions
    db.init_app(app)

    # Register blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(readings_bp, url_prefix='/api/readings')

    # Request metrics
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def record_request(response):
        started = g.pop('request_started', None)
        if started is not None and request.endpoint != 'api.metrics':
            observe_request(request.endpoint or 'unknown', response.status_code,
                            time.perf_counter() - started)
        return response

    # Register error handlers
    from .utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    return app
