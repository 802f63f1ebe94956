#!/usr/bin/env python3
"""
BuildingPulse application entry point.

This module selects configuration based on environment variables, creates the
Flask application via `create_app`, and eagerly initializes an in-memory
database for testing modes. When executed directly, it runs the development
server. In production, a WSGI server should import `app` from this module.

Environment variables of interest:
- FLASK_ENV: if set to 'testing', enables in-memory DB and testing flags.
- DATABASE_URL: if set to 'sqlite:///:memory:' forces in-memory DB init.
- LOG_LEVEL: root logging level (default INFO).
- DEFAULT_MAX_POINTS, DEFAULT_DECIMATION_ALGORITHM, RATE_LIMIT_PER_MINUTE: consumed by `create_app`.
"""

import os
import logging
from buildingpulse import create_app
from buildingpulse.models import db

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO'),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)

# Create app instance
if os.getenv('FLASK_ENV') == 'testing':
    # Use test configuration for testing environment
    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': os.getenv('DATABASE_URL', 'sqlite:///:memory:'),
        'SECRET_KEY': os.getenv('SECRET_KEY', 'test-secret-key'),
        'RATE_LIMIT_PER_MINUTE': int(os.getenv('RATE_LIMIT_PER_MINUTE', 1000)),
    }
    app = create_app(test_config)
else:
    app = create_app()

# Database initialization
print("🚀 Starting BuildingPulse server...")
if os.getenv('FLASK_ENV') == 'testing':
    print("🧪 Running in TESTING mode with in-memory database")
    with app.app_context():
        db.create_all()
        print("📊 Test database initialized")
else:
    with app.app_context():
        db.create_all()
        print("📊 Database initialized")

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
