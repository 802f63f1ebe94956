"""
Routes Package

This package contains all Flask route blueprints.
"""

from .main import main_bp
from .api import api_bp
from .readings import readings_bp

__all__ = [
    'main_bp',
    'api_bp',
    'readings_bp'
]
