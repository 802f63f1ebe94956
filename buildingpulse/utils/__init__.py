"""
Utilities Package

This package contains utility functions and helper modules.
"""

from . import decimation
from . import validators
from . import error_handlers

__all__ = [
    'decimation',
    'validators',
    'error_handlers'
]
