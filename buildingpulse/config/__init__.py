"""
Configuration Package

Exposes the environment-backed Config class used by the app factory.
"""

from .config import Config

__all__ = ['Config']
