"""Configuration module for the valuation engine."""

from .settings import Settings, settings
from .logging_config import setup_logging

__all__ = ["Settings", "settings", "setup_logging"]
