"""
Configuration for uri_open.
"""

from .loader import ConfigLoader
from .models import EngineConfig, LoggingConfig, LogLevel

__all__ = ["ConfigLoader", "EngineConfig", "LoggingConfig", "LogLevel"]
