"""
Logging module for distbundle.
This module provides the console/Loki logging setup shared by the assembler and the supervisor.
"""

from .setup import setup_logging, resolve_level
from .handler import LokiHandler

__all__ = ["setup_logging", "resolve_level", "LokiHandler"]
