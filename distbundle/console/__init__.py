"""
This module initializes the console package, exposing command execution and
usage printing for the supervisor command line.
"""

from .process import execute_command
from .handler import COMMANDS, EXIT_FAILURE, EXIT_OK, EXIT_USAGE, print_usage

__all__ = ["execute_command", "print_usage", "COMMANDS", "EXIT_OK", "EXIT_FAILURE", "EXIT_USAGE"]
