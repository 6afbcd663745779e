"""
Exception types shared by the assembler and the supervisor.
"""
from typing import Optional


class DistBundleError(Exception):
    """Base class for all distbundle errors."""


class ConfigurationError(DistBundleError, ValueError):
    """A descriptor or launch configuration is missing or invalid."""


class AssemblyError(DistBundleError, OSError):
    """Copying, generating or archiving the bundle failed."""


class ProcessLifecycleError(DistBundleError, RuntimeError):
    """The managed process failed to start or did not stop in time."""

    def __init__(self, message: str, pid: Optional[int] = None):
        super().__init__(message)
        self.pid = pid
