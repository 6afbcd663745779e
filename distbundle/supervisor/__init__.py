"""
The Supervisor package.
Manages the lifecycle of a bundle's single service process.

It contains the ServiceSupervisor state machine and its helper modules for
PID-file persistence and process liveness.
"""
from .persistence import LaunchConfig, PidFile, load_launch_config
from .supervisor import ServiceState, ServiceSupervisor

__all__ = ['LaunchConfig', 'PidFile', 'load_launch_config', 'ServiceState', 'ServiceSupervisor']
