import logging
from distbundle.errors import ProcessLifecycleError
from distbundle.supervisor import ServiceSupervisor
from distbundle.console.handler import EXIT_FAILURE, EXIT_OK, EXIT_USAGE, print_usage

log = logging.getLogger(__name__)


def execute_command(supervisor: ServiceSupervisor, command: str) -> int:
    """
    Executes a single supervisor command.

    :param supervisor: The supervisor of the bundle.
    :param command: One of 'start', 'stop', 'restart', 'status'.
    :return int: The process exit code.
    """
    log.debug(f"Executing command: {command}")
    command_map = {
        "start": supervisor.start,
        "stop": supervisor.stop,
        "restart": supervisor.restart,
        "status": supervisor.status,
    }

    if command not in command_map:
        log.error(f"Unknown command: '{command}'.")
        print_usage()
        return EXIT_USAGE

    try:
        command_map[command]()
    except ProcessLifecycleError as e:
        log.critical(f"'{command}' failed: {e}")
        return EXIT_FAILURE
    return EXIT_OK
