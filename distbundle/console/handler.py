import sys

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

COMMANDS = ("start", "stop", "restart", "status")


def print_usage() -> None:
    """Prints the supervisor usage text to stderr."""
    print("Usage: init.sh start|stop|restart|status", file=sys.stderr)
    print("  start    - Start the service in the background.", file=sys.stderr)
    print("  stop     - Stop the service gracefully.", file=sys.stderr)
    print("  restart  - Stop and then start the service.", file=sys.stderr)
    print("  status   - Show whether the service is running.", file=sys.stderr)
