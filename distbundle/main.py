import sys
import logging
import setproctitle
from pathlib import Path
from typing import List, Optional

from distbundle.config import effective_settings as config
from distbundle.console import COMMANDS, EXIT_FAILURE, EXIT_USAGE, execute_command, print_usage
from distbundle.errors import ConfigurationError
from distbundle.log import setup_logging, resolve_level
from distbundle.supervisor import ServiceSupervisor

log = logging.getLogger("supervisor")


def main(argv: Optional[List[str]] = None) -> int:
    """
    The entry point behind service/bin/init.sh.

    Takes exactly one of start|stop|restart|status and manages the bundle in
    DISTBUNDLE_HOME, or the working directory when that is unset.
    """
    args = sys.argv[1:] if argv is None else argv
    console_level = resolve_level(logging.WARNING)

    if len(args) != 1 or args[0] not in COMMANDS:
        setup_logging(console_level)
        print_usage()
        return EXIT_USAGE

    bundle_root = Path(config.BUNDLE_HOME or Path.cwd())
    try:
        supervisor = ServiceSupervisor.from_bundle(bundle_root)
    except ConfigurationError as e:
        setup_logging(console_level)
        log.critical(f"Cannot supervise '{bundle_root}': {e}")
        return EXIT_FAILURE

    setup_logging(console_level, service_name=supervisor.service_name)
    log.debug(f"Supervisor runtime loaded from '{Path(__file__).resolve().parent}'.")
    setproctitle.setproctitle(f"{config.PROCESS_TITLE_PREFIX}: {supervisor.service_name}")
    return execute_command(supervisor, args[0])


if __name__ == "__main__":
    sys.exit(main())
