import sys
import logging
from typing import Optional

from distbundle.config import effective_settings as config
from distbundle.log.handler import LokiHandler


def resolve_level(default: int) -> int:
    """Returns the level named by DISTBUNDLE_LOG_LEVEL, or `default` if unset or unknown."""
    if not config.LOG_LEVEL:
        return default
    level = logging.getLevelName(config.LOG_LEVEL)
    return level if isinstance(level, int) else default


def setup_logging(console_level: int = logging.INFO, service_name: Optional[str] = None) -> None:
    """
    Configures the root logger.
    This sets up a console handler on stderr and optionally a Loki handler,
    clearing any previously configured handlers to prevent duplication.

    Stdout is left alone: the supervisor's status report is printed there.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    :param service_name: Added as a 'service' label to shipped logs when given.
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
    root_logger.addHandler(console_handler)

    # --- Loki Handler (conditional) ---
    if config.LOKI_ENABLED:
        try:
            labels = {"service": service_name} if service_name else None
            loki_handler = LokiHandler(url=config.LOKI_URL, org_id=config.LOKI_ORG_ID or None, labels=labels)
            loki_handler.setLevel(logging.INFO) # Avoid spamming Loki with DEBUG logs
            loki_handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
            root_logger.addHandler(loki_handler)
            root_logger.debug(f"Grafana Loki logging handler initialized for {config.LOKI_URL}.")
        except Exception as e:
            root_logger.error(f"Failed to initialize Grafana Loki logging handler: {e}")
