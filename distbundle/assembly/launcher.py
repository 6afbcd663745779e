import yaml
import logging
from pathlib import Path
from typing import Tuple
from distbundle.config import effective_settings as config
from distbundle.descriptor import ServiceDescriptor
from distbundle.errors import ConfigurationError
from distbundle.utils import atomic_write_text

log = logging.getLogger(__name__)


def render_init_script() -> str:
    """Renders the supervisor entry script placed at service/bin/init.sh."""
    return config.INIT_SCRIPT_TEMPLATE.format(
        init_script=f"{config.SERVICE_BIN_DIR}/{config.INIT_SCRIPT_NAME}",
        python=config.INIT_SCRIPT_PYTHON,
        runtime_dir=config.SUPERVISOR_RUNTIME_DIR,
    )


def render_launcher_config(descriptor: ServiceDescriptor) -> str:
    """
    Renders the launch configuration the supervisor reads at deployment time.

    :raises ConfigurationError: If the descriptor has no entrypoint.
    """
    descriptor.validate_name()
    if not descriptor.entrypoint.strip():
        raise ConfigurationError(f"Service '{descriptor.service_name}' has no entrypoint.")

    document = {
        "serviceName": descriptor.service_name,
        "entrypoint": descriptor.entrypoint,
        "args": list(descriptor.args),
        "env": dict(sorted(descriptor.env.items())),
        # Informational: what the shipped supervisor needs on the deployment host.
        "supervisorRequires": list(config.SUPERVISOR_REQUIREMENTS),
    }
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)


def write_launcher_files(descriptor: ServiceDescriptor, bin_dir: Path) -> Tuple[Path, Path]:
    """
    Writes init.sh (executable) and launcher.yml into service/bin.

    :param descriptor: The service being packaged.
    :param bin_dir: The bundle's 'service/bin' directory.
    :return: The paths of (init.sh, launcher.yml).
    """
    launcher_config = render_launcher_config(descriptor)
    init_script = atomic_write_text(bin_dir / config.INIT_SCRIPT_NAME, render_init_script(), mode=0o755)
    launcher_path = atomic_write_text(bin_dir / config.LAUNCHER_CONFIG_NAME, launcher_config)
    log.debug(f"Launcher files written to '{bin_dir}'.")
    return init_script, launcher_path
