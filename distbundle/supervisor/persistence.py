import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from distbundle.config import effective_settings as config
from distbundle.errors import ConfigurationError
from distbundle.utils import atomic_write_text

log = logging.getLogger(__name__)


class PidFile:
    """
    The on-disk record of the managed process id.

    This file is the only state shared between supervisor invocations and it
    is not locked: two concurrent 'start' calls can both read "absent" before
    either writes, and the last writer wins.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Optional[int]:
        """
        Reads the tracked pid.

        :return: The pid, or None if the file is absent or unparsable. Reading
                 never modifies the file; stop and start clean it up.
        """
        try:
            content = self.path.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            log.error(f"Failed to read PID file '{self.path}': {e}")
            return None

        try:
            pid = int(content)
            if pid <= 0:
                raise ValueError(content)
            return pid
        except ValueError:
            log.warning(f"PID file '{self.path}' holds invalid content {content!r}. Ignoring it.")
            return None

    def write(self, pid: int) -> None:
        """Atomically replaces the PID file with `pid`."""
        atomic_write_text(self.path, f"{pid}\n")
        log.debug(f"Wrote PID {pid} to '{self.path}'.")

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)
        log.debug(f"Removed PID file '{self.path}'.")


@dataclass(frozen=True)
class LaunchConfig:
    """What the supervisor needs to know about the packaged service."""
    service_name: str
    entrypoint: str
    args: Tuple[str, ...] = ()
    env: Dict[str, str] = field(default_factory=dict)


def load_launch_config(bundle_root: Path) -> LaunchConfig:
    """
    Reads service/bin/launcher.yml from a bundle.

    :param bundle_root: The bundle directory.
    :raises ConfigurationError: If the file is missing or incomplete.
    """
    path = bundle_root / config.SERVICE_BIN_DIR / config.LAUNCHER_CONFIG_NAME
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Launch configuration '{path}' not found. Is '{bundle_root}' a bundle root?") from e
    except (yaml.YAMLError, OSError) as e:
        raise ConfigurationError(f"Could not read launch configuration '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Launch configuration '{path}' must be a mapping.")
    service_name, entrypoint = data.get("serviceName"), data.get("entrypoint")
    if not service_name or not entrypoint:
        raise ConfigurationError(f"Launch configuration '{path}' needs both 'serviceName' and 'entrypoint'.")

    return LaunchConfig(
        service_name=str(service_name),
        entrypoint=str(entrypoint),
        args=tuple(str(a) for a in data.get("args") or ()),
        env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
    )
