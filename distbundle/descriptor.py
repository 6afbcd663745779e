import os
import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple
from distbundle.errors import ConfigurationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceDescriptor:
    """
    Describes the service being packaged.

    `version` may be any object whose `str()` is deterministic; it is only
    converted to text when something needs the text.
    """
    service_name: str
    version: Any
    entrypoint: str = ""
    args: Tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    exclude_from_var: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Normalise sequences so equal descriptors stay equal and hashable inputs stay immutable.
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))
        object.__setattr__(self, "exclude_from_var", tuple(str(e) for e in self.exclude_from_var))
        object.__setattr__(self, "env", {str(k): str(v) for k, v in dict(self.env).items()})

    def version_text(self) -> str:
        """
        Converts the version to text.

        :raises ConfigurationError: If the conversion raises or yields an empty string.
        """
        try:
            text = str(self.version)
        except Exception as e:
            raise ConfigurationError(f"Version of '{self.service_name}' could not be converted to text: {e}") from e
        if not text:
            raise ConfigurationError(f"Version of '{self.service_name}' converts to an empty string.")
        return text

    def validate_name(self) -> None:
        if not self.service_name or not str(self.service_name).strip():
            raise ConfigurationError("serviceName must be a non-empty string.")
        if "/" in self.service_name or "\\" in self.service_name:
            raise ConfigurationError(f"serviceName '{self.service_name}' must not contain path separators.")

    def bundle_name(self) -> str:
        """
        Returns the bundle directory name, '<serviceName>-<version>'.

        :raises ConfigurationError: If the name or the version would not yield a single path segment.
        """
        self.validate_name()
        version = self.version_text()
        if version in (".", "..") or any(sep in version for sep in ("/", "\\", os.sep)):
            raise ConfigurationError(f"Version '{version}' of '{self.service_name}' must not contain path separators.")
        return f"{self.service_name}-{version}"


def _require_str_list(data: Dict[str, Any], key: str, source: Path) -> Tuple[str, ...]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ConfigurationError(f"'{key}' in '{source}' must be a list.")
    return tuple(str(v) for v in value)


def descriptor_from_dict(data: Dict[str, Any], source: Path = Path("<memory>")) -> ServiceDescriptor:
    """
    Builds a ServiceDescriptor from a parsed descriptor document.

    Keys follow the manifest's camelCase style: serviceName, version,
    entrypoint, args, env, excludeFromVar.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Descriptor '{source}' must be a mapping.")

    service_name = data.get("serviceName")
    if not isinstance(service_name, str) or not service_name.strip():
        raise ConfigurationError(f"Descriptor '{source}' is missing 'serviceName'.")
    if data.get("version") in (None, ""):
        raise ConfigurationError(f"Descriptor '{source}' is missing 'version'.")

    env = data.get("env") or {}
    if not isinstance(env, dict):
        raise ConfigurationError(f"'env' in '{source}' must be a mapping.")

    return ServiceDescriptor(
        service_name=service_name,
        version=data["version"],
        entrypoint=str(data.get("entrypoint") or ""),
        args=_require_str_list(data, "args", source),
        env=env,
        exclude_from_var=_require_str_list(data, "excludeFromVar", source),
    )


def load_descriptor(path: Path) -> ServiceDescriptor:
    """
    Loads a service descriptor from a YAML file.

    :param path: Path to the descriptor file.
    :return: The parsed ServiceDescriptor.
    :raises ConfigurationError: If the file is missing, unparsable or incomplete.
    """
    try:
        # Load as text so that 'version: 0.1' is not turned into a float.
        data = yaml.load(path.read_text(encoding="utf-8"), Loader=yaml.BaseLoader)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Descriptor file '{path}' not found.") from e
    except (yaml.YAMLError, OSError) as e:
        raise ConfigurationError(f"Could not read descriptor '{path}': {e}") from e

    log.debug(f"Loaded descriptor from {path}")
    return descriptor_from_dict(data, path)
