import logging
from pathlib import Path
from distbundle.config import effective_settings as config
from distbundle.descriptor import ServiceDescriptor
from distbundle.errors import ConfigurationError
from distbundle.utils import atomic_write_text

log = logging.getLogger(__name__)


def render_manifest(descriptor: ServiceDescriptor) -> str:
    """
    Renders the deployment manifest for a service.

    The version is converted to text exactly once, here.

    :param descriptor: The service being packaged.
    :return: The manifest document, one 'key: value' pair per line.
    :raises ConfigurationError: If the service name is empty or the version cannot be converted.
    """
    descriptor.validate_name()
    version = descriptor.version_text()
    if "\n" in version:
        raise ConfigurationError(f"Version '{version!r}' of '{descriptor.service_name}' spans multiple lines.")
    return config.MANIFEST_TEMPLATE.format(product_name=descriptor.service_name, product_version=version)


def write_manifest(descriptor: ServiceDescriptor, deployment_dir: Path) -> Path:
    """
    Writes `manifest.yaml` into the deployment directory, replacing whatever is there.

    :param descriptor: The service being packaged.
    :param deployment_dir: The bundle's 'deployment/' directory.
    :return: The path of the written manifest.
    """
    manifest = render_manifest(descriptor)
    target = deployment_dir / config.MANIFEST_FILE_NAME
    if target.exists():
        log.info(f"Replacing '{target}' with the generated manifest.")
    atomic_write_text(target, manifest)
    log.debug(f"Manifest written to '{target}'.")
    return target
