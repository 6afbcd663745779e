import shutil
import logging
from pathlib import Path
from typing import Callable, Iterable, Set
from distbundle.config import effective_settings as config
from distbundle.utils import atomic_write_text

log = logging.getLogger(__name__)

# The installed distbundle package, i.e. the parent of this 'assembly' directory.
PACKAGE_ROOT = Path(__file__).resolve().parents[1]


def _runtime_ignore(package_root: Path) -> Callable[[str, Iterable[str]], Set[str]]:
    """Builds a copytree filter that drops compiled files everywhere and packaging-only modules at the top."""
    compiled = shutil.ignore_patterns("__pycache__", "*.pyc")
    packaging_only = set(config.SUPERVISOR_RUNTIME_EXCLUDES)
    package_root = package_root.resolve()

    def ignore(directory: str, names: Iterable[str]) -> Set[str]:
        names = list(names)
        ignored = set(compiled(directory, names))
        if Path(directory).resolve() == package_root:
            ignored |= packaging_only & set(names)
        return ignored

    return ignore


def render_requirements() -> str:
    """Renders the pip requirements of the shipped supervisor, one per line."""
    return "".join(f"{req}\n" for req in config.SUPERVISOR_REQUIREMENTS)


def copy_supervisor_runtime(runtime_dir: Path, package_root: Path = PACKAGE_ROOT) -> Path:
    """
    Ships the supervisor inside the bundle.

    Copies the distbundle package, minus its packaging-time modules, to
    '<runtime_dir>/distbundle' and writes '<runtime_dir>/requirements.txt'
    listing the third-party libraries it imports. Anything already at
    `runtime_dir` is replaced.

    :param runtime_dir: The bundle's 'service/supervisor' directory.
    :param package_root: The distbundle package to copy.
    :return: The directory of the copied package.
    """
    if runtime_dir.exists():
        shutil.rmtree(runtime_dir)
    target = runtime_dir / package_root.name
    shutil.copytree(package_root, target, ignore=_runtime_ignore(package_root))
    atomic_write_text(runtime_dir / config.SUPERVISOR_REQUIREMENTS_NAME, render_requirements())
    log.debug(f"Supervisor runtime copied from '{package_root}' to '{target}'.")
    return target
