import shutil
import logging
from pathlib import Path, PurePosixPath
from dataclasses import dataclass
from typing import Callable, List, Optional
from distbundle.config import effective_settings as config
from distbundle.descriptor import ServiceDescriptor
from distbundle.errors import AssemblyError, ConfigurationError
from distbundle.assembly.archive import ArchiveWriter, TarGzArchiveWriter
from distbundle.assembly.launcher import write_launcher_files
from distbundle.assembly.manifest import write_manifest
from distbundle.assembly.runtime import copy_supervisor_runtime

log = logging.getLogger(__name__)

# Receives a bundle-relative POSIX path and returns True if it must not be shipped.
ExcludeRule = Callable[[PurePosixPath], bool]


@dataclass(frozen=True)
class SourceRoots:
    """The inputs of an assembly. Any root may be absent."""
    build_artifacts: Optional[Path] = None
    deployment_overlay: Optional[Path] = None
    var_overlay: Optional[Path] = None


@dataclass(frozen=True)
class MergeStep:
    """Copies one source tree into the bundle at `target` (bundle-relative)."""
    name: str
    source: Optional[Path]
    target: str
    exclude: Optional[ExcludeRule] = None


def var_exclusion_rule(extra_dirs=()) -> ExcludeRule:
    """
    Builds the filter for the var overlay: anything under var/log or var/run
    (and any extra top-level var/ directory names) is runtime state.
    """
    excluded = set(config.ALWAYS_EXCLUDED_VAR_DIRS) | set(extra_dirs)

    def rule(path: PurePosixPath) -> bool:
        parts = path.parts
        return len(parts) >= 2 and parts[0] == config.VAR_DIR_NAME and parts[1] in excluded

    return rule


def merge_tree(source: Path, destination: Path, bundle_root: Path, exclude: Optional[ExcludeRule] = None) -> int:
    """
    Recursively copies `source` into `destination`, overwriting existing files.

    Entries are visited in sorted order. Excluded paths are skipped along with
    everything below them.

    :return: The number of files copied.
    """
    copied = 0
    destination.mkdir(parents=True, exist_ok=True)
    for entry in sorted(source.iterdir(), key=lambda p: p.name):
        target = destination / entry.name
        relative = PurePosixPath(target.relative_to(bundle_root).as_posix())
        if exclude and exclude(relative):
            log.debug(f"Excluding '{relative}' from the bundle.")
            continue
        if entry.is_dir():
            copied += merge_tree(entry, target, bundle_root, exclude)
        else:
            if target.is_dir():
                shutil.rmtree(target)
            shutil.copy2(entry, target)
            copied += 1
    return copied


class DistributionAssembler:
    """
    Builds the '<serviceName>-<version>/' bundle tree as an ordered pipeline
    of merge steps followed by the generated files, so that later steps win.
    """

    def __init__(
        self,
        descriptor: ServiceDescriptor,
        sources: SourceRoots,
        archive_writer: Optional[ArchiveWriter] = None,
    ) -> None:
        self.descriptor = descriptor
        self.sources = sources
        self.archive_writer = archive_writer or TarGzArchiveWriter()

    def merge_steps(self) -> List[MergeStep]:
        """Returns the copy steps in composition order."""
        return [
            MergeStep("build-artifacts", self.sources.build_artifacts, config.SERVICE_DIR_NAME),
            MergeStep("deployment-overlay", self.sources.deployment_overlay, config.DEPLOYMENT_DIR_NAME),
            MergeStep(
                "var-overlay",
                self.sources.var_overlay,
                config.VAR_DIR_NAME,
                exclude=var_exclusion_rule(self.descriptor.exclude_from_var),
            ),
        ]

    def _prepare_root(self, output_dir: Path) -> Path:
        bundle_root = output_dir / self.descriptor.bundle_name()
        # The root is removed below, so it must be a direct child of output_dir.
        if bundle_root.resolve().parent != output_dir.resolve():
            raise ConfigurationError(f"Bundle root '{bundle_root}' escapes the output directory '{output_dir}'.")
        if bundle_root.exists():
            log.info(f"Removing previous bundle at '{bundle_root}'.")
            shutil.rmtree(bundle_root)
        bundle_root.mkdir(parents=True)
        return bundle_root

    def _run_step(self, step: MergeStep, bundle_root: Path) -> None:
        if step.source is None:
            log.debug(f"Skipping '{step.name}': no source configured.")
            return
        if not step.source.is_dir():
            log.debug(f"Skipping '{step.name}': '{step.source}' does not exist.")
            return
        count = merge_tree(step.source, bundle_root / step.target, bundle_root, step.exclude)
        log.info(f"Merged {count} files from '{step.source}' into '{step.target}/' ({step.name}).")

    def assemble(self, output_dir: Path) -> Path:
        """
        Builds the bundle directory under `output_dir`.

        A failure leaves the partial tree in place for diagnosis; it must not be shipped.

        :param output_dir: The directory that receives '<serviceName>-<version>/'.
        :return: The bundle root.
        :raises ConfigurationError: If the descriptor is invalid.
        :raises AssemblyError: If any copy or write fails.
        """
        bundle_name = self.descriptor.bundle_name()
        log.info(f"Assembling bundle '{bundle_name}' into '{output_dir}'...")
        try:
            bundle_root = self._prepare_root(output_dir)
            for step in self.merge_steps():
                self._run_step(step, bundle_root)
            write_manifest(self.descriptor, bundle_root / config.DEPLOYMENT_DIR_NAME)
            write_launcher_files(self.descriptor, bundle_root / config.SERVICE_BIN_DIR)
            copy_supervisor_runtime(bundle_root / config.SUPERVISOR_RUNTIME_DIR)
        except (OSError, shutil.Error) as e:
            log.critical(f"Assembly of '{bundle_name}' failed: {e}", exc_info=True)
            raise AssemblyError(f"Assembly of '{bundle_name}' failed: {e}") from e

        log.info(f"Bundle '{bundle_name}' assembled at '{bundle_root}'.")
        return bundle_root

    def package(self, output_dir: Path) -> Path:
        """
        Assembles the bundle and archives it next to the tree.

        :return: The archive path, '<output_dir>/<serviceName>-<version>.tgz'.
        """
        bundle_root = self.assemble(output_dir)
        archive_path = output_dir / f"{bundle_root.name}{config.ARCHIVE_SUFFIX}"
        try:
            return self.archive_writer.write(bundle_root, archive_path)
        except (OSError, shutil.Error) as e:
            log.critical(f"Archiving '{bundle_root}' failed: {e}", exc_info=True)
            raise AssemblyError(f"Archiving '{bundle_root}' failed: {e}") from e
