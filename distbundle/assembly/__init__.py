"""
The assembly package.
Builds the distribution bundle at packaging time.

It composes build artifacts and user overlays into the bundle tree, generates
the deployment manifest and the supervisor launcher files, and archives the result.
"""
from .archive import ArchiveWriter, TarGzArchiveWriter
from .assembler import DistributionAssembler, MergeStep, SourceRoots, var_exclusion_rule
from .manifest import render_manifest, write_manifest
from .runtime import copy_supervisor_runtime

__all__ = [
    'ArchiveWriter', 'TarGzArchiveWriter',
    'DistributionAssembler', 'MergeStep', 'SourceRoots', 'var_exclusion_rule',
    'render_manifest', 'write_manifest',
    'copy_supervisor_runtime',
]
