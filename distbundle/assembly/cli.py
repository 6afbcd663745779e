import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional
from distbundle.descriptor import load_descriptor
from distbundle.errors import DistBundleError
from distbundle.log import setup_logging, resolve_level
from distbundle.assembly.assembler import DistributionAssembler, SourceRoots

log = logging.getLogger(__name__)


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value).resolve() if value else None


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="distbundle-assemble",
        description="Assemble a versioned service bundle (and its .tgz archive) from a descriptor.",
    )
    ap.add_argument("descriptor", help="Descriptor YAML (serviceName, version, entrypoint, args, env, excludeFromVar)")
    ap.add_argument("--output", required=True, help="Directory that receives <serviceName>-<version>/")
    ap.add_argument("--build", help="Build artifacts, merged into service/")
    ap.add_argument("--deployment", help="Deployment overlay, merged into deployment/")
    ap.add_argument("--var", help="var/ overlay; log/ and run/ are never copied")
    ap.add_argument("--no-archive", action="store_true", help="Only assemble the directory tree")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    """The entry point for 'distbundle-assemble'."""
    args = build_parser().parse_args(argv)
    setup_logging(resolve_level(logging.INFO))

    try:
        descriptor = load_descriptor(Path(args.descriptor))
        sources = SourceRoots(
            build_artifacts=_optional_path(args.build),
            deployment_overlay=_optional_path(args.deployment),
            var_overlay=_optional_path(args.var),
        )
        assembler = DistributionAssembler(descriptor, sources)
        output_dir = Path(args.output).resolve()
        if args.no_archive:
            print(assembler.assemble(output_dir))
        else:
            archive = assembler.package(output_dir)
            print(output_dir / descriptor.bundle_name())
            print(archive)
    except DistBundleError as e:
        log.critical(f"Packaging failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
