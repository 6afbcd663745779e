import os
import gzip
import logging
import tarfile
from pathlib import Path
from typing import List, Protocol, Tuple

log = logging.getLogger(__name__)


class ArchiveWriter(Protocol):
    """Anything that can turn a bundle directory into a single archive file."""

    def write(self, bundle_root: Path, output_path: Path) -> Path: ...


def source_date_epoch() -> int:
    """Returns SOURCE_DATE_EPOCH as an int, or 0 when unset or invalid."""
    value = os.environ.get("SOURCE_DATE_EPOCH", "").strip()
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


def iter_tree(root: Path) -> Tuple[List[str], List[str]]:
    """
    Lists a directory tree in a stable order.

    :return: (sorted relative directory paths, sorted relative file paths), POSIX separators.
    """
    dirs: List[str] = []
    files: List[str] = []
    for current, sub_dirs, sub_files in os.walk(root):
        sub_dirs.sort()
        rel_root = Path(current).relative_to(root)
        dirs.extend((rel_root / d).as_posix() for d in sub_dirs)
        files.extend((rel_root / f).as_posix() for f in sorted(sub_files))
    return sorted(dirs), sorted(files)


class TarGzArchiveWriter:
    """
    Writes reproducible .tgz archives: sorted entries, fixed mtimes and
    zeroed ownership, so two archives of the same tree are byte-identical.
    """

    def __init__(self, epoch: int | None = None):
        self.epoch = source_date_epoch() if epoch is None else epoch

    def _tar_info(self, name: str, kind: bytes, mode: int, size: int = 0) -> tarfile.TarInfo:
        info = tarfile.TarInfo(name)
        info.type = kind
        info.mode = mode
        info.size = size
        info.mtime = self.epoch
        info.uid = info.gid = 0
        info.uname = info.gname = ""
        return info

    def write(self, bundle_root: Path, output_path: Path) -> Path:
        """
        Archives `bundle_root` with the bundle directory name as the single top-level entry.

        :param bundle_root: The assembled bundle directory.
        :param output_path: Where to write the archive; replaced if it exists.
        :return: The archive path.
        """
        root_name = bundle_root.name
        dirs, files = iter_tree(bundle_root)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.unlink(missing_ok=True)

        with open(output_path, "wb") as out_f:
            with gzip.GzipFile(filename="", mode="wb", fileobj=out_f, mtime=self.epoch) as gz:
                with tarfile.open(fileobj=gz, mode="w|", format=tarfile.PAX_FORMAT) as tf:
                    tf.addfile(self._tar_info(root_name, tarfile.DIRTYPE, 0o755))
                    for rel_dir in dirs:
                        tf.addfile(self._tar_info(f"{root_name}/{rel_dir}", tarfile.DIRTYPE, 0o755))
                    for rel_file in files:
                        source = bundle_root / rel_file
                        st = source.stat()
                        info = self._tar_info(f"{root_name}/{rel_file}", tarfile.REGTYPE, st.st_mode & 0o777, st.st_size)
                        with open(source, "rb") as f:
                            tf.addfile(info, fileobj=f)

        log.info(f"Archived {len(files)} files from '{bundle_root}' into '{output_path}'.")
        return output_path
