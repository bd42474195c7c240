import logging
import os
import zipfile
from pathlib import Path

from pymonad.either import Either, Left, Right

from ..domain.errors import PackagingError
from ..domain.ports import Archiver

logger = logging.getLogger(__name__)


class ZipArchiver(Archiver):
    """Compresses a directory into a deflated zip, folder name included."""

    def __init__(self, compresslevel: int = 6):
        self._compresslevel = compresslevel

    def archive(self, source_dir: Path, archive_path: Path) -> Either[PackagingError, Path]:
        source_dir = Path(source_dir)
        archive_path = Path(archive_path)
        partial = archive_path.with_name(f".{archive_path.name}.partial")
        logger.info(f"Compressing '{source_dir}' into '{archive_path}'.")

        try:
            files = sorted(p for p in source_dir.rglob("*") if p.is_file() and not p.name.startswith("."))
            with zipfile.ZipFile(partial, "w", zipfile.ZIP_DEFLATED, compresslevel=self._compresslevel) as zf:
                for file_path in files:
                    zf.write(file_path, arcname=Path(source_dir.name) / file_path.relative_to(source_dir))
            os.replace(partial, archive_path)
        except (OSError, zipfile.BadZipFile) as e:
            partial.unlink(missing_ok=True)
            logger.error(f"Could not create archive '{archive_path}': {e}")
            return Left(PackagingError(str(e)))

        size_mb = archive_path.stat().st_size / (1024 * 1024)
        logger.info(f"Created archive '{archive_path.name}' with {len(files)} file(s) ({size_mb:.1f}MB).")
        return Right(archive_path)
