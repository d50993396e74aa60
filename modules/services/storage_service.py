"""File storage helpers."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"
_ASSET_NAME = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\.png$"
)


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so readers see either nothing or the full file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=TEMP_SUFFIX)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class StorageService:
    """Handle generated image files inside a single directory."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def path_for(self, filename: str) -> Path:
        return self.output_dir / filename

    def save_image(self, data: bytes, filename: str) -> Path:
        """Persist image bytes atomically and return the file path."""
        path = self.path_for(filename)
        write_atomic(path, data)
        return path

    def read_image(self, filename: str) -> bytes:
        return self.path_for(filename).read_bytes()

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()

    def remove(self, filename: str) -> None:
        """Delete an image file; a file that is already gone is fine."""
        try:
            self.path_for(filename).unlink()
        except FileNotFoundError:
            pass

    def cleanup(self, keep: Iterable[str]) -> List[str]:
        """Remove image files not listed in ``keep`` and stale temp files.

        Only names produced by this app (``<uuid>.png`` and our temp files) are
        considered; anything else in the directory is left alone.
        """
        if not self.output_dir.is_dir():
            return []

        referenced = set(keep)
        removed: List[str] = []
        for child in self.output_dir.iterdir():
            if not child.is_file():
                continue
            name = child.name
            stale_temp = name.startswith(".") and name.endswith(TEMP_SUFFIX)
            orphan = _ASSET_NAME.match(name) is not None and name not in referenced
            if not (stale_temp or orphan):
                continue
            try:
                child.unlink()
            except OSError as exc:
                logger.warning("Could not remove unreferenced file %s: %s", child, exc)
                continue
            removed.append(name)
        return removed
