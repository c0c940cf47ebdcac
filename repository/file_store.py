# repository/file_store.py
import logging
import os
import shutil
from pathlib import Path
from typing import List, Protocol
from config.settings import settings
from util.errors import FileMissingError, FilesystemError

logger = logging.getLogger(__name__)


class FileStore(Protocol):
    """
    Disk capability used by every core component.

    Paths are relative to the store root: "<namespace>" for a namespace directory,
    "<namespace>/<filename>" for a file. All calls block.
    """

    def exists(self, path: str) -> bool: ...

    def mkdir_all(self, path: str) -> bool: ...

    def copy(self, src: str, dst: str) -> None: ...

    def rename(self, src: str, dst: str) -> None: ...

    def write(self, path: str, data: bytes) -> None: ...

    def read(self, path: str) -> bytes: ...

    def readdir(self, path: str) -> List[str]: ...

    def remove(self, path: str) -> None: ...


class LocalFileStore:
    """
    FileStore rooted at a local directory (settings.DOCUMENTS_DIR by default).

    rename() is a single os.rename, atomic on one filesystem; it fails with
    FilesystemError across devices so callers can fall back to copy + remove.
    """

    def __init__(self, root: str | os.PathLike = settings.DOCUMENTS_DIR) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _abs(self, path: str) -> Path:
        target = (self._root / path.strip("/")).resolve()
        if target != self._root and self._root not in target.parents:
            raise FilesystemError(f"path escapes document root: {path!r}")
        return target

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def mkdir_all(self, path: str) -> bool:
        """Create `path` and parents; True when something was created."""
        target = self._abs(path)
        if target.is_dir():
            return False
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"mkdir {path}: {e.strerror or e}") from e
        logger.debug("fs.mkdir path=%s", path)
        return True

    def copy(self, src: str, dst: str) -> None:
        s, d = self._abs(src), self._abs(dst)
        if not s.is_file():
            raise FileMissingError(f"copy source missing: {src}")
        try:
            d.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(s, d)
        except OSError as e:
            raise FilesystemError(f"copy {src} -> {dst}: {e.strerror or e}") from e

    def rename(self, src: str, dst: str) -> None:
        s, d = self._abs(src), self._abs(dst)
        if not s.exists():
            raise FileMissingError(f"rename source missing: {src}")
        try:
            d.parent.mkdir(parents=True, exist_ok=True)
            os.rename(s, d)
        except OSError as e:
            raise FilesystemError(f"rename {src} -> {dst}: {e.strerror or e}") from e

    def write(self, path: str, data: bytes) -> None:
        target = self._abs(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise FilesystemError(f"write {path}: {e.strerror or e}") from e

    def read(self, path: str) -> bytes:
        target = self._abs(path)
        if not target.is_file():
            raise FileMissingError(f"file missing: {path}")
        try:
            return target.read_bytes()
        except OSError as e:
            raise FilesystemError(f"read {path}: {e.strerror or e}") from e

    def readdir(self, path: str) -> List[str]:
        target = self._abs(path)
        if not target.is_dir():
            return []
        try:
            return sorted(p.name for p in target.iterdir())
        except OSError as e:
            raise FilesystemError(f"readdir {path}: {e.strerror or e}") from e

    def remove(self, path: str) -> None:
        """Remove a file or a whole directory tree; missing paths are ignored."""
        target = self._abs(path)
        try:
            if target.is_dir():
                shutil.rmtree(target)
            elif target.exists():
                target.unlink()
        except OSError as e:
            raise FilesystemError(f"remove {path}: {e.strerror or e}") from e
