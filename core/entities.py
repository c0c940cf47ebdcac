# core/entities.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class FileEntry:
    """
    A file owned by a namespace; stored at <documents dir>/<namespace>/<filename>.
    """

    namespace: str
    filename: str

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.filename}"


class PathKind(str, Enum):
    CANONICAL = "canonical"
    LEGACY_MISSING_ROOT = "legacy-missing-root"
    STAGING_RESIDUE = "staging-residue"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class PathClass:
    kind: PathKind
    namespace: Optional[str] = None  # None only when MALFORMED
    filename: Optional[str] = None
    reason: Optional[str] = None  # why the path was rejected, for MALFORMED

    @property
    def entry(self) -> Optional[FileEntry]:
        if self.namespace is None or self.filename is None:
            return None
        return FileEntry(self.namespace, self.filename)


@dataclass(frozen=True)
class IncomingDocument:
    """Raw upload handed over by the intake layer: original filename + bytes."""

    filename: str
    data: bytes
