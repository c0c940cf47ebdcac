# core/path_codec.py
from typing import Optional, Sequence
from config.settings import settings
from core.entities import FileEntry, PathClass, PathKind
from util.errors import MalformedPathError

_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def _normalize_root(root: str) -> str:
    return "/" + root.strip("/")


def check_segment(value: str, what: str) -> None:
    if not value:
        raise MalformedPathError(f"empty {what}")
    if value in (".", ".."):
        raise MalformedPathError(f"traversal {what}: {value!r}")
    if any(ch in value for ch in _FORBIDDEN_CHARS):
        raise MalformedPathError(f"illegal character in {what}: {value!r}")


class PathCodec:
    """
    Encodes, decodes and classifies stored document paths.

    Canonical form is "<root>/<namespace>/<filename>" where root defaults to
    "/uploads/documents". The legacy form lost the "/uploads" prefix
    ("/documents/<namespace>/<filename>"). Namespaces starting with one of the
    staging prefixes belong to pre-identity uploads.
    """

    def __init__(
        self,
        root: str = settings.DOCUMENT_URL_ROOT,
        legacy_root: str = settings.LEGACY_URL_ROOT,
        staging_prefixes: Sequence[str] = settings.STAGING_PREFIXES,
    ) -> None:
        self._root = _normalize_root(root)
        self._legacy_root = _normalize_root(legacy_root)
        self._staging_prefixes = tuple(staging_prefixes)
        if self._root == self._legacy_root:
            raise ValueError("legacy root must differ from the canonical root")

    @property
    def root(self) -> str:
        return self._root

    def is_staging_id(self, namespace_id: str) -> bool:
        return bool(namespace_id) and namespace_id.startswith(self._staging_prefixes)

    def encode(self, namespace_id: str, filename: str) -> str:
        check_segment(namespace_id, "namespace")
        check_segment(filename, "filename")
        return f"{self._root}/{namespace_id}/{filename}"

    def encode_entry(self, entry: FileEntry) -> str:
        return self.encode(entry.namespace, entry.filename)

    def decode(self, path: str) -> FileEntry:
        """Decode a canonical path; anything else raises MalformedPathError."""
        parts = self._split_under(path, self._root)
        if parts is None:
            raise MalformedPathError(f"not a canonical document path: {path!r}")
        return FileEntry(*parts)

    def classify(self, path: str) -> PathClass:
        """Total: every input maps to exactly one PathKind, never raises."""
        if not isinstance(path, str):
            return PathClass(PathKind.MALFORMED, reason="not a string")
        try:
            parts = self._split_under(path, self._root)
            kind = PathKind.CANONICAL
            if parts is None:
                parts = self._split_under(path, self._legacy_root)
                kind = PathKind.LEGACY_MISSING_ROOT
        except MalformedPathError as e:
            return PathClass(PathKind.MALFORMED, reason=str(e))
        if parts is None:
            return PathClass(PathKind.MALFORMED, reason="unknown root")
        namespace, filename = parts
        if self.is_staging_id(namespace):
            kind = PathKind.STAGING_RESIDUE
        return PathClass(kind, namespace, filename)

    @staticmethod
    def _split_under(path: str, root: str) -> Optional[tuple[str, str]]:
        """
        (namespace, filename) when `path` sits directly under `root`, None when the
        root does not match, MalformedPathError when it matches but the rest is bad.
        """
        prefix = root + "/"
        if not path.startswith(prefix):
            return None
        rest = path[len(prefix):]
        segments = rest.split("/")
        if len(segments) != 2:
            raise MalformedPathError(
                f"expected <namespace>/<filename> under {root}, got {rest!r}"
            )
        namespace, filename = segments
        check_segment(namespace, "namespace")
        check_segment(filename, "filename")
        return namespace, filename
