# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @classmethod
    def of(cls, error: ErrorMessage, detail: str | None = None) -> "AppError":
        message = error.value.message if not detail else f"{error.value.message}: {detail}"
        return cls(message, error.value.http_status)


class DocumentSyncError(Exception):
    """Base for errors raised by the document reference sync core."""


class MalformedPathError(DocumentSyncError):
    pass


class NamespaceCollisionError(DocumentSyncError):
    pass


class NamespaceBusyError(DocumentSyncError):
    pass


class FileMissingError(DocumentSyncError):
    """A source file was absent when a copy or move was expected to succeed."""


class ReferenceWriteError(DocumentSyncError):
    pass


class FilesystemError(DocumentSyncError):
    """Permission or I/O failure reported by the file store."""


class ClientNotFoundError(DocumentSyncError):
    pass


class InvalidDocumentError(DocumentSyncError):
    pass


_HTTP_MAPPING: dict[type[DocumentSyncError], ErrorMessage] = {
    ClientNotFoundError: ErrorMessage.CLIENT_NOT_FOUND,
    FileMissingError: ErrorMessage.DOCUMENT_NOT_FOUND,
    InvalidDocumentError: ErrorMessage.INVALID_DOCUMENT,
    MalformedPathError: ErrorMessage.MALFORMED_PATH,
    NamespaceCollisionError: ErrorMessage.NAMESPACE_COLLISION,
    NamespaceBusyError: ErrorMessage.NAMESPACE_BUSY,
}


def to_app_error(exc: DocumentSyncError) -> AppError:
    """Map a domain error onto the HTTP error envelope used by controllers."""
    error = _HTTP_MAPPING.get(type(exc), ErrorMessage.INTERNAL_ERROR)
    return AppError.of(error, str(exc) or None)
