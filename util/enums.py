# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    CLIENT_NOT_FOUND = ErrorInfo("Client not found", status.HTTP_404_NOT_FOUND)
    DOCUMENT_NOT_FOUND = ErrorInfo("Document not found", status.HTTP_404_NOT_FOUND)
    INVALID_DOCUMENT = ErrorInfo("Invalid document", status.HTTP_400_BAD_REQUEST)
    MALFORMED_PATH = ErrorInfo("Malformed document path", status.HTTP_400_BAD_REQUEST)
    NAMESPACE_COLLISION = ErrorInfo("Namespace collision", status.HTTP_409_CONFLICT)
    NAMESPACE_BUSY = ErrorInfo(
        "Documents are being updated, try again", status.HTTP_409_CONFLICT
    )
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_502_BAD_GATEWAY)
