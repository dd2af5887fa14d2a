"""Best-effort classification of backend listing errors.

The backend answers with the same generic message for a protected directory
listed without credentials and for a directory that does not exist, and it has
no structured error code for the difference. These helpers only look at the
message text so they can be exercised without a server.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .password_store import DirectoryPasswordStore

_PASSWORD_QUALIFIERS = ("incorrect", "permission", "required", "denied", "unauthorized")
_AMBIGUOUS_MARKERS = ("object not found", "failed get dir")


class ErrorKind(str, Enum):
    AUTH_REQUIRED = "auth_required"
    AMBIGUOUS_NOT_FOUND_OR_PROTECTED = "ambiguous_not_found_or_protected"
    TRANSPORT = "transport"
    OTHER = "other"


class PromptReason(str, Enum):
    INCORRECT = "incorrect"
    PATH_OR_PASSWORD_INVALID = "path_or_password_invalid"
    POSSIBLY_REQUIRED = "possibly_required"


@dataclass(frozen=True)
class Classification:
    kind: ErrorKind
    reason: Optional[PromptReason] = None

    @property
    def needs_password(self) -> bool:
        return self.kind in (ErrorKind.AUTH_REQUIRED, ErrorKind.AMBIGUOUS_NOT_FOUND_OR_PROTECTED)


def classify_message(message: str) -> ErrorKind:
    text = (message or "").lower()
    if "password" in text and any(word in text for word in _PASSWORD_QUALIFIERS):
        return ErrorKind.AUTH_REQUIRED
    if any(marker in text for marker in _AMBIGUOUS_MARKERS):
        return ErrorKind.AMBIGUOUS_NOT_FOUND_OR_PROTECTED
    return ErrorKind.OTHER


def classify_error(
    message: str,
    path: Optional[str] = None,
    store: Optional[DirectoryPasswordStore] = None,
    password_used: bool = False,
) -> Classification:
    text = (message or "").lower()
    kind = classify_message(text)
    if kind is ErrorKind.OTHER:
        return Classification(kind)

    had_password = password_used or (
        path is not None and store is not None and store.get(path) is not None
    )
    if kind is ErrorKind.AMBIGUOUS_NOT_FOUND_OR_PROTECTED:
        # a missing path would never have had a password cached against it
        if had_password:
            return Classification(ErrorKind.AUTH_REQUIRED, PromptReason.INCORRECT)
        return Classification(kind, PromptReason.PATH_OR_PASSWORD_INVALID)

    if "incorrect" in text or "permission" in text:
        return Classification(kind, PromptReason.INCORRECT)
    return Classification(kind, PromptReason.POSSIBLY_REQUIRED)
