from typing import Optional


class AlshareError(Exception):
    pass


class TransportError(AlshareError):
    """No response from the backend (DNS, connect, timeout)."""


class ApiError(AlshareError):
    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"code={self.code} msg={self.message}"


class AuthRequired(ApiError):
    pass


class DecryptionFailed(AlshareError):
    def __init__(self, message: str = "Decryption failed: invalid password or corrupted link") -> None:
        super().__init__(message)


class UnsupportedFormatVersion(DecryptionFailed):
    def __init__(self, version: object = None) -> None:
        super().__init__(f"Unsupported share format version: {version!r}")
        self.version = version


class PartialBatchFailure(AlshareError):
    def __init__(self, result) -> None:
        super().__init__(
            f"{result.fail_count} of {result.total} operations failed: "
            + ", ".join(r.path for r in result.failures)
        )
        self.result = result
