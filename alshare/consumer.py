from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Union

from .api import get_direct_link
from .client import AlistClient
from .codec import SUPPORTED_VERSIONS, check_format, decode_bundle
from .errors import AlshareError, DecryptionFailed, UnsupportedFormatVersion
from .links import ShareLinkParams, parse_share_link, reveal_password
from .models import ConnectionConfig, GalleryItem, ShareBundle
from .utils import get_logger

MISSING_PATH_ERROR = "Image path not provided."
MISSING_GALLERY_PATHS_ERROR = "Gallery mode selected, but image paths are missing in the shared link."
NO_CONNECTION_ERROR = "No share token in the link and no local connection configured."
PASSWORD_REQUIRED_ERROR = "Password is required."


class UnlockState(str, Enum):
    LOCKED = "locked"
    PROMPTING = "prompting"
    UNLOCKED = "unlocked"
    FAILED = "failed"


@dataclass(frozen=True)
class UnlockResult:
    state: UnlockState
    error: Optional[str] = None


class LinkConsumer:
    """Turns an incoming share link into a connection and a list of paths.

    LOCKED --start--> UNLOCKED (passwordless key or no token with a local
    fallback), PROMPTING, or FAILED. A token whose envelope is unreadable or
    declares an unsupported format fails before any prompt. PROMPTING --submit-->
    UNLOCKED, or PROMPTING again with an inline error. PROMPTING --cancel--> UNLOCKED on the
    local fallback connection, else FAILED.
    """

    def __init__(
        self,
        link: Union[str, ShareLinkParams],
        fallback: Optional[ConnectionConfig] = None,
        supported_versions: Iterable[int] = SUPPORTED_VERSIONS,
    ) -> None:
        self.params = parse_share_link(link) if isinstance(link, str) else link
        self.fallback = fallback
        self.supported_versions = tuple(supported_versions)
        self.state = UnlockState.LOCKED
        self.bundle: Optional[ShareBundle] = None
        self.connection: Optional[ConnectionConfig] = None
        self.error: Optional[str] = None
        self.attempts = 0
        self.logger = get_logger("alshare")

    def _result(self) -> UnlockResult:
        return UnlockResult(self.state, self.error)

    def _fail(self, message: str) -> UnlockResult:
        self.state = UnlockState.FAILED
        self.error = message
        self.logger.warning("Share link failed: %s", message)
        return self._result()

    def _use_fallback(self) -> UnlockResult:
        self.state = UnlockState.UNLOCKED
        self.connection = self.fallback
        self.bundle = None
        self.error = None
        return self._result()

    def _unlock(self, password: str) -> UnlockResult:
        bundle = decode_bundle(self.params.token or "", password, self.supported_versions)
        if self.params.is_gallery and not bundle.image_paths:
            return self._fail(MISSING_GALLERY_PATHS_ERROR)
        self.bundle = bundle
        self.connection = bundle.connection
        self.state = UnlockState.UNLOCKED
        self.error = None
        return self._result()

    def start(self) -> UnlockResult:
        if self.state is not UnlockState.LOCKED:
            return self._result()
        if not self.params.is_gallery and not self.params.path:
            return self._fail(MISSING_PATH_ERROR)
        if not self.params.token:
            if self.fallback is not None:
                return self._use_fallback()
            return self._fail(NO_CONNECTION_ERROR)
        try:
            check_format(self.params.token, self.supported_versions)
        except DecryptionFailed as exc:
            # unreadable envelope or unknown version; no password can open it
            return self._fail(str(exc))

        if self.params.passwordless_key:
            password = reveal_password(self.params.passwordless_key)
            if password:
                try:
                    return self._unlock(password)
                except DecryptionFailed as exc:
                    self.logger.info("Passwordless unlock failed, prompting: %s", exc)

        self.state = UnlockState.PROMPTING
        return self._result()

    def submit(self, password: str) -> UnlockResult:
        if self.state is not UnlockState.PROMPTING:
            raise RuntimeError(f"Cannot submit a password in state {self.state.value}")
        if not password:
            self.error = PASSWORD_REQUIRED_ERROR
            return self._result()
        self.attempts += 1
        try:
            return self._unlock(password)
        except UnsupportedFormatVersion as exc:
            return self._fail(str(exc))
        except DecryptionFailed as exc:
            self.error = str(exc)
            return self._result()

    def cancel(self) -> UnlockResult:
        if self.state in (UnlockState.UNLOCKED, UnlockState.FAILED):
            return self._result()
        if self.fallback is not None:
            return self._use_fallback()
        return self._fail("Share link was not unlocked.")

    @property
    def title(self) -> Optional[str]:
        return self.bundle.title if self.bundle else None

    def paths(self) -> List[str]:
        if self.params.is_gallery:
            return list(self.bundle.image_paths or ()) if self.bundle else []
        return [self.params.path] if self.params.path else []

    def open_client(self, **kwargs: Any) -> AlistClient:
        if self.state is not UnlockState.UNLOCKED or self.connection is None:
            raise RuntimeError("Share link is not unlocked")
        return AlistClient.from_connection(self.connection, **kwargs)

    def fetch_items(self, client: AlistClient) -> List[GalleryItem]:
        items: List[GalleryItem] = []
        for path in self.paths():
            try:
                items.append(GalleryItem(path=path, url=get_direct_link(client, path)))
            except AlshareError as exc:
                self.logger.warning("Could not resolve %s: %s", path, exc)
                items.append(GalleryItem(path=path, error=str(exc)))
        return items
