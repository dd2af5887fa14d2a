from dataclasses import dataclass
from typing import Dict, List, Optional

from .api import list_dir
from .classify import Classification, ErrorKind, PromptReason, classify_error
from .client import AlistClient
from .config import PAGE_SIZE
from .errors import AlshareError, AuthRequired, TransportError
from .models import FileInfo, ListResult, PageState
from .password_store import DirectoryPasswordStore
from .utils import get_logger, is_image_name, join_path, normalize_path

# The backend serves a whole directory in one page when asked for this many.
LOAD_ALL_PAGE_SIZE = 100_000


def fetch_all(
    client: AlistClient,
    path: str,
    store: DirectoryPasswordStore,
    password: Optional[str] = None,
) -> ListResult:
    """List a whole directory in one request, using the cached password if none is given."""
    password = password or store.get(path)
    result = list_dir(client, path, password=password, page=1, per_page=LOAD_ALL_PAGE_SIZE)
    if password:
        store.set(path, password)
    return result


@dataclass
class BrowseResult:
    ok: bool
    state: PageState
    classification: Optional[Classification] = None
    message: Optional[str] = None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.classification.kind if self.classification else None

    @property
    def reason(self) -> Optional[PromptReason]:
        return self.classification.reason if self.classification else None

    @property
    def needs_password(self) -> bool:
        return bool(self.classification and self.classification.needs_password)


class PaginatedBrowser:
    def __init__(
        self,
        client: AlistClient,
        store: DirectoryPasswordStore,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self.client = client
        self.store = store
        self.page_size = max(int(page_size), 1)
        self.state = PageState(path="/", page_size=self.page_size)
        self.logger = get_logger("alshare")

    def open(self, path: str, password: Optional[str] = None) -> BrowseResult:
        self.state.reset(normalize_path(path), password)
        self.state.page_size = self.page_size
        return self._fetch(page=1, per_page=self.page_size, append=False)

    def unlock(self, password: str) -> BrowseResult:
        return self.open(self.state.path, password)

    def refresh(self) -> BrowseResult:
        """Reload the first page, asking the backend to bypass its listing cache."""
        self.state.reset(self.state.path, self.state.password)
        return self._fetch(page=1, per_page=self.page_size, append=False, refresh=True)

    def load_more(self) -> BrowseResult:
        if not self.state.has_more:
            return BrowseResult(ok=True, state=self.state)
        return self._fetch(page=self.state.current_page + 1, per_page=self.page_size, append=True)

    def load_all(self) -> BrowseResult:
        result = self._fetch(page=1, per_page=LOAD_ALL_PAGE_SIZE, append=False, keep_on_failure=True)
        if result.ok:
            self.state.current_page = self.state.total_pages
        return result

    def visible_items(self) -> List[FileInfo]:
        return [item for item in self.state.items if item.is_dir or is_image_name(item.name)]

    def child_path(self, item: FileInfo) -> str:
        return join_path(self.state.path, item.name)

    def listing_context(self) -> Dict[str, FileInfo]:
        return {self.child_path(item): item for item in self.state.items}

    def _fetch(
        self,
        page: int,
        per_page: int,
        append: bool,
        refresh: bool = False,
        keep_on_failure: bool = False,
    ) -> BrowseResult:
        path = self.state.path
        password = self.state.password or self.store.get(path)
        if append:
            self.state.loading_more = True
        else:
            self.state.loading = True
        self.state.error = None
        self.logger.debug(
            "List %s page=%s per_page=%s password=%s", path, page, per_page, "yes" if password else "no"
        )
        try:
            listing = list_dir(self.client, path, password=password, page=page, per_page=per_page, refresh=refresh)
        except TransportError as exc:
            self.state.error = str(exc)
            self.logger.warning("Listing %s failed: %s", path, exc)
            return BrowseResult(False, self.state, Classification(ErrorKind.TRANSPORT), str(exc))
        except AlshareError as exc:
            message = getattr(exc, "message", str(exc))
            classification = classify_error(message, path, self.store, password_used=bool(password))
            if isinstance(exc, AuthRequired) and not classification.needs_password:
                classification = Classification(ErrorKind.AUTH_REQUIRED, PromptReason.POSSIBLY_REQUIRED)
            self.state.error = message
            if classification.needs_password:
                self.state.password = None
            # a failed first page leaves nothing stale on screen
            if not append and not keep_on_failure:
                self.state.items = []
            self.logger.info("Listing %s failed (%s): %s", path, classification.kind.value, message)
            return BrowseResult(False, self.state, classification, message)
        finally:
            self.state.loading = False
            self.state.loading_more = False

        if append:
            self.state.items.extend(listing.items)
        else:
            self.state.items = list(listing.items)
        self.state.total = max(listing.total, len(self.state.items))
        self.state.current_page = page
        if password:
            self.store.set(path, password)
            self.state.password = password
        return BrowseResult(True, self.state)
