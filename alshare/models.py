from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import PartialBatchFailure

COMPRESSION_ZLIB = "zlib"


@dataclass(frozen=True)
class FileInfo:
    name: str
    is_dir: bool
    size: int = 0
    modified: str = ""
    thumbnail_url: Optional[str] = None
    raw_type: int = 0

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "FileInfo":
        return cls(
            name=row.get("name") or "",
            is_dir=bool(row.get("is_dir")),
            size=int(row.get("size") or 0),
            modified=row.get("modified") or "",
            thumbnail_url=row.get("thumb") or None,
            raw_type=int(row.get("type") or 0),
        )


@dataclass
class ListResult:
    items: List[FileInfo]
    total: int


@dataclass(frozen=True)
class TokenAuth:
    token: str


@dataclass(frozen=True)
class CredentialAuth:
    username: str
    password: str = field(repr=False)


AuthDetails = Union[TokenAuth, CredentialAuth]


def auth_to_dict(auth: Optional[AuthDetails]) -> Optional[Dict[str, str]]:
    if auth is None:
        return None
    if isinstance(auth, TokenAuth):
        return {"token": auth.token}
    return {"username": auth.username, "password": auth.password}


def auth_from_dict(data: Any) -> Optional[AuthDetails]:
    if not data:
        return None
    if not isinstance(data, dict):
        raise ValueError("authDetails must be an object")
    if data.get("token"):
        return TokenAuth(token=str(data["token"]))
    if data.get("username"):
        return CredentialAuth(username=str(data["username"]), password=str(data.get("password") or ""))
    return None


@dataclass(frozen=True)
class ConnectionConfig:
    server_url: str
    auth: Optional[AuthDetails] = None
    custom_domain: Optional[str] = None

    def __post_init__(self) -> None:
        url = (self.server_url or "").strip().rstrip("/")
        if not url:
            raise ValueError("serverUrl is required")
        object.__setattr__(self, "server_url", url)
        if self.custom_domain is not None:
            domain = self.custom_domain.strip().rstrip("/")
            object.__setattr__(self, "custom_domain", domain or None)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "serverUrl": self.server_url,
            "authDetails": auth_to_dict(self.auth),
        }
        if self.custom_domain:
            data["r2CustomDomain"] = self.custom_domain
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ConnectionConfig":
        if not isinstance(data, dict):
            raise ValueError("Connection config must be an object")
        server_url = data.get("serverUrl")
        if not isinstance(server_url, str) or not server_url.strip():
            raise ValueError("serverUrl is required")
        custom_domain = data.get("r2CustomDomain")
        if custom_domain is not None and not isinstance(custom_domain, str):
            raise ValueError("r2CustomDomain must be a string")
        return cls(
            server_url=server_url,
            auth=auth_from_dict(data.get("authDetails")),
            custom_domain=custom_domain or None,
        )


@dataclass(frozen=True)
class ShareBundle:
    connection: ConnectionConfig
    image_paths: Optional[Tuple[str, ...]] = None
    title: Optional[str] = None

    def __post_init__(self) -> None:
        if self.image_paths is not None:
            object.__setattr__(self, "image_paths", tuple(self.image_paths))

    @property
    def is_gallery(self) -> bool:
        return bool(self.image_paths)

    @property
    def format_version(self) -> int:
        return 2 if self.is_gallery else 1

    @property
    def compression_tag(self) -> Optional[str]:
        return COMPRESSION_ZLIB if self.is_gallery else None

    def to_dict(self) -> Dict[str, Any]:
        data = self.connection.to_dict()
        if self.image_paths is not None:
            data["imagePaths"] = list(self.image_paths)
        if self.title is not None:
            data["title"] = self.title
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ShareBundle":
        connection = ConnectionConfig.from_dict(data)
        paths = data.get("imagePaths")
        if paths is not None:
            if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
                raise ValueError("imagePaths must be a list of strings")
            paths = tuple(paths)
        title = data.get("title")
        if title is not None and not isinstance(title, str):
            raise ValueError("title must be a string")
        return cls(connection=connection, image_paths=paths, title=title)


@dataclass
class PageState:
    path: str
    page_size: int
    current_page: int = 1
    total: int = 0
    items: List[FileInfo] = field(default_factory=list)
    password: Optional[str] = None
    loading: bool = False
    loading_more: bool = False
    error: Optional[str] = None

    @property
    def total_pages(self) -> int:
        if self.total <= 0:
            return 1
        return (self.total + self.page_size - 1) // self.page_size

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages and len(self.items) < self.total

    def reset(self, path: str, password: Optional[str] = None) -> None:
        self.path = path
        self.password = password
        self.current_page = 1
        self.total = 0
        self.items = []
        self.error = None


@dataclass(frozen=True)
class PathResult:
    path: str
    success: bool
    error: Optional[str] = None


@dataclass
class BatchResult:
    results: List[PathResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def success(self) -> bool:
        return self.fail_count == 0

    @property
    def failures(self) -> List[PathResult]:
        return [r for r in self.results if not r.success]

    def raise_for_failures(self) -> None:
        if self.fail_count:
            raise PartialBatchFailure(self)


@dataclass
class GalleryItem:
    path: str
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.url is not None and self.error is None
