from typing import Dict, Iterator, Mapping, Optional, Tuple

from .utils import normalize_path


class DirectoryPasswordStore:
    """Last password that successfully listed each directory.

    A convenience cache for one session, not a security boundary: the backend
    still checks every request. Entries are overwritten, never evicted.
    """

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._passwords: Dict[str, str] = {}
        for path, password in (initial or {}).items():
            self.set(path, password)

    def get(self, path: str) -> Optional[str]:
        return self._passwords.get(normalize_path(path))

    def set(self, path: str, password: str) -> None:
        if not password:
            return
        self._passwords[normalize_path(path)] = password

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_path(path) in self._passwords

    def __len__(self) -> int:
        return len(self._passwords)

    def __iter__(self) -> Iterator[str]:
        return iter(self._passwords)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._passwords.items())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._passwords)
