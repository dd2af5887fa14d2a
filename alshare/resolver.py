"""Expand a user selection of files and folders into leaf image paths.

Folders are expanded exactly one level: image files directly inside a selected
folder are included, sub-folders found there are skipped and never listed.
Sharing a folder therefore never pulls in its grandchildren; deeper expansion
would change what a link exposes and needs its own format version.

Folder listings run one after another. A folder that cannot be listed
contributes nothing and is reported in ``ResolveResult.failures``; the rest of
the selection is still resolved.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from .browser import fetch_all
from .client import AlistClient
from .errors import AlshareError
from .models import FileInfo, PathResult
from .password_store import DirectoryPasswordStore
from .utils import get_logger, is_image_name, join_path, normalize_path


@dataclass
class ResolveResult:
    paths: List[str] = field(default_factory=list)
    failures: List[PathResult] = field(default_factory=list)
    folder_count: int = 0

    @property
    def empty(self) -> bool:
        return not self.paths

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def listed_count(self) -> int:
        return self.folder_count - self.failed_count


def _is_directory(path: str, listing: Mapping[str, FileInfo]) -> bool:
    info = listing.get(path)
    if info is not None:
        return info.is_dir
    return not is_image_name(path)


def resolve_selection(
    client: AlistClient,
    selected: Iterable[str],
    listing: Optional[Mapping[str, FileInfo]],
    store: DirectoryPasswordStore,
) -> ResolveResult:
    logger = get_logger("alshare")
    context: Dict[str, FileInfo] = {normalize_path(k): v for k, v in (listing or {}).items()}
    result = ResolveResult()
    seen = set()

    def add(path: str) -> None:
        if path not in seen:
            seen.add(path)
            result.paths.append(path)

    for raw in selected:
        path = normalize_path(raw)
        if not _is_directory(path, context):
            if is_image_name(path):
                add(path)
            else:
                logger.debug("Skipping non-image selection %s", path)
            continue

        result.folder_count += 1
        try:
            folder = fetch_all(client, path, store)
        except AlshareError as exc:
            logger.warning("Could not list folder %s, skipping it: %s", path, exc)
            result.failures.append(PathResult(path=path, success=False, error=str(exc)))
            continue
        for item in folder.items:
            if item.is_dir:
                continue
            if is_image_name(item.name):
                add(join_path(path, item.name))

    if result.empty:
        logger.info("Selection resolved to no images")
    return result
