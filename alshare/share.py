from typing import Optional, Sequence

from .client import AlistClient
from .codec import encode_bundle
from .config import ShareSettings
from .links import compose_share_link, passwordless_key_for
from .models import ShareBundle
from .utils import get_logger, normalize_path


def create_share_link(
    client: AlistClient,
    settings: ShareSettings,
    viewer_url: str,
    password: Optional[str] = None,
    path: Optional[str] = None,
    image_paths: Optional[Sequence[str]] = None,
    title: Optional[str] = None,
) -> str:
    """Bundle the client's connection with the shared paths into a viewer link.

    Pass ``path`` for a single-item link or ``image_paths`` for a gallery.
    Without an explicit password the operator default is used when passwordless
    mode is on; otherwise a password is required.
    """
    logger = get_logger("alshare")
    if (path is None) == (image_paths is None):
        raise ValueError("Pass exactly one of path or image_paths")
    if image_paths is not None and not image_paths:
        raise ValueError("No images to share")
    if not password:
        if not settings.passwordless_active:
            raise ValueError("A password is required to create an encrypted share link")
        password = settings.default_password

    # credential clients must hold a token before their connection is shareable
    client.ensure_token()
    bundle = ShareBundle(
        connection=client.connection_config(),
        image_paths=tuple(normalize_path(p) for p in image_paths) if image_paths is not None else None,
        title=title,
    )
    token = encode_bundle(bundle, password)
    key = passwordless_key_for(settings, password)
    link = compose_share_link(
        viewer_url,
        token,
        path=normalize_path(path) if path is not None else None,
        passwordless_key=key,
    )
    logger.info(
        "Created %s share link (%s)",
        "gallery" if bundle.is_gallery else "single-item",
        "passwordless" if key else "password required",
    )
    return link
