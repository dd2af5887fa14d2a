import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .config import ShareSettings
from .models import ConnectionConfig, TokenAuth
from .password_store import DirectoryPasswordStore


def _export_connection(connection: Optional[ConnectionConfig]) -> Dict[str, Any]:
    if connection is None:
        return {}
    out: Dict[str, Any] = {"server_url": connection.server_url}
    # only tokens are persisted, never account passwords
    if isinstance(connection.auth, TokenAuth):
        out["token"] = connection.auth.token
    if connection.custom_domain:
        out["custom_domain"] = connection.custom_domain
    return out


def save_session(
    path: str,
    connection: Optional[ConnectionConfig] = None,
    passwords: Optional[DirectoryPasswordStore] = None,
    share: Optional[ShareSettings] = None,
) -> None:
    session_path = Path(path)
    session_path.parent.mkdir(parents=True, exist_ok=True)
    payload: Dict[str, Any] = {
        "connection": _export_connection(connection),
        "directory_passwords": passwords.to_dict() if passwords is not None else {},
    }
    if share is not None:
        payload["share"] = {
            "default_password": share.default_password or "",
            "passwordless_enabled": bool(share.passwordless_enabled),
        }
    # mkstemp creates the file 0600
    fd, tmp_name = tempfile.mkstemp(prefix=".session-", dir=str(session_path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, indent=2, ensure_ascii=True) + "\n")
        os.replace(tmp_name, session_path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def load_session(path: str) -> Dict[str, Any]:
    session_path = Path(path)
    if not session_path.exists():
        return {}
    data = json.loads(session_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Session file must be a JSON object")
    return data


def load_password_store(session: Dict[str, Any]) -> DirectoryPasswordStore:
    passwords = session.get("directory_passwords") or {}
    if not isinstance(passwords, dict):
        raise ValueError("directory_passwords must be a JSON object")
    return DirectoryPasswordStore({str(k): str(v) for k, v in passwords.items() if v})
