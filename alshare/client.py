from typing import Any, Dict, Optional
import json

try:
    import httpx
except ModuleNotFoundError as exc:  # pragma: no cover - user environment dependency
    raise ModuleNotFoundError(
        "Missing dependency 'httpx'. Install with: pip install httpx"
    ) from exc

from endpoints import AUTH, BASE_URL
from .errors import ApiError, AuthRequired, TransportError
from .models import AuthDetails, ConnectionConfig, CredentialAuth, TokenAuth
from .utils import append_log_line, get_logger, redact_payload, redacted_headers, truncate_text

SUCCESS_CODE = 200


class AlistClient:
    def __init__(
        self,
        base_url: str = BASE_URL,
        auth: Optional[AuthDetails] = None,
        custom_domain: Optional[str] = None,
        timeout: float = 30.0,
        http_log_path: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.strip().rstrip('/')
        self.custom_domain = (custom_domain or "").strip().rstrip('/') or None
        self.timeout = timeout
        self.logger = get_logger('alshare')
        self.http_log_path = http_log_path
        self._token: Optional[str] = None
        self._username: Optional[str] = None
        self._password: Optional[str] = None
        if isinstance(auth, TokenAuth):
            self._token = auth.token.strip()
        elif isinstance(auth, CredentialAuth):
            self._username = auth.username.strip()
            self._password = auth.password
        self._client = httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=transport)

    @classmethod
    def from_connection(cls, connection: ConnectionConfig, **kwargs: Any) -> "AlistClient":
        return cls(
            base_url=connection.server_url,
            auth=connection.auth,
            custom_domain=connection.custom_domain,
            **kwargs,
        )

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token.strip()
        self._username = None
        self._password = None

    def connection_config(self) -> ConnectionConfig:
        # Account passwords never leave the client; only a token is shareable.
        auth = TokenAuth(self._token) if self._token else None
        return ConnectionConfig(server_url=self.base_url, auth=auth, custom_domain=self.custom_domain)

    def login(self) -> str:
        if not self._username or self._password is None:
            raise AuthRequired("Username and password are required for login", code=401)
        resp = self.request(
            AUTH["login"]["method"],
            AUTH["login"]["path"],
            json={"username": self._username, "password": self._password},
            authenticate=False,
        )
        data = self.json_or_raise(resp).get("data") or {}
        token = data.get("token")
        if not token:
            raise AuthRequired("Login failed: no token in response", code=401)
        self.set_token(str(token))
        self.logger.info("Logged in to %s", self.base_url)
        return self._token

    def ensure_token(self) -> Optional[str]:
        """Log in first when only account credentials are known."""
        if not self._token and self._username:
            self.login()
        return self._token

    def _default_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._token:
            headers["Authorization"] = self._token
        return headers

    def _log(self, line: str) -> None:
        if self.http_log_path:
            append_log_line(self.http_log_path, line)

    def request(self, method: str, path: str, authenticate: bool = True, **kwargs: Any) -> httpx.Response:
        if authenticate:
            self.ensure_token()
        url = path if path.startswith('http') else f"{self.base_url}{path}"
        headers = dict(self._default_headers())
        headers.update(kwargs.get('headers', {}) or {})
        kwargs['headers'] = headers
        redacted = redacted_headers(headers)
        payload = None
        if "json" in kwargs:
            payload = redact_payload(kwargs.get("json"))
        self.logger.debug('HTTP %s %s headers=%s', method, url, redacted)
        if payload is not None:
            self._log(f"{method} {url} headers={redacted} payload={payload}")
        else:
            self._log(f"{method} {url} headers={redacted}")
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            self.logger.warning('HTTP %s %s failed: %s', method, url, exc)
            self._log(f"{method} {url} transport_error={exc!r}")
            raise TransportError(f"No response from server {self.base_url}: {exc}") from exc
        response_body: Any = None
        try:
            response_body = resp.json()
            response_body = redact_payload(response_body)
        except ValueError:
            response_body = truncate_text(resp.text or "")
        self._log(
            f"{method} {url} status={resp.status_code} response={json.dumps(response_body, ensure_ascii=True)}",
        )
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = resp.reason_phrase or "HTTP error"
            if isinstance(response_body, dict) and response_body.get("message"):
                message = str(response_body["message"])
            error_cls = AuthRequired if resp.status_code == 401 else ApiError
            raise error_cls(message, code=resp.status_code) from exc
        return resp

    @staticmethod
    def json_or_raise(resp: httpx.Response) -> Dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ApiError(f"Non-JSON response: {resp.text[:200]}") from exc
        if not isinstance(payload, dict):
            raise ApiError(f"Unexpected response: {payload!r}")
        code = payload.get("code")
        if code is not None and code != SUCCESS_CODE:
            message = str(payload.get("message") or "Unknown error")
            if code == 401:
                raise AuthRequired(message, code=code)
            raise ApiError(message, code=code)
        return payload

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "AlistClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
