"""Quqi web API plumbing: envelope decoding, signed requests and session login."""

from __future__ import annotations

import base64
import dataclasses
import logging
from typing import TYPE_CHECKING, Any

import httpx

from remote_drive._errors import (
    ApiError,
    AuthenticationFailed,
    BackendUnavailable,
    WorkspaceNotFound,
)

if TYPE_CHECKING:
    from remote_drive._types import FormData, Payload

log = logging.getLogger(__name__)

MAIN_HOST = "quqi.com"
GROUP_HOST = "group.quqi.com"
UPLOAD_HOST = "upload.quqi.com:20807"
ORIGIN = "https://quqi.com"

# Group type the service assigns to an account's own "private cloud".
PRIVATE_GROUP_TYPE = 2

_DRIVER = "quqi"


@dataclasses.dataclass(frozen=True)
class Envelope:
    """The ``{"err": ..., "msg": ..., "data": ...}`` wrapper every endpoint answers with."""

    code: int
    message: str
    data: Any = None

    @classmethod
    def decode(cls, payload: object) -> Envelope:
        """Build an envelope from a decoded JSON body.

        :raises ApiError: If the body is not a JSON object.
        """
        if not isinstance(payload, dict):
            raise ApiError(f"Unexpected response body: {type(payload).__name__}", code=-1, driver=_DRIVER)
        try:
            code = int(payload.get("err", 0) or 0)
        except (TypeError, ValueError):
            raise ApiError(f"Malformed status code: {payload.get('err')!r}", code=-1, driver=_DRIVER) from None
        return cls(code=code, message=str(payload.get("msg") or ""), data=payload.get("data"))

    @property
    def ok(self) -> bool:
        return self.code == 0

    def check(self) -> Envelope:
        """Return ``self`` or raise if the envelope reports a failure.

        :raises ApiError: If ``code`` is non-zero.
        """
        if not self.ok:
            raise ApiError(self.message or f"Request failed with code {self.code}", code=self.code, driver=_DRIVER)
        return self

    def field(self, *keys: str) -> Any:
        """Walk nested ``data`` keys, returning ``None`` when any level is missing."""
        value = self.data
        for key in keys:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        return value

    def require(self, *keys: str) -> str:
        """Like :meth:`field`, for a field that must be present.

        :raises ApiError: If the field is missing or empty.
        """
        value = self.field(*keys)
        if value is None or value == "":
            dotted = ".".join(keys)
            raise ApiError(f"Response is missing '{dotted}'", code=self.code, driver=_DRIVER)
        return str(value)


@dataclasses.dataclass(frozen=True)
class Session:
    """Login state shared read-only by every call of one driver instance.

    :param cookie: ``Cookie`` header value identifying the logged-in account.
    :param workspace_id: Id of the workspace ("quqi id") all nodes live in.
    """

    cookie: str
    workspace_id: str = ""

    def __repr__(self) -> str:
        return f"Session(workspace_id={self.workspace_id!r})"


class QuqiClient:
    """Issues requests against the Quqi hosts and decodes the common envelope.

    The cookie and workspace id of the current :class:`Session` are attached
    to every request automatically.

    :param timeout: Per-request timeout in seconds.
    :param client_options: Extra keyword arguments for :class:`httpx.Client`.
    """

    def __init__(self, *, timeout: float = 30.0, client_options: dict[str, Any] | None = None) -> None:
        self._timeout = timeout
        self._client_options = client_options or {}
        self._http_instance: httpx.Client | None = None
        self.session: Session | None = None

    # region: lazy http client

    @property
    def _http(self) -> httpx.Client:
        if self._http_instance is None:
            opts: dict[str, Any] = dict(self._client_options)
            opts.setdefault("timeout", self._timeout)
            self._http_instance = httpx.Client(**opts)
        return self._http_instance

    def close(self) -> None:
        if self._http_instance is not None:
            self._http_instance.close()
            self._http_instance = None

    # endregion

    @property
    def cookie(self) -> str:
        return self.session.cookie if self.session is not None else ""

    def _headers(self) -> dict[str, str]:
        headers = {"Origin": ORIGIN}
        if self.cookie:
            headers["Cookie"] = self.cookie
        return headers

    def send(
        self,
        path: str,
        *,
        host: str | None = None,
        method: str = "POST",
        data: FormData | None = None,
        params: FormData | None = None,
    ) -> tuple[Envelope, httpx.Response]:
        """Send one request and return the checked envelope with the raw response.

        :param path: URL path on ``host``.
        :param host: Target host (with optional port). Defaults to the main API host.
        :param method: HTTP method.
        :param data: Form fields for the request body.
        :param params: Query string parameters.
        :raises BackendUnavailable: If the host cannot be reached.
        :raises ApiError: If the service rejects the request or its response cannot be read.
        """
        url = f"https://{host or MAIN_HOST}{path}"
        query: dict[str, str] = {}
        if self.session is not None and self.session.workspace_id:
            query["quqiid"] = self.session.workspace_id
        if params:
            query.update(params)

        log.debug("%s %s", method, url)
        try:
            response = self._http.request(method, url, params=query, data=data, headers=self._headers())
        except httpx.TransportError as exc:
            raise BackendUnavailable(f"{method} {url} failed: {exc}", driver=_DRIVER) from exc
        except httpx.HTTPError as exc:
            # Undecodable bodies and redirect loops: the host answered, but unusably.
            raise ApiError(f"{method} {url} returned an unusable response: {exc}", code=-1, driver=_DRIVER) from exc

        if response.is_error:
            raise ApiError(f"{method} {url} returned HTTP {response.status_code}", code=response.status_code, driver=_DRIVER)
        try:
            payload: Payload = response.json()
        except ValueError:
            raise ApiError(f"{method} {url} returned a non-JSON body", code=-1, driver=_DRIVER) from None
        return Envelope.decode(payload).check(), response

    def request(
        self,
        path: str,
        *,
        host: str | None = None,
        method: str = "POST",
        data: FormData | None = None,
        params: FormData | None = None,
    ) -> Envelope:
        """Like :meth:`send`, returning only the checked envelope."""
        envelope, _response = self.send(path, host=host, method=method, data=data, params=params)
        return envelope


class SessionProvider:
    """Logs in and resolves the workspace a driver operates in.

    A configured ``cookie`` takes precedence over phone/password login and is
    never silently replaced: if it fails validation, login fails.

    :param client: The request client the resulting session is installed on.
    :param phone: Account phone number.
    :param password: Account password.
    :param cookie: A ready-made session cookie.
    """

    def __init__(
        self,
        client: QuqiClient,
        *,
        phone: str | None = None,
        password: str | None = None,
        cookie: str | None = None,
    ) -> None:
        self._client = client
        self._phone = phone
        self._password = password
        self._cookie = cookie

    def open(self) -> Session:
        """Log in, resolve the primary workspace and install the session on the client.

        Transport failures are retried a few times; authentication failures are not.
        """
        from tenacity import (
            before_sleep_log,
            retry,
            retry_if_exception_type,
            stop_after_attempt,
            wait_exponential,
        )

        @retry(
            retry=retry_if_exception_type(BackendUnavailable),
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            before_sleep=before_sleep_log(log, logging.WARNING),  # type: ignore[arg-type,unused-ignore]
            reraise=True,
        )
        def _do_open() -> Session:
            self._client.session = None
            cookie = self.login()
            self._client.session = Session(cookie=cookie)
            workspace_id = self.resolve_primary_workspace()
            session = Session(cookie=cookie, workspace_id=workspace_id)
            self._client.session = session
            return session

        session = _do_open()
        log.info("Quqi session established for workspace %s.", session.workspace_id)
        return session

    def login(self) -> str:
        """Return a validated session cookie.

        :raises AuthenticationFailed: If the cookie is invalid or credentials are rejected.
        """
        if self._cookie:
            self._client.session = Session(cookie=self._cookie)
            if self._check_login():
                log.info("Reusing configured Quqi cookie.")
                return self._cookie
            raise AuthenticationFailed("cookie is invalid", driver=_DRIVER)
        if not self._phone:
            raise AuthenticationFailed("phone number is empty", driver=_DRIVER)
        if not self._password:
            raise AuthenticationFailed("password is empty", driver=_DRIVER)

        log.info("Logging in to Quqi with phone number.")
        try:
            _envelope, response = self._client.send(
                "/auth/person/v2/login/password",
                data={
                    "phone": self._phone,
                    "password": base64.b64encode(self._password.encode()).decode(),
                },
            )
        except ApiError as exc:
            raise AuthenticationFailed(f"login rejected: {exc}", driver=_DRIVER) from exc

        cookie = ";".join(f"{c.name}={c.value}" for c in response.cookies.jar)
        if not cookie:
            raise AuthenticationFailed("login response carried no session cookie", driver=_DRIVER)
        return cookie

    def _check_login(self) -> bool:
        try:
            self._client.request("/auth/account/baseInfo", method="GET")
        except ApiError:
            return False
        return True

    def resolve_primary_workspace(self) -> str:
        """Return the id of the account's private workspace.

        :raises WorkspaceNotFound: If the account has no private workspace.
        """
        envelope = self._client.request("/v1/group/list", host=GROUP_HOST, method="GET")
        groups = envelope.data if isinstance(envelope.data, list) else []
        for group in groups:
            if not isinstance(group, dict):
                continue
            if group.get("type") == PRIVATE_GROUP_TYPE:
                workspace_id = str(group.get("quqi_id"))
                log.info("Using private workspace %s.", workspace_id)
                return workspace_id
        raise WorkspaceNotFound("no private workspace found", driver=_DRIVER)
