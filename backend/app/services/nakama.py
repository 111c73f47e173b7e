"""Nakama REST client and the RPC gateway the quest core talks to."""
from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import httpx

from ..core.config import settings
from ..core.errors import AuthError, NetworkError, ServerError
from ..schemas.sessions import NakamaSession

logger = logging.getLogger(__name__)


class RpcGateway(Protocol):
    async def call(self, name: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        ...


def _error_message(response: httpx.Response) -> str:
    fallback = f"{response.status_code} {response.reason_phrase}".strip()
    try:
        body = response.json()
    except ValueError:
        return response.text or fallback
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or fallback)
    return fallback


class NakamaClient:
    """
    Thin async wrapper over Nakama's REST API.

    Authentication calls use HTTP Basic auth with the server key, RPC calls use
    the session token as a bearer token.
    """

    def __init__(
        self,
        base_url: str | None = None,
        server_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.server_key = server_key if server_key is not None else settings.nakama_server_key
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.nakama_base_url,
            timeout=timeout if timeout is not None else settings.nakama_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, *, content: str, auth: Any = None, headers: dict[str, str] | None = None) -> Any:
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        try:
            response = await self._client.post(path, content=content, auth=auth, headers=request_headers)
        except httpx.HTTPError as exc:
            logger.warning("Nakama request to %s failed: %s", path, exc)
            raise NetworkError(f"Request to {path} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthError(_error_message(response))
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("Nakama request to %s returned %s: %s", path, response.status_code, message)
            raise ServerError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ServerError(f"Invalid JSON from {path}", status_code=response.status_code) from exc

    async def authenticate_email(
        self,
        email: str,
        password: str,
        create: bool = True,
        username: str | None = None,
    ) -> NakamaSession:
        body: dict[str, Any] = {"email": email, "password": password, "create": create}
        if username:
            body["username"] = username
        data = await self._post(
            "/v2/account/authenticate/email",
            content=json.dumps(body),
            auth=(self.server_key, ""),
        )
        logger.info("Authenticated Nakama user %s", data.get("user_id") or email)
        return NakamaSession(
            token=data["token"],
            refresh_token=data.get("refresh_token"),
            user_id=data.get("user_id") or "",
            username=data.get("username") or username or "",
            created=bool(data.get("created", False)),
        )

    async def refresh_session(self, session: NakamaSession) -> NakamaSession:
        if not session.refresh_token:
            raise AuthError("Session has no refresh token.")
        data = await self._post(
            "/v2/session/refresh",
            content=json.dumps({"token": session.refresh_token}),
            auth=(self.server_key, ""),
        )
        return session.model_copy(
            update={
                "token": data["token"],
                "refresh_token": data.get("refresh_token") or session.refresh_token,
            }
        )

    async def rpc(self, session: NakamaSession, name: str, payload: dict[str, Any] | None = None) -> Any:
        """
        Call an RPC function and unwrap the transport envelope.

        Returns:
            The decoded JSON payload, or the raw payload string when it is not JSON.
        """
        logger.debug("RPC %s", name)
        data = await self._post(
            f"/v2/rpc/{name}",
            content=json.dumps(payload) if payload else "{}",
            headers={"Authorization": f"Bearer {session.token}"},
        )
        raw = data.get("payload") if isinstance(data, dict) else data
        if not isinstance(raw, str):
            return raw
        try:
            return json.loads(raw)
        except ValueError:
            return raw


class NakamaGateway:
    """
    RPC gateway bound to one authenticated session.

    Created on login and closed on logout; there is no process-wide session.
    """

    def __init__(self, client: NakamaClient, session: NakamaSession) -> None:
        self._client = client
        self._session: NakamaSession | None = session

    @property
    def session(self) -> NakamaSession | None:
        return self._session

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    async def call(self, name: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        if self._session is None:
            raise AuthError("No active session.")
        result = await self._client.rpc(self._session, name, payload)
        if result is None:
            return {}
        if not isinstance(result, dict):
            return {"value": result}
        if result.get("success") is False:
            message = result.get("error") or f"{name} failed"
            logger.warning("RPC %s rejected: %s", name, message)
            raise ServerError(str(message))
        return result

    async def refresh(self) -> NakamaSession:
        if self._session is None:
            raise AuthError("No active session.")
        self._session = await self._client.refresh_session(self._session)
        return self._session

    async def aclose(self) -> None:
        self._session = None


async def connect(
    client: NakamaClient,
    email: str,
    password: str,
    username: str | None = None,
    create: bool = True,
) -> NakamaGateway:
    session = await client.authenticate_email(email, password, create=create, username=username)
    return NakamaGateway(client, session)
