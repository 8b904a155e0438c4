from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import requests
from pydantic import ValidationError

from .config import ClientSettings
from .errors import RequestError
from .normalizer import normalize_snapshot
from .schemas import DrawRequest, LoginRequest, LoginResponse, StateSnapshot


class ApiClient:
    """Thin wrapper around the backend's REST endpoints."""

    def __init__(self, settings: ClientSettings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    async def fetch_state(self) -> StateSnapshot:
        payload = await asyncio.to_thread(self._request, "GET", "/api/state")
        return normalize_snapshot(payload)

    async def login(self, password: str) -> str:
        body = LoginRequest(password=password).to_wire()
        payload = await asyncio.to_thread(self._request, "POST", "/api/auth/login", body)
        try:
            return LoginResponse.model_validate(payload).token
        except ValidationError as exc:
            raise RequestError("login response carried no token") from exc

    async def request_draw(self, participant_id: int, token: Optional[str]) -> Any:
        try:
            body = DrawRequest(participant_id=participant_id).to_wire()
        except ValidationError as exc:
            raise RequestError(f"invalid participant id: {participant_id}") from exc
        headers = {"Authorization": f"Bearer {token}"} if token else None
        return await asyncio.to_thread(self._request, "POST", "/api/draw", body, headers)

    def close(self) -> None:
        self._session.close()

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        url = self._settings.api_url(path)
        try:
            resp = self._session.request(
                method,
                url,
                json=body,
                headers=dict(headers or {}),
                timeout=self._settings.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise RequestError(f"{method} {path} failed: {exc}") from exc

        payload = self._json_or_none(resp)
        if resp.status_code >= 400:
            message = None
            if isinstance(payload, Mapping):
                message = payload.get("error")
            raise RequestError(
                str(message or f"{method} {path} returned HTTP {resp.status_code}"),
                status=resp.status_code,
            )
        return payload

    @staticmethod
    def _json_or_none(resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return None
