"""HTTP client for the Manifesto API"""

from typing import Any, Dict, Optional
import httpx
import logging

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """
    A failed API call.
    status_code is None when no response arrived at all.
    """

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_transient(self) -> bool:
        return self.status_code is None or self.status_code >= 500

    def __repr__(self) -> str:
        return f"ApiError({self.status_code!r}, {self.message!r})"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return body.get("error") or body.get("message") or response.reason_phrase
    return response.reason_phrase


class ApiClient:
    """
    Thin async wrapper over httpx with one bearer-token session slot.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)
        self.access_token: Optional[str] = None

    def set_session(self, access_token: Optional[str]) -> None:
        self.access_token = access_token

    def clear_session(self) -> None:
        self.access_token = None

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        auth: bool = True,
    ) -> Any:
        headers = {}
        if auth and self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        try:
            response = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(None, str(e) or e.__class__.__name__)

        if response.status_code >= 400:
            raise ApiError(response.status_code, _error_message(response))
        if not response.content:
            return None
        return response.json()

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def verify_session(self) -> Dict[str, Any]:
        """Return the user behind the current token, or raise ApiError"""
        data = await self.get("/api/auth/verify-token")
        return data["user"]

    async def refresh_session(self, refresh_token: str) -> Dict[str, Any]:
        return await self.post("/api/auth/refresh", {"refreshToken": refresh_token}, auth=False)

    async def ping(self) -> bool:
        try:
            await self.get("/api/health", auth=False)
        except ApiError:
            return False
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
