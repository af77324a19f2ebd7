"""Identity service client (Supabase Auth REST API)"""

from typing import Any, Dict, Optional
import logging
import time

import httpx

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """The identity service rejected a call or could not be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    @property
    def is_rejection(self) -> bool:
        """True when the service answered and refused, as opposed to failing"""
        return self.status_code is not None and 400 <= self.status_code < 500


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if not isinstance(body, dict):
        return str(body)
    for key in ("error_description", "msg", "message", "error"):
        if body.get(key):
            return str(body[key])
    return f"HTTP {response.status_code}"


def session_expiry(session: Dict[str, Any]) -> Optional[int]:
    """Absolute expiry of a token grant in epoch seconds"""
    if session.get("expires_at"):
        return int(session["expires_at"])
    if session.get("expires_in"):
        return int(time.time()) + int(session["expires_in"])
    return None


class IdentityClient:
    """Thin async wrapper over the auth endpoints the API relies on"""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        anon_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.service_key = service_key
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/auth/v1",
            headers={"apikey": anon_key or service_key},
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Identity service unreachable on {method} {path}: {e}")
            raise IdentityError(f"Identity service unavailable: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.info(f"Identity service refused {method} {path}: {response.status_code} {message}")
            raise IdentityError(message, status_code=response.status_code)

        if not response.content:
            return {}
        return response.json()

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    async def sign_up(self, email: str, password: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Create an account.
        The result carries access_token when the project confirms emails automatically,
        otherwise it is the bare user record awaiting verification.
        """
        return await self._request(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": data or {}},
        )

    async def resend_signup(self, email: str, redirect_to: Optional[str] = None) -> None:
        """Send the signup confirmation email again"""
        body: Dict[str, Any] = {"type": "signup", "email": email}
        if redirect_to:
            body["options"] = {"email_redirect_to": redirect_to}
        await self._request("POST", "/resend", json=body)

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        return await self._request("GET", "/user", token=access_token)

    async def refresh_session(self, refresh_token: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", token=access_token)

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._request("POST", "/recover", params=params, json={"email": email})

    async def admin_update_user(self, user_id: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/admin/users/{user_id}",
            token=self.service_key,
            json=attributes,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
