import os

# Settings are read at import time by the app module and the rate limiter
os.environ.setdefault("DATABASE_URL", "sqlite:///./manifesto-test.db")
os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import json
import time
import uuid
from typing import Any, Dict, List, Optional

import httpx
import pytest

from manifesto.core.config import Settings
from manifesto.core.context import AppContext
from manifesto.core.database import Database
from manifesto.main import create_app
from manifesto.models import Profile
from manifesto.services.identity import IdentityClient
from manifesto.services.storage import StorageClient

SUPABASE_URL = "http://supabase.test"


class FakeSupabase:
    """
    In-memory stand-in for the Supabase auth and storage REST endpoints,
    served through httpx.MockTransport.
    """

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.access_tokens: Dict[str, str] = {}
        self.refresh_tokens: Dict[str, str] = {}
        self.auto_confirm = True
        self.storage_fails = False
        self.removed: List[List[str]] = []
        self.recover_requests: List[Dict[str, Any]] = []
        self.resend_requests: List[Dict[str, Any]] = []
        self.resend_fails = False
        self.password_updates: List[Dict[str, Any]] = []
        self.calls: List[str] = []

    # Test helpers

    def create_user(self, email: str, password: str = "password123", confirmed: bool = True, **metadata) -> Dict[str, Any]:
        user = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password": password,
            "confirmed": confirmed,
            "user_metadata": metadata,
        }
        self.users[user["id"]] = user
        return user

    def issue_session(self, user_id: str) -> Dict[str, Any]:
        access_token = f"access-{uuid.uuid4().hex}"
        refresh_token = f"refresh-{uuid.uuid4().hex}"
        self.access_tokens[access_token] = user_id
        self.refresh_tokens[refresh_token] = user_id
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": 3600,
            "expires_at": int(time.time()) + 3600,
            "user": self.public_user(user_id),
        }

    def public_user(self, user_id: str) -> Dict[str, Any]:
        user = self.users[user_id]
        return {"id": user["id"], "email": user["email"], "user_metadata": user["user_metadata"]}

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        for user in self.users.values():
            if user["email"].lower() == email.lower():
                return user
        return None

    # Transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(f"{request.method} {path}")
        body = json.loads(request.content) if request.content else {}

        if path == "/auth/v1/token":
            if request.url.params.get("grant_type") == "password":
                return self._password_grant(body)
            return self._refresh_grant(body)

        if path == "/auth/v1/signup" and request.method == "POST":
            return self._signup(body)

        if path == "/auth/v1/user" and request.method == "GET":
            user_id = self._bearer_user(request)
            if user_id is None:
                return httpx.Response(401, json={"code": 401, "msg": "invalid JWT: unable to parse or verify signature"})
            return httpx.Response(200, json=self.public_user(user_id))

        if path == "/auth/v1/logout" and request.method == "POST":
            token = request.headers.get("Authorization", "").replace("Bearer ", "")
            self.access_tokens.pop(token, None)
            return httpx.Response(204)

        if path == "/auth/v1/recover" and request.method == "POST":
            self.recover_requests.append({"email": body.get("email"), "redirect_to": request.url.params.get("redirect_to")})
            return httpx.Response(200, json={})

        if path == "/auth/v1/resend" and request.method == "POST":
            if self.resend_fails:
                return httpx.Response(429, json={"msg": "For security purposes, you can only request this once every 60 seconds"})
            self.resend_requests.append(body)
            return httpx.Response(200, json={})

        if path.startswith("/auth/v1/admin/users/") and request.method == "PUT":
            user_id = path.rsplit("/", 1)[1]
            if user_id not in self.users:
                return httpx.Response(404, json={"msg": "User not found"})
            self.users[user_id].update(body)
            self.password_updates.append({"user_id": user_id, **body})
            return httpx.Response(200, json=self.public_user(user_id))

        if path.startswith("/storage/v1/object/") and request.method == "DELETE":
            if self.storage_fails:
                return httpx.Response(500, json={"error": "storage unavailable"})
            prefixes = body.get("prefixes", [])
            self.removed.append(prefixes)
            return httpx.Response(200, json=[{"name": name} for name in prefixes])

        return httpx.Response(404, json={"msg": f"no fake route for {request.method} {path}"})

    def _bearer_user(self, request: httpx.Request) -> Optional[str]:
        token = request.headers.get("Authorization", "").replace("Bearer ", "")
        return self.access_tokens.get(token)

    def _password_grant(self, body: Dict[str, Any]) -> httpx.Response:
        user = self.find_by_email(body.get("email", ""))
        if user is None or user["password"] != body.get("password"):
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})
        if not user["confirmed"]:
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Email not confirmed"})
        return httpx.Response(200, json=self.issue_session(user["id"]))

    def _refresh_grant(self, body: Dict[str, Any]) -> httpx.Response:
        user_id = self.refresh_tokens.pop(body.get("refresh_token", ""), None)
        if user_id is None:
            return httpx.Response(400, json={
                "error": "invalid_grant",
                "error_description": "Invalid Refresh Token: Refresh Token Not Found",
            })
        return httpx.Response(200, json=self.issue_session(user_id))

    def _signup(self, body: Dict[str, Any]) -> httpx.Response:
        if self.find_by_email(body.get("email", "")):
            return httpx.Response(422, json={"code": 422, "msg": "User already registered"})
        user = self.create_user(
            body["email"],
            body["password"],
            confirmed=self.auto_confirm,
            **(body.get("data") or {}),
        )
        if self.auto_confirm:
            return httpx.Response(200, json=self.issue_session(user["id"]))
        return httpx.Response(200, json=self.public_user(user["id"]))


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'manifesto.db'}",
        DATABASE_SSL=False,
        SUPABASE_URL=SUPABASE_URL,
        SUPABASE_SERVICE_ROLE_KEY="service-role-key",
        FRONTEND_URL="https://shop.example",
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture
async def context(settings, supabase):
    transport = httpx.MockTransport(supabase.handler)
    database = Database.from_settings(settings)
    await database.create_all()
    ctx = AppContext(
        settings=settings,
        database=database,
        identity=IdentityClient(SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY, transport=transport),
        storage=StorageClient(
            SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY,
            bucket=settings.STORAGE_BUCKET,
            transport=transport,
        ),
    )
    yield ctx
    await ctx.close()


@pytest.fixture
async def client(context):
    app = create_app(context=context)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


async def register_user(
    supabase: FakeSupabase,
    context: AppContext,
    email: str,
    manifesto: Optional[str] = None,
    password: str = "password123",
) -> Dict[str, Any]:
    """Create an identity user with a profile row and a live access token"""
    user = supabase.create_user(email, password)
    async with context.database.session() as session:
        session.add(Profile(
            user_id=user["id"],
            email=email,
            manifesto=manifesto,
            barcode="0123456789abcde",
            shipping_addresses=[],
        ))
    tokens = supabase.issue_session(user["id"])
    return {
        "id": user["id"],
        "email": email,
        "password": password,
        "token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
        "headers": {"Authorization": f"Bearer {tokens['access_token']}"},
    }


@pytest.fixture
async def user(supabase, context):
    return await register_user(supabase, context, "reader@example.com", manifesto="night_reader")


@pytest.fixture
async def other_user(supabase, context):
    return await register_user(supabase, context, "other@example.com", manifesto="day_reader")


@pytest.fixture
def make_user(supabase, context):
    async def _make(email: str, manifesto: Optional[str] = None, password: str = "password123"):
        return await register_user(supabase, context, email, manifesto=manifesto, password=password)
    return _make
