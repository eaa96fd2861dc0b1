"""Shared pytest fixtures.

MongoDB is replaced by a small in-memory collection fake and every outbound
HTTP call (identity provider, Graph) goes through httpx.MockTransport.
"""

import copy
import json
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest
from pymongo import ReturnDocument
from pymongo.errors import AutoReconnect, DuplicateKeyError

from paymail.config import Config
from paymail.core.core import Core

TENANT_ID = "tenant-123"
VALID_CODE = "valid-code"
VALID_REFRESH_TOKEN = "refresh-1"


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for key, expected in query.items():
        value = doc.get(key)
        if isinstance(expected, dict) and "$lt" in expected:
            if value is None or not value < expected["$lt"]:
                return False
        elif value != expected:
            return False
    return True


class FakeDeleteResult:
    def __init__(self, deleted_count: int) -> None:
        self.deleted_count = deleted_count


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._docs.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._docs = self._docs[:count]
        return self

    def __aiter__(self) -> "FakeCursor":
        return self

    async def __anext__(self) -> dict[str, Any]:
        if not self._docs:
            raise StopAsyncIteration
        return self._docs.pop(0)


class FakeCollection:
    """Subset of pymongo's AsyncCollection used by the services."""

    def __init__(self) -> None:
        self.docs: dict[Any, dict[str, Any]] = {}
        self.indexes: list[Any] = []
        self.fail_delete_ids: set[Any] = set()
        self.fail_all = False

    def _check(self) -> None:
        if self.fail_all:
            raise AutoReconnect("store down")

    async def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append(keys)
        return "index"

    async def insert_one(self, doc: dict[str, Any]) -> None:
        self._check()
        if doc["_id"] in self.docs:
            raise DuplicateKeyError("duplicate key")
        self.docs[doc["_id"]] = copy.deepcopy(doc)

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        self._check()
        for doc in self.docs.values():
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: dict[str, Any] | None = None, projection: dict[str, int] | None = None) -> FakeCursor:
        self._check()
        docs = [copy.deepcopy(doc) for doc in self.docs.values() if _matches(doc, query or {})]
        if projection:
            docs = [{key: doc[key] for key in projection if key in doc} for doc in docs]
        return FakeCursor(docs)

    async def find_one_and_update(
        self, query: dict[str, Any], update: dict[str, Any], return_document: bool = ReturnDocument.BEFORE
    ) -> dict[str, Any] | None:
        self._check()
        for doc in self.docs.values():
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                doc.update(update["$set"])
                return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before
        return None

    async def delete_one(self, query: dict[str, Any]) -> FakeDeleteResult:
        self._check()
        for key, doc in list(self.docs.items()):
            if _matches(doc, query):
                if key in self.fail_delete_ids:
                    raise AutoReconnect("delete failed")
                del self.docs[key]
                return FakeDeleteResult(1)
        return FakeDeleteResult(0)


class FakeDatabase:
    def __init__(self, name: str) -> None:
        self.name = name
        self.collections: dict[str, FakeCollection] = {}
        self.reachable = True

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    async def command(self, name: str) -> dict[str, Any]:
        if not self.reachable:
            raise AutoReconnect("connection refused")
        return {"ok": 1}


class FakeMongoClient:
    def __init__(self) -> None:
        self.databases: dict[str, FakeDatabase] = {}
        self.closed = False

    def get_database(self, name: str) -> FakeDatabase:
        return self.databases.setdefault(name, FakeDatabase(name))

    async def aclose(self) -> None:
        self.closed = True


class FakeMicrosoft:
    """Identity platform token endpoint plus the Graph endpoints we call."""

    def __init__(self) -> None:
        self.issued = 0
        self.profile_status = 200
        self.mail_status = 202
        self.token_error: type[httpx.HTTPError] | None = None
        self.token_requests: list[dict[str, str]] = []
        self.sent_mail: list[dict[str, Any]] = []

    def _tokens(self, expires_in: int, refresh_token: str | None) -> httpx.Response:
        self.issued += 1
        payload: dict[str, Any] = {"access_token": f"access-{self.issued}", "expires_in": expires_in}
        if refresh_token:
            payload["refresh_token"] = refresh_token
        return httpx.Response(200, json=payload)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == f"/{TENANT_ID}/oauth2/v2.0/token":
            if self.token_error is not None:
                raise self.token_error("provider down", request=request)
            form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
            self.token_requests.append(form)
            if form["grant_type"] == "authorization_code" and form["code"] == VALID_CODE:
                return self._tokens(3600, VALID_REFRESH_TOKEN)
            if form["grant_type"] == "refresh_token" and form["refresh_token"] == VALID_REFRESH_TOKEN:
                return self._tokens(7200, None)
            return httpx.Response(400, json={"error": "invalid_grant"})
        if path == "/v1.0/me":
            if self.profile_status != 200:
                return httpx.Response(self.profile_status, json={"error": {"code": "InvalidAuthenticationToken"}})
            return httpx.Response(200, json={"displayName": "Jane Doe", "mail": "jane@example.com"})
        if path == "/v1.0/me/sendMail":
            self.sent_mail.append(
                {"authorization": request.headers["Authorization"], "body": json.loads(request.content)}
            )
            return httpx.Response(self.mail_status)
        return httpx.Response(404)


@pytest.fixture
def config():
    """Development configuration pointing at fakes."""
    return Config(
        database_url="mongodb://localhost:27017/paymail_test",
        microsoft_client_id="client-id",
        microsoft_client_secret="client-secret",
        microsoft_tenant_id=TENANT_ID,
        oauth_redirect_uri_local="http://localhost:3000/auth/callback",
        frontend_origin_local="http://localhost:5173",
        oauth_scopes="openid offline_access User.Read Mail.Send",
        _env_file=None,
    )


@pytest.fixture
def microsoft():
    return FakeMicrosoft()


@pytest.fixture
def mongo_client():
    return FakeMongoClient()


@pytest.fixture
def http_client(microsoft):
    return httpx.AsyncClient(transport=httpx.MockTransport(microsoft.handle))


@pytest.fixture
def core(config, mongo_client, http_client):
    return Core(config, mongo_client=mongo_client, http_client=http_client)


@pytest.fixture
def sessions_collection(mongo_client):
    return mongo_client.get_database("paymail_test").get_collection("sessions")


@pytest.fixture
def email_logs_collection(mongo_client):
    return mongo_client.get_database("paymail_test").get_collection("email_logs")
