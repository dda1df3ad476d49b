import base64
import itertools
import json
import os
from types import SimpleNamespace

import pytest

# Module-level clients are created at import time; give them a region and
# Supabase settings so nothing reaches out to AWS while tests import.
os.environ.update(
    {
        "AWS_DEFAULT_REGION": "us-east-1",
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
        "TABLE_NAME": "RentalListingsTable",
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_SERVICE_ROLE_KEY": "service-key",
        "SUPABASE_ANON_KEY": "anon-key",
        "SUPABASE_JWT_SECRET": "test-jwt-secret-with-at-least-32-bytes!",
    }
)

from handlers import routes, uploads  # noqa: E402
from models import property as property_model  # noqa: E402
from services.identity import identity_gateway  # noqa: E402
from services.records import records  # noqa: E402
from tests.fakes import (  # noqa: E402
    ALICE,
    FakeBlobStore,
    FakeSupabaseAuth,
    InMemoryKeyValueStore,
)


@pytest.fixture
def kv_store(monkeypatch):
    store = InMemoryKeyValueStore()
    monkeypatch.setattr(records, "store", store)
    return store


@pytest.fixture
def fake_auth(monkeypatch):
    auth = FakeSupabaseAuth()
    monkeypatch.setattr(identity_gateway, "auth", auth)
    return auth


@pytest.fixture
def blob_store(monkeypatch):
    blobs = FakeBlobStore()
    monkeypatch.setattr(uploads, "storage", blobs)
    return blobs


@pytest.fixture
def ticking_clock(monkeypatch):
    """Each new listing id is one second later than the previous one."""
    ticks = itertools.count(1_700_000_000)
    monkeypatch.setattr(
        property_model, "time", SimpleNamespace(time=lambda: float(next(ticks)))
    )


@pytest.fixture
def lambda_context():
    return SimpleNamespace(function_name="rental-listings-test", aws_request_id="req-1")


def build_event(
    method,
    path,
    body=None,
    token=None,
    query=None,
    headers=None,
    raw_body=None,
):
    """API Gateway HTTP API (payload v2) event."""
    event_headers = {"content-type": "application/json"}
    if token:
        event_headers["authorization"] = f"Bearer {token}"
    event_headers.update(headers or {})

    event = {
        "version": "2.0",
        "routeKey": f"{method} {path}",
        "rawPath": path,
        "headers": event_headers,
        "queryStringParameters": query,
        "requestContext": {
            "http": {"method": method, "path": path, "sourceIp": "203.0.113.10"},
            "requestId": "req-1",
        },
        "isBase64Encoded": False,
    }
    if raw_body is not None:
        event["body"] = base64.b64encode(raw_body).decode("ascii")
        event["isBase64Encoded"] = True
    elif body is not None:
        event["body"] = json.dumps(body)
    return event


@pytest.fixture
def make_event():
    return build_event


@pytest.fixture
def call_api(kv_store, fake_auth, blob_store, ticking_clock, lambda_context):
    """Send a request through the route table; returns (status, parsed body)."""

    def call(method, path, body=None, token=None, **kwargs):
        event = build_event(method, path, body=body, token=token, **kwargs)
        response = routes.dispatch(event, lambda_context)
        return response["statusCode"], json.loads(response.get("body") or "null")

    return call


@pytest.fixture
def alice_token(call_api):
    """alice123 signed up and signed in."""
    status, _ = call_api("POST", "/signup", ALICE)
    assert status == 200
    status, body = call_api(
        "POST", "/signin", {"username": "alice123", "password": "secret1"}
    )
    assert status == 200
    return body["accessToken"]
