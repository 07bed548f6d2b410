from __future__ import annotations

import os

import httpx
import pytest

from agla.app.dependencies import reset_caches
from agla.app.main import app

pytestmark = pytest.mark.anyio


def get_client() -> httpx.AsyncClient:
    reset_caches()
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


async def test_api_key_required_for_tools() -> None:
    original = os.environ.get("AGLA_API_KEYS")
    os.environ["AGLA_API_KEYS"] = "secret,other"
    try:
        async with get_client() as client:
            response = await client.post("/agla/hybrid_search", json={"query": "test"})
            assert response.status_code == 401
            assert response.headers["WWW-Authenticate"] == "Bearer"

            wrong = await client.post(
                "/agla/hybrid_search",
                json={"query": "test"},
                headers={"X-API-Key": "nope"},
            )
            assert wrong.status_code == 401

            header_ok = await client.post(
                "/agla/hybrid_search",
                json={"query": "test"},
                headers={"X-API-Key": "secret"},
            )
            assert header_ok.status_code == 200

            bearer_ok = await client.post(
                "/agla/semantic_router",
                json={"query": "test"},
                headers={"Authorization": "Bearer other"},
            )
            assert bearer_ok.status_code == 200

            health = await client.get("/health")
            assert health.status_code == 200
    finally:
        if original is None:
            os.environ.pop("AGLA_API_KEYS", None)
        else:
            os.environ["AGLA_API_KEYS"] = original


async def test_anonymous_access_can_be_disabled() -> None:
    original = os.environ.get("AGLA_ALLOW_ANONYMOUS")
    os.environ["AGLA_ALLOW_ANONYMOUS"] = "false"
    try:
        async with get_client() as client:
            response = await client.get("/stats")
        assert response.status_code == 401
        assert response.json()["detail"] == "API key required"
    finally:
        if original is None:
            os.environ.pop("AGLA_ALLOW_ANONYMOUS", None)
        else:
            os.environ["AGLA_ALLOW_ANONYMOUS"] = original
