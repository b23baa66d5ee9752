"""Cron endpoints: shared-secret protection and sweep reporting."""

from datetime import datetime, timedelta

import pytest

from app.core.config import get_settings
from app.deps import get_sweeper
from app.main import app
from app.models.notification import SendStatus
from app.services.sweep import StallSweeper

pytestmark = pytest.mark.asyncio


@pytest.fixture
def sweeper(store, dispatcher):
    s = StallSweeper(store, dispatcher, stale_after=timedelta(minutes=5))
    app.dependency_overrides[get_sweeper] = lambda: s
    return s


async def test_resume_without_secret_is_unauthorized(client, store, sweeper):
    store.add("n1", send_status=SendStatus.SENDING, updated_at=datetime.utcnow() - timedelta(minutes=30))

    r = await client.post("/v1/cron/resume-notifications")

    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHORIZED"
    assert store.mutations == []
    assert store.campaigns["n1"].send_status == SendStatus.SENDING


async def test_resume_with_wrong_secret_is_unauthorized(client, store, sweeper):
    r = await client.get("/v1/cron/resume-notifications", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401
    assert store.mutations == []


async def test_resume_with_bearer_secret(client, store, transport, sweeper):
    store.add("n1", send_status=SendStatus.SENDING, updated_at=datetime.utcnow() - timedelta(minutes=30))

    r = await client.post("/v1/cron/resume-notifications", headers={"Authorization": "Bearer cron-test-secret"})

    assert r.status_code == 200
    body = r.json()
    assert body["resumed"] == 1
    assert body["ids"] == ["n1"]
    assert body["failed_ids"] == []
    assert store.campaigns["n1"].send_status == SendStatus.SENT


async def test_resume_with_header_secret_and_nothing_stalled(client, sweeper):
    r = await client.get("/v1/cron/resume-notifications", headers={"X-Cron-Secret": "cron-test-secret"})
    assert r.status_code == 200
    assert r.json()["message"] == "No stalled notifications found"
    assert r.json()["resumed"] == 0


async def test_development_mode_skips_secret(client, sweeper, monkeypatch):
    monkeypatch.setattr(get_settings(), "env", "development")
    r = await client.get("/v1/cron/resume-notifications")
    assert r.status_code == 200


async def test_cleanup_outside_cleanup_hour_is_skipped(client, monkeypatch):
    now_hour = datetime.utcnow().hour
    monkeypatch.setattr(get_settings(), "push_log_cleanup_hour", (now_hour + 12) % 24)

    r = await client.post("/v1/cron/cleanup-push-logs", headers={"X-Cron-Secret": "cron-test-secret"})

    assert r.status_code == 200
    assert r.json()["skipped"] is True


async def test_unset_env_still_requires_secret(client, sweeper, monkeypatch):
    from app import deps
    from app.core.config import Settings

    monkeypatch.delenv("ENV", raising=False)
    monkeypatch.delenv("CRON_SECRET", raising=False)
    defaults = Settings(_env_file=None)
    monkeypatch.setattr(deps, "get_settings", lambda: defaults)

    r = await client.post("/v1/cron/resume-notifications")

    assert defaults.env == "production"
    assert defaults.is_development is False
    assert r.status_code == 401
