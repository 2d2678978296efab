"""Tests for the Redis-backed helpers: notifier, leaderboard cache and rate limiter.

Redis itself is mocked; every helper must fail open when it is unreachable.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import redis
from fastapi.testclient import TestClient

from edugame.config import settings
from edugame.services import leaderboard_cache, rate_limiter
from edugame.services.notifier import (
    QUIZ_COMPLETED,
    LoggingNotifier,
    RecordingNotifier,
    RedisNotifier,
    build_notifier,
)


# ── Notifier ──────────────────────────────────────────────────────────────────


def test_build_notifier_backends():
    assert isinstance(build_notifier("log"), LoggingNotifier)
    assert isinstance(build_notifier("REDIS"), RedisNotifier)
    with pytest.raises(ValueError):
        build_notifier("carrier-pigeon")


def test_redis_notifier_publishes_per_user_channel():
    fake = MagicMock()
    fake.publish.return_value = 1
    with patch("edugame.services.notifier.get_redis", return_value=fake):
        RedisNotifier(channel_prefix="edugame:events").notify(QUIZ_COMPLETED, {"user_id": "u-1", "percentage": 90})

    channel, message = fake.publish.call_args.args
    assert channel == "edugame:events:u-1"
    assert json.loads(message) == {"event": QUIZ_COMPLETED, "data": {"user_id": "u-1", "percentage": 90}}


def test_recording_notifier_filters_by_event():
    notifier = RecordingNotifier()
    notifier.notify("a", {"n": 1})
    notifier.notify("b", {"n": 2})
    assert notifier.of("a") == [{"n": 1}]


def test_notification_failure_does_not_fail_submission(client: TestClient, register, make_quiz):
    from edugame.api.deps import get_notifier
    from edugame.main import app

    broken = MagicMock()
    broken.notify.side_effect = redis.ConnectionError("down")
    app.dependency_overrides[get_notifier] = lambda: broken

    quiz = make_quiz()
    headers, _ = register("student")
    body = {"answers": [{"question_id": "0", "selected_answer": 0}]}
    response = client.post(f"/api/quizzes/{quiz['id']}/attempt", json=body, headers=headers)

    assert response.status_code == 201
    assert broken.notify.called


# ── Leaderboard cache ─────────────────────────────────────────────────────────


@pytest.fixture
def cache_enabled(monkeypatch):
    monkeypatch.setattr(settings, "LEADERBOARD_CACHE_ENABLED", True)


def test_cache_disabled_never_touches_redis():
    with patch("edugame.services.leaderboard_cache.get_redis") as get_redis:
        assert leaderboard_cache.cache_get("overall", {"page": 1}) is None
        leaderboard_cache.cache_set("overall", {"page": 1}, {"x": 1})
        leaderboard_cache.invalidate()
    get_redis.assert_not_called()


def test_cache_round_trip(cache_enabled):
    fake = MagicMock()
    with patch("edugame.services.leaderboard_cache.get_redis", return_value=fake):
        leaderboard_cache.cache_set("weekly", {"page": 1, "limit": 50}, {"period": "weekly"})
        key, ttl, payload = fake.setex.call_args.args
        assert key.startswith("leaderboard_cache:weekly:")
        assert ttl == settings.LEADERBOARD_CACHE_TTL_SECONDS

        fake.get.return_value = payload
        # parameter order does not change the key
        assert leaderboard_cache.cache_get("weekly", {"limit": 50, "page": 1}) == {"period": "weekly"}
        assert fake.get.call_args.args[0] == key


def test_cache_fails_open(cache_enabled):
    fake = MagicMock()
    fake.get.side_effect = redis.ConnectionError("down")
    fake.setex.side_effect = redis.ConnectionError("down")
    fake.scan_iter.side_effect = redis.ConnectionError("down")
    with patch("edugame.services.leaderboard_cache.get_redis", return_value=fake):
        assert leaderboard_cache.cache_get("overall", {}) is None
        leaderboard_cache.cache_set("overall", {}, {})
        leaderboard_cache.invalidate()


def test_invalidate_deletes_cached_pages(cache_enabled):
    fake = MagicMock()
    fake.scan_iter.return_value = iter(["leaderboard_cache:overall:a", "leaderboard_cache:weekly:b"])
    with patch("edugame.services.leaderboard_cache.get_redis", return_value=fake):
        leaderboard_cache.invalidate()
    fake.delete.assert_called_once_with("leaderboard_cache:overall:a", "leaderboard_cache:weekly:b")


# ── Rate limiter ──────────────────────────────────────────────────────────────


def test_rate_limit_disabled_allows():
    assert rate_limiter._check("rl:contact:ip:1.2.3.4") is True


def test_rate_limit_rejects_when_bucket_empty(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_CONTACT_RPM", 5)
    fake = MagicMock()
    fake.eval.return_value = 0
    with patch("edugame.services.rate_limiter.get_redis", return_value=fake):
        response = client.post(
            "/api/contact/",
            json={
                "name": "Spammer",
                "email": "spam@edugame.io",
                "subject": "Buy now please",
                "message": "This is definitely not spam.",
            },
            headers={"X-Forwarded-For": "9.9.9.9, 10.0.0.1"},
        )

    assert response.status_code == 429
    assert fake.eval.call_args.args[2] == "rl:contact:ip:9.9.9.9"


def test_rate_limit_fails_open(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_CONTACT_RPM", 5)
    fake = MagicMock()
    fake.eval.side_effect = redis.ConnectionError("down")
    with patch("edugame.services.rate_limiter.get_redis", return_value=fake):
        assert rate_limiter._check("rl:contact:ip:1.2.3.4") is True
