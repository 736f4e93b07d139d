"""
Tests for IdempotencyGuard.

These tests verify:
- Missing keys are rejected
- Completed responses are replayed without re-running the handler
- Duplicates arriving while the first request runs get a conflict
- Server errors and exceptions leave the key retryable
- Completed records expire after their TTL
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import Mock

import pytest
from django.core.cache.backends.locmem import LocMemCache
from freezegun import freeze_time

from core.idempotency import (
    IdempotencyGuard,
    IdempotencyInProgressError,
    IdempotencyKeyMissingError,
    IdempotencyRecord,
)

ENDPOINT = "/api/v1/media/upload/"


@pytest.fixture
def store():
    """Isolated local-memory cache."""
    cache = LocMemCache("idempotency-tests", {})
    cache.clear()
    return cache


@pytest.fixture
def guard(store):
    return IdempotencyGuard(store, processing_ttl=60, completed_ttl=3600)


class TestKeyBuilding:
    """Test store key normalisation."""

    def test_slashes_become_colons(self):
        key = IdempotencyGuard.build_key("/api/v1/media/upload/", "abc-123")
        assert key == "idempotency:api:v1:media:upload:abc-123"

    def test_endpoints_do_not_share_keys(self):
        assert IdempotencyGuard.build_key("/a/", "k") != IdempotencyGuard.build_key("/b/", "k")


class TestMissingKey:
    """Test requests without a client key."""

    @pytest.mark.parametrize("client_key", [None, "", "   "])
    def test_rejected_before_handler_runs(self, guard, client_key):
        handler = Mock(return_value=(201, {"id": 1}))

        with pytest.raises(IdempotencyKeyMissingError) as exc_info:
            guard.execute(ENDPOINT, client_key, handler)

        assert exc_info.value.error_code == "IDEMPOTENCY_KEY_REQUIRED"
        assert exc_info.value.http_status == 400
        handler.assert_not_called()


class TestReplay:
    """Test completed responses are stored and replayed."""

    def test_second_call_replays_identical_response(self, guard):
        handler = Mock(return_value=(201, {"success": True, "data": {"id": 7}}))

        first = guard.execute(ENDPOINT, "key-1", handler)
        second = guard.execute(ENDPOINT, "key-1", handler)

        assert handler.call_count == 1
        assert first.replayed is False
        assert second.replayed is True
        assert (second.status_code, second.body) == (first.status_code, first.body)

    def test_client_errors_are_replayed(self, guard):
        handler = Mock(return_value=(400, {"success": False, "error_code": "TIER_LIMIT"}))

        guard.execute(ENDPOINT, "key-2", handler)
        replay = guard.execute(ENDPOINT, "key-2", handler)

        assert handler.call_count == 1
        assert replay.status_code == 400

    def test_different_keys_run_separately(self, guard):
        handler = Mock(return_value=(201, {}))

        guard.execute(ENDPOINT, "key-a", handler)
        guard.execute(ENDPOINT, "key-b", handler)

        assert handler.call_count == 2

    def test_expired_record_runs_handler_again(self, guard):
        handler = Mock(return_value=(201, {"id": 1}))

        with freeze_time("2024-06-01 12:00:00") as frozen:
            guard.execute(ENDPOINT, "key-3", handler)
            guard.execute(ENDPOINT, "key-3", handler)
            assert handler.call_count == 1

            frozen.tick(timedelta(seconds=3601))
            third = guard.execute(ENDPOINT, "key-3", handler)

        assert handler.call_count == 2
        assert third.replayed is False


class TestInProgress:
    """Test duplicates arriving while the first request is running."""

    def test_processing_marker_causes_conflict(self, guard, store):
        key = IdempotencyGuard.build_key(ENDPOINT, "key-4")
        store.add(key, {"status": IdempotencyRecord.PROCESSING, "cached_status": None, "cached_body": None})
        handler = Mock(return_value=(201, {}))

        with pytest.raises(IdempotencyInProgressError) as exc_info:
            guard.execute(ENDPOINT, "key-4", handler)

        assert exc_info.value.http_status == 409
        handler.assert_not_called()

    def test_duplicate_inside_handler_conflicts(self, guard):
        seen = []

        def handler():
            with pytest.raises(IdempotencyInProgressError):
                guard.execute(ENDPOINT, "key-5", Mock())
            seen.append(True)
            return 201, {}

        guard.execute(ENDPOINT, "key-5", handler)
        assert seen == [True]

    def test_stale_processing_marker_expires(self, guard, store):
        with freeze_time("2024-06-01 12:00:00") as frozen:
            key = IdempotencyGuard.build_key(ENDPOINT, "key-6")
            store.add(
                key,
                {"status": IdempotencyRecord.PROCESSING, "cached_status": None, "cached_body": None},
                timeout=60,
            )
            frozen.tick(timedelta(seconds=61))

            outcome = guard.execute(ENDPOINT, "key-6", Mock(return_value=(200, {"ok": True})))

        assert outcome.body == {"ok": True}


class TestRetryable:
    """Test failures that must not be cached."""

    def test_server_error_is_not_cached(self, guard, store):
        handler = Mock(return_value=(502, {"error_code": "MODERATION_UNAVAILABLE"}))

        guard.execute(ENDPOINT, "key-7", handler)
        guard.execute(ENDPOINT, "key-7", handler)

        assert handler.call_count == 2
        assert store.get(IdempotencyGuard.build_key(ENDPOINT, "key-7")) is None

    def test_exception_clears_marker_and_propagates(self, guard, store):
        handler = Mock(side_effect=RuntimeError("worker died"))

        with pytest.raises(RuntimeError):
            guard.execute(ENDPOINT, "key-8", handler)

        assert store.get(IdempotencyGuard.build_key(ENDPOINT, "key-8")) is None
        handler.side_effect = None
        handler.return_value = (201, {})
        assert guard.execute(ENDPOINT, "key-8", handler).status_code == 201
