"""Unit tests for the poller's per-tick decision procedure."""

import json
from unittest.mock import MagicMock

import pytest

from listbridge.main.config import ParserConfig, PollerConfig, PopCommand
from listbridge.main.exceptions import RemoteUnavailable
from listbridge.parsers import JSONParser, NoneParser
from listbridge.worker.backoff import BackoffState
from listbridge.worker.lock_cache import LocalLockCache
from listbridge.worker.poll_action import PollAction


def _message(**fields) -> bytes:
    return json.dumps(fields).encode()


def _action(config, client, router, clock, parser=None, lock_cache=None, backoff=None):
    return PollAction(
        config=config,
        client=client,
        parser=parser or JSONParser(config.parser),
        router=router,
        lock_cache=lock_cache if lock_cache is not None else LocalLockCache(),
        backoff=backoff if backoff is not None else BackoffState(),
        clock=clock,
    )


class TestSkipConditions:
    """Sleeping and locked ticks never touch Redis."""

    @pytest.mark.asyncio
    async def test_sleeping_tick_issues_no_remote_calls(
        self, poller_config, fake_client, router, clock
    ):
        fake_client.items = [_message(a=1)]
        backoff = BackoffState(deadline=clock.now + 3)

        await _action(poller_config, fake_client, router, clock, backoff=backoff)()

        assert fake_client.calls == []
        assert router.events == []
        assert backoff.deadline == clock.now + 3

    @pytest.mark.asyncio
    async def test_wakes_up_once_deadline_passes(
        self, poller_config, fake_client, router, clock
    ):
        fake_client.items = [_message(a=1)]
        backoff = BackoffState(deadline=clock.now)

        await _action(poller_config, fake_client, router, clock, backoff=backoff)()

        assert len(router.events) == 1

    @pytest.mark.asyncio
    async def test_locked_queue_is_skipped(self, poller_config, fake_client, router, clock):
        """Scenario B: cache holds True for q1's lock key."""
        fake_client.items = [_message(a=1)]
        lock_cache = LocalLockCache()
        lock_cache.put(poller_config.lock_key, True)

        await _action(poller_config, fake_client, router, clock, lock_cache=lock_cache)()

        assert fake_client.calls == []
        assert router.events == []

    @pytest.mark.asyncio
    async def test_lock_on_other_key_does_not_block(
        self, poller_config, fake_client, router, clock
    ):
        fake_client.items = [_message(a=1)]
        lock_cache = LocalLockCache()
        lock_cache.put("listbridge:other:lock", b"1")

        await _action(poller_config, fake_client, router, clock, lock_cache=lock_cache)()

        assert len(router.events) == 1


class TestSingleMode:
    @pytest.mark.asyncio
    async def test_one_pop_per_active_tick(self, poller_config, fake_client, router, clock):
        fake_client.items = [_message(a=1), _message(a=2)]

        await _action(poller_config, fake_client, router, clock)()

        assert fake_client.calls == [("pop", "q1", PopCommand.LPOP)]
        assert router.events == [("app.q1", clock.now, {"a": 1})]

    @pytest.mark.asyncio
    async def test_uses_configured_pop_command(self, fake_client, router, clock):
        config = PollerConfig(key="q1", command="rpop")
        fake_client.items = [_message(a=1)]

        await _action(config, fake_client, router, clock)()

        assert fake_client.calls == [("pop", "q1", PopCommand.RPOP)]

    @pytest.mark.asyncio
    async def test_tag_falls_back_to_queue_key(self, fake_client, router, clock):
        config = PollerConfig(key="events")
        fake_client.items = [_message(a=1)]

        await _action(config, fake_client, router, clock)()

        assert router.events[0][0] == "events"

    @pytest.mark.asyncio
    async def test_record_timestamp_is_used_when_present(
        self, poller_config, fake_client, router, clock
    ):
        fake_client.items = [_message(time=1_600_000_000, a=1)]

        await _action(poller_config, fake_client, router, clock)()

        assert router.events == [("app.q1", 1_600_000_000.0, {"a": 1})]

    @pytest.mark.asyncio
    async def test_missing_timestamp_defaults_to_now(self, fake_client, router, clock):
        config = PollerConfig(key="q1", parser=ParserConfig(type="none"))
        fake_client.items = [b"plain text"]

        await _action(config, fake_client, router, clock, parser=NoneParser(config.parser))()

        assert router.events == [("q1", clock.now, {"message": "plain text"})]

    @pytest.mark.asyncio
    async def test_empty_pop_sets_sleep_backoff(self, poller_config, fake_client, router, clock):
        backoff = BackoffState()

        await _action(poller_config, fake_client, router, clock, backoff=backoff)()

        assert backoff.deadline == clock.now + poller_config.sleep_interval
        assert router.events == []

    @pytest.mark.asyncio
    async def test_empty_pop_overwrites_expired_deadline(
        self, poller_config, fake_client, router, clock
    ):
        backoff = BackoffState(deadline=clock.now - 100)

        await _action(poller_config, fake_client, router, clock, backoff=backoff)()

        assert backoff.deadline == clock.now + poller_config.sleep_interval


class TestBatchMode:
    @pytest.fixture
    def batch_config(self) -> PollerConfig:
        return PollerConfig(
            key="q1",
            tag="app.q1",
            batch_size=3,
            sleep_interval=5.0,
            retry_interval=7.0,
        )

    @pytest.mark.asyncio
    async def test_two_items_then_empty(self, batch_config, fake_client, router, clock):
        """Scenario A: batch of three against a list holding two messages."""
        fake_client.items = [_message(n=1), _message(n=2)]
        backoff = BackoffState()

        await _action(batch_config, fake_client, router, clock, backoff=backoff)()

        assert fake_client.calls == [("pipelined_pop", "q1", PopCommand.LPOP, 3)]
        assert [record for _, _, record in router.events] == [{"n": 1}, {"n": 2}]
        assert backoff.deadline == clock.now + batch_config.sleep_interval

    @pytest.mark.asyncio
    async def test_results_after_first_empty_are_discarded(
        self, batch_config, fake_client, router, clock
    ):
        fake_client.items = [_message(n=1), None, _message(n=3)]

        await _action(batch_config, fake_client, router, clock)()

        assert [record for _, _, record in router.events] == [{"n": 1}]
        # Already popped, so it is gone from the list as well
        assert fake_client.items == []

    @pytest.mark.asyncio
    async def test_full_batch_does_not_back_off(self, batch_config, fake_client, router, clock):
        fake_client.items = [_message(n=i) for i in range(5)]
        backoff = BackoffState()

        await _action(batch_config, fake_client, router, clock, backoff=backoff)()

        assert len(router.events) == 3
        assert backoff.deadline is None

    @pytest.mark.asyncio
    async def test_batch_size_one_is_single_mode(self, fake_client, router, clock):
        config = PollerConfig(key="q1", batch_size=1)
        fake_client.items = [_message(n=1)]

        await _action(config, fake_client, router, clock)()

        assert fake_client.calls == [("pop", "q1", PopCommand.LPOP)]


class TestFailures:
    @pytest.mark.asyncio
    async def test_parse_failure_skips_item_without_backoff(
        self, poller_config, fake_client, router, clock
    ):
        config = poller_config.model_copy(update={"batch_size": 3})
        fake_client.items = [b"{not json", _message(n=2), b"[1, 2]"]
        backoff = BackoffState()

        await _action(config, fake_client, router, clock, backoff=backoff)()

        assert [record for _, _, record in router.events] == [{"n": 2}]
        assert backoff.deadline is None

    @pytest.mark.asyncio
    async def test_remote_fault_sets_retry_backoff(
        self, poller_config, fake_client, router, clock
    ):
        """Scenario D: pop raises a connection fault."""
        fake_client.fail_with = RemoteUnavailable("LPOP", "q1", ConnectionError("refused"))
        backoff = BackoffState()

        await _action(poller_config, fake_client, router, clock, backoff=backoff)()

        assert router.events == []
        assert backoff.deadline == clock.now + poller_config.retry_interval

    @pytest.mark.asyncio
    async def test_remote_fault_replaces_sleep_deadline(
        self, poller_config, fake_client, router, clock
    ):
        fake_client.fail_with = RemoteUnavailable("LPOP", "q1", ConnectionError("refused"))
        backoff = BackoffState(deadline=clock.now - 1)

        await _action(poller_config, fake_client, router, clock, backoff=backoff)()

        assert backoff.deadline == clock.now + 7.0

    @pytest.mark.asyncio
    async def test_router_fault_stops_tick_and_retries_later(
        self, poller_config, fake_client, clock
    ):
        class BrokenRouter:
            def __init__(self):
                self.calls = 0

            def emit(self, tag, timestamp, record):
                self.calls += 1
                raise RuntimeError("pipeline down")

        config = poller_config.model_copy(update={"batch_size": 3})
        fake_client.items = [_message(n=1), _message(n=2), _message(n=3)]
        broken = BrokenRouter()
        backoff = BackoffState()

        await _action(config, fake_client, broken, clock, backoff=backoff)()

        assert broken.calls == 1
        assert backoff.deadline == clock.now + config.retry_interval


class TestLogLevels:
    """Each outcome of a tick is logged once, at its own level."""

    @pytest.fixture
    def poll_logger(self, monkeypatch) -> MagicMock:
        mock_logger = MagicMock()
        monkeypatch.setattr("listbridge.worker.poll_action.logger", mock_logger)
        return mock_logger

    @pytest.mark.asyncio
    async def test_sleeping_is_trace(self, poll_logger, poller_config, fake_client, router, clock):
        backoff = BackoffState(deadline=clock.now + 3)

        await _action(poller_config, fake_client, router, clock, backoff=backoff)()

        poll_logger.trace.assert_called_once_with("Redis worker is sleeping")
        poll_logger.debug.assert_not_called()
        poll_logger.error.assert_not_called()

    @pytest.mark.asyncio
    async def test_locked_is_trace(self, poll_logger, poller_config, fake_client, router, clock):
        lock_cache = LocalLockCache()
        lock_cache.put(poller_config.lock_key, b"1")

        await _action(poller_config, fake_client, router, clock, lock_cache=lock_cache)()

        poll_logger.trace.assert_called_once_with("Redis queue is locked")
        poll_logger.debug.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_queue_is_debug(
        self, poll_logger, poller_config, fake_client, router, clock
    ):
        await _action(poller_config, fake_client, router, clock)()

        poll_logger.debug.assert_called_once_with("Redis queue is empty")
        poll_logger.trace.assert_not_called()
        poll_logger.warning.assert_not_called()
        poll_logger.error.assert_not_called()

    @pytest.mark.asyncio
    async def test_each_parse_failure_is_one_warning(
        self, poll_logger, poller_config, fake_client, router, clock
    ):
        config = poller_config.model_copy(update={"batch_size": 3})
        fake_client.items = [b"{not json", _message(n=2), b"[1, 2]"]

        await _action(config, fake_client, router, clock)()

        assert poll_logger.warning.call_count == 2
        assert all(
            call.args[0].startswith("Failed to parse message")
            for call in poll_logger.warning.call_args_list
        )
        poll_logger.error.assert_not_called()

    @pytest.mark.asyncio
    async def test_remote_fault_is_one_error(
        self, poll_logger, poller_config, fake_client, router, clock
    ):
        fake_client.fail_with = RemoteUnavailable("LPOP", "q1", ConnectionError("refused"))

        await _action(poller_config, fake_client, router, clock)()

        poll_logger.error.assert_called_once()
        message = poll_logger.error.call_args.args[0]
        assert message.startswith("Error fetching record")
        assert poll_logger.error.call_args.kwargs["exc_info"] is True
        poll_logger.warning.assert_not_called()
        poll_logger.debug.assert_not_called()
