import asyncio
import io
from datetime import datetime

import pytest

from conftest import ScriptedSource, memory_storage

from daily_alchemy.application.services import (
    CombinationOracle,
    JsonRepository,
    LoggingService,
    NullLoggingService,
    RetryPolicy,
    TimingService,
    timing_decorator,
)


def make_logger(level="INFO"):
    stream = io.StringIO()
    return LoggingService(level, stream=stream, now_provider=lambda: datetime(2025, 8, 20, 9, 30, 5)), stream


def test_lines_carry_time_icon_and_level():
    logger, stream = make_logger()
    logger.warning("Storage tier file unavailable")
    assert stream.getvalue() == "[09:30:05] ⚠️ WARNING: Storage tier file unavailable\n"


def test_level_filtering():
    logger, stream = make_logger("warning")
    logger.debug("hidden")
    logger.info("hidden")
    logger.error("shown")
    assert stream.getvalue().count("\n") == 1
    assert "❌ ERROR: shown" in stream.getvalue()


class Worker:
    def __init__(self, logger):
        self.logger = logger

    @timing_decorator("Sync job")
    def run(self):
        return 1

    @timing_decorator("Async job")
    async def run_async(self):
        return 2

    @timing_decorator("Failing job")
    def fail(self):
        raise RuntimeError("boom")


def test_timing_decorator_logs_sync_and_async_methods():
    logger, stream = make_logger("DEBUG")
    worker = Worker(logger)
    assert worker.run() == 1
    assert asyncio.run(worker.run_async()) == 2
    with pytest.raises(RuntimeError):
        worker.fail()

    output = stream.getvalue()
    assert "✅ Sync job completed" in output
    assert "✅ Async job completed" in output
    assert "❌ Failing job failed" in output


def test_backoff_grows_and_jitters_within_bounds():
    logger, _ = make_logger()
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    timing = TimingService(logger, RetryPolicy(base_delay=0.5, factor=2.0, jitter=0.2), sleep=fake_sleep, rng=lambda: 1.0)
    assert timing.backoff_delay(1) == pytest.approx(0.6)
    assert timing.backoff_delay(3) == pytest.approx(2.4)

    asyncio.run(timing.wait_before_retry(2))
    assert slept == [pytest.approx(1.2)]

    immediate = TimingService(logger, RetryPolicy.immediate(), sleep=fake_sleep)
    assert immediate.backoff_delay(4) == 0.0


def test_is_enabled_follows_the_level_and_the_null_logger_is_silent():
    logger, _ = make_logger("warning")
    assert logger.is_enabled("ERROR")
    assert logger.is_enabled("warning")
    assert not logger.is_enabled("INFO")
    assert not NullLoggingService().is_enabled("ERROR")


def test_oracle_close_summary_is_written_only_at_debug():
    def close_with(level):
        logger, stream = make_logger(level)
        timing = TimingService(logger, RetryPolicy.immediate())
        oracle = CombinationOracle(ScriptedSource(), JsonRepository(memory_storage(), logger), logger, timing)
        asyncio.run(oracle.close())
        return stream.getvalue()

    assert "📊 Combination oracle closed: memo_size=0" in close_with("DEBUG")
    assert "📊" not in close_with("INFO")
