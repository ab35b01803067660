"""Unit tests for the fixed-window rate limiter."""

import logging
import threading

import pytest

from codescope.client.rate_limiter import RateLimiter, RateLimitRule, rules_from_mapping

pytestmark = pytest.mark.unit


def test_admits_up_to_limit_then_rejects(clock):
    limiter = RateLimiter({"explain": RateLimitRule(3, 60)}, clock=clock)
    assert [limiter.check_and_increment("explain") for _ in range(4)] == [
        True,
        True,
        True,
        False,
    ]


def test_window_resets_only_after_window_elapses(clock):
    limiter = RateLimiter({"explain": RateLimitRule(1, 60)}, clock=clock)
    assert limiter.check_and_increment("explain")

    clock.advance(60)  # exactly the window length: not yet elapsed
    assert not limiter.check_and_increment("explain")

    clock.advance(0.001)
    assert limiter.check_and_increment("explain")
    state = limiter.state("explain")
    assert state is not None
    assert state.count == 1
    assert state.window_start == clock.now


def test_concurrent_callers_never_exceed_limit(clock):
    limit = 25
    limiter = RateLimiter({"explain": RateLimitRule(limit, 60)}, clock=clock)
    barrier = threading.Barrier(limit + 1)
    results: list[bool] = []
    results_lock = threading.Lock()

    def worker():
        barrier.wait()
        admitted = limiter.check_and_increment("explain")
        with results_lock:
            results.append(admitted)

    threads = [threading.Thread(target=worker) for _ in range(limit + 1)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == limit
    assert results.count(False) == 1


def test_operations_are_counted_independently(clock):
    limiter = RateLimiter(
        {"explain": RateLimitRule(1, 60), "security-scan": RateLimitRule(1, 3600)},
        clock=clock,
    )
    assert limiter.check_and_increment("explain")
    assert limiter.check_and_increment("security-scan")
    assert not limiter.check_and_increment("explain")


def test_unknown_operation_is_admitted_and_warned_once(clock, caplog):
    limiter = RateLimiter({}, clock=clock)
    with caplog.at_level(logging.WARNING, logger="codescope.client.rate_limiter"):
        assert limiter.check_and_increment("mystery")
        assert limiter.check_and_increment("mystery")
    warnings = [r for r in caplog.records if "mystery" in r.getMessage()]
    assert len(warnings) == 1
    assert limiter.state("mystery") is None


def test_rejection_emits_telemetry_event(clock, telemetry, reporter):
    limiter = RateLimiter(
        {"explain": RateLimitRule(0, 60)}, clock=clock, telemetry=telemetry
    )
    assert not limiter.check_and_increment("explain")
    events = reporter.events_named("rate_limit_exceeded")
    assert len(events) == 1
    assert events[0]["operation"] == "explain"
    assert events[0]["limit"] == 0


def test_state_is_a_snapshot(clock):
    limiter = RateLimiter({"explain": RateLimitRule(5, 60)}, clock=clock)
    limiter.check_and_increment("explain")
    snapshot = limiter.state("explain")
    limiter.check_and_increment("explain")
    assert snapshot is not None
    assert snapshot.count == 1


def test_reset_clears_counters(clock):
    limiter = RateLimiter({"explain": RateLimitRule(1, 60)}, clock=clock)
    limiter.check_and_increment("explain")
    limiter.reset()
    assert limiter.check_and_increment("explain")


@pytest.mark.parametrize(
    ("limit", "window"),
    [(-1, 60), (1, 0)],
)
def test_rule_validation(limit, window):
    with pytest.raises(ValueError):
        RateLimitRule(limit, window)


def test_rules_from_mapping_accepts_dicts_and_pairs():
    rules = rules_from_mapping(
        {
            "explain": {"limit": 10, "window_seconds": 60},
            "generate-diagram": (5, 60),
            "security-scan": RateLimitRule(2, 3600),
        }
    )
    assert rules["explain"] == RateLimitRule(10, 60.0)
    assert rules["generate-diagram"] == RateLimitRule(5, 60.0)
    assert rules["security-scan"].window_seconds == 3600
