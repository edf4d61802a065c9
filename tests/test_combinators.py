import pytest

from vow import (
    Deferred,
    Promise,
    PromiseTimeoutError,
    SettledResult,
    all_of,
    all_settled,
    delay,
    race,
    retry,
    timeout,
)
from fakes import FakeScheduler, FakeThenable


def test_all_of_empty_fulfills_immediately() -> None:
    scheduler = FakeScheduler()
    promise = all_of([], scheduler=scheduler)
    assert promise.is_fulfilled
    assert promise.value == []


def test_all_of_keeps_input_order() -> None:
    scheduler = FakeScheduler()
    d1, d2, d3 = Deferred(scheduler), Deferred(scheduler), Deferred(scheduler)
    combined = all_of([d1.promise, d2.promise, d3.promise], scheduler=scheduler)

    d3.resolve("c")
    d1.resolve("a")
    scheduler.run_until_idle()
    assert combined.is_pending

    d2.resolve("b")
    scheduler.run_until_idle()
    assert combined.value == ["a", "b", "c"]


def test_all_of_lifts_plain_values_and_thenables() -> None:
    scheduler = FakeScheduler()
    foreign = FakeThenable()
    combined = all_of([1, Promise.resolve(2, scheduler=scheduler), foreign], scheduler=scheduler)

    foreign.fulfill(3)
    scheduler.run_until_idle()
    assert combined.value == [1, 2, 3]


def test_all_of_rejects_with_first_rejection_by_settlement() -> None:
    scheduler = FakeScheduler()
    d1, d2, d3 = Deferred(scheduler), Deferred(scheduler), Deferred(scheduler)
    combined = all_of([d1.promise, d2.promise, d3.promise], scheduler=scheduler)
    combined.catch(lambda reason: None)

    d2.reject("d2 failed")
    scheduler.run_until_idle()
    d1.reject("d1 failed")
    d3.resolve("ok")
    scheduler.run_until_idle()

    assert combined.reason == "d2 failed"


def test_all_of_static_alias() -> None:
    scheduler = FakeScheduler()
    combined = Promise.all([1, 2], scheduler=scheduler)
    scheduler.run_until_idle()
    assert combined.value == [1, 2]


def test_static_aliases_delegate() -> None:
    scheduler = FakeScheduler()
    raced = Promise.race([Promise.delay(2, scheduler=scheduler), "now"], scheduler=scheduler)
    settled = Promise.all_settled([Promise.reject("e", scheduler=scheduler)], scheduler=scheduler)
    retried = Promise.retry(lambda: "first try", 2, scheduler=scheduler)

    scheduler.advance(2)
    assert raced.value == "now"
    assert settled.value == [SettledResult.rejected("e")]
    assert retried.value == "first try"


@pytest.mark.parametrize("combinator", [all_of, race, all_settled])
@pytest.mark.parametrize("bad_input", ["abc", 42, None, (p for p in [])])
def test_malformed_input_fails_synchronously(combinator, bad_input) -> None:
    with pytest.raises(TypeError, match="requires a sequence"):
        combinator(bad_input, scheduler=FakeScheduler())


def test_race_settles_with_faster_delay() -> None:
    scheduler = FakeScheduler()
    slow = delay(10, scheduler=scheduler).then(lambda _: "slow")
    fast = delay(1, scheduler=scheduler).then(lambda _: "fast")
    winner = race([slow, fast], scheduler=scheduler)

    scheduler.advance(1)
    assert winner.value == "fast"

    scheduler.advance(10)
    assert winner.value == "fast"


def test_race_settles_with_first_rejection() -> None:
    scheduler = FakeScheduler()
    d1, d2 = Deferred(scheduler), Deferred(scheduler)
    winner = race([d1.promise, d2.promise], scheduler=scheduler)
    winner.catch(lambda reason: None)

    d2.reject("first")
    d1.resolve("second")
    scheduler.run_until_idle()
    assert winner.reason == "first"


def test_race_empty_never_settles() -> None:
    scheduler = FakeScheduler()
    winner = race([], scheduler=scheduler)
    scheduler.advance(100)
    assert winner.is_pending


def test_all_settled_records_every_outcome() -> None:
    scheduler = FakeScheduler()
    settled = all_settled(
        [Promise.resolve(1, scheduler=scheduler), Promise.reject("e", scheduler=scheduler)],
        scheduler=scheduler,
    )
    scheduler.run_until_idle()

    assert settled.is_fulfilled
    assert settled.value == [
        SettledResult(status="fulfilled", value=1),
        SettledResult(status="rejected", reason="e"),
    ]
    assert [r.ok for r in settled.value] == [True, False]


def test_all_settled_empty() -> None:
    scheduler = FakeScheduler()
    settled = all_settled([], scheduler=scheduler)
    assert settled.value == []


def test_delay_fulfills_after_duration() -> None:
    scheduler = FakeScheduler()
    promise = delay(5, scheduler=scheduler)

    scheduler.advance(4)
    assert promise.is_pending
    scheduler.advance(1)
    assert promise.is_fulfilled
    assert promise.value is None


def test_delay_rejects_negative_duration() -> None:
    with pytest.raises(ValueError):
        delay(-1, scheduler=FakeScheduler())


class TestRetry:
    def test_succeeds_on_third_attempt(self) -> None:
        scheduler = FakeScheduler()
        calls = []

        def flaky():
            calls.append(len(calls) + 1)
            if len(calls) < 3:
                return Promise.reject(f"failure {len(calls)}", scheduler=scheduler)
            return Promise.resolve("third time lucky", scheduler=scheduler)

        result = retry(flaky, 3, 0, scheduler=scheduler)
        scheduler.run_until_idle()

        assert result.value == "third time lucky"
        assert calls == [1, 2, 3]

    def test_rejects_with_last_reason(self) -> None:
        scheduler = FakeScheduler()
        calls = []

        def always_fails():
            calls.append(None)
            return Promise.reject(f"failure {len(calls)}", scheduler=scheduler)

        result = retry(always_fails, 2, 0, scheduler=scheduler)
        result.catch(lambda reason: None)
        scheduler.run_until_idle()

        assert result.reason == "failure 2"
        assert len(calls) == 2

    def test_short_circuits_after_success(self) -> None:
        scheduler = FakeScheduler()
        calls = []

        def succeeds():
            calls.append(None)
            return "plain value"

        result = retry(succeeds, 5, 0, scheduler=scheduler)
        scheduler.run_until_idle()
        assert result.value == "plain value"
        assert len(calls) == 1

    def test_synchronous_exception_counts_as_failure(self) -> None:
        scheduler = FakeScheduler()
        attempts = []

        def raises_then_succeeds():
            attempts.append(None)
            if len(attempts) == 1:
                raise ConnectionError("refused")
            return Promise.resolve("connected", scheduler=scheduler)

        result = retry(raises_then_succeeds, 2, 0, scheduler=scheduler)
        scheduler.run_until_idle()
        assert result.value == "connected"

    def test_waits_interval_between_attempts(self) -> None:
        scheduler = FakeScheduler()
        attempt_times = []

        def failing():
            attempt_times.append(scheduler.now)
            return Promise.reject("no", scheduler=scheduler)

        result = retry(failing, 3, 2.0, scheduler=scheduler)
        result.catch(lambda reason: None)
        scheduler.advance(10)

        assert attempt_times == [0.0, 2.0, 4.0]
        assert result.reason == "no"

    def test_does_not_call_fn_synchronously(self) -> None:
        scheduler = FakeScheduler()
        calls = []
        retry(lambda: calls.append(None), 1, scheduler=scheduler)
        assert calls == []

    def test_invalid_arguments(self) -> None:
        scheduler = FakeScheduler()
        with pytest.raises(ValueError):
            retry(lambda: None, 0, scheduler=scheduler)
        with pytest.raises(ValueError):
            retry(lambda: None, 1, -1, scheduler=scheduler)
        with pytest.raises(TypeError):
            retry("not callable", 1, scheduler=scheduler)  # type: ignore[arg-type]


class TestTimeout:
    def test_passes_through_when_in_time(self) -> None:
        scheduler = FakeScheduler()
        work = Deferred(scheduler)
        guarded = timeout(work.promise, 5, scheduler=scheduler)

        scheduler.advance(1)
        work.resolve("done")
        scheduler.advance(10)
        assert guarded.value == "done"

    def test_rejects_when_too_slow(self) -> None:
        scheduler = FakeScheduler()
        work = Deferred(scheduler)
        guarded = timeout(work.promise, 5, scheduler=scheduler)
        guarded.catch(lambda reason: None)

        scheduler.advance(5)
        assert isinstance(guarded.reason, PromiseTimeoutError)
        assert isinstance(guarded.reason, TimeoutError)

    def test_custom_reason(self) -> None:
        scheduler = FakeScheduler()
        guarded = timeout(Deferred(scheduler).promise, 1, reason="too slow", scheduler=scheduler)
        guarded.catch(lambda reason: None)
        scheduler.advance(1)
        assert guarded.reason == "too slow"
