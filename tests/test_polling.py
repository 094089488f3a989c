import threading
import time

from utils.polling import Poller, PollingState


def test_initial_state():
    assert Poller(lambda: 1).state == PollingState(loading=True)
    assert Poller(lambda: 1, immediate=False).state.loading is False


def test_refresh_success_updates_state():
    seen = []
    poller = Poller(lambda: {'totalQueries': 3}, on_success=seen.append)

    assert poller.refresh() is True

    state = poller.state
    assert state.data == {'totalQueries': 3}
    assert state.loading is False
    assert state.error is None
    assert state.last_updated is not None
    assert seen == [{'totalQueries': 3}]


def test_refresh_failure_keeps_last_data():
    calls = iter([5, RuntimeError("backend down")])

    def fetch():
        value = next(calls)
        if isinstance(value, Exception):
            raise value
        return value

    errors = []
    poller = Poller(fetch, on_error=errors.append)
    poller.refresh()

    assert poller.refresh() is False

    state = poller.state
    assert state.data == 5
    assert isinstance(state.error, RuntimeError)
    assert state.retry_count == 1
    assert len(errors) == 1


def test_callback_errors_do_not_break_polling():
    def explode(_):
        raise ValueError("bad callback")

    poller = Poller(lambda: 1, on_success=explode)

    assert poller.refresh() is True


def test_background_polling_retries_until_success():
    outcomes = [RuntimeError("one"), RuntimeError("two"), "ok"]
    done = threading.Event()

    def fetch():
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    poller = Poller(fetch, interval=60, retry_delay=0.01, on_success=lambda _: done.set())
    poller.start()
    try:
        assert done.wait(2)
    finally:
        poller.stop(timeout=1)

    state = poller.state
    assert state.data == "ok"
    assert state.retry_count == 0
    assert state.is_polling is False


def test_background_polling_gives_up_after_max_retries():
    calls = []
    exhausted = threading.Event()

    def fetch():
        calls.append(1)
        if len(calls) == 4:
            exhausted.set()
        raise RuntimeError("still down")

    poller = Poller(fetch, interval=60, max_retries=3, retry_delay=0.01)
    poller.start()
    try:
        assert exhausted.wait(2)
        time.sleep(0.1)
    finally:
        poller.stop(timeout=1)

    assert len(calls) == 4
    assert poller.state.retry_count == 4


def test_no_retry_when_disabled():
    calls = []
    first = threading.Event()

    def fetch():
        calls.append(1)
        first.set()
        raise RuntimeError("down")

    poller = Poller(fetch, interval=60, retry_on_error=False, retry_delay=0.01)
    poller.start()
    try:
        assert first.wait(2)
        time.sleep(0.1)
    finally:
        poller.stop(timeout=1)

    assert len(calls) == 1


def test_interval_polling_and_reset():
    calls = []
    enough = threading.Event()

    def fetch():
        calls.append(1)
        if len(calls) >= 3:
            enough.set()
        return len(calls)

    poller = Poller(fetch, interval=0.01)
    poller.start()
    assert poller.state.is_polling is True
    try:
        assert enough.wait(2)
    finally:
        poller.stop(timeout=1)

    assert poller.state.data >= 3

    poller.reset()
    assert poller.state == PollingState(loading=True)
