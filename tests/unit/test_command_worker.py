"""
Unit tests for CommandWorker (real background thread).
"""

import threading

import pytest

from core.command_worker import CommandWorker


@pytest.fixture
def worker():
    worker = CommandWorker("test-worker")
    yield worker
    worker.shutdown(wait=True)


def double(value):
    return value * 2


def fail(value):
    raise ValueError(f"bad value {value}")


@pytest.mark.unit
def test_callback_runs_only_on_pump(worker):
    results = []

    future = worker.submit(double, 21, on_done=lambda result, error: results.append((result, error)))
    future.result(timeout=5)

    assert results == []
    assert worker.pump() == 1
    assert results == [(42, None)]


@pytest.mark.unit
def test_callback_runs_on_pumping_thread(worker):
    threads = []

    worker.submit(double, 1, on_done=lambda result, error: threads.append(threading.current_thread())
                  ).result(timeout=5)
    worker.pump()

    assert threads == [threading.current_thread()]


@pytest.mark.unit
def test_work_runs_off_the_calling_thread(worker):
    seen = []

    def record():
        seen.append(threading.current_thread())

    worker.submit(record).result(timeout=5)

    assert seen[0] is not threading.current_thread()


@pytest.mark.unit
def test_exception_delivered_as_error(worker):
    results = []

    worker.submit(fail, 3, on_done=lambda result, error: results.append((result, error))).result(timeout=5)
    worker.pump()

    result, error = results[0]
    assert result is None
    assert isinstance(error, ValueError)


@pytest.mark.unit
def test_commands_complete_in_submission_order(worker):
    results = []
    futures = [worker.submit(double, n, on_done=lambda result, error: results.append(result))
               for n in range(5)]
    for future in futures:
        future.result(timeout=5)

    assert worker.pump() == 5
    assert results == [0, 2, 4, 6, 8]


@pytest.mark.unit
def test_pump_with_nothing_completed(worker):
    assert worker.pump(0.05) == 0


@pytest.mark.unit
def test_submit_without_callback_queues_nothing(worker):
    worker.submit(double, 2).result(timeout=5)

    assert worker.pump() == 0


@pytest.mark.unit
def test_submit_after_shutdown_is_dropped(worker):
    worker.shutdown(wait=True)

    assert worker.submit(double, 1) is None
    worker.shutdown()
