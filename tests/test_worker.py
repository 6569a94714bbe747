"""Tests for the single-thread recompute worker."""

from __future__ import annotations

import threading

import pytest

from roomfinish.settings import Settings
from services.worker.app import RecomputeWorker, create_worker

from tests.utils_rooms import single_room_model


class _BlockingSession:
    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0
        self.threads = set()

    def recompute(self):
        self.calls += 1
        self.threads.add(threading.current_thread().name)
        self.started.set()
        self.release.wait(timeout=10)
        return ("row",)

    def write_back(self, mapping=None, *, strict=False):
        self.threads.add(threading.current_thread().name)
        return "report"


def test_concurrent_requests_share_one_recompute() -> None:
    session = _BlockingSession()
    with RecomputeWorker(session) as worker:
        first = worker.submit_recompute()
        assert session.started.wait(timeout=10)
        second = worker.submit_recompute()
        assert second is first
        session.release.set()
        assert first.result(timeout=10) == ("row",)
        assert session.calls == 1

        third = worker.submit_recompute()
        assert third is not first
        assert third.result(timeout=10) == ("row",)
        assert session.calls == 2


def test_every_host_call_runs_on_the_worker_thread() -> None:
    session = _BlockingSession()
    session.release.set()
    with RecomputeWorker(session, thread_name="geometry") as worker:
        worker.submit_recompute().result(timeout=10)
        assert worker.submit_write_back().result(timeout=10) == "report"
    assert len(session.threads) == 1
    assert next(iter(session.threads)).startswith("geometry")


def test_create_worker_computes_a_document() -> None:
    doc = single_room_model()
    with create_worker(doc, Settings()) as worker:
        rows = worker.submit_recompute().result(timeout=60)
    assert rows[0].wall_area == pytest.approx(35.0)
    assert worker.session.rows == rows
