"""Single geometry worker draining recompute and write-back requests."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Tuple

from roomfinish.host.protocol import GeometryHost
from roomfinish.logging_config import get_logger
from roomfinish.quantities.aggregator import RoomData
from roomfinish.session import QuantitySession
from roomfinish.settings import FieldMapping, Settings, get_settings
from roomfinish.writeback import WriteBackReport


logger = get_logger(__name__)


class RecomputeWorker:
    """Runs every host call of a session on one dedicated thread.

    While a recompute is queued or running, further recompute requests get
    the same future instead of a second run.
    """

    def __init__(self, session: QuantitySession, *, thread_name: str = "roomfinish-geometry") -> None:
        self.session = session
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name)
        self._lock = threading.Lock()
        self._inflight: Future | None = None

    def submit_recompute(self) -> "Future[Tuple[RoomData, ...]]":
        with self._lock:
            if self._inflight is not None and not self._inflight.done():
                logger.debug("Recompute already in flight, sharing its future")
                return self._inflight
            future = self._executor.submit(self._recompute)
            self._inflight = future
            return future

    def submit_write_back(self, mapping: FieldMapping | None = None, *, strict: bool = False) -> "Future[WriteBackReport]":
        return self._executor.submit(self.session.write_back, mapping, strict=strict)

    def _recompute(self) -> Tuple[RoomData, ...]:
        thread = threading.current_thread().name
        logger.bind(thread=thread).info("Recompute started")
        return self.session.recompute()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "RecomputeWorker":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)


def create_worker(host: GeometryHost, settings: Settings | None = None) -> RecomputeWorker:
    session = QuantitySession(host, settings or get_settings())
    return RecomputeWorker(session)


__all__ = ["RecomputeWorker", "create_worker"]
