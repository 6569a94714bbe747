"""Session state owning the last computed room quantities."""

from __future__ import annotations

from typing import Iterable, Tuple

from loguru import logger

from roomfinish.exceptions import RecomputeError
from roomfinish.host.protocol import GeometryHost
from roomfinish.quantities.aggregator import RoomData, compute_room_quantities
from roomfinish.settings import FieldMapping, Settings
from roomfinish.writeback import WriteBackReport, write_room_quantities


class QuantitySession:
    """Result cache for one host document.

    The cached rows are replaced as a whole; a failed recompute leaves the
    previous rows in place but marked stale.
    """

    def __init__(self, host: GeometryHost, settings: Settings | None = None) -> None:
        self.host = host
        self.settings = settings or Settings()
        self._rows: Tuple[RoomData, ...] = ()
        self._stale = True
        self._generation = 0
        self.last_error: BaseException | None = None

    @property
    def rows(self) -> Tuple[RoomData, ...]:
        return self._rows

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def generation(self) -> int:
        """Number of completed result sets swapped in so far."""
        return self._generation

    def invalidate(self) -> None:
        self._stale = True

    def replace(self, rows: Iterable[RoomData]) -> None:
        self._rows = tuple(rows)
        self._stale = False
        self._generation += 1

    def find(self, room_id: int) -> RoomData | None:
        return next((row for row in self._rows if row.room_id == room_id), None)

    def recompute(self) -> Tuple[RoomData, ...]:
        """Regenerate the document and recompute every room in one committed edit.

        Raises:
            RecomputeError: If the transaction or the room enumeration fails.
        """
        self.invalidate()
        logger.info("Recomputing room quantities (generation {})", self._generation + 1)
        try:
            with self.host.transaction("Calculate room finishes") as tx:
                tx.regenerate()
                rows = compute_room_quantities(self.host, self.settings)
        except Exception as exc:
            self.last_error = exc
            logger.error("Recompute failed, keeping {} stale row(s): {}", len(self._rows), exc)
            raise RecomputeError(f"Recompute failed: {exc}", {"stale_rows": str(len(self._rows))}) from exc
        self.replace(rows)
        self.last_error = None
        logger.info("Cached {} room row(s)", len(self._rows))
        return self._rows

    def write_back(self, mapping: FieldMapping | None = None, *, strict: bool = False) -> WriteBackReport:
        """Recompute and write the fresh rows into room parameters in one committed edit."""
        mapping = mapping or self.settings.fields
        self.invalidate()
        try:
            with self.host.transaction("Write room finishes") as tx:
                tx.regenerate()
                rows = compute_room_quantities(self.host, self.settings)
                report = write_room_quantities(
                    self.host,
                    rows,
                    mapping,
                    decimals=self.settings.output.decimals,
                )
        except Exception as exc:
            self.last_error = exc
            logger.error("Write-back failed: {}", exc)
            raise RecomputeError(f"Write-back failed: {exc}") from exc
        self.replace(rows)
        if strict:
            report.raise_for_unresolved()
        return report


__all__ = ["QuantitySession"]
