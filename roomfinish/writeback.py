"""Write computed quantities into room parameters.

Each logical quantity is written to the room parameter named by the
:class:`FieldMapping`. Problems (missing or read-only parameters) are
collected for the whole batch instead of stopping at the first room.
Must run inside an open host transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from loguru import logger

from roomfinish.exceptions import MissingConfigurationError
from roomfinish.host.elements import Parameter, Room, StorageType
from roomfinish.host.protocol import GeometryHost
from roomfinish.quantities.aggregator import RoomData
from roomfinish.settings import FieldMapping
from roomfinish.units import Unit, convert


# quantity -> (RoomData attribute, measure)
QUANTITY_FIELDS: Dict[str, tuple[str, str]] = {
    "wall_area": ("wall_area", "area"),
    "skirting_length": ("skirting_length", "length"),
    "height": ("average_height", "length"),
}

# written when the room has the field, never reported as missing
OPTIONAL_QUANTITIES = frozenset({"height"})


@dataclass(frozen=True)
class UnresolvedField:
    room_id: int
    room_name: str
    quantity: str
    field_name: str
    reason: str  # "missing" or "read_only"


@dataclass
class WriteBackReport:
    written: int = 0
    unresolved: List[UnresolvedField] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unresolved

    def missing_fields(self) -> List[str]:
        return sorted({u.field_name for u in self.unresolved if u.reason == "missing"})

    def raise_for_unresolved(self) -> None:
        """Raise one :class:`MissingConfigurationError` describing the whole batch."""
        if self.ok:
            return
        rooms = sorted({u.room_name or str(u.room_id) for u in self.unresolved})
        raise MissingConfigurationError(
            f"{len(self.unresolved)} field(s) could not be written: "
            f"{', '.join(self.missing_fields()) or 'read-only parameters'}",
            {"fields": ", ".join(self.missing_fields()), "rooms": ", ".join(rooms)},
        )


def validate_mapping(rooms: Iterable[Room], mapping: FieldMapping) -> List[UnresolvedField]:
    """Check every mapped field against every room before writing anything.

    A room without an optional field (see ``OPTIONAL_QUANTITIES``) is not
    reported; that quantity is simply not written.
    """
    unresolved = []
    for room in rooms:
        for quantity, field_name in mapping.mapped().items():
            parameter = room.lookup_parameter(field_name)
            if parameter is None:
                if quantity in OPTIONAL_QUANTITIES:
                    continue
                unresolved.append(UnresolvedField(room.id, room.name, quantity, field_name, "missing"))
            elif parameter.read_only:
                unresolved.append(UnresolvedField(room.id, room.name, quantity, field_name, "read_only"))
    return unresolved


def set_parameter_value(parameter: Parameter, value: float, measure: str, length_unit: Unit, decimals: int = 2) -> bool:
    """Store a metre-based value, converting doubles to the document unit.

    String parameters receive the value formatted with ``decimals`` places.
    """
    if parameter.read_only:
        return False
    if parameter.storage_type is StorageType.STRING:
        return parameter.set(f"{value:.{decimals}f}")
    if parameter.storage_type is StorageType.INTEGER:
        return parameter.set(int(round(value)))
    if measure == "area":
        internal = convert(value, Unit.SQUARE_METERS, Unit(length_unit).area_unit)
    else:
        internal = convert(value, Unit.METERS, Unit(length_unit).length_unit)
    return parameter.set(internal)


def write_room_quantities(
    host: GeometryHost,
    rows: Sequence[RoomData],
    mapping: FieldMapping,
    *,
    decimals: int = 2,
    strict: bool = False,
) -> WriteBackReport:
    """Write ``rows`` into their rooms.

    Raises:
        MissingConfigurationError: In strict mode, after the batch, if any
            mapped field could not be written.
    """
    report = WriteBackReport()
    rooms = []
    for row in rows:
        room = host.get_element(row.room_id)
        if isinstance(room, Room):
            rooms.append((room, row.rounded(decimals)))
        else:
            logger.warning("Room {} disappeared before write-back", row.room_id)

    unresolved = validate_mapping((room for room, _ in rooms), mapping)
    skipped = {(u.room_id, u.quantity) for u in unresolved}
    report.unresolved.extend(unresolved)

    for room, row in rooms:
        for quantity, field_name in mapping.mapped().items():
            if (room.id, quantity) in skipped:
                continue
            attribute, measure = QUANTITY_FIELDS[quantity]
            parameter = room.lookup_parameter(field_name)
            if parameter is None:
                continue
            if set_parameter_value(parameter, getattr(row, attribute), measure, host.length_unit, decimals):
                report.written += 1

    if report.unresolved:
        logger.warning(
            "Write-back left {} field(s) unresolved: {}",
            len(report.unresolved),
            ", ".join(report.missing_fields()) or "read-only parameters",
        )
    logger.info("Wrote {} room parameter value(s)", report.written)
    if strict:
        report.raise_for_unresolved()
    return report


__all__ = [
    "OPTIONAL_QUANTITIES",
    "QUANTITY_FIELDS",
    "UnresolvedField",
    "WriteBackReport",
    "set_parameter_value",
    "validate_mapping",
    "write_room_quantities",
]
