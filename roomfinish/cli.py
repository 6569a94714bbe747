from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Sequence

from loguru import logger

from roomfinish.exceptions import ConfigurationError, ModelLoadError, RecomputeError
from roomfinish.ifc.loader import load_ifc
from roomfinish.logging_config import setup_logging
from roomfinish.quantities.aggregator import RoomData
from roomfinish.session import QuantitySession
from roomfinish.settings import Settings


EXIT_OK = 0
EXIT_RECOMPUTE_FAILED = 1
EXIT_BAD_INPUT = 2

_COLUMNS = (
    ("Number", "number", 8),
    ("Name", "name", 24),
    ("Level", "level", 12),
    ("Height m", "average_height", 9),
    ("Openings", "openings_count", 8),
    ("Skirting m", "skirting_length", 11),
    ("Walls m2", "wall_area", 10),
)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Compute net wall finish area and skirting length for every room of an IFC model.",
    )
    parser.add_argument("ifc_path", type=Path, help="Path to the IFC file to measure")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the room rows as formatted JSON instead of a table.",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file (default: ROOMFINISH_CONFIG or config/default.yaml)")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    parser.add_argument("--decimals", type=int, default=None, help="Decimal places of reported values")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if not args.ifc_path.exists():
        parser.error(f"File not found: {args.ifc_path}")

    try:
        settings = Settings.load(args.config)
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc.message}", file=sys.stderr)
        return EXIT_BAD_INPUT

    level = (args.log_level or settings.logging.level).upper()
    setup_logging(
        level=level,
        json_format=settings.logging.json_format,
        log_file=Path(settings.logging.log_file) if settings.logging.log_file else None,
    )

    try:
        document = load_ifc(args.ifc_path)
    except ModelLoadError as exc:
        logger.error("Cannot load {}: {}", args.ifc_path, exc.message)
        return EXIT_BAD_INPUT

    session = QuantitySession(document, settings)
    try:
        rows = session.recompute()
    except RecomputeError as exc:
        logger.error("Quantities could not be computed: {}", exc.message)
        return EXIT_RECOMPUTE_FAILED

    decimals = args.decimals if args.decimals is not None else settings.output.decimals
    rounded = [row.rounded(decimals) for row in rows]
    if args.json:
        print(json.dumps(summarize(args.ifc_path, rounded), indent=2, ensure_ascii=False))
    else:
        pretty_print_rows(rounded, decimals)
    return EXIT_OK


def summarize(path: Path, rows: Sequence[RoomData]) -> dict:
    return {
        "path": str(Path(path).resolve()),
        "rooms": [row.as_dict() for row in rows],
        "totals": {
            "wall_area": round(sum(row.wall_area for row in rows), 6),
            "skirting_length": round(sum(row.skirting_length for row in rows), 6),
            "openings_count": sum(row.openings_count for row in rows),
        },
        "fallback_rooms": [row.room_id for row in rows if row.is_fallback],
    }


def format_rows(rows: Sequence[RoomData], decimals: int = 2) -> List[str]:
    header = " ".join(title.ljust(width) for title, _, width in _COLUMNS)
    lines = [header, "-" * len(header)]
    for row in rows:
        cells = []
        for _, attribute, width in _COLUMNS:
            value = getattr(row, attribute)
            text = f"{value:.{decimals}f}" if isinstance(value, float) else str(value)
            cells.append(text[:width].ljust(width))
        line = " ".join(cells)
        lines.append(line + ("  *" if row.is_fallback else ""))
    return lines


def pretty_print_rows(rows: Sequence[RoomData], decimals: int = 2) -> None:
    for line in format_rows(rows, decimals):
        print(line)
    if any(row.is_fallback for row in rows):
        print("* estimated as perimeter x height")


if __name__ == "__main__":
    sys.exit(main())
