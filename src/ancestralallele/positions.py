from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

from .models import Position
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)


class PositionsError(ValueError):
    """Raised when the positions file cannot be read or holds no usable rows."""


_LEADING_INT = re.compile(r"[+-]?\d+")


def _leading_int(field: str) -> Optional[int]:
    # "11abc" reads as 11; a field without leading digits is malformed
    m = _LEADING_INT.match(field)
    return int(m.group()) if m else None


def parse_line(line: str) -> Optional[Tuple[str, int, int]]:
    """Parse ``chrom start end [...]``; None for blank, comment or malformed lines."""
    if not line.strip() or line.startswith("#"):
        return None
    fields = line.split()
    if len(fields) < 3:
        return None
    start, end = _leading_int(fields[1]), _leading_int(fields[2])
    if start is None or end is None:
        return None
    return fields[0], start, end


def load_positions(path: str | Path) -> List[Position]:
    """Load query intervals (BED/GFF-like) in file order.

    Each valid row gets ``original_order`` equal to its index among the valid
    rows. Malformed rows are skipped.
    """
    positions: List[Position] = []
    skipped = 0
    try:
        with open_textmaybe_gzip(path, "rt") as fh:
            for line in fh:
                parsed = parse_line(line)
                if parsed is None:
                    if line.strip() and not line.startswith("#"):
                        skipped += 1
                    continue
                chrom, start, end = parsed
                positions.append(
                    Position(chrom=chrom, start=start, end=end, original_order=len(positions))
                )
    except OSError as e:
        raise PositionsError(f"Unable to open positions file: {path} ({e})") from e

    if skipped:
        logger.debug("Skipped %d malformed lines in %s", skipped, path)
    return positions
