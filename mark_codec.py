import math
import os
from decimal import Decimal
from typing import Iterable, List, Optional

from loguru import logger

from models import EventKind, Mark


def format_time(t: float) -> str:
    """
    Shortest fixed-point decimal that reads back as the same float, never in
    exponent form. Whole seconds carry no fraction, so "i5.0" is written back as "i5".
    """
    if float(t).is_integer():
        return str(int(t))
    return format(Decimal(repr(float(t))), "f")


def parse_line(line: str) -> Optional[Mark]:
    """Parses one '<kind><time>' record, returning None if it is malformed."""
    line = line.strip()
    if not line:
        return None

    code_len = 2 if line.startswith("x") else 1
    try:
        kind = EventKind(line[:code_len])
        t = float(line[code_len:])
    except ValueError:
        return None

    if not math.isfinite(t) or t < 0:
        return None
    return Mark(kind, t)


def decode(text: str) -> List[Mark]:
    """Reads newline-separated mark records, skipping blank and malformed lines."""
    marks = []
    for lineno, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        mark = parse_line(line)
        if mark is None:
            logger.debug(f"Skipping malformed mark record on line {lineno}: {line!r}")
            continue
        marks.append(mark)
    return marks


def encode(marks: Iterable[Mark]) -> str:
    """Writes one record per non-voided mark, in the given order."""
    return "".join(
        f"{mark.kind.value}{format_time(mark.time)}\n"
        for mark in marks
        if not mark.kind.is_voided
    )


def load_marks(path: str) -> List[Mark]:
    """Loads a mark file; a missing file is an empty mark list."""
    if not os.path.exists(path):
        logger.info(f"No mark file at {path}, starting with no marks")
        return []
    with open(path, "r", encoding="utf-8") as f:
        marks = decode(f.read())
    logger.info(f"Loaded {len(marks)} marks from {path}")
    return marks


def save_marks(path: str, marks: Iterable[Mark]):
    """Writes the mark file. I/O errors propagate to the caller unchanged."""
    text = encode(marks)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    logger.info(f"Saved {len(text.splitlines())} marks to {path}")
