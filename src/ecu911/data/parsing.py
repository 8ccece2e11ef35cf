"""Delimited-text helpers shared by the dataset loaders."""

import csv
import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
import pandas as pd

from ecu911.core.reference import fold_name

logger = logging.getLogger(__name__)


@dataclass
class DelimitedTable:
    """Rows that survived tokenisation, padded/truncated to `width`.

    Attributes:
        header: Header row as read.
        frame: One string column per logical field, positional names 0..width-1.
        skipped_rows: Rows dropped for having too few fields.
    """
    header: List[str]
    frame: pd.DataFrame
    skipped_rows: int = 0


def _is_sentinel(line: str, sentinels: Sequence[str]) -> bool:
    folded = fold_name(line).upper()
    return any(folded.startswith(fold_name(s).upper()) for s in sentinels)


def read_delimited(
    text: str,
    min_fields: int,
    width: int,
    sentinels: Sequence[str] = (),
    delimiter: str = ",",
) -> DelimitedTable:
    """Tokenise delimited text with quoted-field support.

    The first non-empty line is the header. Reading stops at the first
    line starting with any sentinel prefix (case and accent insensitive).
    Blank lines are ignored; rows with fewer than `min_fields` fields are
    skipped and counted.

    Args:
        text: Raw file contents.
        min_fields: Minimum fields for a row to be kept.
        width: Number of columns in the returned frame. Longer rows are
            truncated, shorter (but valid) rows padded with "".
        sentinels: Trailer prefixes that end the data section.
        delimiter: Field separator.

    Returns:
        DelimitedTable with string cells, whitespace-stripped.
    """
    lines = text.lstrip("\ufeff").splitlines()
    header: List[str] = []
    body: List[str] = []
    body_lines: List[int] = []

    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue
        if not header:
            header = [h.strip() for h in next(csv.reader([line], delimiter=delimiter))]
            continue
        if sentinels and _is_sentinel(line, sentinels):
            logger.debug(f"Stopped reading at sentinel line {lineno}: {line[:40]!r}")
            break
        body.append(line)
        body_lines.append(lineno)

    rows: List[List[str]] = []
    skipped = 0
    for lineno, line in zip(body_lines, body):
        # One line at a time so an unbalanced quote cannot swallow later rows
        fields = next(csv.reader([line], delimiter=delimiter, skipinitialspace=True), [])
        if len(fields) < min_fields:
            skipped += 1
            logger.debug(f"Skipping line {lineno}: {len(fields)} fields < {min_fields}")
            continue
        cells = [f.strip() for f in fields[:width]]
        cells.extend([""] * (width - len(cells)))
        rows.append(cells)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed row(s) with fewer than {min_fields} fields")

    frame = pd.DataFrame(rows, columns=list(range(width)), dtype=str)
    return DelimitedTable(header=header, frame=frame, skipped_rows=skipped)


def to_int_column(series: pd.Series) -> pd.Series:
    """Coerce counts to int; blanks and non-numeric values become 0."""
    numeric = pd.to_numeric(series, errors="coerce").replace([np.inf, -np.inf], np.nan)
    return numeric.fillna(0).astype(int)
