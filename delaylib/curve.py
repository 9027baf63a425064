# -*- coding: utf-8 -*-
"""Append-only learning curves and their CSV export."""
from __future__ import annotations

import csv
import logging
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd


_logger = logging.getLogger(__name__)
if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _logger.addHandler(_handler)
_logger.setLevel(logging.INFO)


@dataclass(frozen=True)
class CurveEntry:
    """One immutable snapshot: metric names and values in reporting order."""

    items: Tuple[Tuple[str, float], ...]

    @classmethod
    def from_mapping(cls, values: Mapping[str, float]) -> "CurveEntry":
        return cls(tuple((str(k), float(v)) for k, v in values.items()))

    def names(self) -> List[str]:
        return [name for name, _ in self.items]

    def as_dict(self) -> Dict[str, float]:
        return OrderedDict(self.items)

    def get(self, name: str, default: float = float("nan")) -> float:
        for key, value in self.items:
            if key == name:
                return value
        return default

    def __getitem__(self, name: str) -> float:
        for key, value in self.items:
            if key == name:
                return value
        raise KeyError(name)


def format_value(value: float) -> str:
    return repr(float(value))


class LearningCurve:
    """Ordered sequence of snapshots keyed by an ordering measurement."""

    def __init__(self, ordering_name: str) -> None:
        self.ordering_name = ordering_name
        self._entries: List[CurveEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CurveEntry]:
        return iter(list(self._entries))

    def num_entries(self) -> int:
        return len(self._entries)

    def entry(self, index: int) -> CurveEntry:
        return self._entries[index]

    def insert_entry(self, values: Mapping[str, float]) -> CurveEntry:
        entry = CurveEntry.from_mapping(values)
        self._entries.append(entry)
        return entry

    def header_names(self) -> List[str]:
        names: List[str] = []
        seen = set()
        for entry in self._entries:
            for name in entry.names():
                if name not in seen:
                    seen.add(name)
                    names.append(name)
        return names

    def header_to_string(self, sep: str = ",") -> str:
        return sep.join(self.header_names())

    def entry_to_string(self, index: int, sep: str = ",") -> str:
        entry = self._entries[index]
        return sep.join(format_value(entry.get(name)) for name in self.header_names())

    def measurement_values(self, name: str) -> np.ndarray:
        return np.asarray([entry.get(name) for entry in self._entries], dtype=float)

    def to_frame(self) -> pd.DataFrame:
        columns = self.header_names()
        rows = [[entry.get(name) for name in columns] for entry in self._entries]
        return pd.DataFrame(rows, columns=columns, dtype=float)

    def copy(self) -> "LearningCurve":
        clone = LearningCurve(self.ordering_name)
        clone._entries = list(self._entries)
        return clone


class CurveWriter:
    """Append curve rows to a CSV file as they are produced.

    The header is written once per writer, before its first row; later rows
    follow the same column order (missing values are written as ``nan``).
    Names a later row adds beyond the header cannot be exported and are
    reported with a warning.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self._handle = open(self.path, "a", newline="", encoding="utf-8")
        except OSError as exc:
            raise OSError(f"Unable to open immediate result file: {self.path}") from exc
        self._writer = csv.writer(self._handle)
        self.first_dump = True
        self._columns: Optional[List[str]] = None

    def write_entry(self, entry: CurveEntry) -> None:
        if self.first_dump:
            self._columns = entry.names()
            self._writer.writerow(self._columns)
            self.first_dump = False
        extra = [name for name in entry.names() if name not in (self._columns or [])]
        if extra:
            _logger.warning(
                "【列不一致】%s: %d metric(s) missing from the written header are not exported: %s",
                self.path,
                len(extra),
                ", ".join(extra[:5]),
            )
        self._writer.writerow([format_value(entry.get(name)) for name in self._columns or []])
        self._handle.flush()

    def write_latest(self, curve: LearningCurve) -> None:
        if len(curve) == 0:
            return
        self.write_entry(curve.entry(len(curve) - 1))

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    def __enter__(self) -> "CurveWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_writer(path: Optional[str | Path]) -> Optional[CurveWriter]:
    if path is None or str(path) == "":
        return None
    writer = CurveWriter(path)
    _logger.info("Appending curve rows to %s", writer.path)
    return writer


def read_curve_csv(path: str | Path, ordering_name: Optional[str] = None) -> LearningCurve:
    """Parse a CSV written by :class:`CurveWriter` back into a curve."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Curve file does not exist: {path}")
    frame = pd.read_csv(path, dtype=float)
    curve = LearningCurve(ordering_name or (str(frame.columns[0]) if len(frame.columns) else ""))
    columns = [str(c) for c in frame.columns]
    for row in frame.itertuples(index=False, name=None):
        curve.insert_entry(OrderedDict(zip(columns, (float(v) for v in row))))
    return curve


__all__ = [
    "CurveEntry",
    "LearningCurve",
    "CurveWriter",
    "format_value",
    "open_writer",
    "read_curve_csv",
]
