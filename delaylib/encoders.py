from __future__ import annotations

"""Class-label encoder for stream tables."""

from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

MISSING_TOKENS = {"", "?", "nan", "none", "null"}


class ClassLabelEncoder:
    """Map class labels to consecutive integer codes; missing labels map to -1."""

    def __init__(self, classes: Optional[Sequence[object]] = None) -> None:
        self.mapping: dict[str, int] = {}
        self._fitted: bool = False
        if classes is not None:
            for val in classes:
                key = self._key(val)
                if key not in self.mapping:
                    self.mapping[key] = len(self.mapping)
            self._fitted = True

    @staticmethod
    def _key(value: object) -> str:
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip()

    @classmethod
    def _normalize(cls, values: Iterable) -> pd.Series:
        series = pd.Series(list(values), dtype="object")
        if series.empty:
            return pd.Series(dtype="object")
        return series.map(lambda v: None if pd.isna(v) else cls._key(v))

    @staticmethod
    def _is_missing(key: Optional[str]) -> bool:
        # Series.map 可能把 None 还原成 float NaN
        return key is None or not isinstance(key, str) or key.lower() in MISSING_TOKENS

    def fit(self, values: Iterable) -> "ClassLabelEncoder":
        series = self._normalize(values)
        keys = sorted({k for k in series if not self._is_missing(k)}, key=_sort_key)
        for key in keys:
            if key not in self.mapping:
                self.mapping[key] = len(self.mapping)
        self._fitted = True
        return self

    def transform(self, values: Iterable) -> np.ndarray:
        if not self._fitted:
            raise RuntimeError("ClassLabelEncoder must be fitted before calling transform().")
        series = self._normalize(values)
        unknown = sorted({k for k in series if not self._is_missing(k) and k not in self.mapping})
        if unknown:
            raise ValueError(f"Unknown class labels: {unknown[:5]}")
        encoded = series.map(lambda k: -1 if self._is_missing(k) else self.mapping[k])
        return encoded.to_numpy(dtype=int)

    def fit_transform(self, values: Iterable) -> np.ndarray:
        return self.fit(values).transform(values)

    @property
    def classes_(self) -> list[str]:
        return sorted(self.mapping, key=self.mapping.__getitem__)

    @property
    def num_classes(self) -> int:
        return len(self.mapping)


def _sort_key(key: str) -> tuple:
    try:
        return (0, float(key), key)
    except ValueError:
        return (1, 0.0, key)


__all__ = ["ClassLabelEncoder"]
