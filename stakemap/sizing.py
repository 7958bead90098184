"""Weight to marker-size mapping."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

import numpy as np

from .config import SizingParams
from .validate import sanitize_weight, validate_sizing_params

logger = logging.getLogger(__name__)


def _grow(weight: float, growth: str) -> float:
    if growth == "log":
        return math.log2(max(weight, 1.0))
    return math.sqrt(weight)


class EntitySizer:
    """Map weights to marker diameters in ``[min_size, max_size]``.

    Growth is sublinear (square root or base-2 logarithm) so one outlier
    cannot starve the rest of the plane. The mapping is total: negative,
    NaN and non-numeric weights size as zero, ``+inf`` saturates at
    ``max_size``.
    """

    def __init__(self, params: Optional[SizingParams] = None) -> None:
        self.params = params or SizingParams()
        validate_sizing_params(self.params)

    def size(self, weight: object) -> float:
        p = self.params
        value = sanitize_weight(weight)
        grown = _grow(value, p.growth)
        raw = p.base_size + p.growth_rate * grown if p.growth_rate else p.base_size
        return float(min(p.max_size, max(p.min_size, raw)))

    def sizes(self, weights: Iterable[object]) -> np.ndarray:
        values = np.array([sanitize_weight(w) for w in weights], dtype=float)
        p = self.params
        if values.size == 0:
            return values
        if p.growth == "log":
            grown = np.log2(np.maximum(values, 1.0))
        else:
            grown = np.sqrt(values)
        with np.errstate(invalid="ignore"):
            raw = p.base_size + p.growth_rate * grown
        raw = np.where(np.isnan(raw), p.base_size, raw)
        out = np.clip(raw, p.min_size, p.max_size)
        logger.debug("Sized %d markers: min=%.3f max=%.3f", out.size, float(out.min()), float(out.max()))
        return out
