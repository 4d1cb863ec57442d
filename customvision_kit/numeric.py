from __future__ import annotations

import math
from typing import Union

import numpy as np


ArrayLike = Union[float, np.ndarray]


def _logistic_scalar(x: float) -> float:
    if x > 0:
        return 1.0 / (1.0 + math.exp(-x))
    e = math.exp(x)
    return e / (1.0 + e)


def logistic(x: ArrayLike) -> ArrayLike:
    """
    Sigmoid that branches on the sign of `x` so `exp` never sees a large positive argument.

    Accepts a Python/NumPy scalar (returns float) or an array (returns float64 array).
    """

    if np.ndim(x) == 0:
        return _logistic_scalar(float(x))

    arr = np.asarray(x, dtype=np.float64)
    out = np.empty_like(arr)
    pos = arr > 0
    out[pos] = 1.0 / (1.0 + np.exp(-arr[pos]))
    e = np.exp(arr[~pos])
    out[~pos] = e / (1.0 + e)
    return out


def softmax(v) -> np.ndarray:
    """
    Normalized exponential over the last axis, shifted by the max for stability.
    """

    logits = np.asarray(v, dtype=np.float64)
    if logits.size == 0:
        return logits.copy()
    shifted = logits - np.max(logits, axis=-1, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=-1, keepdims=True)
