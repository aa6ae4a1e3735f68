"""Feasibility helpers: moving a start point off the faces and limiting steps."""

from __future__ import annotations

import math
from typing import Union

import numpy as np

from .core import Box, OutOfBoundsError

Position = Union[int, tuple[int, ...]]


def _position(i: int, shape: tuple[int, ...]) -> Position:
    if len(shape) <= 1:
        return i
    return tuple(int(k) for k in np.unravel_index(i, shape))


def repair_initial_point(x: np.ndarray, box: Box) -> tuple[np.ndarray, list[Position]]:
    """
    Move coordinates that sit exactly on a bound 1% into the interior.

    With both bounds finite the new value is ``0.99*l + 0.01*u`` (or the
    mirror image at ``u``); against a half-infinite coordinate it moves by
    ``0.01 * max(|bound|, 1)``. ``x`` may have any shape; the repaired copy
    is returned flat, together with the positions that were moved (plain
    indices for vectors, index tuples otherwise).

    Raises:
        OutOfBoundsError: If some coordinate lies outside the box.
    """
    shape = np.shape(x)
    x = np.array(x, dtype=float, copy=True).reshape(-1)
    repaired: list[Position] = []
    for i in range(x.size):
        xi, li, ui = x[i], box.lower[i], box.upper[i]
        if xi == li:
            x[i] = 0.99 * li + 0.01 * ui if math.isfinite(ui) else li + 0.01 * max(abs(li), 1.0)
            repaired.append(_position(i, shape))
        elif xi == ui:
            x[i] = 0.01 * li + 0.99 * ui if math.isfinite(li) else ui - 0.01 * max(abs(ui), 1.0)
            repaired.append(_position(i, shape))
        elif xi < li or xi > ui or math.isnan(xi):
            raise OutOfBoundsError(_position(i, shape), float(xi), float(li), float(ui))
    return x, repaired


def _reaches_face(x: np.ndarray, d: np.ndarray, alpha: float, box: Box) -> bool:
    y = x + alpha * d
    lo = (d < 0) & np.isfinite(box.lower)
    hi = (d > 0) & np.isfinite(box.upper)
    return bool(np.any(y[lo] <= box.lower[lo]) or np.any(y[hi] >= box.upper[hi]))


def max_step(x: np.ndarray, d: np.ndarray, box: Box) -> float:
    """
    Largest ``alpha >= 0`` keeping ``x + alpha * d`` strictly inside ``box``.

    Each finite face crossed by ``d`` limits the step; the result is then
    pulled back by ``spacing(max(alpha, 1))`` so the step stops short of the
    face. Steps too small for that margin to register are shrunk one ulp at
    a time, then halved, until the trial point is strictly interior. Returns ``inf`` when
    no face constrains the direction.
    """
    alphamax = math.inf
    for i in range(x.size):
        di = d[i]
        if di < 0 and math.isfinite(box.lower[i]):
            li = box.lower[i]
            alphamax = min(alphamax, ((li - x[i]) + np.spacing(abs(li))) / di)
        elif di > 0 and math.isfinite(box.upper[i]):
            ui = box.upper[i]
            alphamax = min(alphamax, ((ui - x[i]) - np.spacing(abs(ui))) / di)
    if math.isinf(alphamax):
        return alphamax
    epsilon = float(np.spacing(max(alphamax, 1.0)))
    if alphamax > epsilon:
        alphamax -= epsilon
    shrinks = 0
    while alphamax > 0 and _reaches_face(x, d, alphamax, box):
        alphamax = float(np.nextafter(alphamax, 0.0)) if shrinks < 16 else 0.5 * alphamax
        shrinks += 1
    return float(max(alphamax, 0.0))


__all__ = ["max_step", "repair_initial_point"]
