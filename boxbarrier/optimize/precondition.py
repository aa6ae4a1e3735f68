"""Diagonal preconditioning for first-order solvers."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from .core import Array


class DiagonalPreconditioner:
    """
    Inverse-diagonal scaling ``P`` applied as ``P @ g = diag * g``.

    ``prepare(P, x)`` is the conditioning hook: solvers call
    :meth:`update` with the current iterate before computing each search
    direction, and the hook rewrites :attr:`diag` in place.
    """

    def __init__(
        self,
        diag: Array,
        prepare: Optional[Callable[["DiagonalPreconditioner", Array], None]] = None,
    ) -> None:
        self.diag = np.array(diag, dtype=float, copy=True)
        self.prepare = prepare

    def update(self, x: Array) -> None:
        if self.prepare is not None:
            self.prepare(self, x)

    def apply(self, g: Array) -> Array:
        return self.diag * g


__all__ = ["DiagonalPreconditioner"]
