"""
Logarithmic barrier for box constraints.

The barrier ``-sum(log(x - l)) - sum(log(u - x))`` (finite sides only)
diverges at the faces of the box. Adding ``mu`` times the barrier to the
objective turns the box-constrained problem into an unconstrained one whose
minimizer approaches the constrained minimizer as ``mu`` decays to zero.
Points on or outside the box evaluate to ``+inf`` rather than raising, which
lets line searches reject them without calling the user objective.

References:
    - Nocedal & Wright, *Numerical Optimization* (2006), Chapter 19
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ..optimize.objective import DifferentiableFunction
from ..optimize.precondition import DiagonalPreconditioner
from .core import BarrierWeight, Box


def barrier_box(
    x: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    grad: Optional[np.ndarray] = None,
) -> float:
    """
    Evaluate the log barrier of the box at ``x``, writing its gradient into ``grad``.

    Returns ``+inf`` as soon as a coordinate lies on or beyond a finite
    bound. In that case ``grad`` has only been written up to the offending
    coordinate and its contents are meaningless.
    """
    v = 0.0
    for i in range(x.size):
        xi = x[i]
        li = lower[i]
        if math.isfinite(li):
            dx = xi - li
            if dx <= 0.0:
                return math.inf
            v -= math.log(dx)
            if grad is not None:
                grad[i] = -1.0 / dx
        elif grad is not None:
            grad[i] = 0.0
        ui = upper[i]
        if math.isfinite(ui):
            dx = ui - xi
            if dx <= 0.0:
                return math.inf
            v -= math.log(dx)
            if grad is not None:
                grad[i] += 1.0 / dx
    return v


def barrier_magnitude(x: np.ndarray, box: Box) -> np.ndarray:
    """
    Per-coordinate sum of the absolute barrier-gradient contributions.

    Unlike the barrier gradient itself this does not cancel at the centre
    of a bounded coordinate, so it gives a usable scale for :func:`initial_mu`.
    """
    with np.errstate(divide="ignore"):
        from_lower = np.where(np.isfinite(box.lower), 1.0 / (x - box.lower), 0.0)
        from_upper = np.where(np.isfinite(box.upper), 1.0 / (box.upper - x), 0.0)
    return from_lower + from_upper


def initial_mu(
    gfunc: np.ndarray,
    gbarrier: np.ndarray,
    mu0factor: float = 0.001,
    mu0: Optional[float] = None,
) -> float:
    """
    Pick the starting barrier weight.

    An explicit ``mu0`` wins. Otherwise the weight makes the barrier
    gradient ``mu0factor`` times as large as the objective gradient; with no
    finite bound at all the barrier vanishes and the weight is ``0``.
    """
    if mu0 is not None:
        return float(mu0)
    gbarriernorm = float(np.sum(np.abs(gbarrier)))
    if gbarriernorm > 0:
        return mu0factor * float(np.sum(np.abs(gfunc))) / gbarriernorm
    return 0.0


class CombinedObjective:
    """
    ``f(x) + mu * barrier(x)`` for one box and one shared barrier weight.

    ``gfunc`` and ``gbarrier`` hold the objective and barrier gradients of
    the most recent gradient evaluation. ``mu`` is read at call time.
    """

    def __init__(self, objective: DifferentiableFunction, box: Box, mu: BarrierWeight) -> None:
        self.objective = objective
        self.box = box
        self.mu = mu
        self.gfunc = np.zeros(box.size)
        self.gbarrier = np.zeros(box.size)

    def barrier(self, x: np.ndarray, grad: Optional[np.ndarray] = None) -> float:
        return barrier_box(x, self.box.lower, self.box.upper, grad)

    def value(self, x: np.ndarray) -> float:
        vbarrier = self.barrier(x)
        if not math.isfinite(vbarrier):
            return vbarrier
        return self.objective.value(x) + self.mu.value * vbarrier

    def value_and_gradient(self, x: np.ndarray) -> tuple[float, np.ndarray]:
        """Combined value and gradient; the gradient is meaningless when the value is ``+inf``."""
        vbarrier = self.barrier(x, self.gbarrier)
        if not math.isfinite(vbarrier):
            return vbarrier, self.gfunc + self.mu.value * self.gbarrier
        fval, gfunc = self.objective.value_and_gradient(x)
        self.gfunc[:] = gfunc
        return fval + self.mu.value * vbarrier, self.gfunc + self.mu.value * self.gbarrier

    def gradient(self, x: np.ndarray) -> np.ndarray:
        return self.value_and_gradient(x)[1]

    def refresh(self, x: np.ndarray) -> np.ndarray:
        """Recompute both gradient buffers at ``x`` and return the combined gradient."""
        return self.value_and_gradient(x)[1]

    def as_differentiable(self) -> DifferentiableFunction:
        return DifferentiableFunction(
            self.value, grad=self.gradient, fun_and_grad=self.value_and_gradient
        )


def precondprep_box(
    P: DiagonalPreconditioner, x: np.ndarray, box: Box, mu: BarrierWeight
) -> None:
    """
    Set ``P`` to the inverse diagonal of ``mu * barrier Hessian + I`` at ``x``.

    Infinite bounds contribute no curvature.
    """
    with np.errstate(divide="ignore"):
        curv_lower = np.where(np.isfinite(box.lower), 1.0 / (x - box.lower) ** 2, 0.0)
        curv_upper = np.where(np.isfinite(box.upper), 1.0 / (box.upper - x) ** 2, 0.0)
    P.diag[:] = 1.0 / (mu.value * (curv_lower + curv_upper) + 1.0)


def box_preconditioner(box: Box, mu: BarrierWeight, precondprep=precondprep_box) -> DiagonalPreconditioner:
    """Diagonal preconditioner whose conditioning hook is ``precondprep(P, x, box, mu)``."""
    return DiagonalPreconditioner(
        np.ones(box.size), prepare=lambda P, x: precondprep(P, x, box, mu)
    )


__all__ = [
    "CombinedObjective",
    "barrier_box",
    "barrier_magnitude",
    "box_preconditioner",
    "initial_mu",
    "precondprep_box",
]
