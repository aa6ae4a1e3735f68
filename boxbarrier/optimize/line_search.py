"""Deterministic line-search routines following Nocedal & Wright.

Both searches accept an upper bound ``alpha_max`` on the step length and
treat a non-finite trial value as a rejected step, so objectives that
return ``+inf`` outside their domain are handled without exceptions.
"""

from __future__ import annotations

import inspect
import math
from typing import Callable, Optional

import numpy as np

from .core import Array, Gradient, Objective


def backtracking_armijo(
    f: Objective,
    x: Array,
    p: Array,
    grad_fx: Array,
    alpha0: float = 1.0,
    rho: float = 0.5,
    c: float = 1e-4,
    max_iter: int = 50,
    fx: Optional[float] = None,
    alpha_max: float = math.inf,
) -> tuple[float, int]:
    """Classic Armijo backtracking line search.

    Returns ``(alpha, nfev)``. ``alpha`` is ``0.0`` when no step in
    ``max_iter`` halvings satisfies the sufficient-decrease condition.
    """
    if not (0 < c < 1):
        raise ValueError("Armijo constant c must lie in (0, 1)")
    if not (0 < rho < 1):
        raise ValueError("rho must lie in (0, 1)")
    if alpha_max <= 0:
        return 0.0, 0
    nfev = 0
    if fx is None:
        fx = f(x)
        nfev += 1
    alpha = min(float(alpha0), float(alpha_max))
    grad_dot = float(np.dot(grad_fx, p))
    for _ in range(max_iter):
        f_new = f(x + alpha * p)
        nfev += 1
        if math.isfinite(f_new) and f_new <= fx + c * alpha * grad_dot:
            return alpha, nfev
        alpha *= rho
    return 0.0, nfev


def wolfe_line_search(
    f: Objective,
    grad: Gradient,
    x: Array,
    p: Array,
    alpha0: float = 1.0,
    c1: float = 1e-4,
    c2: float = 0.9,
    max_iter: int = 40,
    alpha_max: float = math.inf,
) -> tuple[float, int]:
    """Perform a strong Wolfe line search using bracketing and zoom.

    The bracketing phase doubles the step but never beyond ``alpha_max``;
    a step pinned at ``alpha_max`` that satisfies sufficient decrease is
    accepted as is.
    """
    if not (0 < c1 < c2 < 1):
        raise ValueError("Require 0 < c1 < c2 < 1 for Wolfe conditions.")
    if alpha_max <= 0:
        return 0.0, 0

    nfev = 0

    def phi(alpha: float) -> float:
        nonlocal nfev
        nfev += 1
        return f(x + alpha * p)

    def phi_prime(alpha: float) -> float:
        return float(np.dot(grad(x + alpha * p), p))

    alpha_prev = 0.0
    phi0 = phi(0.0)
    der0 = phi_prime(0.0)
    if der0 >= 0:
        raise ValueError("Search direction must be a descent direction.")
    alpha = min(float(alpha0), float(alpha_max))
    phi_prev = phi0

    for iteration in range(max_iter):
        phi_alpha = phi(alpha)
        if (
            not math.isfinite(phi_alpha)
            or phi_alpha > phi0 + c1 * alpha * der0
            or (iteration > 0 and phi_alpha >= phi_prev)
        ):
            return _zoom(phi, phi_prime, alpha_prev, alpha, phi0, der0, c1, c2), nfev
        der_alpha = phi_prime(alpha)
        if abs(der_alpha) <= -c2 * der0:
            return alpha, nfev
        if der_alpha >= 0:
            return _zoom(phi, phi_prime, alpha, alpha_prev, phi0, der0, c1, c2), nfev
        if alpha >= alpha_max:
            return alpha, nfev
        alpha_prev = alpha
        phi_prev = phi_alpha
        alpha = min(2.0 * alpha, alpha_max)
    return alpha, nfev


def _zoom(
    phi: Callable[[float], float],
    phi_prime: Callable[[float], float],
    alo: float,
    ahi: float,
    phi0: float,
    der0: float,
    c1: float,
    c2: float,
) -> float:
    """Zoom stage enforcing strong Wolfe conditions.

    Falls back to the best sufficient-decrease step found (possibly
    ``alo``) when the interval collapses.
    """
    phi_alo = phi(alo)
    for _ in range(32):
        alpha = 0.5 * (alo + ahi)
        phi_alpha = phi(alpha)
        if (
            not math.isfinite(phi_alpha)
            or phi_alpha > phi0 + c1 * alpha * der0
            or phi_alpha >= phi_alo
        ):
            ahi = alpha
        else:
            der_alpha = phi_prime(alpha)
            if abs(der_alpha) <= -c2 * der0:
                return alpha
            if der_alpha * (ahi - alo) > 0:
                ahi = alo
            alo = alpha
            phi_alo = phi_alpha
        if abs(ahi - alo) < 1e-12:
            break
    return alo


def requires_grad(line_search: Callable) -> bool:
    """True for searches called as ``(f, grad, x, p)`` rather than ``(f, x, p, grad_fx)``."""
    params = list(inspect.signature(line_search).parameters.values())
    return len(params) >= 2 and params[1].name == "grad"


def run_line_search(
    line_search: Callable,
    f: Objective,
    grad: Gradient,
    x: Array,
    p: Array,
    grad_fx: Array,
    fx: float,
    alpha0: float = 1.0,
    alpha_max: float = math.inf,
) -> tuple[float, int]:
    """Dispatch to either line-search calling convention."""
    if requires_grad(line_search):
        return line_search(f, grad, x, p, alpha0=alpha0, alpha_max=alpha_max)
    return line_search(f, x, p, grad_fx, alpha0=alpha0, fx=fx, alpha_max=alpha_max)


__all__ = ["backtracking_armijo", "requires_grad", "run_line_search", "wolfe_line_search"]
