"""Gradient-based optimization algorithms."""

from __future__ import annotations

import math
from typing import Callable, Optional

import numpy as np

from ..logging import get_logger
from .core import Options, OptimizeResult, assess_convergence, build_result, check_convergence, record_trace
from .line_search import backtracking_armijo, run_line_search
from .objective import as_differentiable
from .precondition import DiagonalPreconditioner

logger = get_logger(__name__)

StepLimit = Callable[[np.ndarray, np.ndarray], float]


def gradient_descent(
    objective,
    x0: np.ndarray,
    options: Optional[Options] = None,
    alpha0: float = 1.0,
    line_search: Callable = backtracking_armijo,
    precond: Optional[DiagonalPreconditioner] = None,
    step_limit: Optional[StepLimit] = None,
) -> OptimizeResult:
    """Steepest descent with line search and optional diagonal preconditioning.

    Each iteration conditions ``precond`` at the current point, moves along
    ``-P @ g`` and caps the line search at ``step_limit(x, direction)``.
    """
    options = options or Options()
    df = as_differentiable(objective)
    start = df.calls()
    x = np.asarray(x0, dtype=float).copy()
    fx, grad = df.value_and_gradient(x)
    trace: list = []
    record_trace(trace, options, logger, 0, fx, grad, x)
    nit = 0
    state = None
    converged = check_convergence(float(np.max(np.abs(grad))), options.g_tol)
    message = "Gradient tolerance satisfied." if converged else "Maximum iterations reached."
    while not converged and nit < options.iterations:
        if precond is not None:
            precond.update(x)
            direction = -precond.apply(grad)
        else:
            direction = -grad
        if not np.any(direction):
            message = "Search direction vanished."
            break
        alpha_max = step_limit(x, direction) if step_limit is not None else math.inf
        alpha, _ = run_line_search(
            line_search, df.value, df.gradient, x, direction, grad, fx, alpha0=alpha0, alpha_max=alpha_max
        )
        nit += 1
        if alpha <= 0.0:
            message = "Line search failed to find an acceptable step."
            break
        x_prev, f_prev = x, fx
        x = x + alpha * direction
        fx, grad = df.value_and_gradient(x)
        record_trace(trace, options, logger, nit, fx, grad, x, step=alpha)
        state = assess_convergence(x, x_prev, fx, f_prev, grad, options.x_tol, options.f_tol, options.g_tol)
        converged = state.converged
        if converged:
            message = "Convergence criteria satisfied."
        elif state.f_increased and not options.allow_f_increases:
            message = "Objective increased between iterations."
            break
    return build_result(
        x, fx, grad, nit, message, df.calls_since(start), options, trace, state=state, converged=converged
    )


__all__ = ["gradient_descent"]
