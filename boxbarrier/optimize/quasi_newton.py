"""Quasi-Newton optimization algorithms (BFGS and L-BFGS)."""

from __future__ import annotations

import math
from collections import deque
from typing import Callable, Deque, Optional

import numpy as np

from ..logging import get_logger
from .core import Options, OptimizeResult, assess_convergence, build_result, check_convergence, record_trace
from .line_search import run_line_search, wolfe_line_search
from .objective import as_differentiable
from .precondition import DiagonalPreconditioner

logger = get_logger(__name__)


def bfgs(
    objective,
    x0: np.ndarray,
    options: Optional[Options] = None,
    line_search: Callable = wolfe_line_search,
) -> OptimizeResult:
    """Full-memory BFGS with strong Wolfe line search."""
    options = options or Options()
    df = as_differentiable(objective)
    start = df.calls()
    x = np.asarray(x0, dtype=float).copy()
    n = x.size
    inv_hessian = np.eye(n)
    fx, grad = df.value_and_gradient(x)
    trace: list = []
    record_trace(trace, options, logger, 0, fx, grad, x)
    nit = 0
    state = None
    converged = check_convergence(float(np.max(np.abs(grad))), options.g_tol)
    message = "Gradient tolerance satisfied." if converged else "Maximum iterations reached."
    while not converged and nit < options.iterations:
        direction = -inv_hessian @ grad
        if float(np.dot(direction, grad)) >= 0:
            inv_hessian = np.eye(n)
            direction = -grad
        if not np.any(direction):
            message = "Search direction vanished."
            break
        alpha, _ = run_line_search(line_search, df.value, df.gradient, x, direction, grad, fx)
        nit += 1
        if alpha <= 0.0:
            message = "Line search failed to find an acceptable step."
            break
        s = alpha * direction
        x_prev, f_prev = x, fx
        x = x + s
        fx, grad_new = df.value_and_gradient(x)
        record_trace(trace, options, logger, nit, fx, grad_new, x, step=alpha)
        y = grad_new - grad
        ys = float(np.dot(y, s))
        if ys <= 1e-12:
            inv_hessian = np.eye(n)
        else:
            rho = 1.0 / ys
            identity = np.eye(n)
            outer_sy = np.outer(s, y)
            inv_hessian = (
                (identity - rho * outer_sy)
                @ inv_hessian
                @ (identity - rho * outer_sy.T)
                + rho * np.outer(s, s)
            )
        grad = grad_new
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


def lbfgs(
    objective,
    x0: np.ndarray,
    options: Optional[Options] = None,
    m: int = 10,
    line_search: Callable = wolfe_line_search,
    precond: Optional[DiagonalPreconditioner] = None,
    step_limit: Optional[Callable[[np.ndarray, np.ndarray], float]] = None,
) -> OptimizeResult:
    """Limited-memory BFGS using two-loop recursion.

    Without a preconditioner the initial inverse Hessian is the usual
    ``gamma * I`` scaling; with one, ``P`` replaces it and is conditioned
    at the current point before every direction computation.
    """
    if m <= 0:
        raise ValueError("Memory parameter m must be positive.")
    options = options or Options()
    df = as_differentiable(objective)
    start = df.calls()
    x = np.asarray(x0, dtype=float).copy()
    fx, grad = df.value_and_gradient(x)
    trace: list = []
    record_trace(trace, options, logger, 0, fx, grad, x)
    s_history: Deque[np.ndarray] = deque(maxlen=m)
    y_history: Deque[np.ndarray] = deque(maxlen=m)
    nit = 0
    state = None
    converged = check_convergence(float(np.max(np.abs(grad))), options.g_tol)
    message = "Gradient tolerance satisfied." if converged else "Maximum iterations reached."

    def scale(q: np.ndarray) -> np.ndarray:
        if precond is not None:
            return precond.apply(q)
        if s_history:
            last_s = s_history[-1]
            last_y = y_history[-1]
            return float(np.dot(last_s, last_y) / np.dot(last_y, last_y)) * q
        return q

    def two_loop(g: np.ndarray) -> np.ndarray:
        q = g.copy()
        alpha_vals = []
        for s, y in reversed(list(zip(s_history, y_history))):
            rho = 1.0 / float(np.dot(y, s))
            alpha_i = rho * float(np.dot(s, q))
            q = q - alpha_i * y
            alpha_vals.append((rho, alpha_i, s, y))
        r = scale(q)
        for rho, alpha_i, s, y in reversed(alpha_vals):
            beta = rho * float(np.dot(y, r))
            r = r + s * (alpha_i - beta)
        return -r

    while not converged and nit < options.iterations:
        if precond is not None:
            precond.update(x)
        direction = two_loop(grad)
        if float(np.dot(direction, grad)) >= 0:
            s_history.clear()
            y_history.clear()
            direction = two_loop(grad)
        if not np.any(direction):
            message = "Search direction vanished."
            break
        alpha_max = step_limit(x, direction) if step_limit is not None else math.inf
        alpha, _ = run_line_search(
            line_search, df.value, df.gradient, x, direction, grad, fx, alpha_max=alpha_max
        )
        nit += 1
        if alpha <= 0.0:
            message = "Line search failed to find an acceptable step."
            break
        s = alpha * direction
        x_prev, f_prev = x, fx
        x = x + s
        fx, grad_new = df.value_and_gradient(x)
        record_trace(trace, options, logger, nit, fx, grad_new, x, step=alpha)
        y = grad_new - grad
        if float(np.dot(y, s)) > 1e-12:
            s_history.append(s)
            y_history.append(y)
        grad = grad_new
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


__all__ = ["bfgs", "lbfgs"]
