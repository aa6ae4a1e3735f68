"""Newton and damped Newton optimization routines."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from ..logging import get_logger
from .core import Options, OptimizeResult, assess_convergence, build_result, check_convergence, record_trace
from .line_search import backtracking_armijo, run_line_search
from .objective import as_differentiable
from .utils import safe_solve

logger = get_logger(__name__)


def _newton_step(hess: np.ndarray, grad: np.ndarray, lambda_reg: float) -> np.ndarray:
    """Solve ``(H + reg I) p = -g``, growing ``reg`` while the system is singular."""
    reg = max(lambda_reg, 0.0)
    eye = np.eye(grad.size)
    for _ in range(5):
        try:
            return np.linalg.solve(hess + reg * eye, -grad)
        except np.linalg.LinAlgError:
            reg = reg * 10 + 1e-8
    return safe_solve(hess + reg * eye, -grad)


def newton_method(
    objective,
    x0: np.ndarray,
    options: Optional[Options] = None,
    use_line_search: bool = False,
    line_search: Callable = backtracking_armijo,
    lambda_reg: float = 0.0,
) -> OptimizeResult:
    """Newton's method with optional line search and damping."""
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
        step = _newton_step(df.hessian(x), grad, lambda_reg)
        alpha = 1.0
        if use_line_search:
            if float(np.dot(step, grad)) >= 0:
                step = -grad
            alpha, _ = run_line_search(line_search, df.value, df.gradient, x, step, grad, fx)
        nit += 1
        if alpha <= 0.0:
            message = "Line search failed to find an acceptable step."
            break
        x_prev, f_prev = x, fx
        x = x + alpha * step
        fx, grad = df.value_and_gradient(x)
        record_trace(trace, options, logger, nit, fx, grad, x, step=alpha)
        state = assess_convergence(x, x_prev, fx, f_prev, grad, options.x_tol, options.f_tol, options.g_tol)
        converged = state.converged
        if converged:
            message = "Convergence criteria satisfied."
    return build_result(
        x, fx, grad, nit, message, df.calls_since(start), options, trace, state=state, converged=converged
    )


__all__ = ["newton_method"]
