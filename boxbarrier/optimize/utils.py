"""Finite-difference derivatives and a guarded linear solve.

Steps are relative: coordinate ``i`` is perturbed by ``eps * max(1, |x[i]|)``
so large-magnitude iterates are not differentiated below their own rounding
level.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]


def _steps(x: Array, eps: float) -> Array:
    if eps <= 0:
        raise ValueError("eps must be positive")
    return eps * np.maximum(1.0, np.abs(x))


def approx_grad(
    fun: Objective, x: Array, eps: float = 1e-6, return_evals: bool = False
) -> Array | tuple[Array, int]:
    """Central-difference gradient of ``fun`` at ``x``.

    Parameters
    ----------
    fun:
        Objective function returning a scalar given x.
    x:
        Point where the gradient is approximated.
    eps:
        Relative perturbation size.
    return_evals:
        Also return the number of objective evaluations spent (``2 * x.size``).
    """
    x = np.asarray(x, dtype=float)
    flat = x.reshape(-1)
    h = _steps(flat, eps)
    grad = np.empty_like(flat)
    for i, hi in enumerate(h):
        step = np.zeros_like(flat)
        step[i] = hi
        grad[i] = (fun((flat + step).reshape(x.shape)) - fun((flat - step).reshape(x.shape))) / (2.0 * hi)
    grad = grad.reshape(x.shape)
    if return_evals:
        return grad, 2 * flat.size
    return grad


def approx_hessian(
    fun: Objective, x: Array, eps: float = 1e-4, return_evals: bool = False
) -> Array | tuple[Array, int]:
    """Second-order central-difference Hessian, symmetric by construction.

    ``fun`` is called with points shaped like ``x``; the Hessian is
    ``(x.size, x.size)``.
    """
    x = np.asarray(x, dtype=float)
    shape = x.shape

    def f(flat: Array) -> float:
        return fun(flat.reshape(shape))

    x = x.reshape(-1)
    n = x.size
    h = _steps(x, eps)
    basis = np.diag(h)
    hess = np.zeros((n, n), dtype=float)
    fx = f(x)
    evals = 1
    for i in range(n):
        ei = basis[i]
        hess[i, i] = (f(x + ei) - 2 * fx + f(x - ei)) / h[i] ** 2
        evals += 2
        for j in range(i + 1, n):
            ej = basis[j]
            cross = f(x + ei + ej) - f(x + ei - ej) - f(x - ei + ej) + f(x - ei - ej)
            hess[i, j] = hess[j, i] = cross / (4 * h[i] * h[j])
            evals += 4
    if return_evals:
        return hess, evals
    return hess


def safe_solve(mat: Array, vec: Array, reg: float = 1e-12) -> Array:
    """Solve ``mat @ x = vec``, adding a small ridge if ``mat`` is singular."""
    try:
        return np.linalg.solve(mat, vec)
    except np.linalg.LinAlgError:
        return np.linalg.solve(mat + reg * np.eye(mat.shape[0], dtype=mat.dtype), vec)


__all__ = ["approx_grad", "approx_hessian", "safe_solve"]
