"""Differentiable objective wrapper with evaluation counting."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from .autodiff import torch_hessian, torch_value, torch_value_and_grad
from .core import Array, Gradient, Hessian, Objective, Problem
from .utils import approx_grad, approx_hessian

ValueAndGradient = Callable[[Array], "tuple[float, Array]"]

AUTODIFF_MODES = ("finite", "torch")


class DifferentiableFunction:
    """
    Objective with value/gradient/Hessian access and call counters.

    Missing derivatives are filled in according to ``autodiff``:

    * ``"finite"``: central differences on ``fun``. The extra objective
      evaluations are charged to ``f_calls``.
    * ``"torch"``: ``fun`` receives a float64 ``torch.Tensor`` and the
      gradient comes from ``torch.autograd``.

    Parameters
    ----------
    fun:
        Objective ``x -> float``.
    grad:
        Optional analytic gradient ``x -> array``.
    fun_and_grad:
        Optional fused evaluation ``x -> (float, array)``.
    hess:
        Optional analytic Hessian ``x -> (n, n) array``.
    autodiff:
        How to differentiate ``fun`` when no gradient is supplied.
    """

    def __init__(
        self,
        fun: Objective,
        grad: Optional[Gradient] = None,
        fun_and_grad: Optional[ValueAndGradient] = None,
        hess: Optional[Hessian] = None,
        autodiff: str = "finite",
    ) -> None:
        if autodiff not in AUTODIFF_MODES:
            raise ValueError(
                f"Unsupported autodiff mode '{autodiff}'. Supported modes: {list(AUTODIFF_MODES)}"
            )
        self._fun = fun
        self._grad = grad
        self._fun_and_grad = fun_and_grad
        self._hess = hess
        self.autodiff = autodiff
        self.f_calls = 0
        self.g_calls = 0
        self.h_calls = 0

    @classmethod
    def from_problem(cls, problem: Problem, autodiff: str = "finite") -> "DifferentiableFunction":
        return cls(problem.fun, grad=problem.grad, hess=problem.hess, autodiff=autodiff)

    @property
    def _uses_torch(self) -> bool:
        return self.autodiff == "torch"

    def _raw_value(self, x: Array) -> float:
        if self._uses_torch:
            return torch_value(self._fun, x)
        return float(self._fun(x))

    def value(self, x: Array) -> float:
        self.f_calls += 1
        return self._raw_value(x)

    def gradient(self, x: Array) -> Array:
        if self._grad is not None:
            self.g_calls += 1
            return np.asarray(self._grad(x), dtype=float)
        if self._fun_and_grad is not None:
            self.g_calls += 1
            _, g = self._fun_and_grad(x)
            return np.asarray(g, dtype=float)
        if self._uses_torch:
            self.g_calls += 1
            _, g = torch_value_and_grad(self._fun, x)
            return g
        g, evals = approx_grad(self._raw_value, x, return_evals=True)
        self.f_calls += int(evals)
        return g

    def value_and_gradient(self, x: Array) -> tuple[float, Array]:
        if self._fun_and_grad is not None:
            self.f_calls += 1
            self.g_calls += 1
            f, g = self._fun_and_grad(x)
            return float(f), np.asarray(g, dtype=float)
        if self._grad is None and self._uses_torch:
            self.f_calls += 1
            self.g_calls += 1
            return torch_value_and_grad(self._fun, x)
        return self.value(x), self.gradient(x)

    def hessian(self, x: Array) -> Array:
        if self._hess is not None:
            self.h_calls += 1
            return np.asarray(self._hess(x), dtype=float)
        if self._uses_torch:
            self.h_calls += 1
            return torch_hessian(self._fun, x)
        hess, evals = approx_hessian(self._raw_value, x, return_evals=True)
        self.f_calls += int(evals)
        return hess

    def calls(self) -> tuple[int, int, int]:
        """Current ``(f_calls, g_calls, h_calls)``."""
        return self.f_calls, self.g_calls, self.h_calls

    def calls_since(self, start: tuple[int, int, int]) -> tuple[int, int, int]:
        """Calls made after the snapshot ``start`` taken with :meth:`calls`."""
        now = self.calls()
        return now[0] - start[0], now[1] - start[1], now[2] - start[2]

    def reset_calls(self) -> None:
        self.f_calls = 0
        self.g_calls = 0
        self.h_calls = 0


class ReshapedFunction:
    """
    Flat-vector view of an objective defined on arrays of ``shape``.

    Solvers work on 1-D iterates; this view hands the wrapped objective
    points in its own shape and returns flat gradients and an
    ``(n, n)`` Hessian. Calls are counted on the wrapped objective.
    """

    def __init__(self, objective: DifferentiableFunction, shape: tuple[int, ...]) -> None:
        self.objective = objective
        self.shape = tuple(shape)
        self.size = int(np.prod(self.shape, dtype=int))

    def _unflatten(self, x: Array) -> Array:
        return np.asarray(x, dtype=float).reshape(self.shape)

    def value(self, x: Array) -> float:
        return self.objective.value(self._unflatten(x))

    def gradient(self, x: Array) -> Array:
        return np.reshape(self.objective.gradient(self._unflatten(x)), -1)

    def value_and_gradient(self, x: Array) -> tuple[float, Array]:
        f, g = self.objective.value_and_gradient(self._unflatten(x))
        return f, np.reshape(g, -1)

    def hessian(self, x: Array) -> Array:
        return np.reshape(self.objective.hessian(self._unflatten(x)), (self.size, self.size))

    def calls(self) -> tuple[int, int, int]:
        return self.objective.calls()

    def calls_since(self, start: tuple[int, int, int]) -> tuple[int, int, int]:
        return self.objective.calls_since(start)


def as_differentiable(
    objective: "DifferentiableFunction | Problem | Objective",
    autodiff: str = "finite",
) -> DifferentiableFunction:
    """Wrap a callable or :class:`Problem`; pass a wrapper through unchanged."""
    if isinstance(objective, DifferentiableFunction):
        return objective
    if isinstance(objective, Problem):
        return DifferentiableFunction.from_problem(objective, autodiff=autodiff)
    if callable(objective):
        return DifferentiableFunction(objective, autodiff=autodiff)
    raise TypeError(f"Cannot build a differentiable objective from {type(objective).__name__}.")


__all__ = ["AUTODIFF_MODES", "DifferentiableFunction", "ReshapedFunction", "as_differentiable"]
