"""Deterministic unconstrained optimization algorithms for boxbarrier.

These solvers double as the inner solvers of the box-constrained barrier
method in :mod:`boxbarrier.constrained`.

Example
-------
>>> import numpy as np
>>> from boxbarrier.optimize import Problem, lbfgs
>>> def rosen(x):
...     return (1 - x[0])**2 + 100 * (x[1] - x[0]**2)**2
>>> def rosen_grad(x):
...     return np.array([
...         -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
...         200 * (x[1] - x[0] ** 2),
...     ])
>>> problem = Problem(fun=rosen, grad=rosen_grad, dim=2)
>>> res = lbfgs(problem, np.array([-1.2, 1.0]))
>>> bool(res.fun < 1e-10)
True
"""

from .conjugate_gradient import conjugate_gradient
from .core import (
    ATOL,
    RTOL,
    ConvergenceState,
    OptimizeResult,
    Options,
    Problem,
    TraceEntry,
    assess_convergence,
    check_convergence,
)
from .gradient import gradient_descent
from .line_search import backtracking_armijo, wolfe_line_search
from .methods import METHODS, Method, Preconditioning, get_method
from .newton import newton_method
from .objective import DifferentiableFunction, ReshapedFunction, as_differentiable
from .precondition import DiagonalPreconditioner
from .quasi_newton import bfgs, lbfgs
from .utils import approx_grad, approx_hessian, safe_solve

__all__ = [
    "ATOL",
    "ConvergenceState",
    "DiagonalPreconditioner",
    "DifferentiableFunction",
    "METHODS",
    "Method",
    "OptimizeResult",
    "Options",
    "Preconditioning",
    "Problem",
    "RTOL",
    "ReshapedFunction",
    "TraceEntry",
    "approx_grad",
    "approx_hessian",
    "as_differentiable",
    "assess_convergence",
    "backtracking_armijo",
    "bfgs",
    "check_convergence",
    "conjugate_gradient",
    "get_method",
    "gradient_descent",
    "lbfgs",
    "newton_method",
    "safe_solve",
    "wolfe_line_search",
]
