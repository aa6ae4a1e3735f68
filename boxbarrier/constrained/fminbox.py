"""
Box-constrained minimization by a sequence of barrier subproblems.

Each outer iteration minimizes ``f(x) + mu * barrier(x)`` with an
unconstrained inner solver started from the previous minimizer, then
shrinks ``mu`` by ``mufactor``. Solvers that accept a preconditioner get
a diagonal approximation of the barrier curvature and a step limiter that
keeps line searches inside the box.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Optional, Union

import numpy as np

from ..logging import get_logger
from ..optimize.core import Options, OptimizeResult, assess_convergence, check_convergence
from ..optimize.methods import Method, Preconditioning, get_method
from ..optimize.objective import DifferentiableFunction, ReshapedFunction, as_differentiable
from .barrier import CombinedObjective, barrier_magnitude, box_preconditioner, initial_mu, precondprep_box
from .box import max_step, repair_initial_point
from .core import BarrierWeight, Box, UnsupportedMethodError

_logger = get_logger(__name__)


class Fminbox:
    """
    Log-barrier (interior-point) wrapper around an unconstrained solver.

    Args:
        method: Inner solver, either a registered name (see
            :data:`boxbarrier.optimize.METHODS`) or a :class:`Method`.
        mu0: Starting barrier weight. ``None`` derives it from the gradients
            at the start point.
        mufactor: Factor applied to the barrier weight after every outer
            iteration.
        mu0factor: Ratio of barrier to objective gradient used when
            ``mu0`` is ``None``.
        precondprep: Conditioning hook ``precondprep(P, x, box, mu)``.
        logger: Receives warnings and, with ``show_trace``, trace lines.
        **method_kwargs: Forwarded to the inner solver on every call.

    Raises:
        UnsupportedMethodError: If the inner method is unknown or cannot
            be combined with the barrier preconditioner.
    """

    def __init__(
        self,
        method: Union[str, Method] = "lbfgs",
        mu0: Optional[float] = None,
        mufactor: float = 0.001,
        mu0factor: float = 0.001,
        precondprep: Callable = precondprep_box,
        logger: Optional[logging.Logger] = None,
        **method_kwargs: Any,
    ) -> None:
        self.method = _resolve_method(method)
        if mu0 is not None and mu0 < 0:
            raise ValueError(f"mu0 must be non-negative, got {mu0}.")
        if mufactor <= 0:
            raise ValueError(f"mufactor must be positive, got {mufactor}.")
        if mu0factor <= 0:
            raise ValueError(f"mu0factor must be positive, got {mu0factor}.")
        self.mu0 = mu0
        self.mufactor = float(mufactor)
        self.mu0factor = float(mu0factor)
        self.precondprep = precondprep
        self.logger = logger or _logger
        self.method_kwargs = method_kwargs

    @property
    def summary(self) -> str:
        return f"Fminbox with {self.method.name}"

    def __repr__(self) -> str:
        return f"Fminbox(method={self.method.name!r}, mu0={self.mu0!r}, mufactor={self.mufactor!r})"

    def _inner_solver(self, box: Box, mu: BarrierWeight) -> Callable[..., OptimizeResult]:
        if self.method.supports_preconditioning:
            return partial(
                self.method.solve,
                precond=box_preconditioner(box, mu, self.precondprep),
                step_limit=partial(max_step, box=box),
                **self.method_kwargs,
            )
        return partial(self.method.solve, **self.method_kwargs)

    def minimize(
        self,
        objective: Union[DifferentiableFunction, Callable],
        lower,
        upper,
        x0: np.ndarray,
        options: Optional[Options] = None,
        autodiff: str = "finite",
    ) -> OptimizeResult:
        """
        Minimize ``objective`` over the box ``[lower, upper]`` starting at ``x0``.

        ``lower``/``upper`` may be scalars or arrays shaped like ``x0``, with
        ``±inf`` for unbounded sides. ``x0`` may have any shape: the
        objective always receives points of that shape and the returned
        ``x`` has it too. The returned ``nit`` counts outer iterations, the
        call counters sum all inner solves and ``fun`` is the objective
        (without barrier) at ``x``.

        Raises:
            OutOfBoundsError: If ``x0`` lies outside the box.
        """
        options = options or Options()
        logger = self.logger
        df = as_differentiable(objective, autodiff=autodiff)
        initial_x = np.array(x0, dtype=float, copy=True)
        box = Box.from_bounds(lower, upper, initial_x.shape)
        if initial_x.ndim != 1:
            df = ReshapedFunction(df, initial_x.shape)

        x, repaired = repair_initial_point(initial_x, box)
        if repaired:
            logger.warning(
                "Initial position cannot be on the boundary of the box. "
                "Moving elements to the interior. Element indices affected: %s",
                repaired,
            )

        gfunc = df.gradient(x)
        mu = BarrierWeight(initial_mu(gfunc, barrier_magnitude(x, box), self.mu0factor, self.mu0))
        combined = CombinedObjective(df, box, mu)
        inner_objective = combined.as_differentiable()
        solve = self._inner_solver(box, mu)

        if options.show_trace:
            logger.info("%s: initial mu = %g", self.summary, mu.value)

        results: Optional[OptimizeResult] = None
        state = None
        converged = False
        f_increased = False
        iteration = 0
        xold = x.copy()
        g = combined.refresh(x)

        while not converged and iteration < options.outer_iterations:
            iteration += 1
            xold = x.copy()
            fval0 = combined.value(x)
            if options.show_trace:
                logger.info(
                    "Fminbox iteration %d: calling inner optimizer with mu = %g "
                    "(values include barrier contribution)",
                    iteration,
                    mu.value,
                )
            inner = solve(inner_objective, x, options)
            results = inner if results is None else results.merge(inner)
            x = np.array(inner.x, dtype=float, copy=True)
            if options.show_trace:
                logger.info(
                    "Exiting inner optimizer with x = %s; distance to box: %g. Decreasing mu.",
                    x,
                    box.distance(x),
                )

            mu.decay(self.mufactor)
            g = combined.refresh(x)
            state = assess_convergence(
                x,
                xold,
                inner.fun,
                fval0,
                g,
                options.outer_x_tol,
                options.outer_f_tol,
                options.outer_g_tol,
            )
            converged = state.converged
            if state.f_increased and not options.allow_outer_f_increases:
                logger.warning("f(x) increased: stopping optimization")
                f_increased = True
                converged = False
                x = xold
                g = combined.refresh(x)
                break

        x = x.reshape(initial_x.shape)
        return self._finalize(df, initial_x, x, g, iteration, converged, f_increased, state, results, options)

    def _finalize(
        self,
        df: DifferentiableFunction,
        initial_x: np.ndarray,
        x: np.ndarray,
        g: np.ndarray,
        iteration: int,
        converged: bool,
        f_increased: bool,
        state,
        results: Optional[OptimizeResult],
        options: Options,
    ) -> OptimizeResult:
        if f_increased:
            message = "Objective increased across an outer iteration; stopped early."
        elif converged:
            message = "Outer convergence criteria satisfied."
        else:
            message = "Maximum outer iterations reached."
        g_residual = float(np.max(np.abs(g))) if g.size else 0.0
        return OptimizeResult(
            x=x,
            fun=df.value(x),
            nit=iteration,
            success=converged,
            message=message,
            grad_norm=float(np.linalg.norm(g)),
            nfev=results.nfev if results is not None else 0,
            njev=results.njev if results is not None else 0,
            nhev=results.nhev if results is not None else 0,
            method=self.summary,
            initial_x=initial_x,
            inner_nit=results.inner_nit if results is not None else 0,
            iteration_converged=results.iteration_converged if results is not None else False,
            x_converged=state.x_converged if state is not None else False,
            x_tol=options.outer_x_tol,
            x_abschange=state.x_abschange if state is not None else float("nan"),
            f_converged=state.f_converged if state is not None else False,
            f_tol=options.outer_f_tol,
            f_abschange=state.f_abschange if state is not None else float("nan"),
            g_converged=check_convergence(g_residual, options.outer_g_tol),
            g_tol=options.outer_g_tol,
            f_increased=f_increased,
            trace=results.trace if results is not None else [],
        )


def _resolve_method(method: Union[str, Method]) -> Method:
    if isinstance(method, str):
        try:
            method = get_method(method)
        except KeyError as exc:
            raise UnsupportedMethodError(method, "unknown method name") from exc
    if method.preconditioning is Preconditioning.UNSUPPORTED:
        raise UnsupportedMethodError(
            method.name, "second-order methods cannot use the barrier preconditioner"
        )
    return method


def fminbox(
    fun: Callable,
    lower,
    upper,
    x0: np.ndarray,
    grad: Optional[Callable] = None,
    method: Union[str, Method] = "lbfgs",
    options: Optional[Options] = None,
    autodiff: str = "finite",
    **fminbox_kwargs: Any,
) -> OptimizeResult:
    """
    Minimize ``fun`` subject to ``lower <= x <= upper``.

    Example
    -------
    >>> import numpy as np
    >>> from boxbarrier import fminbox
    >>> res = fminbox(lambda x: float(np.sum((x - 2.0) ** 2)), 0.0, 1.0, np.array([0.5, 0.5]),
    ...               grad=lambda x: 2 * (x - 2.0))
    >>> bool(np.all(res.x < 1.0))
    True
    """
    objective = DifferentiableFunction(fun, grad=grad, autodiff=autodiff)
    solver = Fminbox(method, **fminbox_kwargs)
    return solver.minimize(objective, lower, upper, x0, options=options)


__all__ = ["Fminbox", "fminbox"]
