"""Core interfaces shared across the unconstrained and box-constrained solvers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from dataclasses import replace as dataclass_replace
from typing import Any, Callable, Dict, List, Optional

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]
Hessian = Callable[[Array], Array]

RTOL = 1e-8
ATOL = 1e-10


@dataclass(frozen=True)
class Problem:
    """Container describing an optimization problem."""

    fun: Objective
    grad: Optional[Gradient] = None
    hess: Optional[Hessian] = None
    dim: Optional[int] = None


@dataclass(frozen=True)
class Options:
    """
    Iteration limits, tolerances and trace flags.

    Inner fields configure a single unconstrained solve; ``outer_*`` fields
    configure the barrier loop of :class:`boxbarrier.constrained.Fminbox`.
    A tolerance of ``None`` disables the corresponding convergence criterion.

    Args:
        iterations: Maximum iterations of an inner solve.
        x_tol: Inner bound on ``max|x - x_prev|``.
        f_tol: Inner bound on ``|f - f_prev|``.
        g_tol: Inner bound on ``max|g|``.
        allow_f_increases: Keep iterating an inner solve after the objective
            increased.
        outer_iterations: Maximum number of barrier (outer) iterations.
        outer_x_tol: Outer bound on the change of the minimizer.
        outer_f_tol: Outer bound on the change of the barrier objective.
        outer_g_tol: Outer bound on the combined gradient residual.
        allow_outer_f_increases: Keep iterating when an outer iteration
            ends with a higher barrier objective than it started with.
        show_trace: Emit one INFO log line per iteration.
        store_trace: Keep a :class:`TraceEntry` per iteration on the result.
        extended_trace: Also record ``x`` and ``g`` in each trace entry.
    """

    iterations: int = 1000
    x_tol: Optional[float] = None
    f_tol: Optional[float] = None
    g_tol: Optional[float] = RTOL
    allow_f_increases: bool = False
    outer_iterations: int = 1000
    outer_x_tol: Optional[float] = 1e-8
    outer_f_tol: Optional[float] = 1e-8
    outer_g_tol: Optional[float] = 1e-6
    allow_outer_f_increases: bool = True
    show_trace: bool = False
    store_trace: bool = False
    extended_trace: bool = False

    def __post_init__(self) -> None:
        if self.iterations < 0:
            raise ValueError("iterations must be non-negative.")
        if self.outer_iterations < 0:
            raise ValueError("outer_iterations must be non-negative.")
        for name in ("x_tol", "f_tol", "g_tol", "outer_x_tol", "outer_f_tol", "outer_g_tol"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}.")

    def replace(self, **changes: Any) -> "Options":
        """Return a copy with ``changes`` applied."""
        return dataclass_replace(self, **changes)


@dataclass
class TraceEntry:
    """State of one solver iteration."""

    iteration: int
    value: float
    g_norm: float
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConvergenceState:
    """Outcome of :func:`assess_convergence`."""

    x_converged: bool
    f_converged: bool
    g_converged: bool
    converged: bool
    f_increased: bool
    x_abschange: float
    f_abschange: float
    g_residual: float


@dataclass
class OptimizeResult:
    """Standard result object returned by all optimizers in this package.

    ``nfev``/``njev``/``nhev`` count objective, gradient and Hessian calls.
    For box-constrained runs ``nit`` is the number of outer iterations and
    ``inner_nit`` the total over all inner solves. ``iteration_converged``
    is set when the (last) solve stopped on its iteration limit.
    """

    x: Array
    fun: float
    nit: int
    success: bool
    message: str
    grad_norm: float
    nfev: int
    njev: int
    nhev: int
    method: str = ""
    initial_x: Optional[Array] = None
    inner_nit: int = 0
    iteration_converged: bool = False
    x_converged: bool = False
    x_tol: Optional[float] = None
    x_abschange: float = float("nan")
    f_converged: bool = False
    f_tol: Optional[float] = None
    f_abschange: float = float("nan")
    g_converged: bool = False
    g_tol: Optional[float] = None
    f_increased: bool = False
    trace: List[TraceEntry] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.success

    def merge(self, other: "OptimizeResult") -> "OptimizeResult":
        """Fold a later run into this one.

        Traces are concatenated in call order and call counters summed;
        the minimizer, value and convergence flags of ``other`` supersede
        the ones held here.
        """
        self.trace.extend(other.trace)
        self.nfev += other.nfev
        self.njev += other.njev
        self.nhev += other.nhev
        self.inner_nit += other.inner_nit
        self.x = other.x
        self.fun = other.fun
        self.grad_norm = other.grad_norm
        self.success = other.success
        self.message = other.message
        self.iteration_converged = other.iteration_converged
        self.x_converged = other.x_converged
        self.x_abschange = other.x_abschange
        self.f_converged = other.f_converged
        self.f_abschange = other.f_abschange
        self.g_converged = other.g_converged
        self.f_increased = other.f_increased
        return self


def assess_convergence(
    x: Array,
    x_prev: Array,
    f: float,
    f_prev: float,
    g: Array,
    x_tol: Optional[float],
    f_tol: Optional[float],
    g_tol: Optional[float],
) -> ConvergenceState:
    """Check the x-change, f-change and gradient criteria.

    A criterion whose tolerance is ``None`` is disabled; ``converged`` is
    set as soon as any enabled criterion passes.
    """
    x_abschange = _sup_norm(np.asarray(x) - np.asarray(x_prev))
    f_abschange = abs(float(f) - float(f_prev))
    g_residual = _sup_norm(g)

    x_converged = x_tol is not None and x_abschange <= x_tol
    f_converged = f_tol is not None and f_abschange <= f_tol
    g_converged = g_tol is not None and g_residual <= max(g_tol, ATOL)

    converged = x_converged or f_converged or g_converged
    return ConvergenceState(
        x_converged=x_converged,
        f_converged=f_converged,
        g_converged=g_converged,
        converged=converged,
        f_increased=float(f) > float(f_prev),
        x_abschange=x_abschange,
        f_abschange=f_abschange,
        g_residual=g_residual,
    )


def check_convergence(grad_norm: float, tol: Optional[float]) -> bool:
    """Return True if gradient norm satisfies tolerance."""
    return tol is not None and grad_norm <= max(tol, ATOL)


def build_result(
    x: Array,
    fx: float,
    grad: Array,
    nit: int,
    message: str,
    calls: tuple[int, int, int],
    options: Options,
    trace: List[TraceEntry],
    state: Optional[ConvergenceState] = None,
    converged: bool = False,
    method: str = "",
    initial_x: Optional[Array] = None,
) -> OptimizeResult:
    """Assemble the result of one unconstrained solve."""
    if state is not None:
        converged = converged or state.converged
    nfev, njev, nhev = calls
    return OptimizeResult(
        x=x,
        fun=float(fx),
        nit=nit,
        success=converged,
        message=message,
        grad_norm=float(np.linalg.norm(grad)),
        nfev=nfev,
        njev=njev,
        nhev=nhev,
        method=method,
        initial_x=initial_x,
        inner_nit=nit,
        iteration_converged=not converged and nit >= options.iterations,
        x_converged=state.x_converged if state is not None else False,
        x_tol=options.x_tol,
        x_abschange=state.x_abschange if state is not None else float("nan"),
        f_converged=state.f_converged if state is not None else False,
        f_tol=options.f_tol,
        f_abschange=state.f_abschange if state is not None else float("nan"),
        g_converged=(
            state.g_converged if state is not None else check_convergence(_sup_norm(grad), options.g_tol)
        ),
        g_tol=options.g_tol,
        f_increased=state.f_increased if state is not None else False,
        trace=trace,
    )


def _sup_norm(v: Array) -> float:
    return float(np.max(np.abs(v))) if np.size(v) else 0.0


def record_trace(
    trace: List[TraceEntry],
    options: Options,
    logger: logging.Logger,
    iteration: int,
    value: float,
    grad: Array,
    x: Array,
    **metadata: Any,
) -> None:
    """Append and/or log one iteration according to the trace flags."""
    if not (options.store_trace or options.show_trace):
        return
    g_norm = _sup_norm(grad)
    if options.extended_trace:
        metadata["x"] = np.array(x, copy=True)
        metadata["g"] = np.array(grad, copy=True)
    entry = TraceEntry(iteration=iteration, value=float(value), g_norm=g_norm, metadata=metadata)
    if options.store_trace:
        trace.append(entry)
    if options.show_trace:
        logger.info("%6d   %14e   %14e", iteration, entry.value, g_norm)


__all__ = [
    "ATOL",
    "Array",
    "ConvergenceState",
    "Gradient",
    "Hessian",
    "Objective",
    "OptimizeResult",
    "Options",
    "Problem",
    "RTOL",
    "TraceEntry",
    "assess_convergence",
    "build_result",
    "check_convergence",
    "record_trace",
]
