"""boxbarrier - box-constrained minimization by logarithmic barriers."""

__version__ = "0.1.0"

# Box-constrained solver
from .constrained import (
    BarrierWeight,
    Box,
    CombinedObjective,
    Fminbox,
    OutOfBoundsError,
    UnsupportedMethodError,
    barrier_box,
    fminbox,
    initial_mu,
    max_step,
    precondprep_box,
    repair_initial_point,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level

# Unconstrained solvers
from .optimize import (
    METHODS,
    DiagonalPreconditioner,
    DifferentiableFunction,
    Method,
    OptimizeResult,
    Options,
    Preconditioning,
    Problem,
    bfgs,
    conjugate_gradient,
    get_method,
    gradient_descent,
    lbfgs,
    newton_method,
)

__all__ = [
    "BarrierWeight",
    "Box",
    "CombinedObjective",
    "DiagonalPreconditioner",
    "DifferentiableFunction",
    "Fminbox",
    "METHODS",
    "Method",
    "OptimizeResult",
    "Options",
    "OutOfBoundsError",
    "Preconditioning",
    "Problem",
    "UnsupportedMethodError",
    "__version__",
    "barrier_box",
    "bfgs",
    "configure_logging",
    "conjugate_gradient",
    "fminbox",
    "get_logger",
    "get_method",
    "gradient_descent",
    "initial_mu",
    "lbfgs",
    "max_step",
    "newton_method",
    "precondprep_box",
    "repair_initial_point",
    "set_log_level",
]
