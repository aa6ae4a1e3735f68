"""Registry of inner solvers and their preconditioning capability.

:class:`boxbarrier.constrained.Fminbox` resolves its inner method here and
decides from :attr:`Method.preconditioning` whether the solver receives the
barrier preconditioner and step limiter, runs unmodified, or is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict

from .conjugate_gradient import conjugate_gradient
from .gradient import gradient_descent
from .newton import newton_method
from .quasi_newton import bfgs, lbfgs


class Preconditioning(Enum):
    """How a solver interacts with an external diagonal preconditioner."""

    SUPPORTED = "supported"
    PASSTHROUGH = "passthrough"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class Method:
    """
    An inner solver together with its capability tag.

    Args:
        name: Display name used in summaries and error messages.
        solve: Callable ``solve(objective, x0, options, **kwargs)``. Solvers
            tagged ``SUPPORTED`` must also accept ``precond`` and
            ``step_limit`` keyword arguments.
        preconditioning: Capability tag.
    """

    name: str
    solve: Callable
    preconditioning: Preconditioning

    @property
    def supports_preconditioning(self) -> bool:
        return self.preconditioning is Preconditioning.SUPPORTED


METHODS: Dict[str, Method] = {
    "gradient_descent": Method("Gradient Descent", gradient_descent, Preconditioning.SUPPORTED),
    "conjugate_gradient": Method("Conjugate Gradient", conjugate_gradient, Preconditioning.SUPPORTED),
    "lbfgs": Method("L-BFGS", lbfgs, Preconditioning.SUPPORTED),
    "bfgs": Method("BFGS", bfgs, Preconditioning.PASSTHROUGH),
    "newton": Method("Newton's Method", newton_method, Preconditioning.UNSUPPORTED),
}


def get_method(name: str) -> Method:
    """
    Look up a registered solver by name (case-insensitive, ``-`` or ``_``).

    Raises:
        KeyError: If no solver is registered under ``name``.
    """
    key = name.lower().replace("-", "_")
    try:
        return METHODS[key]
    except KeyError:
        raise KeyError(
            f"Unknown method '{name}'. Supported names: {sorted(METHODS)}"
        ) from None


__all__ = ["METHODS", "Method", "Preconditioning", "get_method"]
