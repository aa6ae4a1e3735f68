"""Box-constrained minimization with a logarithmic barrier.

Example
-------
>>> import numpy as np
>>> from boxbarrier.constrained import Fminbox
>>> def f(x):
...     return float(np.sum((x - 0.5) ** 2))
>>> res = Fminbox("lbfgs").minimize(f, 0.0, 1.0, np.array([0.1, 0.9]))
>>> bool(np.allclose(res.x, 0.5, atol=1e-6))
True
"""

from .barrier import (
    CombinedObjective,
    barrier_box,
    barrier_magnitude,
    box_preconditioner,
    initial_mu,
    precondprep_box,
)
from .box import max_step, repair_initial_point
from .core import BarrierWeight, Box, OutOfBoundsError, UnsupportedMethodError
from .fminbox import Fminbox, fminbox

__all__ = [
    "BarrierWeight",
    "Box",
    "CombinedObjective",
    "Fminbox",
    "OutOfBoundsError",
    "UnsupportedMethodError",
    "barrier_box",
    "barrier_magnitude",
    "box_preconditioner",
    "fminbox",
    "initial_mu",
    "max_step",
    "precondprep_box",
    "repair_initial_point",
]
