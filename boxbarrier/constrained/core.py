"""
Box and barrier-weight containers plus the errors raised by the box solver.

Bounds follow the usual convention: ``lower[i] = -np.inf`` or
``upper[i] = np.inf`` leaves that side of coordinate ``i`` unbounded.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


class OutOfBoundsError(ValueError):
    """An initial point violates the box.

    ``index`` is an integer for vector start points and an index tuple for
    array-shaped ones.
    """

    def __init__(self, index, value: float, lower: float, upper: float) -> None:
        self.index = index
        self.value = value
        self.lower = lower
        self.upper = upper
        where = ", ".join(map(str, index)) if isinstance(index, tuple) else index
        super().__init__(f"Initial x[{where}]={value} is outside of [{lower}, {upper}]")


class UnsupportedMethodError(ValueError):
    """The requested inner method cannot drive the barrier subproblems."""

    def __init__(self, method: str, reason: str) -> None:
        self.method = method
        super().__init__(f"{method} is not supported as the Fminbox optimizer: {reason}")


@dataclass(frozen=True)
class Box:
    """
    Elementwise bounds ``lower <= x <= upper``.

    Scalars are broadcast against ``shape`` when built through
    :meth:`from_bounds`. Each coordinate needs a nonempty interior for the
    barrier to be finite anywhere, so ``lower[i] < upper[i]`` is enforced.
    This is stricter than ``lower <= upper``: a fixed coordinate with
    ``lower[i] == upper[i]`` is rejected and should be removed from the
    problem by the caller.
    """

    lower: np.ndarray
    upper: np.ndarray

    def __post_init__(self) -> None:
        lower = np.asarray(self.lower, dtype=float).reshape(-1)
        upper = np.asarray(self.upper, dtype=float).reshape(-1)
        if lower.shape != upper.shape:
            raise ValueError(
                f"lower and upper must have the same shape, got {lower.shape} and {upper.shape}"
            )
        if np.any(np.isnan(lower)) or np.any(np.isnan(upper)):
            raise ValueError("Bounds must not contain NaN.")
        bad = np.flatnonzero(lower >= upper)
        if bad.size:
            i = int(bad[0])
            raise ValueError(
                f"Box has an empty interior in coordinate {i}: [{lower[i]}, {upper[i]}]"
            )
        object.__setattr__(self, "lower", lower)
        object.__setattr__(self, "upper", upper)

    @classmethod
    def from_bounds(cls, lower, upper, shape: tuple[int, ...]) -> "Box":
        return cls(
            np.broadcast_to(np.asarray(lower, dtype=float), shape),
            np.broadcast_to(np.asarray(upper, dtype=float), shape),
        )

    @property
    def size(self) -> int:
        return self.lower.size

    def contains(self, x: np.ndarray, strict: bool = True) -> bool:
        x = np.asarray(x, dtype=float)
        if strict:
            return bool(np.all(self.lower < x) and np.all(x < self.upper))
        return bool(np.all(self.lower <= x) and np.all(x <= self.upper))

    def distance(self, x: np.ndarray) -> float:
        """Smallest distance from ``x`` to any finite face of the box."""
        x = np.asarray(x, dtype=float)
        return float(min(np.min(x - self.lower), np.min(self.upper - x)))


class BarrierWeight:
    """
    Mutable cell holding the barrier weight ``mu``.

    One instance is shared by handle between the combined objective and the
    preconditioner, so both always see the current weight. Only the outer
    loop calls :meth:`decay`, and only between inner solves.
    """

    __slots__ = ("value",)

    def __init__(self, value: float) -> None:
        self.value = float(value)

    def decay(self, factor: float) -> float:
        self.value *= factor
        return self.value

    def __float__(self) -> float:
        return self.value

    def __repr__(self) -> str:
        return f"BarrierWeight({self.value!r})"


__all__ = ["BarrierWeight", "Box", "OutOfBoundsError", "UnsupportedMethodError"]
