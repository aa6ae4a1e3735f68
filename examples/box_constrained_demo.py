"""
Example: Box-Constrained Minimization with boxbarrier

This example walks through the log-barrier solver: a projection-style
problem with active bounds, the Rosenbrock function in a box that excludes
its unconstrained minimum, a comparison of inner solvers, and an objective
differentiated by torch.
"""

import logging

import numpy as np
import torch

from boxbarrier import Fminbox, Options, configure_logging, fminbox


def example_clipped_target():
    """Example: Nearest point of a box to a target outside it."""
    print("=" * 60)
    print("Example 1: Nearest Point in a Box")
    print("=" * 60)

    # Minimize ||x - target||^2 subject to 0 <= x <= 1
    target = np.array([0.8, -0.2, 1.2])

    def obj(x: np.ndarray) -> float:
        return float(0.5 * np.sum((x - target) ** 2))

    def grad(x: np.ndarray) -> np.ndarray:
        return x - target

    result = fminbox(obj, 0.0, 1.0, np.full(3, 0.5), grad=grad)
    print(f"Converged: {result.success}")
    print(f"Solution: x = {result.x}")
    print(f"Objective: {result.fun:.6e}")
    print(f"Outer iterations: {result.nit}, inner iterations: {result.inner_nit}")
    print(f"Expected (clipped target): {np.clip(target, 0.0, 1.0)}")
    print()


def example_rosenbrock_in_box():
    """Example: Rosenbrock restricted to a box that cuts off (1, 1)."""
    print("=" * 60)
    print("Example 2: Rosenbrock in [-2, 0.5] x [-2, 2]")
    print("=" * 60)

    def rosen(x: np.ndarray) -> float:
        return float((1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2)

    def rosen_grad(x: np.ndarray) -> np.ndarray:
        return np.array(
            [
                -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
                200 * (x[1] - x[0] ** 2),
            ]
        )

    lower = np.array([-2.0, -2.0])
    upper = np.array([0.5, 2.0])
    result = fminbox(rosen, lower, upper, np.array([-1.2, 1.0]), grad=rosen_grad)
    print(f"Converged: {result.success}")
    print(f"Solution: x = {result.x}")
    print(f"Objective: {result.fun:.6e}")
    print(f"Function / gradient evaluations: {result.nfev} / {result.njev}")
    print()


def example_inner_solvers():
    """Example: Same problem, different inner solvers."""
    print("=" * 60)
    print("Example 3: Comparing Inner Solvers")
    print("=" * 60)

    weights = np.array([1.0, 10.0, 100.0])

    def obj(x: np.ndarray) -> float:
        return float(np.sum(weights * (x + 1.0) ** 2))

    def grad(x: np.ndarray) -> np.ndarray:
        return 2 * weights * (x + 1.0)

    options = Options(outer_iterations=20)
    for name in ("gradient_descent", "conjugate_gradient", "lbfgs", "bfgs"):
        solver = Fminbox(name)
        result = solver.minimize(obj, 0.0, np.inf, np.ones(3), options=options)
        print(
            f"{solver.summary:<32} x = {np.array2string(result.x, precision=8)}"
            f"  outer = {result.nit:2d}  inner = {result.inner_nit:4d}"
        )
    print()


def example_torch_objective():
    """Example: Objective written against torch tensors."""
    print("=" * 60)
    print("Example 4: Automatic Differentiation with torch")
    print("=" * 60)

    def log_sum_exp(x: torch.Tensor) -> torch.Tensor:
        return torch.logsumexp(torch.stack([x[0] + x[1], 2 * x[0] - x[1], -x[0]]), dim=0)

    configure_logging(level=logging.WARNING)
    result = fminbox(
        log_sum_exp, [-1.0, -1.0], [1.0, 1.0], np.array([0.5, -0.5]), autodiff="torch"
    )
    print(f"Converged: {result.success}")
    print(f"Solution: x = {result.x}")
    print(f"Objective: {result.fun:.6f}")
    print()


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("boxbarrier - Box-Constrained Minimization Examples")
    print("=" * 60 + "\n")

    example_clipped_target()
    example_rosenbrock_in_box()
    example_inner_solvers()
    example_torch_objective()

    print("=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)
