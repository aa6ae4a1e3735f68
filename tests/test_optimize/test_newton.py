import numpy as np
import pytest

from boxbarrier.optimize import (
    DifferentiableFunction,
    Options,
    Problem,
    backtracking_armijo,
    newton_method,
    wolfe_line_search,
)
from boxbarrier.optimize import newton as newton_module

SHIFT = np.array([1.0, -2.0])


def shifted(x: np.ndarray) -> float:
    return float(np.sum((x - SHIFT) ** 2))


def shifted_problem(**derivatives) -> Problem:
    return Problem(fun=shifted, dim=2, **derivatives)


def test_exact_hessian_reaches_quadratic_minimum_in_one_step():
    A = np.array([[4.0, 1.0], [1.0, 3.0]])

    problem = Problem(
        fun=lambda x: float(0.5 * (x - SHIFT) @ A @ (x - SHIFT)),
        grad=lambda x: A @ (x - SHIFT),
        hess=lambda _: A,
        dim=2,
    )
    res = newton_method(problem, np.array([5.0, 5.0]), options=Options(iterations=5))
    assert res.success
    assert res.nit == 1
    assert res.nhev == 1
    assert np.allclose(res.x, SHIFT, atol=1e-10)


def test_regularized_newton_on_rosenbrock():
    def hess(x):
        return np.array([[1200 * x[0] ** 2 - 400 * x[1] + 2, -400 * x[0]], [-400 * x[0], 200.0]])

    problem = Problem(
        fun=lambda x: float((1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2),
        grad=lambda x: np.array(
            [-2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2), 200 * (x[1] - x[0] ** 2)]
        ),
        hess=hess,
        dim=2,
    )
    res = newton_method(problem, np.array([-1.2, 1.0]), options=Options(iterations=50), lambda_reg=1e-3)
    assert res.success
    assert res.fun < 1e-8


def test_missing_derivatives_use_finite_differences():
    df = DifferentiableFunction(shifted)
    res = newton_method(df, np.array([4.0, 0.5]), options=Options(iterations=20))
    assert np.allclose(res.x, SHIFT, atol=1e-6)
    assert res.nhev == 0
    assert res.njev == 0
    assert res.nfev > 0


@pytest.mark.parametrize("line_search", [backtracking_armijo, wolfe_line_search])
def test_line_search_variants_converge(line_search):
    problem = shifted_problem(grad=lambda x: 2 * (x - SHIFT), hess=lambda _: 2 * np.eye(2))
    res = newton_method(
        problem,
        np.array([-3.0, 3.0]),
        use_line_search=True,
        line_search=line_search,
        options=Options(iterations=10),
    )
    assert res.success
    assert np.allclose(res.x, SHIFT, atol=1e-6)


def test_singular_solves_fall_back_to_regularization(monkeypatch: pytest.MonkeyPatch):
    real_solve = newton_module.np.linalg.solve
    failures = {"left": 5}

    def failing_solve(*args, **kwargs):
        if failures["left"] > 0:
            failures["left"] -= 1
            raise np.linalg.LinAlgError
        return real_solve(*args, **kwargs)

    monkeypatch.setattr(newton_module.np.linalg, "solve", failing_solve)
    problem = shifted_problem(grad=lambda x: 2 * (x - SHIFT), hess=lambda _: 2 * np.eye(2))
    res = newton_method(problem, np.array([3.0, 3.0]), options=Options(iterations=20))
    assert res.success
    assert failures["left"] == 0


def test_store_trace_starts_at_iteration_zero():
    problem = shifted_problem(grad=lambda x: 2 * (x - SHIFT), hess=lambda _: 2 * np.eye(2))
    res = newton_method(problem, np.zeros(2), options=Options(iterations=5, store_trace=True))
    assert [entry.iteration for entry in res.trace][:2] == [0, 1]


def test_zero_iterations_only_checks_start_gradient():
    problem = shifted_problem(grad=lambda x: 2 * (x - SHIFT), hess=lambda _: 2 * np.eye(2))
    res = newton_method(problem, SHIFT.copy(), options=Options(iterations=0))
    assert res.success
    assert res.nit == 0
    assert res.nhev == 0
