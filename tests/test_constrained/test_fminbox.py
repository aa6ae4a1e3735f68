import logging
import math

import numpy as np
import pytest
import torch

from boxbarrier.constrained import (
    Box,
    Fminbox,
    OutOfBoundsError,
    UnsupportedMethodError,
    fminbox,
    precondprep_box,
)
from boxbarrier.optimize import (
    DifferentiableFunction,
    Method,
    OptimizeResult,
    Options,
    Preconditioning,
)

INF = math.inf


def centred_quadratic(x: np.ndarray) -> float:
    return float(np.sum((x - 0.5) ** 2))


def centred_quadratic_grad(x: np.ndarray) -> np.ndarray:
    return 2 * (x - 0.5)


def shifted(target):
    def fun(x: np.ndarray) -> float:
        return float(np.sum((x - target) ** 2))

    def grad(x: np.ndarray) -> np.ndarray:
        return 2 * (x - target)

    return fun, grad


def rosenbrock(x: np.ndarray) -> float:
    return float((1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2)


def rosenbrock_grad(x: np.ndarray) -> np.ndarray:
    return np.array(
        [
            -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
            200 * (x[1] - x[0] ** 2),
        ]
    )


def step_result(objective, x: np.ndarray) -> OptimizeResult:
    return OptimizeResult(
        x=x,
        fun=objective.value(x),
        nit=1,
        success=True,
        message="stub",
        grad_norm=0.0,
        nfev=1,
        njev=0,
        nhev=0,
        inner_nit=1,
    )


@pytest.mark.parametrize("method", ["lbfgs", "gradient_descent", "conjugate_gradient", "bfgs"])
def test_quadratic_centred_in_unit_box(method):
    x0 = np.array([0.2, 0.9, 0.7])
    res = fminbox(centred_quadratic, 0.0, 1.0, x0, grad=centred_quadratic_grad, method=method)
    assert res.success
    assert np.allclose(res.x, 0.5, atol=1e-5)
    assert np.array_equal(res.initial_x, x0)
    assert res.nit >= 1
    assert res.method.startswith("Fminbox with ")


def test_minimizer_on_upper_face():
    fun, grad = shifted(2.0)
    res = fminbox(fun, 0.0, 1.0, np.array([0.5, 0.5]), grad=grad)
    assert res.success
    assert np.all(res.x < 1.0)
    assert np.allclose(res.x, 1.0, atol=1e-5)
    assert res.fun == pytest.approx(2.0, abs=1e-4)


def test_minimizer_on_lower_face_of_half_bounded_box():
    fun, grad = shifted(-1.0)
    res = fminbox(fun, [0.0, -INF], [INF, INF], np.array([3.0, 4.0]), grad=grad)
    assert res.success
    assert res.x[0] > 0.0
    assert np.allclose(res.x, [0.0, -1.0], atol=1e-5)


def test_iterates_stay_strictly_inside_box():
    fun, grad = shifted(np.array([2.0, -1.0]))
    box = Box(np.zeros(2), np.ones(2))
    options = Options(store_trace=True, extended_trace=True)
    res = fminbox(fun, box.lower, box.upper, np.array([0.5, 0.5]), grad=grad, options=options)
    assert res.trace
    for entry in res.trace:
        assert box.contains(entry.metadata["x"])
    assert box.contains(res.x)


def test_trace_is_concatenated_across_outer_iterations():
    options = Options(store_trace=True)
    res = fminbox(centred_quadratic, 0.0, 1.0, np.array([0.1, 0.3]), grad=centred_quadratic_grad, options=options)
    starts = [entry for entry in res.trace if entry.iteration == 0]
    assert len(starts) == res.nit
    assert res.inner_nit >= res.nit - 1
    assert res.nfev > 0 and res.njev > 0


def test_unbounded_box_uses_zero_barrier_weight():
    weights = []

    def recording_prep(P, x, box, mu):
        weights.append(mu.value)
        precondprep_box(P, x, box, mu)

    res = fminbox(
        rosenbrock,
        -INF,
        INF,
        np.array([-1.2, 1.0]),
        grad=rosenbrock_grad,
        precondprep=recording_prep,
    )
    assert weights
    assert set(weights) == {0.0}
    assert np.allclose(res.x, [1.0, 1.0], atol=1e-5)


def test_barrier_weight_decays_geometrically():
    weights = []

    def recording_prep(P, x, box, mu):
        weights.append(mu.value)
        precondprep_box(P, x, box, mu)

    def halfway_up(objective, x0, options, precond=None, step_limit=None):
        assert step_limit is not None
        precond.update(x0)
        return step_result(objective, x0 + 0.5 * (0.9 - x0))

    method = Method("Halfway", halfway_up, Preconditioning.SUPPORTED)
    options = Options(outer_iterations=4, outer_x_tol=None, outer_f_tol=None, outer_g_tol=None)
    solver = Fminbox(method, mu0=1.0, mufactor=0.5, precondprep=recording_prep)
    res = solver.minimize(centred_quadratic, -1.0, 1.0, np.array([0.0, 0.1]), options=options)
    assert weights == [1.0, 0.5, 0.25, 0.125]
    assert res.nit == 4
    assert not res.success
    assert res.message == "Maximum outer iterations reached."


def test_passthrough_method_gets_no_preconditioner():
    def plain(objective, x0, options):
        return step_result(objective, x0)

    solver = Fminbox(Method("Plain", plain, Preconditioning.PASSTHROUGH))
    res = solver.minimize(centred_quadratic, 0.0, 1.0, np.array([0.3, 0.6]))
    assert res.success
    assert res.x_converged
    assert np.allclose(res.x, [0.3, 0.6])


def test_outer_f_increase_aborts_and_restores_previous_point():
    def uphill(objective, x0, options):
        return step_result(objective, x0 + 0.5 * (1.0 - x0))

    fun, grad = shifted(0.0)
    x0 = np.array([0.1, 0.1])
    solver = Fminbox(Method("Uphill", uphill, Preconditioning.PASSTHROUGH))
    res = solver.minimize(
        DifferentiableFunction(fun, grad=grad), -1.0, 1.0, x0, options=Options(allow_outer_f_increases=False)
    )
    assert res.f_increased
    assert not res.success
    assert res.nit == 1
    assert np.allclose(res.x, x0)
    assert res.fun == pytest.approx(fun(x0))


def test_outer_f_increase_allowed_keeps_iterating():
    def uphill(objective, x0, options):
        return step_result(objective, x0 + 0.5 * (1.0 - x0))

    fun, grad = shifted(0.0)
    solver = Fminbox(Method("Uphill", uphill, Preconditioning.PASSTHROUGH))
    options = Options(outer_iterations=3, outer_x_tol=None, outer_f_tol=None, outer_g_tol=None)
    res = solver.minimize(DifferentiableFunction(fun, grad=grad), -1.0, 1.0, np.array([0.1, 0.1]), options=options)
    assert res.nit == 3
    assert not res.f_increased
    assert np.allclose(res.x, 1.0 - 0.9 * 0.125)


def test_zero_outer_iterations_returns_repaired_start():
    x0 = np.array([0.0, 0.4])
    res = fminbox(
        centred_quadratic, 0.0, 1.0, x0, grad=centred_quadratic_grad, options=Options(outer_iterations=0)
    )
    assert res.nit == 0
    assert not res.success
    assert np.allclose(res.x, [0.01, 0.4])
    assert res.fun == pytest.approx(centred_quadratic(np.array([0.01, 0.4])))
    assert res.trace == []


def test_boundary_start_is_repaired_with_warning(caplog):
    logger = logging.getLogger("tests.fminbox")
    with caplog.at_level(logging.WARNING, logger="tests.fminbox"):
        res = Fminbox(logger=logger).minimize(
            centred_quadratic, 0.0, 1.0, np.array([0.0, 0.5, 1.0]), options=Options(outer_iterations=1)
        )
    assert "Element indices affected: [0, 2]" in caplog.text
    assert np.all((res.x > 0.0) & (res.x < 1.0))


def test_show_trace_logs_outer_iterations(caplog):
    logger = logging.getLogger("tests.fminbox.trace")
    with caplog.at_level(logging.INFO, logger="tests.fminbox.trace"):
        Fminbox(logger=logger).minimize(
            centred_quadratic, 0.0, 1.0, np.array([0.2, 0.2]), options=Options(outer_iterations=2, show_trace=True)
        )
    assert "initial mu" in caplog.text
    assert "Fminbox iteration 1" in caplog.text


def test_start_outside_box_raises():
    with pytest.raises(OutOfBoundsError) as excinfo:
        fminbox(centred_quadratic, 0.0, 1.0, np.array([0.5, 1.5]))
    assert excinfo.value.index == 1
    assert excinfo.value.value == 1.5


@pytest.mark.parametrize("method", ["newton", "nelder_mead"])
def test_unsupported_inner_methods_rejected_at_construction(method):
    with pytest.raises(UnsupportedMethodError):
        Fminbox(method)


def test_invalid_weight_parameters():
    with pytest.raises(ValueError):
        Fminbox(mufactor=0.0)
    with pytest.raises(ValueError):
        Fminbox(mu0factor=-1.0)
    with pytest.raises(ValueError):
        Fminbox(mu0=-1.0)


def test_summary_names_inner_method():
    assert Fminbox("conjugate_gradient").summary == "Fminbox with Conjugate Gradient"
    assert "L-BFGS" in repr(Fminbox())


def test_finite_difference_gradient():
    res = fminbox(centred_quadratic, 0.0, 1.0, np.array([0.9, 0.1]))
    assert np.allclose(res.x, 0.5, atol=1e-5)


def test_torch_autodiff_objective():
    def fun(x: torch.Tensor) -> torch.Tensor:
        return ((x - 0.3) ** 2).sum()

    res = fminbox(fun, 0.0, 1.0, np.array([0.8, 0.6]), autodiff="torch")
    assert res.success
    assert np.allclose(res.x, 0.3, atol=1e-5)


MATRIX_TARGET = np.array([[0.25, 2.0], [0.5, -1.0]])


def matrix_objective(X: np.ndarray) -> float:
    assert X.shape == (2, 2)
    return float(np.sum((X - MATRIX_TARGET) ** 2))


@pytest.mark.parametrize("grad", [lambda X: 2 * (X - MATRIX_TARGET), None])
def test_matrix_shaped_start_point_keeps_its_shape(grad):
    x0 = np.full((2, 2), 0.5)
    res = fminbox(matrix_objective, 0.0, 1.0, x0, grad=grad)
    assert res.x.shape == (2, 2)
    assert res.initial_x.shape == (2, 2)
    assert np.allclose(res.x, [[0.25, 1.0], [0.5, 0.0]], atol=1e-5)
    assert res.fun == pytest.approx(matrix_objective(res.x))


def test_matrix_shaped_start_outside_box_reports_position():
    x0 = np.array([[0.5, 0.5], [1.5, 0.5]])
    with pytest.raises(OutOfBoundsError, match=r"x\[1, 0\]") as excinfo:
        fminbox(matrix_objective, 0.0, 1.0, x0)
    assert excinfo.value.index == (1, 0)


def test_initial_mu_uses_mu0factor_not_mufactor():
    seen = []

    def recording_precondprep(P, x, box, mu):
        seen.append(mu.value)
        precondprep_box(P, x, box, mu)

    x0 = np.array([0.2, 0.2])
    Fminbox(mufactor=0.5, mu0factor=0.01, precondprep=recording_precondprep).minimize(
        DifferentiableFunction(centred_quadratic, grad=centred_quadratic_grad),
        0.0,
        1.0,
        x0,
        options=Options(outer_iterations=1),
    )
    # sum|gfunc| = 1.2 and sum|barrier magnitude| = 2 * (1/0.2 + 1/0.8) = 12.5
    assert seen[0] == pytest.approx(0.01 * 1.2 / 12.5)
