import numpy as np

from boxbarrier.optimize import DiagonalPreconditioner, Options, Problem, gradient_descent

A = np.array([[4.0, 1.0], [1.0, 3.0]])
CENTER = np.array([1.0, 2.0])


def fun(x: np.ndarray) -> float:
    d = x - CENTER
    return float(0.5 * d @ (A @ d))


def grad(x: np.ndarray) -> np.ndarray:
    return A @ (x - CENTER)


def test_gradient_descent_quadratic_converges():
    problem = Problem(fun=fun, grad=grad, dim=2)
    res = gradient_descent(problem, np.array([3.0, -1.0]))
    assert res.success
    assert res.g_converged
    assert np.allclose(res.x, CENTER, atol=1e-6)
    assert res.grad_norm < 1e-6
    assert res.njev > 0


def test_gradient_descent_diagonal_preconditioner_solves_in_one_step():
    scale = np.array([100.0, 1.0])

    def f(x: np.ndarray) -> float:
        return float(0.5 * np.sum(scale * x**2))

    def g(x: np.ndarray) -> np.ndarray:
        return scale * x

    updates = []
    precond = DiagonalPreconditioner(
        1.0 / scale, prepare=lambda P, x: updates.append(np.array(x, copy=True))
    )
    res = gradient_descent(Problem(fun=f, grad=g), np.array([1.0, -1.0]), precond=precond)
    assert res.success
    assert res.nit == 1
    assert np.allclose(res.x, 0.0)
    assert len(updates) == 1


def test_gradient_descent_step_limit_caps_steps():
    options = Options(iterations=5, store_trace=True)
    res = gradient_descent(
        Problem(fun=fun, grad=grad), np.array([3.0, -1.0]), options=options, step_limit=lambda x, d: 0.05
    )
    steps = [entry.metadata["step"] for entry in res.trace if "step" in entry.metadata]
    assert steps
    assert max(steps) <= 0.05


def test_gradient_descent_starting_at_minimum():
    res = gradient_descent(Problem(fun=fun, grad=grad), CENTER.copy())
    assert res.success
    assert res.nit == 0


def test_gradient_descent_iteration_limit():
    res = gradient_descent(Problem(fun=fun, grad=grad), np.array([30.0, -10.0]), options=Options(iterations=2))
    assert not res.success
    assert res.nit == 2
    assert res.iteration_converged


def test_gradient_descent_deterministic():
    start = np.array([0.5, -0.25])

    def f(x: np.ndarray) -> float:
        return float(np.sum(x**2))

    def g(x: np.ndarray) -> np.ndarray:
        return 2 * x

    options = Options(iterations=50, store_trace=True, extended_trace=True)
    res1 = gradient_descent(Problem(fun=f, grad=g), start, options=options)
    res2 = gradient_descent(Problem(fun=f, grad=g), start, options=options)
    assert np.allclose(res1.x, res2.x)
    assert np.allclose(res1.trace[-1].metadata["x"], res2.trace[-1].metadata["x"])
