import numpy as np
import pytest

from optlib import (
    LBFGS,
    DimensionMismatchError,
    FunctionProblem,
    Newton,
    NonLinearCG,
    QuadraticProblem,
    RosenbrockWithDerivatives,
    SolverConfig,
    Status,
    lbfgs,
    newton_method,
    nonlinear_cg,
)

SOLVER_FUNCTIONS = [newton_method, nonlinear_cg, lbfgs]


@pytest.mark.parametrize("solve", SOLVER_FUNCTIONS, ids=lambda f: f.__name__)
def test_dimension_mismatch_fails_before_evaluation(solve):
    calls = []

    def fun(x: np.ndarray) -> float:
        calls.append(x.copy())
        return float(x @ x)

    problem = FunctionProblem(fun=fun, grad=lambda x: 2 * x, dim=3)
    with pytest.raises(DimensionMismatchError):
        solve(problem, np.zeros(2))
    with pytest.raises(DimensionMismatchError):
        solve(problem, np.zeros((3, 1)))
    assert calls == []


def test_dimension_mismatch_is_a_value_error():
    problem = QuadraticProblem(np.eye(2), np.ones(2))
    with pytest.raises(ValueError):
        Newton().minimize(problem, np.zeros(3))


def test_wrong_gradient_shape_raises():
    problem = FunctionProblem(fun=lambda x: float(x @ x), grad=lambda x: np.zeros(x.size + 1))
    with pytest.raises(DimensionMismatchError):
        lbfgs(problem, np.ones(2))


@pytest.mark.parametrize("solve", SOLVER_FUNCTIONS, ids=lambda f: f.__name__)
def test_nan_objective_at_start_is_numerical_error(solve):
    problem = FunctionProblem(fun=lambda x: np.nan, grad=lambda x: np.zeros_like(x))
    res = solve(problem, np.ones(2))
    assert res.status is Status.NUMERICAL_ERROR
    assert res.nit == 0
    assert not res.success


def test_nan_gradient_is_numerical_error():
    problem = FunctionProblem(fun=lambda x: float(x @ x), grad=lambda x: np.full_like(x, np.nan))
    res = nonlinear_cg(problem, np.ones(3))
    assert res.status is Status.NUMERICAL_ERROR
    assert np.array_equal(res.x, np.ones(3))


def test_non_finite_start_is_numerical_error():
    res = lbfgs(QuadraticProblem(np.eye(2), np.ones(2)), np.array([np.inf, 0.0]))
    assert res.status is Status.NUMERICAL_ERROR
    assert res.nfev == 0


@pytest.mark.parametrize("solve", SOLVER_FUNCTIONS, ids=lambda f: f.__name__)
def test_nan_at_trial_step_is_numerical_error(solve):
    # undefined left of 0.5, where the minimizer would be
    problem = FunctionProblem(
        fun=lambda x: float(x @ x) if x[0] > 0.5 else np.nan,
        grad=lambda x: 2 * x,
        hess=lambda x: 2 * np.eye(x.size),
    )
    res = solve(problem, np.array([2.0]), max_iters=50)
    assert res.status is Status.NUMERICAL_ERROR
    assert "not finite" in res.message
    assert np.all(np.isfinite(res.x))
    assert res.x[0] > 0.5
    assert res.fun == pytest.approx(problem.value(res.x))


@pytest.mark.parametrize("solve", SOLVER_FUNCTIONS, ids=lambda f: f.__name__)
def test_iteration_cap_reports_max_iter(solve):
    res = solve(RosenbrockWithDerivatives(), np.array([-1.2, 1.0]), max_iters=2)
    assert res.status is Status.MAX_ITER
    assert res.nit == 2
    assert res.message == "Maximum iterations reached."


def test_zero_iterations_only_checks_start():
    problem = QuadraticProblem(np.eye(2), np.ones(2))
    res = lbfgs(problem, np.zeros(2), max_iters=0)
    assert res.status is Status.MAX_ITER
    assert res.nit == 0
    assert np.array_equal(res.x, np.zeros(2))


def test_start_at_minimizer_converges_immediately():
    problem = QuadraticProblem(np.eye(2), np.ones(2))
    res = nonlinear_cg(problem, np.ones(2))
    assert res.success
    assert res.nit == 0


def test_callback_receives_every_iterate():
    seen = []
    res = lbfgs(
        RosenbrockWithDerivatives(),
        np.array([-1.2, 1.0]),
        callback=lambda x, fx, grad: seen.append((x, fx, np.linalg.norm(grad))),
    )
    assert len(seen) == res.nit
    assert seen[-1][1] == res.fun
    assert np.array_equal(seen[-1][0], res.x)


def test_custom_convergence_test_is_used():
    class StopAfterFirstMove(QuadraticProblem):
        def converged(self, x_prev, x, grad, tol):
            return not np.array_equal(x, x_prev)

    problem = StopAfterFirstMove(np.diag([1.0, 100.0]), np.ones(2))
    res = nonlinear_cg(problem, np.array([5.0, 5.0]))
    assert res.success
    assert res.nit == 1


def test_evaluation_counts(rng):
    problem = QuadraticProblem.random(5, rng)
    res = newton_method(problem, np.zeros(5))
    assert res.nfev >= res.nit + 1
    assert res.njev >= res.nit + 1
    assert res.nhev == res.nit


@pytest.mark.parametrize("solver_cls", [Newton, NonLinearCG, LBFGS])
def test_minimize_mutates_float_array_in_place(solver_cls):
    problem = QuadraticProblem(np.diag([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 3.0]))
    x = np.zeros(3)
    view = x
    status = solver_cls().minimize(problem, x)
    assert status is Status.CONVERGED
    assert view is x
    assert np.allclose(x, np.ones(3), atol=1e-5)


@pytest.mark.parametrize("x", [[0.0, 0.0], np.zeros(2, dtype=int)])
def test_minimize_requires_float_array(x):
    with pytest.raises(TypeError):
        LBFGS().minimize(QuadraticProblem(np.eye(2), np.ones(2)), x)


@pytest.mark.parametrize(
    "kwargs", [{"max_iters": -1}, {"gradient_tolerance": 0.0}, {"gradient_tolerance": -1e-6}]
)
def test_solver_config_validation(kwargs):
    with pytest.raises(ValueError):
        SolverConfig(**kwargs)
    with pytest.raises(ValueError):
        LBFGS(**kwargs)
