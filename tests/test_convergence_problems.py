import numpy as np
import pytest

from optlib import (
    Himmelblau,
    QuadraticProblem,
    Rosenbrock,
    RosenbrockWithDerivatives,
    Status,
    create_solver,
    lbfgs,
    newton_method,
    nonlinear_cg,
)
from optlib.line_search import BacktrackingCubic, Bisection, MoreThuente


@pytest.fixture
def quadratic(rng) -> QuadraticProblem:
    return QuadraticProblem.random(16, rng)


@pytest.mark.parametrize("name, max_iters", [("lbfgs", 1000), ("cg", 1000), ("newton", 1)])
def test_solvers_minimize_quadratic(rng, quadratic, name, max_iters):
    x = rng.uniform(-1, 1, size=16)
    solver = create_solver(name, max_iters=max_iters)
    status = solver.minimize(quadratic, x)
    assert status is Status.CONVERGED
    assert np.all(np.isfinite(x))
    assert np.linalg.norm(quadratic.A @ x - quadratic.b) < 1e-4


@pytest.mark.parametrize("name, max_iters", [("cg", 1000), ("newton", 100)])
def test_solvers_reach_rosenbrock_minimum_with_finite_differences(rng, name, max_iters):
    x = rng.uniform(-1, 1, size=2)
    status = create_solver(name, max_iters=max_iters).minimize(Rosenbrock(), x)
    assert status is Status.CONVERGED
    assert np.linalg.norm(x - np.ones(2)) < 1e-4


def test_lbfgs_makes_progress_on_rosenbrock(rng):
    x0 = rng.uniform(-1, 1, size=2)
    res = lbfgs(Rosenbrock(), x0)
    assert np.all(np.isfinite(res.x))
    assert res.fun < Rosenbrock().value(x0)


@pytest.mark.parametrize(
    "solve, line_search",
    [(newton_method, BacktrackingCubic()), (lbfgs, Bisection()), (lbfgs, MoreThuente())],
    ids=["newton-cubic", "lbfgs-bisection", "lbfgs-more_thuente"],
)
def test_solvers_with_alternative_line_searches(solve, line_search):
    res = solve(RosenbrockWithDerivatives(), np.array([-1.2, 1.0]), line_search=line_search)
    assert res.success
    assert np.allclose(res.x, np.ones(2), atol=1e-4)


def test_higher_dimensional_rosenbrock():
    x0 = np.array([0.8, 0.6, 0.9, 1.2])
    res = lbfgs(RosenbrockWithDerivatives(dim=4), x0, m=5, max_iters=400)
    assert res.success
    assert np.allclose(res.x, np.ones(4), atol=1e-4)


@pytest.mark.parametrize("solve", [newton_method, nonlinear_cg, lbfgs], ids=lambda f: f.__name__)
def test_himmelblau_reaches_a_minimum(solve):
    res = solve(Himmelblau(), np.array([2.0, 2.0]))
    assert res.success
    assert res.fun < 1e-10
    minima = np.array(
        [[3.0, 2.0], [-2.805118, 3.131312], [-3.779310, -3.283186], [3.584428, -1.848126]]
    )
    assert np.min(np.linalg.norm(minima - res.x, axis=1)) < 1e-4


def test_objective_never_increases(quadratic):
    values = []
    for solve in (newton_method, nonlinear_cg, lbfgs):
        values.clear()
        solve(quadratic, np.zeros(16), callback=lambda x, fx, grad: values.append(fx))
        assert all(b < a for a, b in zip(values, values[1:]))
