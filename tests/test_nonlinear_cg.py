import numpy as np
import pytest

from optlib import (
    ConjugateGradientDirection,
    NonLinearCG,
    QuadraticProblem,
    RosenbrockWithDerivatives,
    SolverConfig,
    descend,
    nonlinear_cg,
)
from optlib.line_search import MoreThuente


@pytest.mark.parametrize("beta_rule", ["PR+", "FR", "HS+"])
def test_cg_minimizes_quadratic(rng, beta_rule):
    problem = QuadraticProblem.random(16, rng)
    res = nonlinear_cg(problem, rng.uniform(-1, 1, size=16), beta_rule=beta_rule)
    assert res.success
    assert np.linalg.norm(problem.A @ res.x - problem.b) < 1e-4


def test_cg_rosenbrock_with_derivatives():
    res = nonlinear_cg(RosenbrockWithDerivatives(), np.array([-1.2, 1.0]))
    assert res.success
    assert np.allclose(res.x, np.ones(2), atol=1e-5)


def test_cg_restarts_never_increase_objective(rng):
    problem = QuadraticProblem.random(8, rng)
    values = []
    strategy = ConjugateGradientDirection(restart_interval=1)
    res = descend(
        problem,
        rng.uniform(-1, 1, size=8),
        strategy,
        MoreThuente(c2=0.1),
        SolverConfig(max_iters=20),
        callback=lambda x, fx, grad: values.append(fx),
    )
    assert res.nit >= 2
    assert strategy.restarts >= res.nit - 1
    assert all(b < a for a, b in zip(values, values[1:]))


def test_cg_periodic_restart_defaults_to_dimension(rng):
    problem = QuadraticProblem.random(4, rng)
    strategy = ConjugateGradientDirection()
    descend(problem, np.zeros(4), strategy, MoreThuente(c2=0.1), SolverConfig(max_iters=1))
    assert strategy._interval == 4


def test_cg_history_records_iterates(rng):
    problem = QuadraticProblem.random(4, rng)
    res = nonlinear_cg(problem, np.ones(4), history=True)
    assert len(res.history) == res.nit + 1
    assert np.array_equal(res.history[-1], res.x)


def test_cg_solver_class_minimize(rng):
    problem = QuadraticProblem.random(16, rng)
    x = rng.uniform(-1, 1, size=16)
    solver = NonLinearCG(max_iters=1000, beta_rule="FR")
    solver.minimize(problem, x)
    assert solver.result.success
    assert np.linalg.norm(problem.A @ x - problem.b) < 1e-4


def test_cg_rejects_unknown_beta_rule():
    with pytest.raises(ValueError):
        ConjugateGradientDirection(beta_rule="DY")
    with pytest.raises(ValueError):
        NonLinearCG(beta_rule="DY")
    with pytest.raises(ValueError):
        ConjugateGradientDirection(restart_interval=0)
