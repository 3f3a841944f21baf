import numpy as np
import pytest

from optlib import (
    DimensionMismatchError,
    FiniteDifferenceProblem,
    FunctionProblem,
    NumericalError,
    QuadraticProblem,
    Rosenbrock,
    RosenbrockWithDerivatives,
    ensure_differentiable,
)
from optlib.utils import (
    approx_grad,
    approx_hessian,
    approx_hessian_from_grad,
    as_vector,
    check_finite,
    cholesky_with_shift,
    solve_cholesky,
)


def test_approx_grad_matches_analytic():
    problem = RosenbrockWithDerivatives()
    x = np.array([-1.2, 1.0])
    assert np.allclose(approx_grad(problem.value, x), problem.gradient(x), rtol=1e-6)


def test_approx_hessians_match_analytic():
    problem = RosenbrockWithDerivatives(dim=3)
    x = np.array([0.3, -0.5, 1.1])
    expected = problem.hessian(x)
    assert np.allclose(approx_hessian(problem.value, x), expected, atol=1e-3)
    from_grad = approx_hessian_from_grad(problem.gradient, x)
    assert np.allclose(from_grad, expected, atol=1e-5)
    assert np.array_equal(from_grad, from_grad.T)


def test_finite_difference_eps_must_be_positive():
    with pytest.raises(ValueError):
        approx_grad(lambda x: 0.0, np.zeros(2), eps=0.0)
    with pytest.raises(ValueError):
        FiniteDifferenceProblem(Rosenbrock(), eps=-1.0)


def test_capability_detection():
    assert not Rosenbrock().has_gradient()
    assert not Rosenbrock().has_hessian()
    assert RosenbrockWithDerivatives().has_gradient()
    assert RosenbrockWithDerivatives().has_hessian()
    bare = FunctionProblem(fun=lambda x: float(x @ x))
    assert not bare.has_gradient()
    with pytest.raises(NotImplementedError):
        bare.gradient(np.zeros(2))
    assert FunctionProblem(fun=lambda x: 0.0, grad=lambda x: x).has_gradient()


def test_finite_difference_problem_prefers_analytic_pieces():
    calls = []

    def grad(x: np.ndarray) -> np.ndarray:
        calls.append(x)
        return 2 * x

    problem = FiniteDifferenceProblem(FunctionProblem(fun=lambda x: float(x @ x), grad=grad))
    x = np.array([1.0, 2.0])
    assert np.array_equal(problem.gradient(x), 2 * x)
    assert len(calls) == 1
    assert np.allclose(problem.hessian(x), 2 * np.eye(2), atol=1e-6)
    assert problem.has_gradient() and problem.has_hessian()


def test_finite_difference_problem_on_value_only_problem():
    base = Rosenbrock()
    problem = FiniteDifferenceProblem(base)
    exact = RosenbrockWithDerivatives()
    x = np.array([0.5, 0.5])
    assert problem.value(x) == base.value(x)
    assert np.allclose(problem.gradient(x), exact.gradient(x), rtol=1e-6)
    assert np.allclose(problem.hessian(x), exact.hessian(x), atol=1e-3)
    assert problem.dimension() == 2


def test_ensure_differentiable():
    full = RosenbrockWithDerivatives()
    assert ensure_differentiable(full, need_hessian=True) is full
    gradient_only = FunctionProblem(fun=lambda x: 0.0, grad=lambda x: x)
    assert ensure_differentiable(gradient_only) is gradient_only
    assert isinstance(ensure_differentiable(gradient_only, need_hessian=True), FiniteDifferenceProblem)
    assert isinstance(ensure_differentiable(Rosenbrock()), FiniteDifferenceProblem)


def test_check_dimension():
    problem = Rosenbrock(dim=3)
    assert problem.check_dimension([1, 2, 3]).dtype == float
    with pytest.raises(DimensionMismatchError):
        problem.check_dimension(np.zeros(2))
    # dynamic dimension accepts any vector
    assert FunctionProblem(fun=lambda x: 0.0).check_dimension(np.zeros(7)).shape == (7,)
    with pytest.raises(DimensionMismatchError):
        as_vector(np.zeros((2, 2)))


def test_default_convergence_uses_gradient_norm():
    problem = Rosenbrock()
    x = np.zeros(2)
    assert problem.converged(x, x, np.array([1e-7, 0.0]), 1e-6)
    assert not problem.converged(x, x, np.array([1e-3, 0.0]), 1e-6)


def test_quadratic_problem(rng):
    problem = QuadraticProblem.random(5, rng, condition=100.0)
    assert np.all(np.linalg.eigvalsh(problem.A) > 0)
    assert np.allclose(problem.A, problem.A.T)
    eigvals = np.linalg.eigvalsh(problem.A)
    assert eigvals.min() == pytest.approx(1.0)
    assert eigvals.max() == pytest.approx(100.0)
    x_star = problem.solution()
    assert np.allclose(problem.gradient(x_star), 0.0, atol=1e-10)
    with pytest.raises(ValueError):
        QuadraticProblem(np.eye(2), np.ones(3))


def test_rosenbrock_minimum():
    assert Rosenbrock(dim=4).value(np.ones(4)) == 0.0
    assert np.array_equal(RosenbrockWithDerivatives(dim=4).gradient(np.ones(4)), np.zeros(4))
    with pytest.raises(ValueError):
        Rosenbrock(dim=1)


def test_cholesky_with_shift_on_indefinite_matrix():
    matrix = np.array([[1.0, 0.0], [0.0, -2.0]])
    factor, tau = cholesky_with_shift(matrix)
    assert tau == pytest.approx(2.001)
    assert np.allclose(factor @ factor.T, matrix + tau * np.eye(2))
    rhs = np.array([1.0, 1.0])
    assert np.allclose((matrix + tau * np.eye(2)) @ solve_cholesky(factor, rhs), rhs)


def test_cholesky_with_shift_leaves_pd_matrix_alone():
    matrix = np.array([[4.0, 1.0], [1.0, 3.0]])
    factor, tau = cholesky_with_shift(matrix)
    assert tau == 0.0
    assert np.allclose(factor, np.linalg.cholesky(matrix))


def test_cholesky_with_shift_gives_up():
    with pytest.raises(np.linalg.LinAlgError):
        cholesky_with_shift(np.array([[1.0, 2.0], [2.0, 1.0]]), max_attempts=1)


def test_check_finite():
    check_finite(np.ones(3), "vector")
    with pytest.raises(NumericalError):
        check_finite(np.array([1.0, np.inf]), "vector")
    with pytest.raises(ArithmeticError):
        check_finite(np.nan, "value")
