"""The problem contract consumed by every solver.

A problem exposes the objective value, its gradient and optionally its
Hessian at a point. Evaluations must be pure functions of ``x``: solvers
re-evaluate freely and rely on getting the same answer back.

Problems without analytic derivatives are wrapped in
:class:`FiniteDifferenceProblem`, which supplies central-difference
approximations on top of any value-only problem.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .core import Array, Gradient, Hessian, Objective, check_convergence
from .utils import FD_EPS, approx_grad, approx_hessian, approx_hessian_from_grad, as_vector


class Problem(ABC):
    """Objective over a real vector space.

    Subclasses must implement :meth:`value`. Overriding :meth:`gradient` or
    :meth:`hessian` is what makes :meth:`has_gradient` / :meth:`has_hessian`
    report True.
    """

    def dimension(self) -> Optional[int]:
        """Size of the search space, or ``None`` if it is taken from ``x``."""
        return None

    @abstractmethod
    def value(self, x: Array) -> float:
        """Objective value at ``x``."""

    def gradient(self, x: Array) -> Array:
        raise NotImplementedError(f"{type(self).__name__} has no analytic gradient")

    def hessian(self, x: Array) -> Array:
        raise NotImplementedError(f"{type(self).__name__} has no analytic Hessian")

    def has_gradient(self) -> bool:
        return type(self).gradient is not Problem.gradient

    def has_hessian(self) -> bool:
        return type(self).hessian is not Problem.hessian

    def converged(self, x_prev: Array, x: Array, grad: Array, tol: float) -> bool:
        """Convergence test run by the solvers after every accepted step.

        The default only looks at the gradient norm; problems may override it
        to add their own criteria.
        """
        return check_convergence(float(np.linalg.norm(grad)), tol)

    def check_dimension(self, x: Array) -> Array:
        """Return ``x`` as a float vector or raise ``DimensionMismatchError``."""
        return as_vector(x, self.dimension())


@dataclass(frozen=True)
class FunctionProblem(Problem):
    """Problem assembled from plain callables."""

    fun: Objective
    grad: Optional[Gradient] = None
    hess: Optional[Hessian] = None
    dim: Optional[int] = None

    def dimension(self) -> Optional[int]:
        return self.dim

    def value(self, x: Array) -> float:
        return float(self.fun(x))

    def gradient(self, x: Array) -> Array:
        if self.grad is None:
            return super().gradient(x)
        return np.asarray(self.grad(x), dtype=float)

    def hessian(self, x: Array) -> Array:
        if self.hess is None:
            return super().hessian(x)
        return np.asarray(self.hess(x), dtype=float)

    def has_gradient(self) -> bool:
        return self.grad is not None

    def has_hessian(self) -> bool:
        return self.hess is not None


class FiniteDifferenceProblem(Problem):
    """Fill in missing derivatives of ``problem`` with finite differences.

    Analytic pieces of the wrapped problem are always preferred. A missing
    gradient is approximated by central differences of the value; a missing
    Hessian by central differences of the gradient (analytic if available)
    or, for value-only problems, by second differences of the value.
    """

    def __init__(self, problem: Problem, eps: float = FD_EPS, hess_eps: float = 1e-4) -> None:
        if eps <= 0 or hess_eps <= 0:
            raise ValueError("finite-difference steps must be positive")
        self.problem = problem
        self.eps = eps
        self.hess_eps = hess_eps

    def dimension(self) -> Optional[int]:
        return self.problem.dimension()

    def value(self, x: Array) -> float:
        return self.problem.value(x)

    def gradient(self, x: Array) -> Array:
        if self.problem.has_gradient():
            return self.problem.gradient(x)
        return approx_grad(self.problem.value, x, eps=self.eps)

    def hessian(self, x: Array) -> Array:
        if self.problem.has_hessian():
            return self.problem.hessian(x)
        if self.problem.has_gradient():
            return approx_hessian_from_grad(self.problem.gradient, x, eps=self.eps)
        return approx_hessian(self.problem.value, x, eps=self.hess_eps)

    def has_gradient(self) -> bool:
        return True

    def has_hessian(self) -> bool:
        return True

    def converged(self, x_prev: Array, x: Array, grad: Array, tol: float) -> bool:
        return self.problem.converged(x_prev, x, grad, tol)


def ensure_differentiable(problem: Problem, need_hessian: bool = False) -> Problem:
    """Wrap ``problem`` in finite differences if it lacks required derivatives."""
    if problem.has_gradient() and (problem.has_hessian() or not need_hessian):
        return problem
    return FiniteDifferenceProblem(problem)


__all__ = [
    "FiniteDifferenceProblem",
    "FunctionProblem",
    "Problem",
    "ensure_differentiable",
]
