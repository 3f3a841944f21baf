"""Newton's method with Hessian regularization and a line search."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .core import Array, Callback, OptimizeResult, SolverConfig
from .driver import DirectionStrategy, Solver, descend
from .line_search import Backtracking, LineSearch
from .logging import get_logger
from .problem import Problem
from .utils import check_finite, cholesky_with_shift, solve_cholesky, symmetrize

logger = get_logger(__name__)


class NewtonDirection(DirectionStrategy):
    """Solve ``H d = -g`` through a (possibly shifted) Cholesky factorization.

    An indefinite Hessian is made positive definite by adding ``tau * I``;
    when no shift works within ``max_regularization_attempts`` the iteration
    uses steepest descent instead.
    """

    name = "newton"
    needs_hessian = True

    def __init__(self, beta: float = 1e-3, growth: float = 10.0, max_regularization_attempts: int = 20) -> None:
        if beta <= 0:
            raise ValueError("beta must be positive")
        if growth <= 1:
            raise ValueError("growth must be greater than 1")
        if max_regularization_attempts < 1:
            raise ValueError("max_regularization_attempts must be at least 1")
        self.beta = beta
        self.growth = growth
        self.max_regularization_attempts = max_regularization_attempts
        self.regularizations = 0
        self.fallbacks = 0
        self.last_shift = 0.0

    def compute(self, problem: Problem, x: Array, fx: float, grad: Array) -> Array:
        hess = problem.hessian(x)
        check_finite(hess, "Hessian")
        try:
            factor, tau = cholesky_with_shift(
                symmetrize(hess), self.beta, self.growth, self.max_regularization_attempts
            )
        except np.linalg.LinAlgError:
            self.fallbacks += 1
            logger.warning("Hessian could not be regularized; taking a steepest-descent step")
            return -grad
        self.last_shift = tau
        if tau > 0:
            self.regularizations += 1
            logger.debug("Hessian shifted by tau=%.3e", tau)
        return solve_cholesky(factor, -grad)


@dataclass
class Newton(Solver):
    """Newton solver; see :class:`NewtonDirection` for the regularization parameters."""

    max_iters: int = 100
    beta: float = 1e-3
    growth: float = 10.0
    max_regularization_attempts: int = 20

    def __post_init__(self) -> None:
        super().__post_init__()
        self.make_strategy()

    def make_strategy(self) -> NewtonDirection:
        return NewtonDirection(self.beta, self.growth, self.max_regularization_attempts)

    def default_line_search(self) -> LineSearch:
        return Backtracking()


def newton_method(
    problem: Problem,
    x0: Array,
    max_iters: int = 100,
    tol: float = 1e-6,
    line_search: Optional[LineSearch] = None,
    beta: float = 1e-3,
    history: bool = False,
    callback: Optional[Callback] = None,
) -> OptimizeResult:
    """Newton's method with Cholesky regularization and a backtracking line search.

    A missing Hessian (or gradient) is approximated by finite differences.
    On an exactly quadratic objective with positive definite Hessian the first
    full step lands on the minimizer.
    """
    config = SolverConfig(max_iters=max_iters, gradient_tolerance=tol, history=history)
    return descend(
        problem,
        x0,
        NewtonDirection(beta=beta),
        line_search if line_search is not None else Backtracking(),
        config,
        callback,
    )


__all__ = ["Newton", "NewtonDirection", "newton_method"]
