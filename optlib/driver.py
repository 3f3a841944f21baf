"""Iteration loop shared by all descent solvers.

Each solver only supplies a :class:`DirectionStrategy`; :func:`descend`
takes care of evaluation, convergence checks, line-search invocation,
fallbacks and bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .core import (
    Array,
    Callback,
    DimensionMismatchError,
    NumericalError,
    OptimizeResult,
    SolverConfig,
    Status,
)
from .line_search import LineSearch, LineSearchResult
from .logging import get_logger
from .problem import Problem, ensure_differentiable
from .utils import is_finite

logger = get_logger(__name__)


class DirectionStrategy:
    """Solver-specific part of the descent loop.

    ``compute`` returns a search direction at the current iterate, ``update``
    receives ``s = x_new - x`` and ``y = g_new - g`` after every accepted step,
    ``reset`` drops any accumulated state (the next direction is steepest
    descent). ``compute`` may raise :class:`NumericalError`.
    """

    name = "descent"
    needs_hessian = False

    def initialize(self, problem: Problem, x: Array, fx: float, grad: Array) -> None:
        pass

    def compute(self, problem: Problem, x: Array, fx: float, grad: Array) -> Array:
        raise NotImplementedError

    def initial_step(self, grad: Array, direction: Array) -> Optional[float]:
        """Initial trial step for the line search; None keeps its default."""
        return None

    def update(self, s: Array, y: Array, grad: Array, alpha: float, direction: Array) -> None:
        pass

    def reset(self) -> None:
        pass


class _CountingProblem(Problem):
    """Counts evaluations and checks the shapes returned by ``problem``."""

    def __init__(self, problem: Problem, dim: int) -> None:
        self.problem = problem
        self.dim = dim
        self.nfev = 0
        self.njev = 0
        self.nhev = 0

    def dimension(self) -> Optional[int]:
        return self.dim

    def value(self, x: Array) -> float:
        self.nfev += 1
        return float(self.problem.value(x))

    def gradient(self, x: Array) -> Array:
        self.njev += 1
        grad = np.asarray(self.problem.gradient(x), dtype=float)
        if grad.shape != (self.dim,):
            raise DimensionMismatchError(
                f"gradient has shape {grad.shape}, expected ({self.dim},)"
            )
        return grad

    def hessian(self, x: Array) -> Array:
        self.nhev += 1
        hess = np.asarray(self.problem.hessian(x), dtype=float)
        if hess.shape != (self.dim, self.dim):
            raise DimensionMismatchError(
                f"Hessian has shape {hess.shape}, expected ({self.dim}, {self.dim})"
            )
        return hess

    def has_gradient(self) -> bool:
        return self.problem.has_gradient()

    def has_hessian(self) -> bool:
        return self.problem.has_hessian()

    def converged(self, x_prev: Array, x: Array, grad: Array, tol: float) -> bool:
        return self.problem.converged(x_prev, x, grad, tol)


def descend(
    problem: Problem,
    x0: Array,
    strategy: DirectionStrategy,
    line_search: LineSearch,
    config: Optional[SolverConfig] = None,
    callback: Optional[Callback] = None,
) -> OptimizeResult:
    """Run the descent loop from ``x0``.

    The returned iterate is always the last finite point reached. Hitting the
    iteration cap is reported as ``Status.MAX_ITER``, not raised.

    Raises:
        DimensionMismatchError: ``x0`` (or a returned gradient/Hessian) does
            not match the problem dimension.
    """
    config = config or SolverConfig()
    x = problem.check_dimension(x0).copy()
    counter = _CountingProblem(problem, x.size)
    work = ensure_differentiable(counter, need_hessian=strategy.needs_hessian)
    hist: list[Array] = [x.copy()] if config.history else []
    tol = config.gradient_tolerance

    def finish(status: Status, message: str, nit: int, fx: float, grad: Array) -> OptimizeResult:
        grad_norm = float(np.linalg.norm(grad))
        logger.info(
            "%s finished after %d iterations: %s (f=%.6e, |g|=%.3e)",
            strategy.name, nit, message, fx, grad_norm,
        )
        return OptimizeResult(
            x=x,
            fun=float(fx),
            grad_norm=grad_norm,
            nit=nit,
            status=status,
            message=message,
            nfev=counter.nfev,
            njev=counter.njev,
            nhev=counter.nhev,
            history=hist,
        )

    if not is_finite(x):
        return finish(Status.NUMERICAL_ERROR, "Initial point is not finite.", 0, np.nan, np.full_like(x, np.nan))

    fx = work.value(x)
    grad = work.gradient(x)
    if not (is_finite(fx) and is_finite(grad)):
        return finish(Status.NUMERICAL_ERROR, "Objective or gradient not finite at the initial point.", 0, fx, grad)

    strategy.initialize(work, x, fx, grad)
    if work.converged(x, x, grad, tol):
        return finish(Status.CONVERGED, "Gradient tolerance satisfied.", 0, fx, grad)

    nit = 0
    while nit < config.max_iters:
        try:
            direction = strategy.compute(work, x, fx, grad)
        except NumericalError as exc:
            return finish(Status.NUMERICAL_ERROR, str(exc), nit, fx, grad)
        if not is_finite(direction):
            return finish(Status.NUMERICAL_ERROR, "Search direction is not finite.", nit, fx, grad)

        if not float(np.dot(grad, direction)) < 0:
            logger.warning("%s: not a descent direction at iteration %d, using -grad", strategy.name, nit)
            strategy.reset()
            direction = -grad

        try:
            step = line_search(work, x, fx, grad, direction, strategy.initial_step(grad, direction))
            if not step.success and not np.array_equal(direction, -grad):
                logger.warning(
                    "%s: line search failed at iteration %d (%s), retrying along -grad",
                    strategy.name, nit, step.message,
                )
                strategy.reset()
                direction = -grad
                step = line_search(work, x, fx, grad, direction, strategy.initial_step(grad, direction))
        except NumericalError as exc:
            return finish(Status.NUMERICAL_ERROR, str(exc), nit, fx, grad)
        if not step.success:
            return finish(Status.LINE_SEARCH_FAILED, step.message, nit, fx, grad)

        nit += 1
        if not (is_finite(step.x) and is_finite(step.fun) and is_finite(step.grad)):
            return finish(Status.NUMERICAL_ERROR, "Non-finite value after the accepted step.", nit, fx, grad)

        x_prev, grad_prev = x, grad
        x, fx, grad = step.x, step.fun, step.grad
        strategy.update(x - x_prev, grad - grad_prev, grad, step.alpha, direction)
        _log_iteration(strategy, nit, fx, grad, step)
        if config.history:
            hist.append(x.copy())
        if callback is not None:
            callback(x.copy(), fx, grad.copy())
        if work.converged(x_prev, x, grad, tol):
            return finish(Status.CONVERGED, "Gradient tolerance satisfied.", nit, fx, grad)

    return finish(Status.MAX_ITER, "Maximum iterations reached.", nit, fx, grad)


def _log_iteration(
    strategy: DirectionStrategy, nit: int, fx: float, grad: Array, step: LineSearchResult
) -> None:
    logger.debug(
        "%s iter %d: f=%.6e |g|=%.3e alpha=%.3e",
        strategy.name, nit, fx, float(np.linalg.norm(grad)), step.alpha,
    )


@dataclass
class Solver:
    """Front-end shared by the solver classes.

    ``minimize(problem, x)`` overwrites ``x`` with the best point found and
    returns the exit status; the full :class:`OptimizeResult` of the last call
    is kept in ``result``.
    """

    max_iters: int = 1000
    gradient_tolerance: float = 1e-6
    line_search: Optional[LineSearch] = None
    history: bool = False
    result: Optional[OptimizeResult] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.config  # validates the shared settings

    @property
    def config(self) -> SolverConfig:
        return SolverConfig(
            max_iters=self.max_iters,
            gradient_tolerance=self.gradient_tolerance,
            history=self.history,
        )

    def make_strategy(self) -> DirectionStrategy:
        raise NotImplementedError

    def default_line_search(self) -> LineSearch:
        raise NotImplementedError

    def run(
        self, problem: Problem, x0: Array, callback: Optional[Callback] = None
    ) -> OptimizeResult:
        """Minimize from ``x0`` without touching it; returns the full result."""
        line_search = self.line_search if self.line_search is not None else self.default_line_search()
        self.result = descend(problem, x0, self.make_strategy(), line_search, self.config, callback)
        return self.result

    def minimize(self, problem: Problem, x: Array) -> Status:
        """Minimize ``problem`` starting from ``x``, updating ``x`` in place."""
        if not isinstance(x, np.ndarray) or not np.issubdtype(x.dtype, np.floating):
            raise TypeError("x must be a floating-point numpy array; it is updated in place")
        result = self.run(problem, x)
        x[...] = result.x
        return result.status


__all__ = ["DirectionStrategy", "Solver", "descend"]
