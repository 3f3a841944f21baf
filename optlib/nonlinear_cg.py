"""Nonlinear conjugate gradient methods."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .core import Array, Callback, OptimizeResult, SolverConfig
from .driver import DirectionStrategy, Solver, descend
from .line_search import LineSearch, MoreThuente
from .logging import get_logger
from .problem import Problem

logger = get_logger(__name__)

BETA_RULES = ("PR+", "FR", "HS+")


class ConjugateGradientDirection(DirectionStrategy):
    """
    Conjugate directions ``d = -g + beta * d_prev``.

    Args:
        beta_rule: ``"PR+"`` (Polak-Ribiere clamped at zero), ``"FR"``
            (Fletcher-Reeves) or ``"HS+"`` (Hestenes-Stiefel clamped at zero).
        restart_interval: Restart with ``-g`` after this many iterations;
            defaults to the problem dimension.

    The direction is also reset to ``-g`` whenever ``beta <= 0`` or the
    conjugate direction fails to descend. ``restarts`` counts every reset.
    """

    name = "nonlinear_cg"

    def __init__(self, beta_rule: str = "PR+", restart_interval: Optional[int] = None) -> None:
        if beta_rule not in BETA_RULES:
            raise ValueError(f"Unknown beta rule '{beta_rule}'. Available: {', '.join(BETA_RULES)}")
        if restart_interval is not None and restart_interval < 1:
            raise ValueError("restart_interval must be at least 1")
        self.beta_rule = beta_rule
        self.restart_interval = restart_interval
        self.restarts = 0
        self._interval = restart_interval or 1
        self._clear()

    def _clear(self) -> None:
        self._prev_dir: Optional[Array] = None
        self._prev_grad: Optional[Array] = None
        self._prev_alpha: Optional[float] = None
        self._prev_slope = 0.0
        self._since_restart = 0

    def initialize(self, problem: Problem, x: Array, fx: float, grad: Array) -> None:
        self._interval = self.restart_interval or x.size
        self._clear()

    def _restart(self, grad: Array, reason: str) -> Array:
        self.restarts += 1
        self._since_restart = 0
        logger.debug("CG restart (%s)", reason)
        return -grad

    def _beta(self, grad: Array) -> float:
        y = grad - self._prev_grad
        if self.beta_rule == "FR":
            return float(grad @ grad) / float(self._prev_grad @ self._prev_grad)
        if self.beta_rule == "PR+":
            return max(0.0, float(grad @ y) / float(self._prev_grad @ self._prev_grad))
        denom = float(self._prev_dir @ y)
        if denom == 0.0:
            return 0.0
        return max(0.0, float(grad @ y) / denom)

    def compute(self, problem: Problem, x: Array, fx: float, grad: Array) -> Array:
        if self._prev_dir is None:
            return -grad
        if self._since_restart >= self._interval:
            return self._restart(grad, "periodic")
        beta = self._beta(grad)
        if not beta > 0:
            return self._restart(grad, "beta <= 0")
        direction = -grad + beta * self._prev_dir
        if not float(grad @ direction) < 0:
            return self._restart(grad, "not a descent direction")
        return direction

    def initial_step(self, grad: Array, direction: Array) -> Optional[float]:
        if self._prev_alpha is None:
            return min(1.0, 1.0 / float(np.linalg.norm(grad)))
        guess = self._prev_alpha * self._prev_slope / float(grad @ direction)
        if not (guess > 0 and np.isfinite(guess)):
            return 1.0
        return min(1.0, guess)

    def update(self, s: Array, y: Array, grad: Array, alpha: float, direction: Array) -> None:
        prev_grad = grad - y
        self._prev_dir = direction
        self._prev_grad = prev_grad
        self._prev_alpha = alpha
        self._prev_slope = float(prev_grad @ direction)
        self._since_restart += 1

    def reset(self) -> None:
        self.restarts += 1
        self._clear()


@dataclass
class NonLinearCG(Solver):
    """Nonlinear conjugate gradient solver."""

    beta_rule: str = "PR+"
    restart_interval: Optional[int] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        self.make_strategy()

    def make_strategy(self) -> ConjugateGradientDirection:
        return ConjugateGradientDirection(self.beta_rule, self.restart_interval)

    def default_line_search(self) -> LineSearch:
        return MoreThuente(c2=0.1)


def nonlinear_cg(
    problem: Problem,
    x0: Array,
    max_iters: int = 1000,
    tol: float = 1e-6,
    beta_rule: str = "PR+",
    restart_interval: Optional[int] = None,
    line_search: Optional[LineSearch] = None,
    history: bool = False,
    callback: Optional[Callback] = None,
) -> OptimizeResult:
    """Minimize with nonlinear conjugate gradients.

    The default line search enforces the strong Wolfe conditions with
    ``c2 = 0.1``, which keeps the conjugate directions descending.
    """
    config = SolverConfig(max_iters=max_iters, gradient_tolerance=tol, history=history)
    return descend(
        problem,
        x0,
        ConjugateGradientDirection(beta_rule, restart_interval),
        line_search if line_search is not None else MoreThuente(c2=0.1),
        config,
        callback,
    )


__all__ = ["BETA_RULES", "ConjugateGradientDirection", "NonLinearCG", "nonlinear_cg"]
