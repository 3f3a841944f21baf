"""Bracketing line search with interval halving."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core import Array
from ..problem import Problem
from .base import (
    LineSearch,
    LineSearchResult,
    check_trial,
    check_wolfe_constants,
    descent_slope,
    failed,
    sufficient_decrease,
)


@dataclass(frozen=True)
class Bisection(LineSearch):
    """Weak Wolfe line search by bracketing and bisection.

    ``[lo, hi]`` starts as ``[0, inf)``. A step violating the Armijo condition
    becomes ``hi``; a step that is Armijo-acceptable but too short for the
    curvature condition becomes ``lo``. Until ``hi`` is finite the step is
    doubled, afterwards the bracket is halved.

    With ``wolfe=False`` the first Armijo-acceptable step is returned. When
    ``max_iter`` trials are spent, ``lo`` is returned if it is positive (it
    satisfies the Armijo condition); otherwise the search fails.
    """

    alpha0: float = 1.0
    c1: float = 1e-4
    c2: float = 0.9
    wolfe: bool = True
    max_iter: int = 50
    alpha_min: float = 1e-16
    alpha_max: float = 1e10

    def __post_init__(self) -> None:
        check_wolfe_constants(self.c1, self.c2)
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")

    @property
    def enforces_curvature(self) -> bool:
        return self.wolfe

    def __call__(
        self,
        problem: Problem,
        x: Array,
        fx: float,
        grad: Array,
        direction: Array,
        alpha0: Optional[float] = None,
    ) -> LineSearchResult:
        slope = descent_slope(grad, direction)
        alpha = self._initial_step(alpha0)
        lo, hi = 0.0, math.inf
        best: Optional[tuple[float, Array, float, Array]] = None
        nfev = 0
        njev = 0

        for _ in range(self.max_iter):
            candidate = x + alpha * direction
            f_new = problem.value(candidate)
            nfev += 1
            check_trial(f_new, "objective", alpha)
            if not sufficient_decrease(f_new, fx, alpha, slope, self.c1):
                hi = alpha
            else:
                g_new = problem.gradient(candidate)
                njev += 1
                check_trial(g_new, "gradient", alpha)
                if not self.wolfe:
                    return _accepted(alpha, candidate, f_new, g_new, nfev, njev, "Armijo condition satisfied.")
                if float(np.dot(g_new, direction)) >= self.c2 * slope:
                    return _accepted(alpha, candidate, f_new, g_new, nfev, njev, "Wolfe conditions satisfied.")
                lo = alpha
                best = (alpha, candidate, f_new, g_new)

            alpha = 2.0 * lo if math.isinf(hi) else 0.5 * (lo + hi)
            if alpha < self.alpha_min or alpha > self.alpha_max or hi - lo < self.alpha_min:
                break

        if best is not None:
            return _accepted(*best, nfev, njev, "Bracket exhausted; returning last Armijo step.")
        return failed(x, fx, grad, nfev, njev, f"No acceptable step within {self.max_iter} trials.")


def _accepted(
    alpha: float, x: Array, fun: float, grad: Array, nfev: int, njev: int, message: str
) -> LineSearchResult:
    return LineSearchResult(
        alpha=alpha, x=x, fun=fun, grad=grad, nfev=nfev, njev=njev, success=True, message=message
    )


__all__ = ["Bisection"]
