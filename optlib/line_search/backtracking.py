"""Armijo backtracking line searches (Nocedal & Wright, Algorithms 3.1 and 3.5)."""

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
class Backtracking(LineSearch):
    """Classic Armijo backtracking with a fixed contraction factor.

    Args:
        alpha0: Default initial step.
        rho: Contraction factor applied after every rejected trial.
        c1: Sufficient-decrease constant.
        max_iter: Maximum number of trial steps.
        alpha_min: The search fails once the step drops below this value.
    """

    alpha0: float = 1.0
    rho: float = 0.5
    c1: float = 1e-4
    max_iter: int = 60
    alpha_min: float = 1e-16

    def __post_init__(self) -> None:
        check_wolfe_constants(self.c1)
        if not (0 < self.rho < 1):
            raise ValueError("rho must lie in (0, 1)")
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")

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
        nfev = 0
        for _ in range(self.max_iter):
            candidate = x + alpha * direction
            f_new = problem.value(candidate)
            nfev += 1
            check_trial(f_new, "objective", alpha)
            if sufficient_decrease(f_new, fx, alpha, slope, self.c1):
                return LineSearchResult(
                    alpha=alpha,
                    x=candidate,
                    fun=f_new,
                    grad=_gradient(problem, candidate, alpha),
                    nfev=nfev,
                    njev=1,
                    success=True,
                    message="Armijo condition satisfied.",
                )
            alpha *= self.rho
            if alpha < self.alpha_min:
                return failed(x, fx, grad, nfev, 0, f"Step length fell below {self.alpha_min:g}.")
        return failed(x, fx, grad, nfev, 0, f"No acceptable step within {self.max_iter} trials.")


@dataclass(frozen=True)
class BacktrackingCubic(LineSearch):
    """Armijo backtracking that picks trial steps by polynomial interpolation.

    The first shrink minimizes the quadratic through ``phi(0)``, ``phi'(0)``
    and ``phi(alpha)``; later shrinks minimize the cubic that also passes
    through the previous trial. The new step is clamped to
    ``[low * alpha, high * alpha]`` and falls back to ``rho * alpha`` when the
    interpolant has no usable minimizer.
    """

    alpha0: float = 1.0
    rho: float = 0.5
    c1: float = 1e-4
    low: float = 0.1
    high: float = 0.5
    max_iter: int = 60
    alpha_min: float = 1e-16

    def __post_init__(self) -> None:
        check_wolfe_constants(self.c1)
        if not (0 < self.rho < 1):
            raise ValueError("rho must lie in (0, 1)")
        if not (0 < self.low <= self.high < 1):
            raise ValueError("Require 0 < low <= high < 1 for the safeguard interval.")
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")

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
        alpha_prev: Optional[float] = None
        f_prev = fx
        nfev = 0
        for _ in range(self.max_iter):
            candidate = x + alpha * direction
            f_new = problem.value(candidate)
            nfev += 1
            check_trial(f_new, "objective", alpha)
            if sufficient_decrease(f_new, fx, alpha, slope, self.c1):
                return LineSearchResult(
                    alpha=alpha,
                    x=candidate,
                    fun=f_new,
                    grad=_gradient(problem, candidate, alpha),
                    nfev=nfev,
                    njev=1,
                    success=True,
                    message="Armijo condition satisfied.",
                )
            if alpha_prev is None:
                trial = _quadratic_minimizer(fx, slope, alpha, f_new)
            else:
                trial = _cubic_minimizer(fx, slope, alpha_prev, f_prev, alpha, f_new)
            if trial is None:
                trial = self.rho * alpha
            trial = min(max(trial, self.low * alpha), self.high * alpha)
            alpha_prev, f_prev = alpha, f_new
            alpha = trial
            if alpha < self.alpha_min:
                return failed(x, fx, grad, nfev, 0, f"Step length fell below {self.alpha_min:g}.")
        return failed(x, fx, grad, nfev, 0, f"No acceptable step within {self.max_iter} trials.")


def _gradient(problem: Problem, candidate: Array, alpha: float) -> Array:
    grad = problem.gradient(candidate)
    check_trial(grad, "gradient", alpha)
    return grad


def _quadratic_minimizer(f0: float, slope: float, alpha: float, f_alpha: float) -> Optional[float]:
    curvature = f_alpha - f0 - slope * alpha
    if curvature <= 0:
        return None
    trial = -slope * alpha**2 / (2.0 * curvature)
    return trial if np.isfinite(trial) and trial > 0 else None


def _cubic_minimizer(
    f0: float, slope: float, a0: float, f_a0: float, a1: float, f_a1: float
) -> Optional[float]:
    """Minimizer of the cubic matching ``phi(0)``, ``phi'(0)``, ``phi(a0)``, ``phi(a1)``."""
    denom = a0**2 * a1**2 * (a1 - a0)
    if denom == 0:
        return None
    d1 = f_a1 - f0 - slope * a1
    d0 = f_a0 - f0 - slope * a0
    a = (a0**2 * d1 - a1**2 * d0) / denom
    b = (-(a0**3) * d1 + a1**3 * d0) / denom
    if a == 0:
        trial = -slope / (2.0 * b) if b > 0 else None
    else:
        disc = b * b - 3.0 * a * slope
        if disc < 0:
            return None
        trial = (-b + math.sqrt(disc)) / (3.0 * a)
    if trial is None or not np.isfinite(trial) or trial <= 0:
        return None
    return trial


__all__ = ["Backtracking", "BacktrackingCubic"]
