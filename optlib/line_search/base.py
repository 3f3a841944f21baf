"""Line-search contract shared by every variant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core import Array
from ..problem import Problem
from ..utils import check_finite


@dataclass
class LineSearchResult:
    """Accepted step and the point it leads to.

    On failure ``alpha`` is ``0.0`` and ``x``/``fun``/``grad`` describe the
    starting point, so callers can keep it as their best iterate.
    """

    alpha: float
    x: Array
    fun: float
    grad: Array
    nfev: int
    njev: int
    success: bool
    message: str


class LineSearch:
    """Base class for step-length selection along a descent direction.

    Subclasses are frozen dataclasses carrying their parameters and implement
    ``__call__(problem, x, fx, grad, direction, alpha0=None)``. A NaN or Inf
    objective or gradient at any trial step raises :class:`NumericalError`
    instead of being read as an overlong step.
    """

    @property
    def enforces_curvature(self) -> bool:
        """True when accepted steps also satisfy a curvature (Wolfe) condition."""
        return False

    def __call__(
        self,
        problem: Problem,
        x: Array,
        fx: float,
        grad: Array,
        direction: Array,
        alpha0: Optional[float] = None,
    ) -> LineSearchResult:
        raise NotImplementedError

    def _initial_step(self, alpha0: Optional[float]) -> float:
        alpha = self.alpha0 if alpha0 is None else float(alpha0)
        if not (alpha > 0 and np.isfinite(alpha)):
            raise ValueError(f"initial step must be positive and finite, got {alpha}")
        return alpha


def descent_slope(grad: Array, direction: Array) -> float:
    """Return ``grad·direction``, raising if it is not negative."""
    slope = float(np.dot(grad, direction))
    if not slope < 0:
        raise ValueError(f"Search direction must be a descent direction (g·d = {slope:.3e}).")
    return slope


def sufficient_decrease(f_new: float, f0: float, alpha: float, slope: float, c1: float) -> bool:
    """Armijo test, additionally demanding a strict decrease from ``f0``."""
    return f_new < f0 and f_new <= f0 + c1 * alpha * slope


def check_trial(value: float | Array, what: str, alpha: float) -> None:
    """Abort the search when the problem returns NaN or Inf at a trial step.

    Raises:
        NumericalError: ``value`` is not finite.
    """
    check_finite(value, f"{what} at trial step {alpha:.3e}")


def check_wolfe_constants(c1: float, c2: Optional[float] = None) -> None:
    if not (0 < c1 < 1):
        raise ValueError("Armijo constant c1 must lie in (0, 1)")
    if c2 is not None and not (c1 < c2 < 1):
        raise ValueError("Require 0 < c1 < c2 < 1 for Wolfe conditions.")


def failed(x: Array, fx: float, grad: Array, nfev: int, njev: int, message: str) -> LineSearchResult:
    return LineSearchResult(
        alpha=0.0,
        x=x,
        fun=fx,
        grad=grad,
        nfev=nfev,
        njev=njev,
        success=False,
        message=message,
    )


__all__ = [
    "LineSearch",
    "LineSearchResult",
    "check_trial",
    "check_wolfe_constants",
    "descent_slope",
    "failed",
    "sufficient_decrease",
]
