"""
More-Thuente line search enforcing the strong Wolfe conditions.

References:
    - J. J. More and D. J. Thuente, "Line search algorithms with guaranteed
      sufficient decrease", ACM TOMS 20 (1994).
    - MINPACK-2 routines ``dcsrch`` / ``dcstep``.
"""

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

_BISECT_RATIO = 0.66
_EXTRAP_LOWER = 1.1
_EXTRAP_UPPER = 4.0


@dataclass(frozen=True)
class MoreThuente(LineSearch):
    """Strong Wolfe line search with safeguarded cubic/quadratic steps.

    Accepts ``alpha`` once::

        f(x + alpha d) <= f(x) + c1 alpha g·d
        |g(x + alpha d)·d| <= c2 |g·d|

    The search first extrapolates until an interval containing such a step is
    bracketed, then shrinks it. During the first stage a modified function
    ``psi(a) = f(x + a d) - f(x) - c1 a g·d`` drives the interpolation.

    If the search stops early (interval below ``xtol``, rounding errors,
    step bounds or ``max_evals``), the best sufficient-decrease step seen is
    returned. The search fails only if there is no such step.
    """

    alpha0: float = 1.0
    c1: float = 1e-4
    c2: float = 0.9
    xtol: float = 1e-10
    alpha_min: float = 1e-20
    alpha_max: float = 1e20
    max_evals: int = 40

    def __post_init__(self) -> None:
        check_wolfe_constants(self.c1, self.c2)
        if self.xtol < 0:
            raise ValueError("xtol must be non-negative")
        if not (0 <= self.alpha_min < self.alpha_max):
            raise ValueError("Require 0 <= alpha_min < alpha_max.")
        if self.max_evals < 1:
            raise ValueError("max_evals must be at least 1")

    @property
    def enforces_curvature(self) -> bool:
        return True

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
        stp = min(max(self._initial_step(alpha0), self.alpha_min), self.alpha_max)
        gtest = self.c1 * slope

        # stx: best step so far, sty: other end of the interval
        stx, f_x, g_x = 0.0, fx, slope
        sty, f_y, g_y = 0.0, fx, slope
        brackt = False
        stage_one = True
        width = self.alpha_max - self.alpha_min
        width1 = 2.0 * width
        stmin, stmax = 0.0, stp + _EXTRAP_UPPER * stp

        best: Optional[tuple[float, Array, float, Array]] = None
        message = f"No strong Wolfe step within {self.max_evals} evaluations."
        nfev = 0

        while nfev < self.max_evals:
            candidate = x + stp * direction
            f = problem.value(candidate)
            g_vec = problem.gradient(candidate)
            nfev += 1
            check_trial(f, "objective", stp)
            check_trial(g_vec, "gradient", stp)

            dg = float(np.dot(g_vec, direction))
            ftest = fx + stp * gtest

            if sufficient_decrease(f, fx, stp, slope, self.c1) and (best is None or f < best[2]):
                best = (stp, candidate, f, g_vec)
            if f <= ftest and f < fx and abs(dg) <= -self.c2 * slope:
                return LineSearchResult(
                    alpha=stp,
                    x=candidate,
                    fun=f,
                    grad=g_vec,
                    nfev=nfev,
                    njev=nfev,
                    success=True,
                    message="Strong Wolfe conditions satisfied.",
                )

            if stage_one and f <= ftest and dg >= 0:
                stage_one = False

            if brackt and (stp <= stmin or stp >= stmax):
                message = "Rounding errors prevent further progress."
                break
            if brackt and stmax - stmin <= self.xtol * stmax:
                message = "Interval of uncertainty is below xtol."
                break
            if stp == self.alpha_max and f <= ftest and dg <= gtest:
                message = "Step reached alpha_max."
                break
            if stp == self.alpha_min and (f > ftest or dg >= gtest):
                message = "Step reached alpha_min."
                break

            if stage_one and f <= f_x and f > ftest:
                # interpolate the modified function psi instead of f
                stx, fxm, gxm, sty, fym, gym, stp, brackt = _safeguarded_step(
                    stx, f_x - stx * gtest, g_x - gtest,
                    sty, f_y - sty * gtest, g_y - gtest,
                    stp, f - stp * gtest, dg - gtest,
                    brackt, stmin, stmax,
                )
                f_x, g_x = fxm + stx * gtest, gxm + gtest
                f_y, g_y = fym + sty * gtest, gym + gtest
            else:
                stx, f_x, g_x, sty, f_y, g_y, stp, brackt = _safeguarded_step(
                    stx, f_x, g_x, sty, f_y, g_y, stp, f, dg, brackt, stmin, stmax
                )

            if not math.isfinite(stp):
                message = "Interpolation produced a non-finite step."
                break

            if brackt:
                if abs(sty - stx) >= _BISECT_RATIO * width1:
                    stp = stx + 0.5 * (sty - stx)
                width1 = width
                width = abs(sty - stx)
                stmin, stmax = min(stx, sty), max(stx, sty)
            else:
                stmin = stp + _EXTRAP_LOWER * (stp - stx)
                stmax = stp + _EXTRAP_UPPER * (stp - stx)

            stp = min(max(stp, self.alpha_min), self.alpha_max)
            if brackt and (stp <= stmin or stp >= stmax or stmax - stmin <= self.xtol * stmax):
                stp = stx

        if best is not None:
            alpha, x_best, f_best, g_best = best
            return LineSearchResult(
                alpha=alpha,
                x=x_best,
                fun=f_best,
                grad=g_best,
                nfev=nfev,
                njev=nfev,
                success=True,
                message=f"{message} Returning best sufficient-decrease step.",
            )
        return failed(x, fx, grad, nfev, nfev, message)


def _cubic_gamma(theta: float, d1: float, d2: float) -> float:
    scale = max(abs(theta), abs(d1), abs(d2))
    if scale == 0:
        return 0.0
    return scale * math.sqrt(max(0.0, (theta / scale) ** 2 - (d1 / scale) * (d2 / scale)))


def _safeguarded_step(
    stx: float,
    fx: float,
    dx: float,
    sty: float,
    fy: float,
    dy: float,
    stp: float,
    fp: float,
    dp: float,
    brackt: bool,
    stpmin: float,
    stpmax: float,
) -> tuple[float, float, float, float, float, float, float, bool]:
    """Compute the next trial step and update the interval ``[stx, sty]``.

    ``stx`` holds the lowest function value so far and ``dx`` must point
    downhill from it towards ``stp``. Returns the updated
    ``(stx, fx, dx, sty, fy, dy, stp, brackt)``. Degenerate interpolation
    yields a non-finite step rather than an exception.
    """
    opposite = bool(np.sign(dp) * np.sign(dx) < 0)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        stpf = _trial_step(
            *(np.float64(v) for v in (stx, fx, dx, sty, fy, dy, stp, fp, dp)),
            brackt,
            stpmin,
            stpmax,
            opposite,
        )

    if fp > fx or opposite:
        brackt = True
    if fp > fx:
        sty, fy, dy = stp, fp, dp
    else:
        if opposite:
            sty, fy, dy = stx, fx, dx
        stx, fx, dx = stp, fp, dp

    return stx, fx, dx, sty, fy, dy, float(stpf), brackt


def _trial_step(
    stx: np.float64,
    fx: np.float64,
    dx: np.float64,
    sty: np.float64,
    fy: np.float64,
    dy: np.float64,
    stp: np.float64,
    fp: np.float64,
    dp: np.float64,
    brackt: bool,
    stpmin: float,
    stpmax: float,
    opposite: bool,
) -> float:
    if fp > fx:
        # higher value: take the cubic step unless the quadratic one is much
        # closer to stx
        theta = 3.0 * (fx - fp) / (stp - stx) + dx + dp
        gamma = _cubic_gamma(theta, dx, dp)
        if stp < stx:
            gamma = -gamma
        p = (gamma - dx) + theta
        q = ((gamma - dx) + gamma) + dp
        stpc = stx + (p / q) * (stp - stx)
        stpq = stx + ((dx / ((fx - fp) / (stp - stx) + dx)) / 2.0) * (stp - stx)
        if abs(stpc - stx) <= abs(stpq - stx):
            return stpc
        return stpc + (stpq - stpc) / 2.0

    if opposite:
        # lower value, derivatives of opposite sign
        theta = 3.0 * (fx - fp) / (stp - stx) + dx + dp
        gamma = _cubic_gamma(theta, dx, dp)
        if stp > stx:
            gamma = -gamma
        p = (gamma - dp) + theta
        q = ((gamma - dp) + gamma) + dx
        stpc = stp + (p / q) * (stx - stp)
        stpq = stp + (dp / (dp - dx)) * (stx - stp)
        return stpc if abs(stpc - stp) > abs(stpq - stp) else stpq

    if abs(dp) < abs(dx):
        # lower value, same sign, derivative magnitude decreasing
        theta = 3.0 * (fx - fp) / (stp - stx) + dx + dp
        gamma = _cubic_gamma(theta, dx, dp)
        if stp > stx:
            gamma = -gamma
        p = (gamma - dp) + theta
        q = (gamma + (dx - dp)) + gamma
        r = p / q
        if r < 0 and gamma != 0:
            stpc = stp + r * (stx - stp)
        elif stp > stx:
            stpc = stpmax
        else:
            stpc = stpmin
        stpq = stp + (dp / (dp - dx)) * (stx - stp)
        if brackt:
            stpf = stpc if abs(stpc - stp) < abs(stpq - stp) else stpq
            if stp > stx:
                return min(stp + _BISECT_RATIO * (sty - stp), stpf)
            return max(stp + _BISECT_RATIO * (sty - stp), stpf)
        stpf = stpc if abs(stpc - stp) > abs(stpq - stp) else stpq
        return min(max(stpf, stpmin), stpmax)

    # lower value, same sign, derivative not decreasing
    if brackt:
        theta = 3.0 * (fp - fy) / (sty - stp) + dy + dp
        gamma = _cubic_gamma(theta, dy, dp)
        if stp > sty:
            gamma = -gamma
        p = (gamma - dp) + theta
        q = ((gamma - dp) + gamma) + dy
        return stp + (p / q) * (sty - stp)
    return stpmax if stp > stx else stpmin


__all__ = ["MoreThuente"]
