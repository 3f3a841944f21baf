"""Limited-memory BFGS."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from .core import Array, Callback, OptimizeResult, SolverConfig
from .driver import DirectionStrategy, Solver, descend
from .line_search import LineSearch, MoreThuente
from .logging import get_logger
from .problem import Problem

logger = get_logger(__name__)


class LBFGSHistory:
    """
    Fixed-capacity FIFO of curvature pairs ``(s, y)``.

    Storage is preallocated; once ``m`` pairs are held the oldest one is
    overwritten. Pairs with ``y·s <= curvature_threshold`` are rejected so
    every stored ``rho = 1 / (y·s)`` is positive.
    """

    def __init__(self, m: int, dim: int, curvature_threshold: float = 1e-12) -> None:
        if m < 1:
            raise ValueError("history size m must be at least 1")
        if dim < 1:
            raise ValueError("dimension must be at least 1")
        self.m = m
        self.dim = dim
        self.curvature_threshold = curvature_threshold
        self._s = np.zeros((m, dim), dtype=float)
        self._y = np.zeros((m, dim), dtype=float)
        self._rho = np.zeros(m, dtype=float)
        self._start = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def _indices(self) -> Iterator[int]:
        """Slot indices from oldest to newest."""
        for k in range(self._size):
            yield (self._start + k) % self.m

    def push(self, s: Array, y: Array) -> bool:
        """Store ``(s, y)``; returns False if the pair was rejected."""
        sy = float(s @ y)
        if not (np.isfinite(sy) and sy > self.curvature_threshold):
            return False
        if self._size < self.m:
            slot = (self._start + self._size) % self.m
            self._size += 1
        else:
            slot = self._start
            self._start = (self._start + 1) % self.m
        self._s[slot] = s
        self._y[slot] = y
        self._rho[slot] = 1.0 / sy
        return True

    def pairs(self) -> list[tuple[Array, Array]]:
        """Copies of the stored pairs, oldest first."""
        return [(self._s[i].copy(), self._y[i].copy()) for i in self._indices()]

    def gamma(self) -> float:
        """Initial inverse-Hessian scaling ``s·y / y·y`` from the newest pair."""
        if self._size == 0:
            return 1.0
        newest = (self._start + self._size - 1) % self.m
        y = self._y[newest]
        return 1.0 / (self._rho[newest] * float(y @ y))

    def apply(self, grad: Array) -> Array:
        """Return ``-H grad`` by the two-loop recursion."""
        q = np.array(grad, dtype=float)
        order = list(self._indices())
        alphas = np.empty(len(order))
        for k in range(len(order) - 1, -1, -1):
            i = order[k]
            alphas[k] = self._rho[i] * float(self._s[i] @ q)
            q -= alphas[k] * self._y[i]
        r = self.gamma() * q
        for k, i in enumerate(order):
            b = self._rho[i] * float(self._y[i] @ r)
            r += (alphas[k] - b) * self._s[i]
        return -r

    def clear(self) -> None:
        self._start = 0
        self._size = 0


class LBFGSDirection(DirectionStrategy):
    """Quasi-Newton directions from the last ``m`` curvature pairs."""

    name = "lbfgs"

    def __init__(self, m: int = 10, curvature_threshold: float = 1e-12) -> None:
        if m < 1:
            raise ValueError("history size m must be at least 1")
        self.m = m
        self.curvature_threshold = curvature_threshold
        self.history: Optional[LBFGSHistory] = None
        self.skipped = 0

    def initialize(self, problem: Problem, x: Array, fx: float, grad: Array) -> None:
        self.history = LBFGSHistory(self.m, x.size, self.curvature_threshold)
        self.skipped = 0

    def compute(self, problem: Problem, x: Array, fx: float, grad: Array) -> Array:
        return self.history.apply(grad)

    def initial_step(self, grad: Array, direction: Array) -> Optional[float]:
        if len(self.history) == 0:
            return min(1.0, 1.0 / float(np.linalg.norm(grad)))
        return 1.0

    def update(self, s: Array, y: Array, grad: Array, alpha: float, direction: Array) -> None:
        if not self.history.push(s, y):
            self.skipped += 1
            logger.debug("skipping curvature pair with y·s=%.3e", float(s @ y))

    def reset(self) -> None:
        self.history.clear()


def _check_line_search(line_search: LineSearch) -> None:
    if not line_search.enforces_curvature:
        logger.warning(
            "%s does not enforce a curvature condition; L-BFGS updates may be skipped",
            type(line_search).__name__,
        )


@dataclass
class LBFGS(Solver):
    """Limited-memory BFGS solver keeping ``m`` curvature pairs."""

    m: int = 10
    curvature_threshold: float = 1e-12

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.m < 1:
            raise ValueError("history size m must be at least 1")

    def make_strategy(self) -> LBFGSDirection:
        return LBFGSDirection(self.m, self.curvature_threshold)

    def default_line_search(self) -> LineSearch:
        return MoreThuente(c2=0.9)

    def run(
        self, problem: Problem, x0: Array, callback: Optional[Callback] = None
    ) -> OptimizeResult:
        if self.line_search is not None:
            _check_line_search(self.line_search)
        return super().run(problem, x0, callback)


def lbfgs(
    problem: Problem,
    x0: Array,
    max_iters: int = 1000,
    tol: float = 1e-6,
    m: int = 10,
    line_search: Optional[LineSearch] = None,
    history: bool = False,
    callback: Optional[Callback] = None,
) -> OptimizeResult:
    """Limited-memory BFGS with a strong Wolfe line search.

    The curvature condition of the line search guarantees ``y·s > 0`` on
    every accepted step; with an Armijo-only search pairs failing that test
    are dropped and a warning is logged up front.
    """
    if line_search is None:
        line_search = MoreThuente(c2=0.9)
    else:
        _check_line_search(line_search)
    config = SolverConfig(max_iters=max_iters, gradient_tolerance=tol, history=history)
    return descend(problem, x0, LBFGSDirection(m), line_search, config, callback)


__all__ = ["LBFGS", "LBFGSDirection", "LBFGSHistory", "lbfgs"]
