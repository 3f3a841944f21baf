"""Reference objectives used by the tests and the example script."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .core import Array
from .problem import Problem


class QuadraticProblem(Problem):
    """``f(x) = 0.5 xᵀAx - bᵀx`` with symmetric ``A``; minimizer ``A⁻¹b`` when ``A`` is SPD."""

    def __init__(self, A: Array, b: Array) -> None:
        A = np.asarray(A, dtype=float)
        b = np.asarray(b, dtype=float)
        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            raise ValueError(f"A must be square, got shape {A.shape}")
        if b.shape != (A.shape[0],):
            raise ValueError(f"b must have shape ({A.shape[0]},), got {b.shape}")
        self.A = 0.5 * (A + A.T)
        self.b = b

    @classmethod
    def random(
        cls, dim: int, rng: Optional[np.random.Generator] = None, condition: float = 10.0
    ) -> "QuadraticProblem":
        """Random SPD quadratic with eigenvalues spread over ``[1, condition]``."""
        rng = rng if rng is not None else np.random.default_rng()
        q, _ = np.linalg.qr(rng.standard_normal((dim, dim)))
        eigvals = np.linspace(1.0, condition, dim)
        return cls((q * eigvals) @ q.T, rng.standard_normal(dim))

    def dimension(self) -> int:
        return self.b.size

    def value(self, x: Array) -> float:
        return float(0.5 * x @ self.A @ x - self.b @ x)

    def gradient(self, x: Array) -> Array:
        return self.A @ x - self.b

    def hessian(self, x: Array) -> Array:
        return self.A.copy()

    def solution(self) -> Array:
        return np.linalg.solve(self.A, self.b)


class Rosenbrock(Problem):
    """Chained Rosenbrock function, value only; minimum 0 at ``(1, ..., 1)``.

    Solvers handle it through finite-difference derivatives.
    """

    def __init__(self, dim: int = 2) -> None:
        if dim < 2:
            raise ValueError("Rosenbrock needs at least 2 dimensions")
        self.dim = dim

    def dimension(self) -> int:
        return self.dim

    def value(self, x: Array) -> float:
        return float(np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1.0 - x[:-1]) ** 2))


class RosenbrockWithDerivatives(Rosenbrock):
    """Rosenbrock with analytic gradient and Hessian."""

    def gradient(self, x: Array) -> Array:
        grad = np.zeros_like(x, dtype=float)
        inner = x[1:] - x[:-1] ** 2
        grad[:-1] = -400.0 * x[:-1] * inner - 2.0 * (1.0 - x[:-1])
        grad[1:] += 200.0 * inner
        return grad

    def hessian(self, x: Array) -> Array:
        n = x.size
        hess = np.zeros((n, n), dtype=float)
        diag = np.zeros(n, dtype=float)
        diag[:-1] = 1200.0 * x[:-1] ** 2 - 400.0 * x[1:] + 2.0
        diag[1:] += 200.0
        off = -400.0 * x[:-1]
        hess[np.arange(n), np.arange(n)] = diag
        hess[np.arange(n - 1), np.arange(1, n)] = off
        hess[np.arange(1, n), np.arange(n - 1)] = off
        return hess


class Himmelblau(Problem):
    """Himmelblau's function; four minima with value 0, one at ``(3, 2)``."""

    def dimension(self) -> int:
        return 2

    def value(self, x: Array) -> float:
        return float((x[0] ** 2 + x[1] - 11) ** 2 + (x[0] + x[1] ** 2 - 7) ** 2)

    def gradient(self, x: Array) -> Array:
        return np.array(
            [
                4 * x[0] * (x[0] ** 2 + x[1] - 11) + 2 * (x[0] + x[1] ** 2 - 7),
                2 * (x[0] ** 2 + x[1] - 11) + 4 * x[1] * (x[0] + x[1] ** 2 - 7),
            ]
        )


__all__ = ["Himmelblau", "QuadraticProblem", "Rosenbrock", "RosenbrockWithDerivatives"]
