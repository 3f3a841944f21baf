"""Core types shared by the line searches and solvers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]
Hessian = Callable[[Array], Array]
Callback = Callable[[Array, float, Array], None]

ATOL = 1e-12


class OptlibError(Exception):
    """Base class for optlib errors."""


class DimensionMismatchError(OptlibError, ValueError):
    """Raised when a vector does not match the problem dimension."""


class NumericalError(OptlibError, ArithmeticError):
    """Raised when NaN or Inf shows up where a finite value is required."""


class Status(Enum):
    """Exit status of a minimize call."""

    CONVERGED = "converged"
    MAX_ITER = "max_iter"
    LINE_SEARCH_FAILED = "line_search_failed"
    NUMERICAL_ERROR = "numerical_error"


@dataclass(frozen=True)
class SolverConfig:
    """
    Settings shared by every solver.

    Args:
        max_iters: Maximum number of descent iterations. ``0`` only checks the
            starting point.
        gradient_tolerance: The run converges once the gradient norm drops to
            this value.
        history: Record a copy of every iterate in ``OptimizeResult.history``.
    """

    max_iters: int = 1000
    gradient_tolerance: float = 1e-6
    history: bool = False

    def __post_init__(self) -> None:
        if self.max_iters < 0:
            raise ValueError(f"max_iters must be >= 0, got {self.max_iters}.")
        if not self.gradient_tolerance > 0:
            raise ValueError(
                f"gradient_tolerance must be positive, got {self.gradient_tolerance}."
            )


@dataclass
class OptimizeResult:
    """
    Outcome of a minimize call.

    Attributes:
        x: Best iterate found. Always finite; on numerical failure this is the
            last finite iterate.
        fun: Objective value at ``x``.
        grad_norm: Euclidean norm of the gradient at ``x``.
        nit: Number of descent iterations performed.
        status: Exit status.
        message: Human-readable explanation of ``status``.
        nfev, njev, nhev: Objective, gradient and Hessian evaluation counts.
        history: Iterates, when ``SolverConfig.history`` is set.
    """

    x: Array
    fun: float
    grad_norm: float
    nit: int
    status: Status
    message: str
    nfev: int = 0
    njev: int = 0
    nhev: int = 0
    history: List[Array] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status is Status.CONVERGED


def check_convergence(grad_norm: float, tol: float) -> bool:
    """Return True if the gradient norm satisfies the tolerance."""
    return grad_norm <= max(tol, ATOL)


__all__ = [
    "ATOL",
    "Array",
    "Callback",
    "DimensionMismatchError",
    "Gradient",
    "Hessian",
    "NumericalError",
    "Objective",
    "OptimizeResult",
    "OptlibError",
    "SolverConfig",
    "Status",
    "check_convergence",
]
