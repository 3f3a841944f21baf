"""Finite-difference and linear algebra helpers.

Pure NumPy; no SciPy dependency.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .core import Array, DimensionMismatchError, Gradient, NumericalError, Objective

# cube root of machine epsilon, the usual central-difference step
FD_EPS = float(np.cbrt(np.finfo(float).eps))


def _steps(x: Array, eps: float) -> Array:
    return eps * np.maximum(1.0, np.abs(x))


def approx_grad(fun: Objective, x: Array, eps: float = FD_EPS) -> Array:
    """Compute a central-difference gradient approximation.

    Parameters
    ----------
    fun:
        Objective function returning a scalar given x.
    x:
        Point where the gradient is approximated.
    eps:
        Relative perturbation size; coordinate ``i`` moves by
        ``eps * max(1, |x_i|)``.
    """
    if eps <= 0:
        raise ValueError("eps must be positive")
    x = np.asarray(x, dtype=float)
    steps = _steps(x, eps)
    grad = np.zeros_like(x)
    for i in range(x.size):
        ei = np.zeros_like(x)
        ei[i] = steps[i]
        grad[i] = (fun(x + ei) - fun(x - ei)) / (2.0 * steps[i])
    return grad


def approx_hessian(fun: Objective, x: Array, eps: float = 1e-4) -> Array:
    """Approximate the Hessian with second-order central differences of ``fun``."""
    if eps <= 0:
        raise ValueError("eps must be positive")
    x = np.asarray(x, dtype=float)
    n = x.size
    steps = _steps(x, eps)
    hess = np.zeros((n, n), dtype=float)
    fx = fun(x)
    for i in range(n):
        ei = np.zeros_like(x)
        ei[i] = steps[i]
        hess[i, i] = (fun(x + ei) - 2.0 * fx + fun(x - ei)) / steps[i] ** 2
        for j in range(i + 1, n):
            ej = np.zeros_like(x)
            ej[j] = steps[j]
            value = (
                fun(x + ei + ej) - fun(x + ei - ej) - fun(x - ei + ej) + fun(x - ei - ej)
            ) / (4.0 * steps[i] * steps[j])
            hess[i, j] = value
            hess[j, i] = value
    return hess


def approx_hessian_from_grad(grad: Gradient, x: Array, eps: float = FD_EPS) -> Array:
    """Approximate the Hessian with central differences of an analytic gradient."""
    if eps <= 0:
        raise ValueError("eps must be positive")
    x = np.asarray(x, dtype=float)
    n = x.size
    steps = _steps(x, eps)
    hess = np.zeros((n, n), dtype=float)
    for i in range(n):
        ei = np.zeros_like(x)
        ei[i] = steps[i]
        hess[:, i] = (np.asarray(grad(x + ei)) - np.asarray(grad(x - ei))) / (2.0 * steps[i])
    return symmetrize(hess)


def symmetrize(matrix: Array) -> Array:
    """Return ``0.5 * (matrix + matrix.T)``."""
    return 0.5 * (matrix + matrix.T)


def cholesky_with_shift(
    matrix: Array, beta: float = 1e-3, growth: float = 10.0, max_attempts: int = 20
) -> tuple[Array, float]:
    """
    Cholesky factor of ``matrix + tau * I`` for the smallest ``tau`` tried.

    ``tau`` starts at zero when the diagonal is positive and at
    ``beta - min(diag(matrix))`` otherwise, and is multiplied by ``growth``
    after every failed factorization.

    Returns:
        Lower-triangular factor and the shift ``tau`` that was used.

    Raises:
        np.linalg.LinAlgError: If no factorization succeeded within
            ``max_attempts``.
    """
    n = matrix.shape[0]
    min_diag = float(np.min(np.diag(matrix)))
    tau = 0.0 if min_diag > 0 else beta - min_diag
    eye = np.eye(n, dtype=float)
    for _ in range(max_attempts):
        try:
            return np.linalg.cholesky(matrix + tau * eye), tau
        except np.linalg.LinAlgError:
            tau = max(growth * tau, beta)
    raise np.linalg.LinAlgError(
        f"matrix not positive definite after {max_attempts} shifted factorizations"
    )


def solve_cholesky(factor: Array, rhs: Array) -> Array:
    """Solve ``L Lᵀ x = rhs`` given the lower-triangular factor ``L``."""
    return np.linalg.solve(factor.T, np.linalg.solve(factor, rhs))


def is_finite(value: float | Array) -> bool:
    return bool(np.all(np.isfinite(value)))


def check_finite(value: float | Array, what: str) -> None:
    """Raise :class:`NumericalError` if ``value`` holds NaN or Inf."""
    if not is_finite(value):
        raise NumericalError(f"{what} is not finite: {value!r}")


def as_vector(x: Array, dim: Optional[int] = None) -> Array:
    """Return ``x`` as a float 1-D array, checking it against ``dim``."""
    arr = np.asarray(x, dtype=float)
    if arr.ndim != 1:
        raise DimensionMismatchError(f"expected a 1-D vector, got shape {arr.shape}")
    if dim is not None and arr.shape[0] != dim:
        raise DimensionMismatchError(
            f"vector has {arr.shape[0]} entries but the problem dimension is {dim}"
        )
    return arr


__all__ = [
    "FD_EPS",
    "approx_grad",
    "approx_hessian",
    "approx_hessian_from_grad",
    "as_vector",
    "check_finite",
    "cholesky_with_shift",
    "is_finite",
    "solve_cholesky",
    "symmetrize",
]
