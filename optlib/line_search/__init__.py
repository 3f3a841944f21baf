"""Step-length selection along a descent direction.

Every variant is a frozen dataclass holding its parameters and is called as
``search(problem, x, fx, grad, direction, alpha0=None)``. Accepted steps
always decrease the objective; otherwise ``LineSearchResult.success`` is
False and the starting point is handed back.

Example
-------
>>> import numpy as np
>>> from optlib import FunctionProblem
>>> from optlib.line_search import MoreThuente
>>> problem = FunctionProblem(fun=lambda x: float(x @ x), grad=lambda x: 2 * x)
>>> x = np.array([1.0, -2.0])
>>> res = MoreThuente()(problem, x, problem.value(x), problem.gradient(x), -problem.gradient(x))
>>> res.success
True
"""

from .backtracking import Backtracking, BacktrackingCubic
from .base import LineSearch, LineSearchResult
from .bisection import Bisection
from .more_thuente import MoreThuente

__all__ = [
    "Backtracking",
    "BacktrackingCubic",
    "Bisection",
    "LineSearch",
    "LineSearchResult",
    "MoreThuente",
]
