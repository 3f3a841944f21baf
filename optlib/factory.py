"""Create solvers and line searches from names."""

from __future__ import annotations

from typing import Any, Optional, Union

from .driver import Solver
from .line_search import Backtracking, BacktrackingCubic, Bisection, LineSearch, MoreThuente
from .newton import Newton
from .nonlinear_cg import NonLinearCG
from .quasi_newton import LBFGS

SOLVERS: dict[str, type[Solver]] = {
    "newton": Newton,
    "cg": NonLinearCG,
    "lbfgs": LBFGS,
}

LINE_SEARCHES: dict[str, type[LineSearch]] = {
    "backtracking": Backtracking,
    "cubic": BacktrackingCubic,
    "bisection": Bisection,
    "more_thuente": MoreThuente,
}


def create_line_search(name: str, **params: Any) -> LineSearch:
    """
    Create a line search by name.

    Args:
        name: One of ``"backtracking"``, ``"cubic"``, ``"bisection"``,
            ``"more_thuente"`` (case-insensitive).
        **params: Forwarded to the line search constructor.

    Raises:
        ValueError: If the name is unknown or a parameter is invalid.
    """
    key = name.lower()
    if key not in LINE_SEARCHES:
        raise ValueError(
            f"Unsupported line search '{name}'. Supported names: {sorted(LINE_SEARCHES)}"
        )
    return LINE_SEARCHES[key](**params)


def create_solver(
    name: str, line_search: Optional[Union[str, LineSearch]] = None, **params: Any
) -> Solver:
    """
    Create a solver by name.

    Args:
        name: One of ``"newton"``, ``"cg"``, ``"lbfgs"`` (case-insensitive).
        line_search: A line search instance or name; ``None`` keeps the
            solver's default.
        **params: Solver settings such as ``max_iters``, ``gradient_tolerance``
            or ``m``.

    Raises:
        ValueError: If the name is unknown or a setting is invalid.
    """
    key = name.lower()
    if key not in SOLVERS:
        raise ValueError(f"Unsupported solver '{name}'. Supported names: {sorted(SOLVERS)}")
    if isinstance(line_search, str):
        line_search = create_line_search(line_search)
    return SOLVERS[key](line_search=line_search, **params)


__all__ = ["LINE_SEARCHES", "SOLVERS", "create_line_search", "create_solver"]
