"""optlib - local unconstrained minimization with NumPy.

Three descent solvers (Newton, nonlinear conjugate gradient, L-BFGS) share
one iteration loop and a family of line searches, and work on any object
implementing the :class:`Problem` contract.
"""

__version__ = "0.1.0"

from .core import (
    DimensionMismatchError,
    NumericalError,
    OptimizeResult,
    OptlibError,
    SolverConfig,
    Status,
    check_convergence,
)
from .driver import DirectionStrategy, Solver, descend
from .factory import SOLVERS, create_line_search, create_solver
from .line_search import (
    Backtracking,
    BacktrackingCubic,
    Bisection,
    LineSearch,
    LineSearchResult,
    MoreThuente,
)
from .logging import configure_logging, get_logger, set_log_level
from .newton import Newton, NewtonDirection, newton_method
from .nonlinear_cg import ConjugateGradientDirection, NonLinearCG, nonlinear_cg
from .problem import FiniteDifferenceProblem, FunctionProblem, Problem, ensure_differentiable
from .problems import Himmelblau, QuadraticProblem, Rosenbrock, RosenbrockWithDerivatives
from .quasi_newton import LBFGS, LBFGSDirection, LBFGSHistory, lbfgs

__all__ = [
    "__version__",
    # Core
    "DimensionMismatchError",
    "NumericalError",
    "OptimizeResult",
    "OptlibError",
    "SolverConfig",
    "Status",
    "check_convergence",
    # Problems
    "FiniteDifferenceProblem",
    "FunctionProblem",
    "Problem",
    "ensure_differentiable",
    "Himmelblau",
    "QuadraticProblem",
    "Rosenbrock",
    "RosenbrockWithDerivatives",
    # Line searches
    "Backtracking",
    "BacktrackingCubic",
    "Bisection",
    "LineSearch",
    "LineSearchResult",
    "MoreThuente",
    # Solvers
    "DirectionStrategy",
    "Solver",
    "descend",
    "Newton",
    "NewtonDirection",
    "newton_method",
    "ConjugateGradientDirection",
    "NonLinearCG",
    "nonlinear_cg",
    "LBFGS",
    "LBFGSDirection",
    "LBFGSHistory",
    "lbfgs",
    # Factory
    "SOLVERS",
    "create_line_search",
    "create_solver",
    # Logging
    "configure_logging",
    "get_logger",
    "set_log_level",
]
