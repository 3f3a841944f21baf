"""
Example: solving the reference problems with every optlib solver.

Runs L-BFGS, nonlinear CG and Newton on a 16-dimensional SPD quadratic
(minimizer of |Ax - b|) and on the 2-D Rosenbrock function, whose
derivatives are taken by finite differences.

Usage:
    python examples/solve_test_problems.py [lbfgs|cg|newton|all] [--verbose]
"""

import argparse
import logging

import numpy as np

from optlib import (
    QuadraticProblem,
    Rosenbrock,
    Status,
    configure_logging,
    create_solver,
    get_logger,
)

logger = get_logger("examples.solve_test_problems")

# Newton needs a single iteration on a quadratic
QUADRATIC_ITERS = {"lbfgs": 1000, "cg": 1000, "newton": 1}
ROSENBROCK_ITERS = {"lbfgs": 1000, "cg": 1000, "newton": 100}


def run_solver(name: str, rng: np.random.Generator) -> bool:
    """Run one solver on both problems; returns True if both were solved."""
    print("=" * 60)
    print(f"Solver: {name}")
    print("=" * 60)
    ok = True

    quadratic = QuadraticProblem.random(16, rng)
    x = rng.uniform(-1.0, 1.0, size=16)
    solver = create_solver(name, max_iters=QUADRATIC_ITERS[name])
    status = solver.minimize(quadratic, x)
    residual = float(np.linalg.norm(quadratic.A @ x - quadratic.b))
    print(f"Quadratic:  status={status.value}, nit={solver.result.nit}, |Ax-b|={residual:.3e}")
    ok &= bool(np.all(np.isfinite(x))) and residual <= 1e-4

    rosenbrock = Rosenbrock()
    x = rng.uniform(-1.0, 1.0, size=2)
    solver = create_solver(name, max_iters=ROSENBROCK_ITERS[name])
    status = solver.minimize(rosenbrock, x)
    error = float(np.linalg.norm(x - np.ones(2)))
    print(f"Rosenbrock: status={status.value}, nit={solver.result.nit}, |x-1|={error:.3e}")
    # L-BFGS only has to stay finite on Rosenbrock
    solved = status is Status.CONVERGED and error <= 1e-4
    ok &= bool(np.all(np.isfinite(x))) and (solved or name == "lbfgs")
    print()
    return ok


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("mode", nargs="?", default="all", choices=["lbfgs", "cg", "newton", "all"])
    parser.add_argument("--seed", type=int, default=100)
    parser.add_argument("--verbose", action="store_true", help="log every iteration")
    args = parser.parse_args()

    if args.verbose:
        configure_logging(level=logging.DEBUG)
    rng = np.random.default_rng(args.seed)
    names = ["lbfgs", "cg", "newton"] if args.mode == "all" else [args.mode]

    failures = [name for name in names if not run_solver(name, rng)]
    if failures:
        logger.error("failed: %s", ", ".join(failures))
        return 1
    print("All problems solved.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
