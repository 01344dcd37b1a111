#!/usr/bin/env python3
"""
chaincrf: Exact inference for linear-chain CRFs

Usage:
    # Objective and gradient for a labelled sequence
    python main.py nll --input problem.json --grad --output result.json

    # Marginals / MAP decode
    python main.py marginals --input problem.json
    python main.py decode --input problem.json

    # Compare analytic and numerical gradients
    python main.py gradcheck --input problem.json

    # Run demos
    python main.py demo --example chain

    # Run tests
    python main.py test
"""

from __future__ import annotations

import argparse
import itertools
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

from chaincrf import (
    CRFError,
    Feature,
    ModelParams,
    check_gradient,
    compute_log_partition,
    compute_marginals,
    get_sum_product_semiring,
    instance_neg_log_likelihood,
    map_decode,
    num_params,
    run_inference,
    variable_marginals,
    __version__,
)

logger = logging.getLogger("chaincrf.cli")


def load_problem_from_json(filepath: str) -> Dict[str, Any]:
    """
    Load a labelled sequence problem from a JSON file.

    Expected format:
    {
        "num_hidden_states": 2,
        "num_observed_states": 4,
        "lambda": 0.1,
        "n_var": 3,                      (or "X": [[...], ...])
        "y": [1, 2, 2],
        "theta": [0.5, -0.2, 1.0],
        "features": [
            {"scope": [1], "assignment": [1], "param_index": 0},
            {"scope": [1, 2], "assignment": [1, 2], "param_index": 1}
        ]
    }
    """
    with open(filepath, 'r') as f:
        data = json.load(f)

    params = ModelParams.from_dict(data)
    features = [Feature.from_dict(d) for d in data["features"]]
    if "X" in data:
        X = np.asarray(data["X"])
    else:
        X = np.zeros((int(data["n_var"]), 0))
    theta = np.asarray(data["theta"], dtype=np.float64)
    y = data.get("y")

    return {"params": params, "features": features, "X": X, "theta": theta, "y": y}


def save_result_to_json(filepath: str, output: Dict[str, Any]) -> None:
    """Save a command result to a JSON file."""
    with open(filepath, 'w') as f:
        json.dump(output, f, indent=2)


def _describe(problem: Dict[str, Any]) -> None:
    params = problem["params"]
    n_var = len(problem["X"])
    print(f"\nProblem specification:")
    print(f"  Variables: {n_var} (K = {params.num_hidden_states})")
    print(f"  Features: {len(problem['features'])}")
    print(f"  Parameters: {problem['theta'].size} (features use {num_params(problem['features'])})")
    print(f"  lambda: {params.reg_lambda}")


def _load(args) -> Dict[str, Any]:
    print(f"Loading problem from: {args.input}")
    problem = load_problem_from_json(args.input)
    _describe(problem)
    return problem


def cmd_nll(args):
    """Execute the nll command."""
    try:
        problem = _load(args)
        if problem["y"] is None:
            print("Error: problem has no observed labels 'y'")
            return 1
        nll, grad = instance_neg_log_likelihood(
            problem["X"], problem["y"], problem["theta"], problem["params"],
            problem["features"], semiring=args.semiring,
        )
    except (CRFError, ValueError, KeyError) as e:
        print(f"Error: {e}")
        return 1

    print(f"\nResults:")
    print(f"  NLL = {nll:.10f}")
    if args.grad:
        grad_str = ', '.join(f'{g:.6f}' for g in grad)
        print(f"  grad = [{grad_str}]")

    if args.output:
        save_result_to_json(args.output, {"nll": nll, "grad": grad.tolist()})
        print(f"\nResults saved to: {args.output}")
    return 0


def cmd_marginals(args):
    """Execute the marginals command."""
    try:
        problem = _load(args)
        n_var = len(problem["X"])
        K = problem["params"].num_hidden_states
        result = run_inference(
            problem["features"], problem["theta"], n_var, K,
            semiring=get_sum_product_semiring(args.semiring),
        )
        log_z = result.log_z
        marginals = variable_marginals(result.calibration)
    except (CRFError, ValueError, KeyError) as e:
        print(f"Error: {e}")
        return 1

    print(f"\nResults:")
    print(f"  log(Z) = {log_z:.10f}")
    print("\nMarginal distributions:")
    for i, prob in enumerate(marginals, start=1):
        prob_str = ', '.join(f'{p:.6f}' for p in prob)
        print(f"  P(Y{i}) = [{prob_str}]")

    if args.output:
        save_result_to_json(args.output, {"log_z": log_z, "marginals": marginals.tolist()})
        print(f"\nResults saved to: {args.output}")
    return 0


def cmd_decode(args):
    """Execute the decode command."""
    try:
        problem = _load(args)
        labels = map_decode(
            problem["features"], problem["theta"], len(problem["X"]),
            problem["params"].num_hidden_states,
        )
    except (CRFError, ValueError, KeyError) as e:
        print(f"Error: {e}")
        return 1

    print(f"\nMAP labels: {labels.tolist()}")
    if args.output:
        save_result_to_json(args.output, {"labels": labels.tolist()})
        print(f"\nResults saved to: {args.output}")
    return 0


def cmd_gradcheck(args):
    """Execute the gradcheck command."""
    try:
        problem = _load(args)
        err = check_gradient(
            problem["X"], problem["y"], problem["theta"], problem["params"],
            problem["features"], epsilon=args.epsilon, semiring=args.semiring,
        )
    except (CRFError, ValueError, KeyError, TypeError) as e:
        print(f"Error: {e}")
        return 1

    passed = err <= args.tolerance
    print(f"\nMax abs gradient error: {err:.3e} (tolerance {args.tolerance:.1e})")
    print(f"Status: {'PASS' if passed else 'FAIL'}")
    return 0 if passed else 1


def _brute_force_log_z(features: List[Feature], theta: np.ndarray, n_var: int, K: int) -> float:
    scores = []
    for y in itertools.product(range(1, K + 1), repeat=n_var):
        scores.append(sum(theta[f.param_index] for f in features if f.matches(y)))
    return float(np.log(np.sum(np.exp(scores))))


def _chain_features(n_var: int, K: int) -> List[Feature]:
    """Position-tied node features plus tied transition features."""
    features = []
    for i in range(1, n_var + 1):
        for a in range(1, K + 1):
            features.append(Feature((i,), (a,), a - 1))
    for i in range(1, n_var):
        for a in range(1, K + 1):
            for b in range(1, K + 1):
                features.append(Feature((i, i + 1), (a, b), K + (a - 1) + K * (b - 1)))
    return features


def demo_single_feature():
    """Demo: n_var=2, K=2, one node feature with theta = [1, 0]"""
    print("=" * 60)
    print("Demo: Single node feature on a 2-variable chain")
    print("=" * 60)

    features = [Feature((1,), (1,), 0)]
    theta = np.array([1.0, 0.0])

    log_z = compute_log_partition(features, theta, 2, 2)
    closed_form = np.log(2 * np.exp(1.0) + 2 * np.exp(0.0))
    print(f"\nlog(Z) (engine)      = {log_z:.10f}")
    print(f"log(Z) (closed form) = {closed_form:.10f}")
    match = np.isclose(log_z, closed_form)
    print(f"Match: {match}")
    return match


def demo_chain():
    """Demo: Tied chain CRF verified by brute force"""
    print("=" * 60)
    print("Demo: Tied chain CRF, n_var = 4, K = 3")
    print("=" * 60)

    n_var, K = 4, 3
    features = _chain_features(n_var, K)
    theta = np.random.default_rng(0).normal(size=num_params(features))
    params = ModelParams(num_hidden_states=K, reg_lambda=0.1)
    y = [1, 2, 3, 2]

    log_z = compute_log_partition(features, theta, n_var, K)
    log_z_brute = _brute_force_log_z(features, theta, n_var, K)
    print(f"\nlog(Z) (calibration) = {log_z:.10f}")
    print(f"log(Z) (brute force) = {log_z_brute:.10f}")

    marginals = compute_marginals(features, theta, n_var, K)
    print("\nMarginal distributions:")
    for i, prob in enumerate(marginals, start=1):
        print(f"  P(Y{i}) = [{', '.join(f'{p:.4f}' for p in prob)}]")

    nll, _ = instance_neg_log_likelihood(np.zeros((n_var, 0)), y, theta, params, features)
    print(f"\nNLL of y = {y}: {nll:.6f}")

    err = check_gradient(np.zeros((n_var, 0)), y, theta, params, features)
    print(f"Gradient check error: {err:.3e}")

    match = np.isclose(log_z, log_z_brute) and err < 1e-4
    print(f"Match: {match}")
    return match


def demo_decode():
    """Demo: MAP decoding by max-product calibration"""
    print("=" * 60)
    print("Demo: MAP decoding, n_var = 5, K = 2")
    print("=" * 60)

    n_var, K = 5, 2
    features = _chain_features(n_var, K)
    theta = np.random.default_rng(1).normal(size=num_params(features))

    labels = map_decode(features, theta, n_var, K)
    best = max(
        itertools.product(range(1, K + 1), repeat=n_var),
        key=lambda y: sum(theta[f.param_index] for f in features if f.matches(y)),
    )
    print(f"\nMAP (max-product): {labels.tolist()}")
    print(f"MAP (brute force): {list(best)}")
    match = labels.tolist() == list(best)
    print(f"Match: {match}")
    return match


def cmd_demo(args):
    """Execute the demo command."""
    demos = {
        "single": demo_single_feature,
        "chain": demo_chain,
        "decode": demo_decode,
    }

    if args.example == "all":
        results = []
        for name, func in demos.items():
            try:
                passed = func()
            except CRFError as e:
                print(f"Error in {name}: {e}")
                passed = False
            results.append((name, passed))
            print()

        print("=" * 60)
        print("Summary")
        print("=" * 60)
        all_passed = True
        for name, passed in results:
            status = "PASS" if passed else "FAIL"
            print(f"  {name}: {status}")
            if not passed:
                all_passed = False

        return 0 if all_passed else 1

    try:
        passed = demos[args.example]()
    except CRFError as e:
        print(f"Error: {e}")
        return 1
    return 0 if passed else 1


def cmd_test(args):
    """Execute the test command."""
    import subprocess

    test_dir = Path(__file__).parent / "tests"
    if not test_dir.exists():
        print(f"Test directory not found: {test_dir}")
        return 1

    cmd = [sys.executable, "-m", "pytest", str(test_dir)]
    if args.verbose:
        cmd.append("-v")
    if args.coverage:
        cmd.extend(["--cov=chaincrf", "--cov-report=term-missing"])

    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, cwd=Path(__file__).parent)
    return result.returncode


def cmd_info(args):
    """Display system information."""
    import networkx
    import scipy

    print(f"chaincrf v{__version__}")
    print("Exact clique tree inference for linear-chain CRFs")
    print()
    print("Available semirings:")
    print("  prob    - Sum-product in linear space (+, ×)")
    print("  logprob - Sum-product in log space (logsumexp, +)")
    print("  maxsum  - Max-product in log space (max, +)")
    print()
    print("Python:", sys.version.split()[0])
    print("NumPy:", np.__version__)
    print("SciPy:", scipy.__version__)
    print("NetworkX:", networkx.__version__)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="chaincrf",
        description="chaincrf: Exact inference for linear-chain CRFs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Objective and gradient
  chaincrf nll --input problem.json --grad

  # Marginals and MAP labels
  chaincrf marginals --input problem.json --semiring logprob
  chaincrf decode --input problem.json

  # Gradient check
  chaincrf gradcheck --input problem.json

  # Run demos
  chaincrf demo --example all

  # Run tests
  chaincrf test -v
"""
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"chaincrf {__version__}"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_problem_args(p, semirings=("prob", "logprob")):
        p.add_argument("--input", "-i", type=str, required=True, help="Input JSON file")
        p.add_argument("--output", "-o", type=str, help="Output JSON file")
        if semirings:
            p.add_argument(
                "--semiring", "-s",
                choices=list(semirings),
                default="prob",
                help="Semiring to calibrate with (default: prob)"
            )

    nll_parser = subparsers.add_parser("nll", help="Negative log-likelihood of a labelled sequence")
    add_problem_args(nll_parser)
    nll_parser.add_argument("--grad", "-g", action="store_true", help="Also print the gradient")

    marg_parser = subparsers.add_parser("marginals", help="log Z and single-variable marginals")
    add_problem_args(marg_parser)

    decode_parser = subparsers.add_parser("decode", help="MAP label sequence")
    add_problem_args(decode_parser, semirings=())

    grad_parser = subparsers.add_parser("gradcheck", help="Compare analytic and numerical gradients")
    add_problem_args(grad_parser)
    grad_parser.add_argument("--epsilon", type=float, default=1e-6, help="Finite-difference step")
    grad_parser.add_argument("--tolerance", type=float, default=1e-4, help="Max allowed error")

    demo_parser = subparsers.add_parser("demo", help="Run demonstration examples")
    demo_parser.add_argument(
        "--example", "-e",
        choices=["single", "chain", "decode", "all"],
        default="all",
        help="Which example to run (default: all)"
    )

    test_parser = subparsers.add_parser("test", help="Run test suite")
    test_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    test_parser.add_argument("--coverage", "-c", action="store_true", help="With coverage")

    subparsers.add_parser("info", help="Show system information")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "nll": cmd_nll,
        "marginals": cmd_marginals,
        "decode": cmd_decode,
        "gradcheck": cmd_gradcheck,
        "demo": cmd_demo,
        "test": cmd_test,
        "info": cmd_info,
    }

    if args.command is None:
        parser.print_help()
        return 0

    logger.debug("Running command %s", args.command)
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
