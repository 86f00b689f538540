"""Command-line front end.

Usage:
    aariba run rules/base.rules rules/bonus.rules --set level=3
    aariba eval "max(2, $x) ^ 2" --set x=5
    aariba repl
"""

import argparse
import json
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

import numpy as np

from . import parse_expression, parse_rule
from .config import Settings
from .expressions import ExpressionError
from .log import configure_logging, get_logger
from .parser import ParseError
from .rules import RulesError

logger = get_logger(__name__)


def _assignment(text: str) -> tuple[str, float]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    try:
        return name.strip().lstrip("$"), float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None


def run_files(
    paths: Iterable[Path],
    global_variables: dict[str, float],
    rng: np.random.Generator,
    err: TextIO | None = None,
) -> bool:
    """Evaluate rule files in order against one shared global dict."""
    err = err or sys.stderr
    ok = True
    for path in paths:
        try:
            evaluator = parse_rule(path.read_text())
            evaluator.evaluate(global_variables, rng=rng)
        except (OSError, ParseError, RulesError) as e:
            print(f"{path}: {e}", file=err)
            ok = False
            continue
        logger.info("rules evaluated", path=str(path), instructions=len(evaluator.instructions))
    return ok


def repl(
    lines: Iterable[str],
    out: TextIO,
    rng: np.random.Generator | None = None,
    initial: dict[str, float] | None = None,
) -> str:
    """Accumulate rule lines, re-evaluating everything after each one.

    A line is kept only if the accumulated text parses and evaluates. The
    line ``clear;`` discards everything. Each evaluation starts from a copy of
    ``initial``. Returns the accumulated text.
    """
    accumulated = ""
    for line in lines:
        line = line.rstrip("\n")
        if line.strip() == "clear;":
            accumulated = ""
            continue

        candidate = f"{accumulated}{line}\n"
        print(f"Evaluating the following rules:\n{candidate}", file=out)
        try:
            evaluator = parse_rule(candidate)
        except ParseError as e:
            print(f"Parsing error: {e}", file=out)
            continue

        global_variables = dict(initial or {})
        try:
            evaluator.evaluate(global_variables, rng=rng)
        except RulesError as e:
            print(f"Evaluation error: {e}", file=out)
            continue

        print(f"Global variables: {json.dumps(global_variables, indent=2, sort_keys=True)}", file=out)
        accumulated = candidate
    return accumulated


def main(argv: list[str] | None = None) -> int:
    settings = Settings()

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--log-level", default=settings.log_level)
    common.add_argument("--json-logs", action="store_true", default=settings.json_logs)
    common.add_argument("--seed", type=int, default=settings.seed, help="Seed for rand()")
    common.add_argument(
        "--set",
        dest="assignments",
        metavar="NAME=VALUE",
        type=_assignment,
        action="append",
        default=[],
        help="Initial global variable (repeatable)",
    )
    parser = argparse.ArgumentParser(prog="aariba", description="Evaluate aariba rules")
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", parents=[common], help="Evaluate rule files against shared globals")
    run_p.add_argument("files", nargs="+", type=Path)

    eval_p = sub.add_parser("eval", parents=[common], help="Evaluate a single expression")
    eval_p.add_argument("expression")

    sub.add_parser("repl", parents=[common], help="Interactive rule accumulation from stdin")

    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.json_logs)
    rng = np.random.default_rng(args.seed)
    global_variables = dict(args.assignments)

    if args.command == "run":
        ok = run_files(args.files, global_variables, rng)
        print(json.dumps(global_variables, indent=2, sort_keys=True))
        return 0 if ok else 1

    if args.command == "eval":
        try:
            value = parse_expression(args.expression).evaluate(global_variables, rng=rng)
        except (ParseError, ExpressionError) as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(value)
        return 0

    repl(sys.stdin, sys.stdout, rng, initial=global_variables)
    return 0


if __name__ == "__main__":
    sys.exit(main())
