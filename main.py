#!/usr/bin/env python3
"""CodeLoop - generate, simulate-test and fix code with Claude.

Usage:
    python main.py generate --prompt "user CRUD REST API" --language typescript
    python main.py run --prompt "user CRUD REST API" --language python --max-iters 2 --verbose
    python main.py languages
"""

import argparse
import asyncio
import logging
import os
import sys

from agents.generator import GeneratorAgent
from config.defaults import DEFAULTS
from config.languages import LANGUAGES, list_languages
from core.errors import WorkflowError
from core.orchestrator import Orchestrator
from core.state import WorkflowStep
from utils.llm import ModelClient, get_settings


def _format_test_result(result):
    """Format a test report for CLI display."""
    lines = [f"  Summary: {result.summary}"]
    for t in result.tests:
        marker = {"pass": "PASS", "fail": "FAIL"}.get(t.status, "....")
        duration = f" ({t.duration:g}ms)" if t.duration is not None else ""
        lines.append(f"  [{marker}] {t.name}{duration}")
        if t.message and t.status != "pass":
            lines.append(f"         {t.message}")
    for e in result.errors:
        lines.append(f"  [ERROR] {e}")
    return "\n".join(lines)


def _print_step(state):
    if state.step == WorkflowStep.FIXING:
        print(f"-> fixing (attempt {state.iteration}/{state.max_iterations})")
    else:
        print(f"-> {state.step.value}")


async def cmd_generate(args):
    async with ModelClient(get_settings()) as llm:
        result = await GeneratorAgent(llm).run(args.prompt, args.language, args.framework)
    print(result.code)
    print(f"\n# {result.explanation}", file=sys.stderr)
    return 0


async def cmd_run(args):
    async with ModelClient(get_settings()) as llm:
        orchestrator = Orchestrator.from_client(llm, on_change=_print_step)
        state = orchestrator.new_state(
            args.prompt, args.language, framework=args.framework,
            max_iterations=args.max_iters,
        )
        state = await orchestrator.auto_run(state)

    if args.verbose:
        for n, fix in enumerate(state.fix_history, 1):
            print(f"\n--- Fix #{n} ---")
            for change in fix.changes:
                print(f"  * {change}")
        if state.test_result:
            print("\n--- Last test report ---")
            print(_format_test_result(state.test_result))

    print(f"\nStatus:     {state.step.value}")
    print(f"Iterations: {state.iteration}/{state.max_iterations}")
    if state.step == WorkflowStep.ERROR:
        print(f"Error:      {state.error}")
        return 1
    if state.step == WorkflowStep.TESTED:
        print("Max fix iterations reached. Manual review needed.")

    if state.code:
        print(f"\n{state.code}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="codeloop",
        description="AI-assisted generate / test / fix workflow",
    )
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (("generate", "Generate code only"),
                            ("run", "Generate, test and auto-fix")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--prompt", required=True, help="Natural language requirement")
        sub.add_argument("--language", choices=list(LANGUAGES), default="typescript",
                         help="Target language (default: typescript)")
        sub.add_argument("--framework", help="Optional framework hint, e.g. express")
        if name == "run":
            sub.add_argument("--max-iters", type=int, default=DEFAULTS["max_iterations"],
                             help=f"Max fix iterations (default: {DEFAULTS['max_iterations']})")
            sub.add_argument("--verbose", action="store_true",
                             help="Show fix history and the last test report")

    subparsers.add_parser("languages", help="List supported languages")

    args = parser.parse_args()

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "WARNING"),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "languages":
        for lang in list_languages():
            print(f"  {lang['value']:12s} - {lang['label']}")
        return

    commands = {"generate": cmd_generate, "run": cmd_run}
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(asyncio.run(commands[args.command](args)))
    except WorkflowError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
