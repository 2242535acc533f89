#!/usr/bin/env python3
"""Run the formatters, linters and test suite in one go.

Steps, in order: black, isort, ruff, pylint and pytest. Every step runs even
when an earlier one fails; failures are repeated at the end.
"""

from pathlib import Path
import subprocess
import sys

SOURCE_DIRS = ["app", "core", "infrastructure", "main.py"]


def run_command(cmd: list[str], description: str) -> tuple[bool, str]:
    """Run `cmd` from the project root and return (success, output)."""
    print(f"\n{'='*60}")
    print(f"Running: {description}")
    print(f"Command: {' '.join(cmd)}")
    print("=" * 60)

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=False, cwd=Path(__file__).parent
        )
    except OSError as e:
        print(f"FAILED to start: {e}")
        return False, str(e)

    success = result.returncode == 0
    output = result.stdout + result.stderr
    print("OK" if success else "FAILED")
    print(output if output.strip() else "(no output)")
    return success, output


def main() -> None:
    python = sys.executable
    commands = [
        ([python, "-m", "black", ".", "--check"], "black"),
        ([python, "-m", "isort", ".", "--check-only"], "isort"),
        ([python, "-m", "ruff", "check", "."], "ruff"),
        ([python, "-m", "pylint", *SOURCE_DIRS], "pylint"),
        ([python, "-m", "pytest", "-q"], "pytest"),
    ]

    results = [(description, *run_command(cmd, description)) for cmd, description in commands]

    print(f"\n{'='*60}")
    print("Summary")
    print("=" * 60)
    for description, success, _ in results:
        print(f"{description}: {'passed' if success else 'failed'}")

    failed = [(d, out) for d, ok, out in results if not ok]
    for description, output in failed:
        if output.strip():
            print(f"\n--- {description} ---")
            print(output)

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
