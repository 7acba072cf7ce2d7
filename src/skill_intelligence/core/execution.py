"""Code execution capability used by the grader.

Grading only needs "code + input -> output". A sandboxed runner can be
plugged in by implementing `CodeExecutor`; `SimulatedExecutor` is the
built-in stand-in and recognizes a single solution shape.
"""

from __future__ import annotations

import json
from typing import Protocol

from .errors import ExecutionError

SIMULATED_OUTPUT = "simulated_output"


class CodeExecutor(Protocol):
    def execute(self, code: str, input: str, language: str) -> str:
        """Run `code` against `input` and return its stdout-style output.

        Raises ExecutionError when no output could be produced.
        """
        ...


class SimulatedExecutor:
    """Pattern-matching stand-in for a real sandbox.

    Code that uses both `filter` and `reduce` on a JSON array input is
    treated as a sum-of-evens solution. Anything else yields a fixed
    placeholder that will not match expected outputs.
    """

    def execute(self, code: str, input: str, language: str) -> str:
        if "filter" in code and "reduce" in code and input.lstrip().startswith("["):
            try:
                values = json.loads(input)
            except ValueError as exc:
                raise ExecutionError(f"Could not parse input {input!r}: {exc}") from exc
            if not isinstance(values, list):
                raise ExecutionError(f"Expected an array input, got {input!r}")
            return str(sum(n for n in values if isinstance(n, int) and n % 2 == 0))
        return SIMULATED_OUTPUT
