"""
Build tool execution and output parsing.

- runner: buffered or streamed child processes
- parser: structured build/test results from raw output
- cargo: cargo invocations per build mode
"""

from .runner import CHUNK_SIZE, StreamReader, run_process, save_output
from .parser import parse_build_output, parse_test_output
from .cargo import CargoToolchain, cargo_build_args, cargo_test_args

__all__ = [
    "CHUNK_SIZE",
    "StreamReader",
    "run_process",
    "save_output",
    "parse_build_output",
    "parse_test_output",
    "CargoToolchain",
    "cargo_build_args",
    "cargo_test_args",
]
