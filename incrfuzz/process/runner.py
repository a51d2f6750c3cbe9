"""
Child process execution with optional live streaming.

Buffered mode collects everything once the child exits. Streamed mode relays
output to our own stdout/stderr as it arrives while still keeping a full
copy for parsing: one reader thread per pipe loops on fixed-size reads until
the shared `done` event is set (only after the child has exited), then does a
final drain read so bytes written between exit and flag observation are not
lost.

There is no timeout: a hung child hangs the caller.
"""

import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional

from ..core.errors import ProcessLaunchError
from ..core.results import ProcessOutput

logger = logging.getLogger(__name__)

CHUNK_SIZE = 100


class StreamReader(threading.Thread):
    """
    Reads one child pipe to completion, forwarding every chunk.

    Fields:
        data: Everything read so far (complete once the thread is joined)
    """

    def __init__(self, stream: BinaryIO, done: threading.Event, forward: Callable[[bytes], None]):
        super().__init__(daemon=True)
        self.stream = stream
        self.done = done
        self.forward = forward
        self.data = bytearray()
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            while not self.done.is_set():
                chunk = self.stream.read1(CHUNK_SIZE)
                if not chunk:
                    # EOF before the flag; nothing more can arrive until it is set
                    self.done.wait()
                    break
                self.forward(chunk)
                self.data.extend(chunk)

            rest = self.stream.read()
            if rest:
                self.forward(rest)
                self.data.extend(rest)
        except (OSError, ValueError) as err:
            self.error = err
        finally:
            self.stream.close()


def _forward_to(target: BinaryIO) -> Callable[[bytes], None]:
    def forward(chunk: bytes) -> None:
        target.write(chunk)
        target.flush()
    return forward


def run_process(
    argv: List[str],
    cwd: Path,
    env: Optional[Dict[str, str]] = None,
    stream: bool = False,
    stdout_sink: Optional[BinaryIO] = None,
    stderr_sink: Optional[BinaryIO] = None,
) -> ProcessOutput:
    """
    Run a child process to completion.

    Args:
        argv: Command and arguments
        cwd: Working directory for the child
        env: Full child environment (None = inherit ours)
        stream: Relay output live while capturing it
        stdout_sink: Where streamed stdout goes (default: our stdout)
        stderr_sink: Where streamed stderr goes (default: our stderr)

    Returns:
        ProcessOutput with exit status and full stdout/stderr

    Raises:
        ProcessLaunchError: If the child cannot be spawned or its pipes read
    """
    logger.debug("running %s in %s (stream=%s)", " ".join(argv), cwd, stream)

    if not stream:
        try:
            proc = subprocess.run(argv, cwd=str(cwd), env=env, capture_output=True, check=False)
        except OSError as err:
            raise ProcessLaunchError(f"failed to execute `{' '.join(argv)}`: {err}") from err
        return ProcessOutput(returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)

    try:
        child = subprocess.Popen(
            argv,
            cwd=str(cwd),
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as err:
        raise ProcessLaunchError(f"failed to spawn `{' '.join(argv)}` process: {err}") from err

    done = threading.Event()
    stdout_reader = StreamReader(child.stdout, done, _forward_to(stdout_sink or sys.stdout.buffer))
    stderr_reader = StreamReader(child.stderr, done, _forward_to(stderr_sink or sys.stderr.buffer))
    stdout_reader.start()
    stderr_reader.start()

    returncode = child.wait()
    done.set()

    stdout_reader.join()
    stderr_reader.join()
    for name, reader in (("stdout", stdout_reader), ("stderr", stderr_reader)):
        if reader.error is not None:
            raise ProcessLaunchError(f"error while reading child process {name}: {reader.error}")

    return ProcessOutput(
        returncode=returncode,
        stdout=bytes(stdout_reader.data),
        stderr=bytes(stderr_reader.data),
    )


def save_output(output_dir: Path, output: ProcessOutput) -> None:
    """Persist status, stdout and stderr as three files under `output_dir`."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / "status").write_text(output.status_line + "\n")
    (output_dir / "stdout").write_bytes(output.stdout)
    (output_dir / "stderr").write_bytes(output.stderr)
