"""
External process supervision with a hard wall-clock bound.

Commands run in their own session (POSIX) or process group (Windows) so a
timeout can terminate the whole tree: the shell, the compiler and the binary
it launched. Output pipes are drained on reader threads that keep a bounded
prefix of each stream, so a program that prints without end cannot grow the
service's memory.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from ..core.logging import get_logger

logger = get_logger(__name__)

# Bound on reading leftover output once the process group has been killed.
KILL_GRACE_SECONDS = 2.0
READ_CHUNK_SIZE = 64 * 1024
WAIT_POLL_MAX_SECONDS = 0.05


@dataclass(slots=True)
class ProcessOutcome:
    """Raw exit condition of a supervised command."""

    returncode: int | None
    stdout: bytes
    stderr: bytes
    timed_out: bool
    duration: float
    stdout_dropped: int = 0
    stderr_dropped: int = 0


class _BoundedReader:
    """Drain one pipe on a daemon thread, keeping at most ``limit`` bytes."""

    def __init__(self, stream, limit: int | None, name: str):
        self._stream = stream
        self._limit = limit
        self._chunks: list[bytes] = []
        self._kept = 0
        self.dropped = 0
        self._thread = threading.Thread(target=self._pump, name=name, daemon=True)
        self._thread.start()

    def _pump(self) -> None:
        try:
            while True:
                chunk = self._stream.read1(READ_CHUNK_SIZE)
                if not chunk:
                    break
                if self._limit is not None:
                    room = max(self._limit - self._kept, 0)
                    if len(chunk) > room:
                        self.dropped += len(chunk) - room
                        chunk = chunk[:room]
                if chunk:
                    self._chunks.append(chunk)
                    self._kept += len(chunk)
        except OSError as e:
            logger.warning(f"Reading {self._thread.name} failed: {e}")
        finally:
            self._stream.close()

    def collect(self, timeout: float) -> tuple[bytes, int]:
        """Wait up to ``timeout`` for EOF and return what was kept."""
        self._thread.join(timeout)
        if self._thread.is_alive():
            # A descendant escaped the group and still holds the pipe open.
            logger.warning(f"{self._thread.name} still open after kill; abandoning reader")
        return b"".join(list(self._chunks)), self.dropped


def build_environment(allowlist: list[str] | None) -> dict[str, str] | None:
    """
    Environment for child processes.

    Returns None (inherit everything) when no allowlist is configured; PATH is
    always kept so toolchains remain discoverable.
    """
    if not allowlist:
        return None

    env: dict[str, str] = {}
    for key in ["PATH", *allowlist]:
        normalized_key = str(key).strip()
        if not normalized_key:
            continue
        value = os.environ.get(normalized_key)
        if value is None:
            continue
        env[normalized_key] = value.replace("\n", "").replace("\r", "")
    return env


def run_command(
    command: str,
    *,
    cwd: Path,
    timeout: float,
    env: dict[str, str] | None = None,
    max_output_bytes: int | None = None,
) -> ProcessOutcome:
    """
    Run a shell command, capturing stdout and stderr separately.

    Args:
        command: Shell command string
        cwd: Working directory for the process
        timeout: Seconds before the process tree is killed
        env: Environment for the process (None inherits the current one)
        max_output_bytes: Bytes kept per stream; the rest is read and counted
            in ``stdout_dropped``/``stderr_dropped`` (None keeps everything)

    Returns:
        ProcessOutcome; ``timed_out`` is True when the deadline fired.
    """
    popen_kwargs: dict = {
        "shell": True,
        "cwd": str(cwd),
        "env": env,
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.PIPE,
        "stderr": subprocess.PIPE,
    }
    if os.name == "nt":
        popen_kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        popen_kwargs["start_new_session"] = True

    start_time = time.monotonic()
    proc = subprocess.Popen(command, **popen_kwargs)
    stdout_reader = _BoundedReader(proc.stdout, max_output_bytes, f"stdout of {proc.pid}")
    stderr_reader = _BoundedReader(proc.stderr, max_output_bytes, f"stderr of {proc.pid}")

    exited = False
    try:
        exited = _wait_for_exit(proc, timeout)
    finally:
        # The leader is not reaped yet, so its pid still names this group.
        # Background children left behind by a normal exit die with it.
        kill_process_tree(proc)
        proc.wait()

    if not exited:
        logger.warning(f"Process {proc.pid} exceeded {timeout:g}s; killed process group")

    grace_deadline = time.monotonic() + KILL_GRACE_SECONDS
    stdout, stdout_dropped = stdout_reader.collect(KILL_GRACE_SECONDS)
    stderr, stderr_dropped = stderr_reader.collect(max(grace_deadline - time.monotonic(), 0))

    return ProcessOutcome(
        returncode=proc.returncode,
        stdout=stdout,
        stderr=stderr,
        timed_out=not exited,
        duration=time.monotonic() - start_time,
        stdout_dropped=stdout_dropped,
        stderr_dropped=stderr_dropped,
    )


def _wait_for_exit(proc: subprocess.Popen, timeout: float) -> bool:
    """
    Wait for the leader to exit without reaping it.

    Returns True if it exited before ``timeout``. On POSIX the exited leader
    stays a zombie until ``proc.wait()``, which keeps its pid (and therefore
    the process group id) from being reused while the group is signalled.
    """
    if os.name == "nt":
        try:
            proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    deadline = time.monotonic() + timeout
    delay = 0.001
    while True:
        if os.waitid(os.P_PID, proc.pid, os.WEXITED | os.WNOHANG | os.WNOWAIT) is not None:
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        time.sleep(min(delay, remaining))
        delay = min(delay * 2, WAIT_POLL_MAX_SECONDS)


def kill_process_tree(proc: subprocess.Popen) -> None:
    """
    Forcibly terminate the process and every member of its group.

    On POSIX call this before the leader is reaped.
    """
    if os.name == "nt":
        if proc.poll() is None:
            subprocess.run(
                ["taskkill", "/F", "/T", "/PID", str(proc.pid)],
                capture_output=True,
                check=False,
            )
            proc.kill()
        return

    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError as e:
        # macOS refuses to signal a group whose only member is a zombie.
        logger.debug(f"Could not signal process group {proc.pid}: {e}")
        proc.kill()
