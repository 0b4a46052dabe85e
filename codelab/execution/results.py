"""
Execution result kinds returned by the dispatcher.

Results carry no filesystem state; callers serialize them into their own
transport format.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union


class ResultKind(Enum):
    """Classification of a finished execution."""

    SUCCESS = "success"
    FAILURE = "runtime-or-compile-failure"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration-error"


@dataclass(frozen=True, slots=True)
class Success:
    """Process exited zero. ``stderr`` may still carry diagnostics."""

    kind: ClassVar[ResultKind] = ResultKind.SUCCESS
    success: ClassVar[bool] = True

    stdout: str
    stderr: str = ""


@dataclass(frozen=True, slots=True)
class RuntimeOrCompileFailure:
    """
    Process ran and exited non-zero.

    Compile and runtime errors are not told apart: compilation is chained in
    front of execution, so a compile error is simply a failing exit with the
    compiler's diagnostics on stderr.
    """

    kind: ClassVar[ResultKind] = ResultKind.FAILURE
    success: ClassVar[bool] = False

    message: str
    exit_code: int | None = None


@dataclass(frozen=True, slots=True)
class Timeout:
    """Process tree was killed after exceeding the wall-clock limit."""

    kind: ClassVar[ResultKind] = ResultKind.TIMEOUT
    success: ClassVar[bool] = False

    timeout_seconds: float

    @property
    def message(self) -> str:
        return f"Execution Timed Out (Max {self.timeout_seconds:g}s)"


@dataclass(frozen=True, slots=True)
class ConfigurationFailure:
    """Request rejected before any process was started."""

    kind: ClassVar[ResultKind] = ResultKind.CONFIGURATION
    success: ClassVar[bool] = False

    message: str


ExecutionResult = Union[Success, RuntimeOrCompileFailure, Timeout, ConfigurationFailure]
