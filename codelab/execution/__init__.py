"""
Execution of submitted source: file lifecycle, process supervision,
classification and cleanup.
"""

from .cleanup import cleanup_run
from .dispatcher import (
    DEFAULT_TIMEOUT_SECONDS,
    Dispatcher,
    execute,
    get_default_dispatcher,
    set_default_dispatcher,
)
from .process import ProcessOutcome, build_environment, kill_process_tree, run_command
from .results import (
    ConfigurationFailure,
    ExecutionResult,
    ResultKind,
    RuntimeOrCompileFailure,
    Success,
    Timeout,
)
from .workspace import RunContext, WorkingDirectory, new_run_id

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "ConfigurationFailure",
    "Dispatcher",
    "ExecutionResult",
    "ProcessOutcome",
    "ResultKind",
    "RunContext",
    "RuntimeOrCompileFailure",
    "Success",
    "Timeout",
    "WorkingDirectory",
    "build_environment",
    "cleanup_run",
    "execute",
    "get_default_dispatcher",
    "kill_process_tree",
    "new_run_id",
    "run_command",
    "set_default_dispatcher",
]
