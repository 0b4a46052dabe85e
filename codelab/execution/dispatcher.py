"""
Execution dispatcher: the single entry point that turns (language, source)
into an ExecutionResult.

Every call is independent and safe to run from many threads at once. The only
blocking step is the external process; callers on an event loop use
``execute_async`` to keep that off the loop.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

from ..core.config import CodeLabConfig, load_config
from ..core.exceptions import SourceWriteError, UnsupportedLanguageError
from ..core.logging import get_logger
from ..recipes.registry import DEFAULT_REGISTRY, RecipeRegistry, normalize_language
from .cleanup import cleanup_run
from .process import ProcessOutcome, build_environment, run_command
from .results import (
    ConfigurationFailure,
    ExecutionResult,
    RuntimeOrCompileFailure,
    Success,
    Timeout,
)
from .workspace import RunContext, WorkingDirectory

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_OUTPUT_CHARS = 30_000
# Bytes read per stream for each character kept (worst case UTF-8 width).
OUTPUT_BYTES_PER_CHAR = 4
MIN_OUTPUT_BUFFER_BYTES = 64 * 1024
SOURCE_WRITE_FAILED = "failed to write source"


class Dispatcher:
    """
    Maps a language to its recipe and runs submitted source under a timeout.

    Example:
        >>> dispatcher = Dispatcher(WorkingDirectory("/tmp/codelab"))
        >>> result = dispatcher.execute("python", "print('hi')")
        >>> result.stdout
        'hi\\n'
    """

    def __init__(
        self,
        working_directory: WorkingDirectory | Path | str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
        env: dict[str, str] | None = None,
        registry: RecipeRegistry | None = None,
    ) -> None:
        """
        Initialize a dispatcher.

        Args:
            working_directory: Shared directory for run artifacts. Must exist.
            timeout_seconds: Wall-clock limit per execution.
            max_output_chars: Characters kept per stream before truncation.
            env: Environment for child processes (None inherits the current one).
            registry: Recipe registry (defaults to the built-in languages).
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if not isinstance(working_directory, WorkingDirectory):
            working_directory = WorkingDirectory(working_directory)
        self.working_directory = working_directory
        self.timeout_seconds = float(timeout_seconds)
        self.max_output_chars = max_output_chars
        self.registry = registry or DEFAULT_REGISTRY
        self._env = env

    @property
    def max_output_bytes(self) -> int | None:
        """Bytes buffered per stream while the process runs (None is unbounded)."""
        if not self.max_output_chars:
            return None
        return max(self.max_output_chars * OUTPUT_BYTES_PER_CHAR, MIN_OUTPUT_BUFFER_BYTES)

    @classmethod
    def from_config(cls, config: CodeLabConfig, *, base_dir: Path | None = None) -> Dispatcher:
        """Build a dispatcher from configuration, creating the working directory."""
        working_directory = WorkingDirectory(config.resolve_work_dir(base_dir))
        working_directory.ensure()
        return cls(
            working_directory,
            timeout_seconds=config.execution.timeout_seconds,
            max_output_chars=config.execution.max_output_chars,
            env=build_environment(config.execution.env_allowlist),
        )

    def execute(
        self,
        language: str,
        source: str,
        *,
        timeout_seconds: float | None = None,
    ) -> ExecutionResult:
        """
        Compile and/or run ``source`` as ``language``.

        Never raises: every outcome, including internal faults, is reported as
        one of the result kinds. All run artifacts are removed before returning.
        """
        recipe = self.registry.resolve(language)
        if recipe is None:
            logger.info(f"Rejected unsupported language {language!r}")
            return ConfigurationFailure(str(UnsupportedLanguageError(str(language))))

        if timeout_seconds is None:
            timeout = self.timeout_seconds
        elif timeout_seconds > 0:
            timeout = float(timeout_seconds)
        else:
            return ConfigurationFailure(
                f"timeout_seconds must be positive, got {timeout_seconds!r}"
            )

        language = normalize_language(language)
        context = self.working_directory.create_run(language, recipe)

        try:
            self.working_directory.materialize(context, source)
        except SourceWriteError as e:
            logger.error(str(e))
            cleanup_run(context)
            return ConfigurationFailure(SOURCE_WRITE_FAILED)

        try:
            return self._run(context, timeout)
        except Exception as e:
            logger.exception(f"Internal error during run {context.run_id}")
            return RuntimeOrCompileFailure(message=f"Execution error: {e!s}")
        finally:
            cleanup_run(context)

    async def execute_async(
        self,
        language: str,
        source: str,
        *,
        timeout_seconds: float | None = None,
    ) -> ExecutionResult:
        """Run ``execute`` in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(
            self.execute, language, source, timeout_seconds=timeout_seconds
        )

    def _run(self, context: RunContext, timeout: float) -> ExecutionResult:
        command = context.recipe.build_command(context.recipe_context())
        logger.info(f"EXEC {context.language}: {context.run_id}")
        logger.debug(f"Run {context.run_id} command: {command}")

        outcome = run_command(
            command,
            cwd=context.run_dir,
            timeout=timeout,
            env=self._env,
            max_output_bytes=self.max_output_bytes,
        )
        result = self._classify(outcome, timeout)
        logger.debug(
            f"Run {context.run_id} finished in {outcome.duration:.2f}s: {result.kind.value}"
        )
        return result

    def _classify(self, outcome: ProcessOutcome, timeout: float) -> ExecutionResult:
        if outcome.timed_out:
            return Timeout(timeout_seconds=timeout)

        stdout = self._decode_and_truncate(outcome.stdout, outcome.stdout_dropped)
        stderr = self._decode_and_truncate(outcome.stderr, outcome.stderr_dropped)

        if outcome.returncode != 0:
            message = stderr or f"Command failed with exit code {outcome.returncode}"
            return RuntimeOrCompileFailure(message=message, exit_code=outcome.returncode)

        return Success(stdout=stdout, stderr=stderr)

    def _decode_and_truncate(self, data: bytes, dropped: int = 0) -> str:
        """Decode bytes and truncate if too large."""
        text = data.decode("utf-8", errors="replace")
        truncated_count = 0
        if self.max_output_chars and len(text) > self.max_output_chars:
            truncated_count = len(text) - self.max_output_chars
            text = text[: self.max_output_chars]
        if dropped:
            text += (
                f"\n\n[Truncated: {truncated_count} characters removed,"
                f" {dropped} more bytes discarded]"
            )
        elif truncated_count:
            text += f"\n\n[Truncated: {truncated_count} characters removed]"
        return text


_default_dispatcher: Dispatcher | None = None
_default_lock = threading.Lock()


def get_default_dispatcher() -> Dispatcher:
    """Return the process-wide dispatcher, building it from configuration once."""
    global _default_dispatcher
    with _default_lock:
        if _default_dispatcher is None:
            _default_dispatcher = Dispatcher.from_config(load_config())
        return _default_dispatcher


def set_default_dispatcher(dispatcher: Dispatcher | None) -> None:
    """Replace (or reset with None) the process-wide dispatcher."""
    global _default_dispatcher
    with _default_lock:
        _default_dispatcher = dispatcher


def execute(language: str, source: str) -> ExecutionResult:
    """Execute with the process-wide dispatcher."""
    return get_default_dispatcher().execute(language, source)
