"""Tests for the execution dispatcher."""

import asyncio
import shutil
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from codelab.core.config import CodeLabConfig
from codelab.execution import (
    ConfigurationFailure,
    Dispatcher,
    ResultKind,
    RuntimeOrCompileFailure,
    Success,
    Timeout,
)
from codelab.recipes import GREETINGS, SUPPORTED_LANGUAGES, get_template, resolve
from codelab.recipes.registry import check_toolchain

posix_only = pytest.mark.skipif(
    sys.platform == "win32", reason="synthetic recipes need a POSIX shell"
)
needs_python3 = pytest.mark.skipif(shutil.which("python3") is None, reason="python3 not on PATH")
needs_javac = pytest.mark.skipif(
    shutil.which("javac") is None or shutil.which("java") is None, reason="JDK not on PATH"
)

SYNTHETIC_LANGUAGES = ["shell", "shbin", "shfixed"]


def _remaining(work_dir: Path) -> list[str]:
    return sorted(path.name for path in work_dir.iterdir())


@posix_only
class TestClassification:
    @pytest.mark.parametrize("language", SYNTHETIC_LANGUAGES)
    def test_trivial_program_succeeds(self, dispatcher, language):
        result = dispatcher.execute(language, "#!/bin/sh\necho hello codelab\n")
        assert isinstance(result, Success)
        assert result.stdout == "hello codelab\n"
        assert result.kind is ResultKind.SUCCESS
        assert result.success is True

    def test_stderr_does_not_turn_success_into_failure(self, dispatcher):
        result = dispatcher.execute("shell", "echo fine; echo warning >&2")
        assert isinstance(result, Success)
        assert result.stdout == "fine\n"
        assert result.stderr == "warning\n"

    @pytest.mark.parametrize("language", SYNTHETIC_LANGUAGES)
    def test_invalid_syntax_is_a_failure_with_diagnostics(self, dispatcher, language):
        result = dispatcher.execute(language, "#!/bin/sh\nif then fi (\n")
        assert isinstance(result, RuntimeOrCompileFailure)
        assert result.message.strip()
        assert result.exit_code != 0
        assert result.success is False

    def test_compile_failure_skips_run_step(self, dispatcher, work_dir):
        marker = work_dir.parent / "ran"
        result = dispatcher.execute("shbin", f"#!/bin/sh\ntouch {marker}\nif then fi (\n")
        assert isinstance(result, RuntimeOrCompileFailure)
        assert not marker.exists()

    def test_failure_without_stderr_reports_exit_code(self, dispatcher):
        result = dispatcher.execute("shell", "exit 3")
        assert isinstance(result, RuntimeOrCompileFailure)
        assert result.exit_code == 3
        assert result.message == "Command failed with exit code 3"

    def test_missing_toolchain_is_a_failure(self, work_dir):
        from codelab.recipes import InterpretedRecipe, RecipeRegistry

        registry = RecipeRegistry(
            {"ghost": InterpretedRecipe(extension=".g", run=("codelab-no-such-tool", "{source}"))}
        )
        result = Dispatcher(work_dir, registry=registry).execute("ghost", "anything")
        assert isinstance(result, RuntimeOrCompileFailure)
        assert "codelab-no-such-tool" in result.message
        assert _remaining(work_dir) == []

    def test_infinite_loop_times_out(self, work_dir, synthetic_registry):
        dispatcher = Dispatcher(work_dir, timeout_seconds=1, registry=synthetic_registry)
        start = time.monotonic()
        result = dispatcher.execute("shell", "while :; do :; done")
        elapsed = time.monotonic() - start

        assert isinstance(result, Timeout)
        assert result.kind is ResultKind.TIMEOUT
        assert result.timeout_seconds == 1
        assert result.message == "Execution Timed Out (Max 1s)"
        assert elapsed < 1 + 4

    def test_per_call_timeout_overrides_default(self, dispatcher):
        result = dispatcher.execute("shell", "sleep 30", timeout_seconds=0.5)
        assert isinstance(result, Timeout)
        assert result.timeout_seconds == 0.5

    def test_output_is_truncated(self, work_dir, synthetic_registry):
        dispatcher = Dispatcher(work_dir, max_output_chars=10, registry=synthetic_registry)
        result = dispatcher.execute("shell", "printf '%0100d' 0")
        assert isinstance(result, Success)
        assert result.stdout.startswith("0" * 10)
        assert result.stdout.endswith("[Truncated: 90 characters removed]")

    def test_invalid_utf8_output_is_replaced(self, dispatcher):
        result = dispatcher.execute("shell", r"printf '\377ok'")
        assert isinstance(result, Success)
        assert result.stdout == "�ok"

    def test_output_beyond_buffer_is_discarded_while_running(self, work_dir, synthetic_registry):
        dispatcher = Dispatcher(work_dir, max_output_chars=100, registry=synthetic_registry)
        result = dispatcher.execute("shell", "head -c 5000000 /dev/zero | tr '\\0' 'a'")

        assert isinstance(result, Success)
        assert result.stdout.startswith("a" * 100)
        kept = dispatcher.max_output_bytes
        assert result.stdout.endswith(
            f"[Truncated: {kept - 100} characters removed, {5_000_000 - kept} more bytes discarded]"
        )

    def test_huge_output_does_not_grow_service_memory(self, work_dir, synthetic_registry):
        resource = pytest.importorskip("resource")
        # ru_maxrss is KiB on Linux and bytes on macOS.
        scale = 1 if sys.platform == "darwin" else 1024
        before = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss * scale
        dispatcher = Dispatcher(
            work_dir, timeout_seconds=30, max_output_chars=100, registry=synthetic_registry
        )

        result = dispatcher.execute("shell", "head -c 400000000 /dev/zero | tr '\\0' 'a'")

        after = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss * scale
        assert isinstance(result, Success)
        assert len(result.stdout) < 200
        assert after - before < 50 * 1024 * 1024


class TestConfigurationFailures:
    def test_unsupported_language(self, dispatcher, work_dir):
        result = dispatcher.execute("cobol", "DISPLAY 'HI'.")
        assert isinstance(result, ConfigurationFailure)
        assert result.message == "Language 'cobol' not supported."
        assert result.kind is ResultKind.CONFIGURATION
        assert _remaining(work_dir) == []

    def test_write_failure_never_starts_a_process(self, tmp_path, synthetic_registry, monkeypatch):
        def _unexpected(*args, **kwargs):
            raise AssertionError("process must not be started")

        monkeypatch.setattr("codelab.execution.dispatcher.run_command", _unexpected)
        dispatcher = Dispatcher(tmp_path / "does-not-exist", registry=synthetic_registry)

        result = dispatcher.execute("shell", "echo hi")

        assert isinstance(result, ConfigurationFailure)
        assert result.message == "failed to write source"

    def test_non_text_source_is_rejected(self, dispatcher, work_dir):
        result = dispatcher.execute("shell", b"echo hi")
        assert isinstance(result, ConfigurationFailure)
        assert result.message == "failed to write source"
        assert _remaining(work_dir) == []

    def test_timeout_must_be_positive(self, work_dir):
        with pytest.raises(ValueError):
            Dispatcher(work_dir, timeout_seconds=0)

    @pytest.mark.parametrize("timeout", [0, -1, -0.5])
    def test_per_call_timeout_must_be_positive(self, dispatcher, work_dir, timeout):
        result = dispatcher.execute("shell", "echo hi", timeout_seconds=timeout)
        assert isinstance(result, ConfigurationFailure)
        assert result.message == f"timeout_seconds must be positive, got {timeout!r}"
        assert _remaining(work_dir) == []


@posix_only
class TestCleanup:
    @pytest.mark.parametrize("language", SYNTHETIC_LANGUAGES)
    @pytest.mark.parametrize(
        "source",
        [
            "#!/bin/sh\necho ok\n",
            "#!/bin/sh\necho boom >&2; exit 1\n",
            "#!/bin/sh\nif then fi (\n",
            "#!/bin/sh\nsleep 30\n",
        ],
        ids=["success", "runtime-error", "syntax-error", "timeout"],
    )
    def test_no_artifacts_remain(self, work_dir, synthetic_registry, language, source):
        dispatcher = Dispatcher(work_dir, timeout_seconds=1, registry=synthetic_registry)
        dispatcher.execute(language, source)
        assert _remaining(work_dir) == []

    def test_internal_error_is_reported_and_cleaned_up(self, dispatcher, work_dir, monkeypatch):
        def _explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("codelab.execution.dispatcher.run_command", _explode)
        result = dispatcher.execute("shfixed", "echo hi")

        assert isinstance(result, RuntimeOrCompileFailure)
        assert result.message == "Execution error: boom"
        assert _remaining(work_dir) == []

    def test_cleanup_errors_do_not_change_result(self, dispatcher, monkeypatch):
        def _fail(path):
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr("codelab.execution.cleanup._remove_path", _fail)
        result = dispatcher.execute("shell", "echo still fine")

        assert isinstance(result, Success)
        assert result.stdout == "still fine\n"


@posix_only
class TestConcurrency:
    def test_concurrent_runs_do_not_cross_contaminate(self, dispatcher, work_dir):
        jobs = [
            (SYNTHETIC_LANGUAGES[i % len(SYNTHETIC_LANGUAGES)], f"token-{i}") for i in range(24)
        ]

        def _run(job):
            language, token = job
            return dispatcher.execute(language, f"#!/bin/sh\nsleep 0.1\necho {token}\n")

        with ThreadPoolExecutor(max_workers=12) as pool:
            results = list(pool.map(_run, jobs))

        for (_, token), result in zip(jobs, results):
            assert isinstance(result, Success)
            assert result.stdout == f"{token}\n"
        assert _remaining(work_dir) == []

    def test_fixed_name_language_is_isolated_per_run(self, dispatcher, work_dir):
        tokens = [f"fixed-{i}" for i in range(10)]

        def _run(token):
            return dispatcher.execute("shfixed", f"sleep 0.2\necho {token}\n")

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(_run, tokens))

        assert [result.stdout for result in results] == [f"{token}\n" for token in tokens]
        assert _remaining(work_dir) == []

    def test_execute_async_does_not_block_event_loop(self, dispatcher):
        async def _main():
            ticks = 0

            async def _ticker():
                nonlocal ticks
                while True:
                    ticks += 1
                    await asyncio.sleep(0.05)

            ticker = asyncio.create_task(_ticker())
            results = await asyncio.gather(
                dispatcher.execute_async("shell", "sleep 0.5; echo a"),
                dispatcher.execute_async("shbin", "#!/bin/sh\nsleep 0.5; echo b"),
            )
            ticker.cancel()
            return ticks, results

        ticks, results = asyncio.run(_main())
        assert [result.stdout for result in results] == ["a\n", "b\n"]
        assert ticks >= 5


@posix_only
def test_repeated_execution_is_idempotent(dispatcher):
    results = [dispatcher.execute("shbin", "#!/bin/sh\necho same\n") for _ in range(3)]
    assert results[0] == results[1] == results[2] == Success(stdout="same\n", stderr="")


def test_from_config_creates_working_directory(tmp_path):
    config = CodeLabConfig()
    config.execution.work_dir = str(tmp_path / "runs")
    config.execution.timeout_seconds = 3

    dispatcher = Dispatcher.from_config(config)

    assert (tmp_path / "runs").is_dir()
    assert dispatcher.timeout_seconds == 3
    assert dispatcher.working_directory.path == (tmp_path / "runs").resolve()


@needs_python3
class TestPython:
    def test_hello_world(self, builtin_dispatcher):
        result = builtin_dispatcher.execute("python", "print('Hello from CodeLab!')")
        assert isinstance(result, Success)
        assert "Hello from CodeLab!" in result.stdout

    def test_syntax_error(self, builtin_dispatcher, sample_invalid_python, work_dir):
        result = builtin_dispatcher.execute("python", sample_invalid_python)
        assert isinstance(result, RuntimeOrCompileFailure)
        assert "SyntaxError" in result.message
        assert _remaining(work_dir) == []

    def test_uncaught_exception(self, builtin_dispatcher):
        result = builtin_dispatcher.execute("python", "raise ValueError('bad input')")
        assert isinstance(result, RuntimeOrCompileFailure)
        assert "ValueError: bad input" in result.message


@pytest.mark.parametrize("language", SUPPORTED_LANGUAGES)
def test_builtin_template_runs(builtin_dispatcher, work_dir, language):
    health = check_toolchain(language, resolve(language))
    if not health.available:
        pytest.skip(health.detail)

    result = builtin_dispatcher.execute(language, get_template(language))

    assert isinstance(result, Success), result
    assert GREETINGS[language] in result.stdout
    assert _remaining(work_dir) == []


@needs_javac
def test_java_runs_concurrently_without_collisions(builtin_dispatcher, work_dir):
    def _source(n):
        return (
            "public class Main { public static void main(String[] a) {"
            f' System.out.println("java-{n}"); }} }}'
        )

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda n: builtin_dispatcher.execute("java", _source(n)), range(4)))

    assert [result.stdout.strip() for result in results] == [f"java-{n}" for n in range(4)]
    assert _remaining(work_dir) == []


@needs_javac
def test_java_compile_error_is_a_failure(builtin_dispatcher):
    result = builtin_dispatcher.execute("java", "public class Main { oops }")
    assert isinstance(result, RuntimeOrCompileFailure)
    assert "error" in result.message.lower()
