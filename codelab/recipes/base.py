"""
Base types for language recipes.

A recipe is the fixed build/run procedure for one language. Each variant keeps
its required parameters explicit; commands are argument vectors containing
placeholder tokens that are expanded per run:

  {source}   absolute path of the source file
  {workdir}  directory the run executes in
  {binary}   absolute path of the generated binary (``bin_<run_id>``)
  {exe}      platform executable suffix (``.exe`` on Windows, empty elsewhere)
  {stem}     fixed file name without its extension (e.g. a Java class name)
"""

from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar

EXECUTABLE_SUFFIX = ".exe" if os.name == "nt" else ""
BINARY_PREFIX = "bin_"
SOURCE_PREFIX = "s_"


class RecipeKind(Enum):
    """Recipe variants."""

    INTERPRETED = "interpreted"
    FIXED_NAME = "fixed-name"
    GENERATED_BINARY = "generated-binary"


@dataclass(frozen=True, slots=True)
class RecipeContext:
    """Per-run values substituted into a recipe's commands."""

    source_path: Path
    workdir: Path
    binary_name: str

    @property
    def binary_path(self) -> Path:
        return self.workdir / self.binary_name


def join_command(argv: list[str]) -> str:
    """Quote an argument vector for the platform shell."""
    if os.name == "nt":
        return subprocess.list2cmdline(argv)
    return shlex.join(argv)


@dataclass(frozen=True, slots=True)
class LanguageRecipe:
    """Common fields shared by all recipe variants."""

    kind: ClassVar[RecipeKind]

    extension: str

    def __post_init__(self) -> None:
        if not self.extension.startswith("."):
            raise ValueError(f"Recipe extension must start with '.': {self.extension!r}")

    @property
    def fixed_file_name(self) -> str | None:
        """File name the toolchain requires, if any."""
        return None

    @property
    def intermediate_artifacts(self) -> tuple[str, ...]:
        """Fixed-name files the toolchain emits next to the source."""
        return ()

    def steps(self) -> tuple[tuple[str, ...], ...]:
        """Argument vector templates, in execution order."""
        raise NotImplementedError

    def build_command(self, context: RecipeContext) -> str:
        """Expand the recipe into a single shell command string."""
        expanded = [
            join_command([self._expand_token(token, context) for token in step])
            for step in self.steps()
        ]
        return " && ".join(expanded)

    def executables(self) -> tuple[str, ...]:
        """Toolchain programs the recipe invokes (placeholders excluded)."""
        programs: list[str] = []
        for step in self.steps():
            program = step[0]
            if "{" in program or program in programs:
                continue
            programs.append(program)
        return tuple(programs)

    def _expand_token(self, token: str, context: RecipeContext) -> str:
        mapping = {
            "{source}": str(context.source_path),
            "{workdir}": str(context.workdir),
            "{binary}": str(context.binary_path),
            "{exe}": EXECUTABLE_SUFFIX,
            "{stem}": Path(self.fixed_file_name or context.source_path.name).stem,
        }
        expanded = str(token)
        for key, value in mapping.items():
            expanded = expanded.replace(key, value)
        return expanded


@dataclass(frozen=True, slots=True)
class InterpretedRecipe(LanguageRecipe):
    """Direct invocation of an interpreter on the source file."""

    kind: ClassVar[RecipeKind] = RecipeKind.INTERPRETED

    run: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        super(InterpretedRecipe, self).__post_init__()
        if not self.run:
            raise ValueError("Interpreted recipe needs a run command")

    def steps(self) -> tuple[tuple[str, ...], ...]:
        return (self.run,)


@dataclass(frozen=True, slots=True)
class FixedNameRecipe(LanguageRecipe):
    """
    Compile-then-run recipe whose toolchain requires a specific file name.

    Runs of this variant get a private run directory, so the fixed name does
    not collide between concurrent runs.
    """

    kind: ClassVar[RecipeKind] = RecipeKind.FIXED_NAME

    file_name: str = ""
    compile: tuple[str, ...] = ()
    run: tuple[str, ...] = ()
    artifacts: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        super(FixedNameRecipe, self).__post_init__()
        if not self.file_name:
            raise ValueError("Fixed-name recipe needs a file name")
        if not self.file_name.endswith(self.extension):
            raise ValueError(
                f"Fixed file name {self.file_name!r} does not match extension {self.extension!r}"
            )
        if not self.compile or not self.run:
            raise ValueError("Fixed-name recipe needs compile and run commands")

    @property
    def fixed_file_name(self) -> str | None:
        return self.file_name

    @property
    def intermediate_artifacts(self) -> tuple[str, ...]:
        return self.artifacts

    def steps(self) -> tuple[tuple[str, ...], ...]:
        return (self.compile, self.run)


@dataclass(frozen=True, slots=True)
class GeneratedBinaryRecipe(LanguageRecipe):
    """Compile to ``bin_<run_id>`` and invoke the result immediately."""

    kind: ClassVar[RecipeKind] = RecipeKind.GENERATED_BINARY

    compile: tuple[str, ...] = ()
    run: tuple[str, ...] = ("{binary}{exe}",)

    def __post_init__(self) -> None:
        super(GeneratedBinaryRecipe, self).__post_init__()
        if not self.compile or not self.run:
            raise ValueError("Generated-binary recipe needs compile and run commands")
        if not any("{binary}" in token for token in self.compile):
            raise ValueError("Generated-binary compile command must write to {binary}")

    def steps(self) -> tuple[tuple[str, ...], ...]:
        return (self.compile, self.run)
