"""
Shared working directory and per-run file layout.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from pathlib import Path

from ..core.exceptions import SourceWriteError
from ..core.logging import get_logger
from ..recipes.base import (
    BINARY_PREFIX,
    EXECUTABLE_SUFFIX,
    SOURCE_PREFIX,
    LanguageRecipe,
    RecipeContext,
)

logger = get_logger(__name__)

RUN_ID_BYTES = 8
# Removed whatever the host platform is; some toolchains (mcs) always emit .exe.
BINARY_SUFFIXES = tuple(dict.fromkeys(("", EXECUTABLE_SUFFIX, ".exe")))


def new_run_id() -> str:
    """Return a 16 character hex token from a cryptographically strong source."""
    return secrets.token_hex(RUN_ID_BYTES)


@dataclass(frozen=True, slots=True)
class RunContext:
    """Filesystem identity of one execution."""

    run_id: str
    language: str
    recipe: LanguageRecipe
    run_dir: Path
    source_path: Path
    isolated: bool

    @property
    def binary_name(self) -> str:
        return f"{BINARY_PREFIX}{self.run_id}"

    @property
    def binary_path(self) -> Path:
        return self.run_dir / self.binary_name

    @property
    def artifact_paths(self) -> tuple[Path, ...]:
        """Every path this run may create; the run directory (if private) is last."""
        paths = [self.source_path]
        paths.extend(self.run_dir / f"{self.binary_name}{suffix}" for suffix in BINARY_SUFFIXES)
        paths.extend(self.run_dir / name for name in self.recipe.intermediate_artifacts)
        if self.isolated:
            paths.append(self.run_dir)
        return tuple(dict.fromkeys(paths))

    def recipe_context(self) -> RecipeContext:
        return RecipeContext(
            source_path=self.source_path,
            workdir=self.run_dir,
            binary_name=self.binary_name,
        )


class WorkingDirectory:
    """
    The process-wide directory all runs write into.

    Concurrent runs never collide because every generated name carries the
    run id. Recipes with a fixed file name get a private ``<run_id>/``
    subdirectory instead.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser().resolve()

    def __repr__(self) -> str:
        return f"WorkingDirectory({str(self.path)!r})"

    def ensure(self) -> Path:
        """Create the directory (and parents) if it does not exist yet."""
        self.path.mkdir(parents=True, exist_ok=True)
        return self.path

    def create_run(
        self,
        language: str,
        recipe: LanguageRecipe,
        run_id: str | None = None,
    ) -> RunContext:
        """Allocate a run identity and compute its paths. Touches no files."""
        run_id = run_id or new_run_id()
        fixed_name = recipe.fixed_file_name
        if fixed_name:
            run_dir = self.path / run_id
            source_path = run_dir / fixed_name
        else:
            run_dir = self.path
            source_path = run_dir / f"{SOURCE_PREFIX}{run_id}{recipe.extension}"

        return RunContext(
            run_id=run_id,
            language=language,
            recipe=recipe,
            run_dir=run_dir,
            source_path=source_path,
            isolated=bool(fixed_name),
        )

    def materialize(self, context: RunContext, source: str) -> Path:
        """
        Write submitted source to the run's source path.

        Raises:
            SourceWriteError: if the directory or file cannot be written.
        """
        try:
            if context.isolated:
                context.run_dir.mkdir()
            with open(context.source_path, "w", encoding="utf-8", newline="") as f:
                f.write(source)
        except (OSError, TypeError, ValueError) as e:
            raise SourceWriteError(str(context.source_path), str(e)) from e

        logger.debug(f"Wrote {len(source)} chars to {context.source_path}")
        return context.source_path
