"""
Language recipe registry and toolchain health checks.
"""

import os
import shutil
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from ..core.exceptions import UnsupportedLanguageError
from ..core.logging import get_logger
from .base import FixedNameRecipe, GeneratedBinaryRecipe, InterpretedRecipe, LanguageRecipe

logger = get_logger(__name__)

_PYTHON = "python" if os.name == "nt" else "python3"

BUILTIN_RECIPES: dict[str, LanguageRecipe] = {
    "javascript": InterpretedRecipe(extension=".js", run=("node", "{source}")),
    "python": InterpretedRecipe(extension=".py", run=(_PYTHON, "{source}")),
    "java": FixedNameRecipe(
        extension=".java",
        file_name="Main.java",
        compile=("javac", "{source}"),
        run=("java", "-cp", "{workdir}", "{stem}"),
        artifacts=("Main.class",),
    ),
    "cpp": GeneratedBinaryRecipe(
        extension=".cpp",
        compile=("g++", "{source}", "-o", "{binary}"),
    ),
    "csharp": GeneratedBinaryRecipe(
        extension=".cs",
        compile=("mcs", "{source}", "-out:{binary}.exe"),
        run=("mono", "{binary}.exe"),
    ),
    "go": InterpretedRecipe(extension=".go", run=("go", "run", "{source}")),
    "rust": GeneratedBinaryRecipe(
        extension=".rs",
        compile=("rustc", "{source}", "-o", "{binary}"),
    ),
    "php": InterpretedRecipe(extension=".php", run=("php", "{source}")),
}


@dataclass(slots=True)
class ToolchainHealth:
    """Availability information for one language's toolchain."""

    language: str
    available: bool
    detail: str
    missing: list[str]


class RecipeRegistry(Mapping[str, LanguageRecipe]):
    """Immutable mapping from language identifier to recipe."""

    def __init__(self, recipes: Mapping[str, LanguageRecipe]):
        normalized: dict[str, LanguageRecipe] = {}
        for language, recipe in recipes.items():
            key = normalize_language(language)
            if not key:
                raise ValueError("Language identifier must not be empty")
            if key in normalized:
                raise ValueError(f"Duplicate recipe for language '{key}'")
            normalized[key] = recipe
        self._recipes = normalized

    def __getitem__(self, language: str) -> LanguageRecipe:
        return self._recipes[normalize_language(language)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._recipes)

    def __len__(self) -> int:
        return len(self._recipes)

    def __contains__(self, language: object) -> bool:
        return isinstance(language, str) and normalize_language(language) in self._recipes

    @property
    def languages(self) -> list[str]:
        return sorted(self._recipes)

    def resolve(self, language: str | None) -> LanguageRecipe | None:
        """Return the recipe for ``language`` or None when unsupported."""
        if not isinstance(language, str):
            return None
        return self._recipes.get(normalize_language(language))

    def require(self, language: str | None) -> LanguageRecipe:
        """Return the recipe for ``language`` or raise UnsupportedLanguageError."""
        recipe = self.resolve(language)
        if recipe is None:
            raise UnsupportedLanguageError(str(language))
        return recipe

    def infer_language(self, path: Path | str) -> str | None:
        """Guess the language of a source file from its extension or fixed name."""
        candidate = Path(path)
        suffix = candidate.suffix.lower()
        for language in self.languages:
            recipe = self._recipes[language]
            if recipe.fixed_file_name == candidate.name:
                return language
        for language in self.languages:
            if self._recipes[language].extension == suffix:
                return language
        return None


def normalize_language(language: str) -> str:
    return language.strip().lower()


DEFAULT_REGISTRY = RecipeRegistry(BUILTIN_RECIPES)
SUPPORTED_LANGUAGES = DEFAULT_REGISTRY.languages


def resolve(language: str | None) -> LanguageRecipe | None:
    """Resolve a language identifier against the built-in registry."""
    return DEFAULT_REGISTRY.resolve(language)


def require(language: str | None) -> LanguageRecipe:
    """Resolve a language identifier or raise UnsupportedLanguageError."""
    return DEFAULT_REGISTRY.require(language)


def check_toolchain(language: str, recipe: LanguageRecipe) -> ToolchainHealth:
    """Report whether every program a recipe invokes is on PATH."""
    missing = [program for program in recipe.executables() if shutil.which(program) is None]
    if missing:
        return ToolchainHealth(
            language=language,
            available=False,
            detail=f"not found on PATH: {', '.join(missing)}",
            missing=missing,
        )
    found = ", ".join(str(shutil.which(program)) for program in recipe.executables())
    return ToolchainHealth(language=language, available=True, detail=found, missing=[])


def detect_toolchain_health(
    registry: RecipeRegistry | None = None,
) -> dict[str, ToolchainHealth]:
    """Probe toolchain availability for diagnostics."""
    registry = registry or DEFAULT_REGISTRY
    results = {language: check_toolchain(language, registry[language]) for language in registry}
    unavailable = [name for name, health in results.items() if not health.available]
    if unavailable:
        logger.debug(f"Toolchains unavailable for: {', '.join(unavailable)}")
    return results
