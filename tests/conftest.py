"""
Pytest configuration and fixtures for CodeLab tests.
"""

import os
from pathlib import Path

import pytest
from hypothesis import Verbosity, settings

from codelab.execution import Dispatcher, WorkingDirectory
from codelab.recipes import (
    FixedNameRecipe,
    GeneratedBinaryRecipe,
    InterpretedRecipe,
    RecipeRegistry,
)

# Configure hypothesis settings for property-based testing
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,  # Disable deadline for slow operations
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


# Toolchain-free recipes built from POSIX utilities, one per recipe variant.
SYNTHETIC_RECIPES = {
    "shell": InterpretedRecipe(extension=".sh", run=("sh", "{source}")),
    # "Compiles" by syntax-checking the script and installing it as the binary.
    "shbin": GeneratedBinaryRecipe(
        extension=".sh",
        compile=(
            "sh",
            "-c",
            'sh -n "$0" && install -m 755 "$0" "$1"',
            "{source}",
            "{binary}",
        ),
    ),
    "shfixed": FixedNameRecipe(
        extension=".sh",
        file_name="Main.sh",
        compile=("sh", "-c", 'sh -n "$0" && cp "$0" "$1"', "{source}", "{workdir}/Main.out"),
        run=("sh", "{workdir}/{stem}.out"),
        artifacts=("Main.out",),
    ),
}


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Shared working directory, created the way the server does at startup."""
    directory = tmp_path / "temp"
    WorkingDirectory(directory).ensure()
    return directory


@pytest.fixture
def synthetic_registry() -> RecipeRegistry:
    return RecipeRegistry(SYNTHETIC_RECIPES)


@pytest.fixture
def dispatcher(work_dir: Path, synthetic_registry: RecipeRegistry) -> Dispatcher:
    """Dispatcher over the synthetic recipes with a short timeout."""
    return Dispatcher(work_dir, timeout_seconds=5, registry=synthetic_registry)


@pytest.fixture
def builtin_dispatcher(work_dir: Path) -> Dispatcher:
    """Dispatcher over the built-in languages."""
    return Dispatcher(work_dir, timeout_seconds=60)


@pytest.fixture
def sample_invalid_python():
    """Sample invalid Python code for testing."""
    return """
def broken_function(
    # Missing closing parenthesis
"""
