"""
CodeLab: compile and run source code in many languages.

The core is the execution dispatcher, which maps a language identifier to a
build/run recipe, runs the toolchain under a hard timeout, classifies the
outcome and removes every artifact it created.
"""

__version__ = "0.1.0"

from .core.exceptions import CodeLabError, ConfigurationError, UnsupportedLanguageError
from .execution import (
    ConfigurationFailure,
    Dispatcher,
    ExecutionResult,
    ResultKind,
    RuntimeOrCompileFailure,
    Success,
    Timeout,
    WorkingDirectory,
    execute,
)
from .recipes import SUPPORTED_LANGUAGES, LanguageRecipe, RecipeRegistry, resolve

__all__ = [
    "SUPPORTED_LANGUAGES",
    "CodeLabError",
    "ConfigurationError",
    "ConfigurationFailure",
    "Dispatcher",
    "ExecutionResult",
    "LanguageRecipe",
    "RecipeRegistry",
    "ResultKind",
    "RuntimeOrCompileFailure",
    "Success",
    "Timeout",
    "UnsupportedLanguageError",
    "WorkingDirectory",
    "__version__",
    "execute",
]
