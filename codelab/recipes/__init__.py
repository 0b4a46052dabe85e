"""
Language recipes: how each supported language is built and run.
"""

from .base import (
    EXECUTABLE_SUFFIX,
    FixedNameRecipe,
    GeneratedBinaryRecipe,
    InterpretedRecipe,
    LanguageRecipe,
    RecipeContext,
    RecipeKind,
)
from .registry import (
    BUILTIN_RECIPES,
    DEFAULT_REGISTRY,
    SUPPORTED_LANGUAGES,
    RecipeRegistry,
    ToolchainHealth,
    detect_toolchain_health,
    require,
    resolve,
)
from .templates import GREETINGS, TEMPLATES, get_template

__all__ = [
    "BUILTIN_RECIPES",
    "DEFAULT_REGISTRY",
    "EXECUTABLE_SUFFIX",
    "GREETINGS",
    "SUPPORTED_LANGUAGES",
    "TEMPLATES",
    "FixedNameRecipe",
    "GeneratedBinaryRecipe",
    "InterpretedRecipe",
    "LanguageRecipe",
    "RecipeContext",
    "RecipeKind",
    "RecipeRegistry",
    "ToolchainHealth",
    "detect_toolchain_health",
    "get_template",
    "require",
    "resolve",
]
