"""
Custom exceptions for CodeLab.

Provides specific exception types for better error handling and user feedback.
"""


class CodeLabError(Exception):
    """Base exception for CodeLab errors."""


class ConfigurationError(CodeLabError):
    """Error in configuration."""


# Execution Errors


class ExecutionError(CodeLabError):
    """Base exception for execution errors."""


class UnsupportedLanguageError(ExecutionError):
    """No recipe is registered for the requested language."""

    def __init__(self, language: str):
        super().__init__(f"Language '{language}' not supported.")
        self.language = language
        self.user_message = f"Language '{language}' is not supported."
        self.recovery_hint = "Run `codelab languages` to see available languages."


class SourceWriteError(ExecutionError):
    """Submitted source could not be written to the working directory."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write source to {path}: {reason}")
        self.path = path
        self.user_message = "The server failed to write your source file."
        self.recovery_hint = "Check that the working directory exists and is writable."


def format_error_message(error: Exception) -> str:
    """
    Format an error message for display to user.

    Args:
        error: Exception to format

    Returns:
        Formatted error message with recovery hints
    """
    if isinstance(error, CodeLabError) and hasattr(error, "user_message"):
        message = error.user_message
        if hasattr(error, "recovery_hint"):
            message += f"\n\nHint: {error.recovery_hint}"
        return message
    else:
        return str(error)
