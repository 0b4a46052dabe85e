"""
HTTP server for CodeLab.
"""

from .app import ExecuteRequest, create_app, serialize_result

__all__ = ["ExecuteRequest", "create_app", "serialize_result"]
