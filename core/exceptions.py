# PATH: core/exceptions.py
"""
Typed exceptions for the explorer data layer.

Only ConfigurationError is meant to reach presentation code. Everything
else is either absorbed by a fallback or propagated as a transient
infrastructure failure.
"""

from typing import Optional

from core.constants import ErrorCode


class ExplorerError(Exception):
    """Base exception for the explorer data layer."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class ConfigurationError(ExplorerError):
    """Invalid settings, or a backend requiring an endpoint selected without one."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        code: ErrorCode = ErrorCode.CONFIG_MISSING_ENDPOINT,
    ):
        super().__init__(message, code, details)


class InfraError(ExplorerError):
    """Infrastructure-related errors (node, indexer, timeouts)."""
    pass


class NodeConnectionError(InfraError, ConnectionError):
    """Chain node unreachable or the session dropped mid-call."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INFRA_CONNECTION, details)


class ExplorerTimeoutError(InfraError):
    """Caller-supplied deadline expired."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INFRA_TIMEOUT, details)


class QueryShapeError(ExplorerError):
    """
    A single indexer query candidate failed (transport, GraphQL errors,
    or the expected records path is absent).

    Never surfaced to callers; only exhaustion of all candidates matters.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INDEXER_QUERY_SHAPE,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class MappingError(ExplorerError):
    """An indexer record lacks a mandatory canonical field."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.MAPPING_MISSING_FIELD, details)
