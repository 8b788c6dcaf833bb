"""Exception types raised by elastic-pods.

- ValidationError: a create request or profile is unusable; raised before
  anything is sent to the cluster.
- ClusterPlatformError: the Kubernetes API call itself failed.
- ConfigError: plugin settings did not validate while loading.
"""

from __future__ import annotations

from typing import Optional


class ElasticPodsError(Exception):
    """Base exception for elastic-pods."""


class ValidationError(ElasticPodsError):
    """Raised when request properties are missing or malformed.

    Attributes:
        errors: Field errors as ``{"key": ..., "message": ...}`` dicts.
    """

    def __init__(self, message: str, errors: Optional[list[dict[str, str]]] = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class ClusterPlatformError(ElasticPodsError):
    """Raised when a call to the cluster platform fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PodNotFoundError(ClusterPlatformError):
    """Raised when a pod that was expected to exist is missing."""

    def __init__(self, namespace: str, name: str) -> None:
        self.namespace = namespace
        self.name = name
        super().__init__(f"Pod {namespace}/{name} not found", status_code=404)


class ConfigError(ElasticPodsError):
    """Raised when plugin settings fail validation."""

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        detail = "; ".join(e["message"] for e in errors)
        super().__init__(f"Invalid plugin settings: {detail}")
