"""Plugin settings: the cluster to talk to, the server agents call home to,
and how long a new agent has to register before it is reclaimed.

Settings come from a YAML file, overridden by ``ELASTIC_PODS_*`` environment
variables::

    go_server_url: https://ci.example.com/go
    kubernetes_cluster_url: https://k8s.example.com:6443
    auto_register_timeout: 10        # minutes
    namespace: default
"""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
import yaml
from pydantic import BaseModel, Field

from elastic_pods.constants import DEFAULT_NAMESPACE
from elastic_pods.errors import ConfigError

logger = structlog.get_logger(__name__)

ENV_PREFIX = "ELASTIC_PODS_"


class PluginSettings(BaseModel):
    """Connection and timeout settings for the elastic agent plugin."""

    go_server_url: str = Field(..., description="URL agents use to reach the Go server")
    kubernetes_cluster_url: str = Field(..., description="Kubernetes API server URL")
    auto_register_timeout: int = Field(
        default=10, gt=0, description="Minutes an agent may stay unregistered"
    )
    namespace: str = Field(default=DEFAULT_NAMESPACE, description="Namespace for agent pods")
    security_token: Optional[str] = Field(
        default=None, description="Bearer token for the Kubernetes API"
    )
    cluster_ca_cert: Optional[str] = Field(
        default=None, description="Path to the cluster CA bundle"
    )
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")

    model_config = {"frozen": True}

    @property
    def auto_register_period(self) -> timedelta:
        return timedelta(minutes=self.auto_register_timeout)


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _is_positive_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return int(str(value).strip()) > 0
    except (TypeError, ValueError):
        return False


def validate_settings(raw: Mapping[str, Any]) -> list[dict[str, str]]:
    """Return the field errors for a raw settings mapping, ``[]`` when valid."""
    errors: list[dict[str, str]] = []
    if _is_blank(raw.get("go_server_url")):
        errors.append({
            "key": "go_server_url",
            "message": "Go Server URL must not be blank.",
        })
    if not _is_positive_int(raw.get("auto_register_timeout")):
        errors.append({
            "key": "auto_register_timeout",
            "message": "Agent auto-register Timeout (in minutes) must be a positive integer.",
        })
    if _is_blank(raw.get("kubernetes_cluster_url")):
        errors.append({
            "key": "kubernetes_cluster_url",
            "message": "Kubernetes Cluster URL must not be blank.",
        })
    return errors


def _env_overrides(env: Mapping[str, str]) -> dict[str, str]:
    overrides = {}
    for name in PluginSettings.model_fields:
        value = env.get(ENV_PREFIX + name.upper())
        if value is not None:
            overrides[name] = value
    return overrides


def load_settings(
    path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> PluginSettings:
    """Load settings from YAML plus environment overrides.

    Args:
        path: YAML file. Missing files are treated as empty.
        env: Environment mapping, defaults to ``os.environ``.

    Raises:
        ConfigError: When the merged settings do not validate.
    """
    raw: dict[str, Any] = {}
    if path:
        config_file = Path(path)
        if config_file.exists():
            with open(config_file) as f:
                raw = yaml.safe_load(f) or {}
        else:
            logger.warning("settings_file_missing", path=path)

    raw.update(_env_overrides(os.environ if env is None else env))

    errors = validate_settings(raw)
    if errors:
        raise ConfigError(errors)

    settings = PluginSettings(**{k: v for k, v in raw.items() if v is not None})
    logger.info(
        "settings_loaded",
        cluster_url=settings.kubernetes_cluster_url,
        namespace=settings.namespace,
        auto_register_timeout=settings.auto_register_timeout,
    )
    return settings
