"""Builds the Kubernetes pod manifest for a new elastic agent."""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any, Mapping, Optional

from elastic_pods.agents import CreateAgentRequest
from elastic_pods.constants import (
    CREATED_AT_LABEL_KEY,
    CREATED_BY_LABEL_KEY,
    ENVIRONMENT_LABEL_KEY,
    KIND_LABEL_KEY,
    KIND_LABEL_VALUE,
    PLUGIN_ID,
    POD_NAME_PREFIX,
    SERVER_URL_ENV,
)
from elastic_pods.errors import ValidationError
from elastic_pods.settings import PluginSettings

IMAGE = "Image"
MAX_MEMORY = "MaxMemory"
MAX_CPU = "MaxCPU"
ENVIRONMENT = "Environment"

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmgt]?)b?\s*$", re.IGNORECASE)
_UNIT_EXPONENT = {"": 0, "k": 1, "m": 2, "g": 3, "t": 4}


def new_pod_name() -> str:
    return f"{POD_NAME_PREFIX}{uuid.uuid4()}"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def image_from(properties: Mapping[str, str]) -> str:
    """Return the container image, defaulting the tag to ``latest``."""
    image = properties.get(IMAGE)
    if _is_blank(image):
        raise ValidationError(
            "Must provide `Image` attribute.",
            [{"key": IMAGE, "message": "Image must not be blank."}],
        )
    image = image.strip()
    if ":" not in image:
        return f"{image}:latest"
    return image


def parse_size_mb(text: str) -> int:
    """Parse a memory size such as ``512M``, ``1.5GB`` or ``1048576`` into megabytes."""
    match = _SIZE_PATTERN.match(text or "")
    if not match:
        raise ValidationError(
            f"Invalid memory size: {text!r}",
            [{"key": MAX_MEMORY, "message": f"Invalid size: {text}"}],
        )
    amount = float(match.group(1))
    size_bytes = amount * 1024 ** _UNIT_EXPONENT[match.group(2).lower()]
    return int(size_bytes // (1024 ** 2))


def parse_environment(text: Optional[str]) -> list[dict[str, str]]:
    """Parse newline separated ``KEY=VALUE`` lines into container env entries."""
    env = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line:
            continue
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            raise ValidationError(
                f"Invalid environment line: {line!r}",
                [{"key": ENVIRONMENT, "message": f"Expected KEY=VALUE, got: {line}"}],
            )
        env.append({"name": key.strip(), "value": value})
    return env


def resource_limits(properties: Mapping[str, str]) -> dict[str, str]:
    limits = {}
    max_memory = properties.get(MAX_MEMORY)
    if not _is_blank(max_memory):
        limits["memory"] = f"{parse_size_mb(max_memory)}Mi"
    max_cpu = properties.get(MAX_CPU)
    if not _is_blank(max_cpu):
        limits["cpu"] = max_cpu.strip()
    return limits


def environment_from(
    request: CreateAgentRequest,
    settings: PluginSettings,
    pod_name: str,
) -> list[dict[str, str]]:
    env = [{"name": SERVER_URL_ENV, "value": settings.go_server_url}]
    env.extend(parse_environment(request.properties.get(ENVIRONMENT)))
    for var in request.autoregister_properties_as_environment_vars(pod_name):
        key, _, value = var.partition("=")
        env.append({"name": key, "value": value})
    return env


def labels_from(request: CreateAgentRequest, created_at: datetime) -> dict[str, str]:
    labels = {CREATED_BY_LABEL_KEY: PLUGIN_ID}
    if not _is_blank(request.environment):
        labels[ENVIRONMENT_LABEL_KEY] = request.environment
    labels[CREATED_AT_LABEL_KEY] = str(int(created_at.timestamp() * 1000))
    labels[KIND_LABEL_KEY] = KIND_LABEL_VALUE
    return labels


def build_pod_manifest(
    request: CreateAgentRequest,
    settings: PluginSettings,
    created_at: datetime,
    pod_name: Optional[str] = None,
) -> dict[str, Any]:
    """Build the pod body for the Kubernetes create call.

    Everything that can fail validation is computed before the manifest is
    returned, so a bad request never reaches the cluster.
    """
    name = pod_name or new_pod_name()
    container = {
        "name": name,
        "image": image_from(request.properties),
        "imagePullPolicy": "IfNotPresent",
        "env": environment_from(request, settings, name),
        "resources": {"limits": resource_limits(request.properties)},
    }
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": name,
            "labels": labels_from(request, created_at),
            "annotations": dict(request.properties),
        },
        "spec": {"containers": [container]},
    }
