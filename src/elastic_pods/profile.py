"""Elastic profile fields understood by the plugin, and their validation."""

from __future__ import annotations

from typing import Mapping

from pydantic import BaseModel, Field

from elastic_pods.cluster.manifest import (
    ENVIRONMENT,
    IMAGE,
    MAX_CPU,
    MAX_MEMORY,
    parse_environment,
    parse_size_mb,
)
from elastic_pods.errors import ValidationError


class ProfileField(BaseModel):
    key: str = Field(..., description="Property name")
    required: bool = Field(default=False)
    secure: bool = Field(default=False)


FIELDS = [
    ProfileField(key=IMAGE, required=True),
    ProfileField(key=MAX_MEMORY),
    ProfileField(key=MAX_CPU),
    ProfileField(key=ENVIRONMENT),
]


def validate_profile(properties: Mapping[str, str]) -> list[dict[str, str]]:
    """Return field errors for an elastic profile, ``[]`` when it is usable."""
    errors = []
    for field in FIELDS:
        value = properties.get(field.key)
        if field.required and (value is None or not value.strip()):
            errors.append({"key": field.key, "message": f"{field.key} must not be blank."})

    max_memory = properties.get(MAX_MEMORY)
    if max_memory and max_memory.strip():
        try:
            parse_size_mb(max_memory)
        except ValidationError as e:
            errors.extend(e.errors)

    try:
        parse_environment(properties.get(ENVIRONMENT))
    except ValidationError as e:
        errors.extend(e.errors)

    known = {field.key for field in FIELDS}
    for key in properties:
        if key not in known:
            errors.append({"key": key, "message": "Is an unknown property"})
    return errors
