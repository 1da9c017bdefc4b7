"""Plugin configuration resolved once per transformation run."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from .logger import configure as configure_logger

LOGGER = configure_logger("durable_directives.config")

DEFAULT_PACKAGE_NAME = "@bento/aws-durable"
DEFAULT_ENV_PREFIX = "WORKFLOW_"


class TransformMode(str, Enum):
    WORKFLOW = "workflow"
    CLIENT = "client"


class PluginConfig(BaseModel):
    """Mode switch, SDK package name and environment-variable prefix.

    Serialized blobs use camelCase keys (`packageName`, `envPrefix`); Python
    callers may use either spelling.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    mode: TransformMode = TransformMode.WORKFLOW
    package_name: str = DEFAULT_PACKAGE_NAME
    env_prefix: str = DEFAULT_ENV_PREFIX

    @classmethod
    def from_json(cls, blob: Optional[str | bytes]) -> "PluginConfig":
        """Deserialize a config blob, falling back to defaults instead of failing.

        Invalid JSON yields the all-default config; individual fields that fail
        validation are dropped so they take their defaults.
        """
        if not blob:
            return cls()
        try:
            raw = json.loads(blob)
        except ValueError:
            LOGGER.warning("plugin config is not valid JSON; using defaults")
            return cls()
        if not isinstance(raw, dict):
            LOGGER.warning("plugin config must be a JSON object, got %s; using defaults", type(raw).__name__)
            return cls()
        return cls.from_mapping(raw)

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> "PluginConfig":
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            rejected = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
            LOGGER.warning("ignoring invalid plugin config fields: %s", ", ".join(sorted(rejected)))
            kept = {key: value for key, value in raw.items() if key not in rejected}
            try:
                return cls.model_validate(kept)
            except ValidationError:
                return cls()
