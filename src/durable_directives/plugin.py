"""
Per-module pipeline: collect, then transform, then (for source input) print.

The two passes never interleave. The collector finishes and freezes its
fact sheet before the transformer starts, and each module gets its own
fact sheet, so independent modules may be processed in parallel.
"""

from __future__ import annotations

import logging
from typing import Optional

from .collector import Collector, iter_reserved_calls
from .config import PluginConfig
from .logger import configure as configure_logger
from .nodes import Module
from .parser import ModuleParseError, parse_module
from .printer import format_module
from .transformer import WorkflowTransformer

LOGGER = configure_logger("durable_directives.plugin")


def transform_module(module: Module, config: Optional[PluginConfig] = None) -> bool:
    """Rewrite `module` in place. Returns whether anything changed."""
    config = config or PluginConfig()
    info = Collector(config).collect(module)
    if LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug(
            "collected mode=%s workflows=%s steps=%s imports=%s reserved=%s",
            config.mode.value,
            [wf.name for wf in info.workflow_fns],
            list(info.step_fn_names),
            [imp.local_name for imp in info.workflow_imports],
            list(iter_reserved_calls(info)),
        )
    return WorkflowTransformer(config, info).transform(module)


def transform_source(
    source: str,
    config: Optional[PluginConfig] = None,
    *,
    tsx: bool = False,
    filename: Optional[str] = None,
) -> str:
    """Parse, transform and print one module.

    Returns `source` itself when the transform does not apply or the source
    does not parse.
    """
    try:
        module = parse_module(source, tsx=tsx)
    except ModuleParseError as exc:
        LOGGER.warning("skipping %s: %s", filename or "<module>", exc)
        return source
    if not transform_module(module, config):
        return source
    return format_module(module)


def process_transform(
    source: str,
    config_json: Optional[str | bytes] = None,
    *,
    tsx: bool = False,
    filename: Optional[str] = None,
) -> str:
    """Plugin-host entry point taking the serialized configuration blob."""
    return transform_source(source, PluginConfig.from_json(config_json), tsx=tsx, filename=filename)
