"""
Loader - picks a transform mode per file the way a bundler plugin would.

Files under workflow patterns are transformed in workflow mode, but only
when their text actually mentions a directive. Files under client patterns
are transformed in client mode. Everything else is left to the bundler.
"""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_ENV_PREFIX, DEFAULT_PACKAGE_NAME, PluginConfig, TransformMode
from .logger import configure as configure_logger
from .plugin import transform_source

LOGGER = configure_logger("durable_directives.loader")

DIRECTIVE_MARKERS = ('"use workflow"', "'use workflow'", '"use step"', "'use step'")
TSX_EXTENSIONS = frozenset({".tsx", ".jsx"})


class LoaderOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    workflow_patterns: list[str] = Field(default_factory=lambda: ["**/workflows/**", "**/*.workflow.*"])
    client_patterns: list[str] = Field(default_factory=lambda: ["**/handlers/**", "**/*.handler.*", "**/api/**"])
    package_name: str = DEFAULT_PACKAGE_NAME
    env_prefix: str = DEFAULT_ENV_PREFIX
    extensions: frozenset[str] = frozenset({".ts", ".tsx", ".js", ".jsx", ".mts", ".cts", ".mjs", ".cjs"})

    def plugin_config(self, mode: TransformMode) -> PluginConfig:
        return PluginConfig(mode=mode, package_name=self.package_name, env_prefix=self.env_prefix)


@dataclass
class LoadResult:
    path: Path
    mode: TransformMode
    code: str
    changed: bool


def matches_pattern(path: Path, patterns: list[str]) -> bool:
    target = path.resolve().as_posix()
    return any(fnmatch(target, pattern) for pattern in patterns)


def has_directive_marker(source: str) -> bool:
    return any(marker in source for marker in DIRECTIVE_MARKERS)


def select_mode(path: Path, source: str, options: LoaderOptions) -> Optional[TransformMode]:
    if matches_pattern(path, options.workflow_patterns):
        if has_directive_marker(source):
            return TransformMode.WORKFLOW
        return None
    if matches_pattern(path, options.client_patterns):
        return TransformMode.CLIENT
    return None


def load_file(path: Path, options: Optional[LoaderOptions] = None) -> Optional[LoadResult]:
    """Transform one file if its path selects a mode; None when it is left alone."""
    options = options or LoaderOptions()
    if path.suffix not in options.extensions:
        return None
    source = path.read_text(encoding="utf-8")
    mode = select_mode(path, source, options)
    if mode is None:
        return None
    return transform_file(path, source, options.plugin_config(mode))


def transform_file(path: Path, source: str, config: PluginConfig) -> LoadResult:
    code = transform_source(source, config, tsx=path.suffix in TSX_EXTENSIONS, filename=str(path))
    changed = code != source
    LOGGER.info("%s: %s mode (%s)", path, config.mode.value, "rewritten" if changed else "unchanged")
    return LoadResult(path=path, mode=config.mode, code=code, changed=changed)
