"""Command line front end: transform files or directories of workflow sources."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterator, Optional, Sequence

from .config import PluginConfig, TransformMode
from .loader import LoaderOptions, LoadResult, load_file, transform_file
from .logger import configure as configure_logger
from .logger import set_level

LOGGER = configure_logger("durable_directives.cli")

AUTO_MODE = "auto"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="durable-directives",
        description='Rewrite "use workflow" / "use step" modules into durable-execution SDK calls.',
    )
    parser.add_argument("paths", nargs="+", type=Path, help="Files or directories to transform.")
    parser.add_argument(
        "--mode",
        choices=[AUTO_MODE, TransformMode.WORKFLOW.value, TransformMode.CLIENT.value],
        default=AUTO_MODE,
        help="Transform mode; 'auto' selects it per file from the path patterns.",
    )
    parser.add_argument("--config", default=None, help="Serialized plugin config (JSON).")
    parser.add_argument("--package-name", default=None, help="SDK package for the durable wrapper import.")
    parser.add_argument("--env-prefix", default=None, help="Prefix for workflow function-name env vars.")
    parser.add_argument(
        "--workflow-pattern",
        action="append",
        default=None,
        help="Glob selecting workflow files in auto mode (repeatable, replaces defaults).",
    )
    parser.add_argument(
        "--client-pattern",
        action="append",
        default=None,
        help="Glob selecting client files in auto mode (repeatable, replaces defaults).",
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="Write results under this directory instead of printing them.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...).")
    return parser


def _iter_files(paths: Sequence[Path], extensions: frozenset[str]) -> Iterator[tuple[Path, Path]]:
    """Yield (file, root) pairs; root is the directory relative output paths hang off."""
    for path in paths:
        if path.is_dir():
            for candidate in sorted(path.rglob("*")):
                if candidate.is_file() and candidate.suffix in extensions:
                    yield candidate, path
        else:
            yield path, path.parent


def _resolve_options(args: argparse.Namespace) -> tuple[PluginConfig, LoaderOptions]:
    base = PluginConfig.from_json(args.config)
    overrides = {}
    if args.package_name is not None:
        overrides["package_name"] = args.package_name
    if args.env_prefix is not None:
        overrides["env_prefix"] = args.env_prefix
    if args.mode != AUTO_MODE:
        overrides["mode"] = TransformMode(args.mode)
    config = base.model_copy(update=overrides)

    loader_fields: dict[str, object] = {
        "package_name": config.package_name,
        "env_prefix": config.env_prefix,
    }
    if args.workflow_pattern:
        loader_fields["workflow_patterns"] = args.workflow_pattern
    if args.client_pattern:
        loader_fields["client_patterns"] = args.client_pattern
    return config, LoaderOptions(**loader_fields)


def _emit(result: LoadResult, root: Path, out_dir: Optional[Path]) -> None:
    if out_dir is None:
        sys.stdout.write(f"// {result.path} ({result.mode.value})\n")
        sys.stdout.write(result.code)
        return
    target = out_dir / result.path.relative_to(root)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(result.code, encoding="utf-8")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        set_level(args.log_level)

    config, options = _resolve_options(args)
    status = 0
    for path, root in _iter_files(args.paths, options.extensions):
        try:
            if args.mode == AUTO_MODE:
                result = load_file(path, options)
            else:
                result = transform_file(path, path.read_text(encoding="utf-8"), config)
        except OSError as exc:
            LOGGER.error("cannot read %s: %s", path, exc)
            status = 1
            continue
        if result is None:
            LOGGER.debug("%s: no transform mode selected", path)
            continue
        _emit(result, root, args.out_dir)
    return status


if __name__ == "__main__":
    sys.exit(main())
