"""Directive-based durable workflow rewriting pass."""

from .codegen import (
    invoke_step,
    lambda_sdk_import,
    sdk_import,
    step_call,
    wait_call,
    wait_for_callback_call,
    with_durable_execution_wrap,
    workflow_descriptor,
    workflow_meta_export,
)
from .collector import (
    CollectedInfo,
    Collector,
    StepFnInfo,
    WorkflowFnInfo,
    WorkflowImportInfo,
    collect,
)
from .config import PluginConfig, TransformMode
from .directives import (
    block_has_step_directive,
    block_has_workflow_directive,
    is_directive,
    is_use_step_directive,
    is_use_workflow_directive,
)
from .loader import LoaderOptions, LoadResult, load_file, select_mode
from .parser import ModuleParseError, TreeSitterDependencyError, parse_module
from .plugin import process_transform, transform_module, transform_source
from .printer import format_module
from .transformer import WorkflowTransformer

__all__ = [
    "CollectedInfo",
    "Collector",
    "LoadResult",
    "LoaderOptions",
    "ModuleParseError",
    "PluginConfig",
    "StepFnInfo",
    "TransformMode",
    "TreeSitterDependencyError",
    "WorkflowFnInfo",
    "WorkflowImportInfo",
    "WorkflowTransformer",
    "block_has_step_directive",
    "block_has_workflow_directive",
    "collect",
    "format_module",
    "invoke_step",
    "is_directive",
    "is_use_step_directive",
    "is_use_workflow_directive",
    "lambda_sdk_import",
    "load_file",
    "parse_module",
    "process_transform",
    "sdk_import",
    "select_mode",
    "step_call",
    "transform_module",
    "transform_source",
    "wait_call",
    "wait_for_callback_call",
    "with_durable_execution_wrap",
    "workflow_descriptor",
    "workflow_meta_export",
]
