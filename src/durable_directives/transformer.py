"""
Transformer - the mutating second pass.

Driven by a frozen `CollectedInfo` and the configured mode, rewrites a
module's item list in place. All new syntax comes from `codegen`; this
module only decides where it goes.

Workflow mode:
1. Prepend the durable-execution import (and the Lambda SDK import when
   `invoke` is used).
2. Drop module-level "use workflow" directives and step declarations.
3. Replace workflow declarations with `withDurableExecution` wrappers whose
   bodies have step calls and reserved helpers rewritten.
4. Append the module's `__workflowMeta` export.

Client mode replaces every relative import with one workflow descriptor per
specifier.

Body rewriting only looks at expression statements, variable declarations
and returns; control-flow statements and nested function literals pass
through untouched.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from typing import Optional

from . import codegen
from .collector import INVOKE, SLEEP, WAIT_FOR_CALLBACK, CollectedInfo, StepFnInfo, extract_fn_body
from .config import PluginConfig, TransformMode
from .directives import is_use_step_directive, is_use_workflow_directive
from .logger import configure as configure_logger
from .nodes import (
    ArrayExpression,
    ArrowFunction,
    AssignmentExpression,
    AwaitExpression,
    BooleanLiteral,
    CallExpression,
    ExportDeclaration,
    ExportDefaultDeclaration,
    Expression,
    ExpressionStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    ImportDeclaration,
    ImportNamedSpecifier,
    ImportSpecifier,
    MemberExpression,
    Module,
    ModuleItem,
    NewExpression,
    NumericLiteral,
    ObjectExpression,
    RawExpression,
    RawStatement,
    ReturnStatement,
    Statement,
    StringLiteral,
    VariableDeclaration,
    VariableDeclarator,
    assert_never,
)

LOGGER = configure_logger("durable_directives.transformer")


class WorkflowTransformer:
    """Second pass over one module, reading a fact sheet that never changes."""

    def __init__(self, config: PluginConfig, info: CollectedInfo) -> None:
        self.config = config
        self.info = info
        # Steps currently being inlined; a recursive step call is left alone.
        self._inlining: list[str] = []

    def transform(self, module: Module) -> bool:
        """Rewrite `module.body` in place. Returns False when nothing applies."""
        match self.config.mode:
            case TransformMode.WORKFLOW:
                return self.transform_workflow_module(module)
            case TransformMode.CLIENT:
                return self.transform_client_module(module)
            case _:
                assert_never(self.config.mode)

    # ── Workflow Mode ───────────────────────────────────────────

    def transform_workflow_module(self, module: Module) -> bool:
        info = self.info
        if not info.workflow_fns and not info.has_module_workflow_directive:
            return False

        new_items: list[ModuleItem] = [codegen.sdk_import(self.config.package_name)]
        if info.has_invoke:
            new_items.append(codegen.lambda_sdk_import())

        items, module.body = module.body, []
        for item in items:
            new_items.extend(self._transform_item(item))

        if info.workflow_fns:
            step_names = list(info.step_fns)
            new_items.append(codegen.workflow_meta_export(info.workflow_fns[0].name, step_names))
            if len(info.workflow_fns) > 1:
                LOGGER.warning(
                    "module declares %d workflows; __workflowMeta names only %s",
                    len(info.workflow_fns),
                    info.workflow_fns[0].name,
                )

        module.body = new_items
        return True

    def _transform_item(self, item: ModuleItem) -> list[ModuleItem]:
        match item:
            case ExpressionStatement() if is_use_workflow_directive(item):
                return []
            case FunctionDeclaration():
                return self._transform_function_declaration(item, exported=False, default=False)
            case VariableDeclaration():
                return self._transform_variable_declaration(item, exported=False)
            case ExportDeclaration(declaration=FunctionDeclaration() as declaration):
                replaced = self._transform_function_declaration(declaration, exported=True, default=False)
                return [item] if _unchanged(replaced, declaration) else replaced
            case ExportDeclaration(declaration=VariableDeclaration() as declaration):
                replaced = self._transform_variable_declaration(declaration, exported=True)
                return [item] if _unchanged(replaced, declaration) else replaced
            case ExportDefaultDeclaration(declaration=declaration):
                replaced = self._transform_function_declaration(declaration, exported=True, default=True)
                return [item] if _unchanged(replaced, declaration) else replaced
            case _:
                return [item]

    def _transform_function_declaration(
        self, decl: FunctionDeclaration, *, exported: bool, default: bool
    ) -> list[ModuleItem]:
        if self.info.is_step_fn_name(decl.name):
            return []
        wf_info = self.info.find_workflow_fn(decl.name)
        if wf_info is None or decl.body is None:
            return [decl]
        body = self.transform_workflow_body(decl.body.body)
        return codegen.with_durable_execution_wrap(
            wf_info.name,
            body,
            exported or wf_info.is_exported,
            default or wf_info.is_default_export,
        )

    def _transform_variable_declaration(self, decl: VariableDeclaration, *, exported: bool) -> list[ModuleItem]:
        names = [d.binding.name for d in decl.declarations if isinstance(d.binding, Identifier)]
        if any(self.info.is_step_fn_name(name) for name in names):
            return []

        wrappers: list[ModuleItem] = []
        remaining: list[VariableDeclarator] = []
        for declarator in decl.declarations:
            wrapped = self._wrap_workflow_declarator(declarator, exported=exported)
            if wrapped is None:
                remaining.append(declarator)
            else:
                wrappers.extend(wrapped)

        if not wrappers:
            return [decl]
        if remaining:
            residual = VariableDeclaration(kind=decl.kind, declarations=remaining)
            wrappers.insert(0, ExportDeclaration(declaration=residual) if exported else residual)
        return wrappers

    def _wrap_workflow_declarator(
        self, declarator: VariableDeclarator, *, exported: bool
    ) -> Optional[list[ModuleItem]]:
        if not isinstance(declarator.binding, Identifier):
            return None
        wf_info = self.info.find_workflow_fn(declarator.binding.name)
        if wf_info is None:
            return None
        _, body = extract_fn_body(declarator.init)
        if body is None:
            return None
        stmts = self.transform_workflow_body(body.body)
        return codegen.with_durable_execution_wrap(
            wf_info.name,
            stmts,
            exported or wf_info.is_exported,
            wf_info.is_default_export,
        )

    # ── Body rewriting ─────────────────────────────────────────

    def transform_workflow_body(self, stmts: list[Statement]) -> list[Statement]:
        """Strip directives, then rewrite each statement."""
        return [
            self.transform_statement(stmt)
            for stmt in stmts
            if not is_use_workflow_directive(stmt) and not is_use_step_directive(stmt)
        ]

    def transform_statement(self, stmt: Statement) -> Statement:
        match stmt:
            case ExpressionStatement(expression=expression):
                return ExpressionStatement(expression=self.transform_expression(expression))
            case VariableDeclaration(kind=kind, declarations=declarations):
                return VariableDeclaration(
                    kind=kind,
                    declarations=[
                        VariableDeclarator(
                            binding=d.binding,
                            init=self.transform_expression(d.init) if d.init is not None else None,
                            type_annotation=d.type_annotation,
                        )
                        for d in declarations
                    ],
                )
            case ReturnStatement(argument=argument):
                if argument is None:
                    return stmt
                return ReturnStatement(argument=self.transform_expression(argument))
            case FunctionDeclaration() | RawStatement():
                return stmt
            case _:
                assert_never(stmt)

    def transform_expression(self, expr: Expression) -> Expression:
        match expr:
            case CallExpression():
                return self._transform_call(expr)
            case AwaitExpression(argument=argument):
                return AwaitExpression(argument=self.transform_expression(argument))
            case AssignmentExpression(operator=operator, left=left, right=right):
                return AssignmentExpression(operator=operator, left=left, right=self.transform_expression(right))
            case (
                Identifier()
                | StringLiteral()
                | NumericLiteral()
                | BooleanLiteral()
                | ObjectExpression()
                | ArrayExpression()
                | NewExpression()
                | MemberExpression()
                | ArrowFunction()
                | FunctionExpression()
                | RawExpression()
            ):
                return expr
            case _:
                assert_never(expr)

    def _transform_call(self, call: CallExpression) -> Expression:
        callee_name = call.callee.name if isinstance(call.callee, Identifier) else None

        if callee_name is not None:
            step_info = self.info.step_fns.get(callee_name)
            if step_info is not None:
                if callee_name not in self._inlining:
                    return self._inline_step(step_info, call)
                LOGGER.warning("step %s calls itself; leaving the recursive call unrewritten", callee_name)

            if callee_name == INVOKE and len(call.arguments) >= 2:
                return codegen.invoke_step(call.arguments[0].expression, call.arguments[1].expression)
            if callee_name == SLEEP and call.arguments:
                return codegen.wait_call(call.arguments[0].expression)
            if callee_name == WAIT_FOR_CALLBACK:
                return codegen.wait_for_callback_call(call.arguments)
            if callee_name in (INVOKE, SLEEP):
                LOGGER.warning(
                    "%s() called with %d argument(s); leaving it unrewritten",
                    callee_name,
                    len(call.arguments),
                )

        return CallExpression(
            callee=call.callee,
            arguments=[
                dataclasses.replace(arg, expression=self.transform_expression(arg.expression))
                for arg in call.arguments
            ],
            type_arguments=call.type_arguments,
        )

    def _inline_step(self, step_info: StepFnInfo, call: CallExpression) -> CallExpression:
        # Step bodies are spliced without their parameters, so call-site arguments have nowhere to go.
        if call.arguments:
            LOGGER.warning(
                "discarding %d call-site argument(s) passed to step %s",
                len(call.arguments),
                step_info.name,
            )
        body = copy.deepcopy(step_info.body.body)
        self._inlining.append(step_info.name)
        try:
            stmts = self.transform_workflow_body(body)
        finally:
            self._inlining.pop()
        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug("inlined step %s (%d statements)", step_info.name, len(stmts))
        return codegen.step_call(step_info.name, stmts)

    # ── Client Mode ────────────────────────────────────────────

    def transform_client_module(self, module: Module) -> bool:
        if not self.info.workflow_imports:
            return False

        workflow_sources = set(self.info.workflow_sources)
        kept: list[ModuleItem] = []
        descriptors: list[ModuleItem] = []

        for item in module.body:
            if (
                isinstance(item, ImportDeclaration)
                and not item.type_only
                and item.source in workflow_sources
            ):
                erased = [spec for spec in item.specifiers if _is_type_specifier(spec)]
                for spec in item.specifiers:
                    if not _is_type_specifier(spec):
                        descriptors.append(codegen.workflow_descriptor(spec.local, self.config.env_prefix))
                # Inline `type` specifiers still name types from the workflow module.
                if erased:
                    kept.append(ImportDeclaration(source=item.source, specifiers=erased))
                continue
            kept.append(item)

        first_non_import = next(
            (idx for idx, item in enumerate(kept) if not isinstance(item, ImportDeclaration)),
            len(kept),
        )
        module.body = kept[:first_non_import] + descriptors + kept[first_non_import:]
        return True


def _is_type_specifier(spec: ImportSpecifier) -> bool:
    return isinstance(spec, ImportNamedSpecifier) and spec.type_only


def _unchanged(replaced: list[ModuleItem], original: ModuleItem) -> bool:
    return len(replaced) == 1 and replaced[0] is original
