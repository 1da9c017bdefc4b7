"""
Collector - the read-only first pass.

Walks a module once and produces a frozen `CollectedInfo` fact sheet:
workflow and step declarations, relative-path imports, and whether the
reserved helpers (`invoke`, `sleep`, `waitForCallback`) are called anywhere.
Collection never fails; shapes it does not recognise simply contribute no
facts.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from .config import PluginConfig
from .directives import USE_STEP, USE_WORKFLOW, first_directive, is_directive, is_use_workflow_directive
from .logger import configure as configure_logger
from .nodes import (
    Argument,
    ArrayExpression,
    ArrowFunction,
    AssignmentExpression,
    AwaitExpression,
    BlockStatement,
    BooleanLiteral,
    CallExpression,
    ExportDeclaration,
    ExportDefaultDeclaration,
    ExportDefaultExpression,
    Expression,
    ExpressionStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    ImportDeclaration,
    ImportDefaultSpecifier,
    ImportNamedSpecifier,
    ImportNamespaceSpecifier,
    MemberExpression,
    Module,
    ModuleItem,
    NewExpression,
    NumericLiteral,
    ObjectExpression,
    Property,
    RawExpression,
    RawProperty,
    RawStatement,
    ReturnStatement,
    ShorthandProperty,
    SpreadProperty,
    StringLiteral,
    VariableDeclaration,
    VariableDeclarator,
    assert_never,
)

LOGGER = configure_logger("durable_directives.collector")

INVOKE = "invoke"
SLEEP = "sleep"
WAIT_FOR_CALLBACK = "waitForCallback"
RESERVED_CALLS = frozenset({INVOKE, SLEEP, WAIT_FOR_CALLBACK})

RELATIVE_PREFIXES = ("./", "../")


@dataclass(frozen=True)
class WorkflowFnInfo:
    """A declaration whose body carries a "use workflow" directive."""

    name: str
    is_exported: bool
    is_default_export: bool
    is_async: bool


@dataclass(frozen=True)
class StepFnInfo:
    """A "use step" declaration. `body` is the fact sheet's own copy."""

    name: str
    body: BlockStatement


@dataclass(frozen=True)
class WorkflowImportInfo:
    """One specifier of a relative-path import (client mode candidate)."""

    local_name: str
    imported_name: str
    source: str


@dataclass(frozen=True)
class CollectedInfo:
    """Immutable fact sheet handed from the collector to the transformer."""

    workflow_fns: tuple[WorkflowFnInfo, ...] = ()
    step_fns: Mapping[str, StepFnInfo] = field(default_factory=lambda: MappingProxyType({}))
    workflow_imports: tuple[WorkflowImportInfo, ...] = ()
    has_invoke: bool = False
    has_sleep: bool = False
    has_wait_for_callback: bool = False
    step_fn_names: tuple[str, ...] = ()
    has_module_workflow_directive: bool = False

    def find_workflow_fn(self, name: str) -> Optional[WorkflowFnInfo]:
        for info in self.workflow_fns:
            if info.name == name:
                return info
        return None

    def is_step_fn_name(self, name: str) -> bool:
        return name in self.step_fn_names

    @property
    def workflow_sources(self) -> list[str]:
        """Distinct relative import sources, in first-seen order."""
        return list(dict.fromkeys(info.source for info in self.workflow_imports))


def is_relative_source(source: str) -> bool:
    return source.startswith(RELATIVE_PREFIXES)


def extract_fn_body(expr: Optional[Expression]) -> tuple[bool, Optional[BlockStatement]]:
    """(is_async, body) for arrow/function literals with a block body."""
    match expr:
        case ArrowFunction(is_async=is_async, body=BlockStatement() as body):
            return is_async, body
        case FunctionExpression(is_async=is_async, body=body):
            return is_async, body
        case _:
            return False, None


class CallScanner:
    """Records which reserved helpers are called within a subtree.

    Recurses through every expression and statement it can see, including
    call arguments and nested function literals; raw nodes contribute the
    callee names recorded for them at parse time.
    """

    def __init__(self) -> None:
        self.has_invoke = False
        self.has_sleep = False
        self.has_wait_for_callback = False

    def record(self, name: str) -> None:
        if name == INVOKE:
            self.has_invoke = True
        elif name == SLEEP:
            self.has_sleep = True
        elif name == WAIT_FOR_CALLBACK:
            self.has_wait_for_callback = True

    def scan_block(self, block: BlockStatement) -> None:
        for stmt in block.body:
            self.scan_statement(stmt)

    def scan_statement(self, stmt: ModuleItem) -> None:
        match stmt:
            case ExpressionStatement(expression=expression):
                self.scan_expression(expression)
            case VariableDeclaration(declarations=declarations):
                for declarator in declarations:
                    if declarator.init is not None:
                        self.scan_expression(declarator.init)
            case ReturnStatement(argument=argument):
                if argument is not None:
                    self.scan_expression(argument)
            case FunctionDeclaration(body=body):
                if body is not None:
                    self.scan_block(body)
            case RawStatement(called_names=called_names):
                for name in called_names:
                    self.record(name)
            case ExportDeclaration(declaration=declaration):
                self.scan_statement(declaration)
            case ExportDefaultDeclaration(declaration=declaration):
                self.scan_statement(declaration)
            case ExportDefaultExpression(expression=expression):
                self.scan_expression(expression)
            case ImportDeclaration():
                pass
            case _:
                assert_never(stmt)

    def scan_arguments(self, args: list[Argument]) -> None:
        for arg in args:
            self.scan_expression(arg.expression)

    def scan_expression(self, expr: Expression) -> None:
        match expr:
            case CallExpression(callee=callee, arguments=arguments):
                if isinstance(callee, Identifier):
                    self.record(callee.name)
                else:
                    self.scan_expression(callee)
                self.scan_arguments(arguments)
            case NewExpression(callee=callee, arguments=arguments):
                self.scan_expression(callee)
                self.scan_arguments(arguments or [])
            case AwaitExpression(argument=argument):
                self.scan_expression(argument)
            case AssignmentExpression(left=left, right=right):
                self.scan_expression(left)
                self.scan_expression(right)
            case MemberExpression(object=obj):
                self.scan_expression(obj)
            case ObjectExpression(properties=properties):
                for prop in properties:
                    match prop:
                        case Property(value=value):
                            self.scan_expression(value)
                        case SpreadProperty(argument=argument):
                            self.scan_expression(argument)
                        case RawProperty(called_names=called_names):
                            for name in called_names:
                                self.record(name)
                        case ShorthandProperty():
                            pass
                        case _:
                            assert_never(prop)
            case ArrayExpression(elements=elements):
                self.scan_arguments(elements)
            case ArrowFunction(body=body):
                if isinstance(body, BlockStatement):
                    self.scan_block(body)
                elif body is not None:
                    self.scan_expression(body)
            case FunctionExpression(body=body):
                if body is not None:
                    self.scan_block(body)
            case RawExpression(called_names=called_names):
                for name in called_names:
                    self.record(name)
            case Identifier() | StringLiteral() | NumericLiteral() | BooleanLiteral():
                pass
            case _:
                assert_never(expr)


class Collector:
    """First pass: builds the fact sheet for one module."""

    def __init__(self, config: PluginConfig) -> None:
        self.config = config
        self._workflow_fns: list[WorkflowFnInfo] = []
        self._step_fns: dict[str, StepFnInfo] = {}
        self._step_fn_names: list[str] = []
        self._workflow_imports: list[WorkflowImportInfo] = []
        self._has_module_directive = False
        self._scanner = CallScanner()
        # Export state of the top-level item currently being visited.
        self._current_export = False
        self._current_default_export = False

    def collect(self, module: Module) -> CollectedInfo:
        items = module.body
        self._has_module_directive = any(is_use_workflow_directive(item) for item in items)
        for item in items:
            if isinstance(item, ImportDeclaration):
                self._collect_import(item)
        for item in items:
            self._visit_item(item)
        return self.info

    @property
    def info(self) -> CollectedInfo:
        return CollectedInfo(
            workflow_fns=tuple(self._workflow_fns),
            step_fns=MappingProxyType(dict(self._step_fns)),
            workflow_imports=tuple(self._workflow_imports),
            has_invoke=self._scanner.has_invoke,
            has_sleep=self._scanner.has_sleep,
            has_wait_for_callback=self._scanner.has_wait_for_callback,
            step_fn_names=tuple(self._step_fn_names),
            has_module_workflow_directive=self._has_module_directive,
        )

    # ── Imports ────────────────────────────────────────────────

    def _collect_import(self, decl: ImportDeclaration) -> None:
        # Unlike a plain "every specifier of every relative import" scan, erased
        # bindings are skipped: `import type` declarations and inline `type`
        # specifiers bind nothing at runtime, so there is no value to replace.
        if decl.type_only or not is_relative_source(decl.source):
            return
        for spec in decl.specifiers:
            match spec:
                case ImportNamedSpecifier(type_only=True):
                    continue
                case ImportNamedSpecifier(local=local, imported=imported):
                    imported_name = imported or local
                case ImportDefaultSpecifier(local=local):
                    imported_name = "default"
                case ImportNamespaceSpecifier(local=local):
                    imported_name = "*"
                case _:
                    assert_never(spec)
            self._workflow_imports.append(
                WorkflowImportInfo(local_name=local, imported_name=imported_name, source=decl.source)
            )

    # ── Items ──────────────────────────────────────────────────

    def _visit_item(self, item: ModuleItem) -> None:
        match item:
            case ExportDeclaration(declaration=declaration):
                self._current_export = True
                self._current_default_export = False
                self._visit_item(declaration)
                self._current_export = False
            case ExportDefaultDeclaration(declaration=declaration):
                self._current_export = True
                self._current_default_export = True
                self._visit_item(declaration)
                self._current_export = False
                self._current_default_export = False
            case FunctionDeclaration(name=name, body=body, is_async=is_async):
                if body is not None:
                    self._visit_function(name, is_async, body)
            case VariableDeclaration(declarations=declarations):
                for declarator in declarations:
                    self._visit_declarator(declarator)
            case _:
                self._scanner.scan_statement(item)

    def _visit_declarator(self, declarator: VariableDeclarator) -> None:
        is_async, body = extract_fn_body(declarator.init)
        if body is not None and isinstance(declarator.binding, Identifier):
            self._visit_function(declarator.binding.name, is_async, body)
        elif declarator.init is not None:
            self._scanner.scan_expression(declarator.init)

    def _visit_function(self, name: str, is_async: bool, body: BlockStatement) -> None:
        directive = first_directive(body.body)
        if directive is not None:
            self._warn_if_double_directive(name, directive, body)
        if directive == USE_WORKFLOW:
            self._workflow_fns.append(
                WorkflowFnInfo(
                    name=name,
                    is_exported=self._current_export,
                    is_default_export=self._current_default_export,
                    is_async=is_async,
                )
            )
        elif directive == USE_STEP:
            self._step_fn_names.append(name)
            self._step_fns[name] = StepFnInfo(name=name, body=copy.deepcopy(body))
        self._scanner.scan_block(body)

    def _warn_if_double_directive(self, name: str, directive: str, body: BlockStatement) -> None:
        other = USE_STEP if directive == USE_WORKFLOW else USE_WORKFLOW
        if any(is_directive(stmt, other) for stmt in body.body):
            LOGGER.warning(
                "%s declares both %r and %r; treating it as %r (first directive wins)",
                name,
                USE_WORKFLOW,
                USE_STEP,
                directive,
            )


def iter_reserved_calls(info: CollectedInfo) -> Iterator[str]:
    if info.has_invoke:
        yield INVOKE
    if info.has_sleep:
        yield SLEEP
    if info.has_wait_for_callback:
        yield WAIT_FOR_CALLBACK


def collect(module: Module, config: PluginConfig) -> CollectedInfo:
    return Collector(config).collect(module)
