"""Pretty-printer rendering module trees back into TypeScript/JavaScript source."""

from __future__ import annotations

import json
import re
from typing import Optional

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
    RawPattern,
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

_INDENT = "    "
_IDENTIFIER_RE = re.compile(r"(?:[^\W\d]|\$)[\w$]*")

# Expressions that need parentheses when used as a callee or member object.
_LOOSE_EXPRESSIONS = (AwaitExpression, AssignmentExpression, ArrowFunction, FunctionExpression, ObjectExpression)


class ModulePrinter:
    """Render module items into source text."""

    def __init__(self, indent: str = _INDENT) -> None:
        self._indent = indent

    def format_module(self, module: Module) -> str:
        lines: list[str] = []
        for item in module.body:
            lines.extend(self.format_item(item, 0))
        return "\n".join(lines) + "\n" if lines else ""

    def _indent_line(self, level: int, text: str) -> str:
        return f"{self._indent * level}{text}"

    def _reindent(self, text: str, level: int) -> str:
        """Indent continuation lines of verbatim text to `level`."""
        prefix = self._indent * level
        return "\n".join(
            line if idx == 0 or not line else f"{prefix}{line}" for idx, line in enumerate(text.split("\n"))
        )

    # ── Items ──────────────────────────────────────────────────

    def format_item(self, item: ModuleItem, level: int) -> list[str]:
        indent = self._indent_line(level, "")
        match item:
            case ImportDeclaration():
                return [f"{indent}{self._format_import(item)}"]
            case ExportDeclaration(declaration=declaration):
                return self._prefixed("export ", self.format_item(declaration, level), level)
            case ExportDefaultDeclaration(declaration=declaration):
                return self._prefixed("export default ", self.format_item(declaration, level), level)
            case ExportDefaultExpression(expression=expression):
                return [f"{indent}export default {self.format_expression(expression, level)};"]
            case ExpressionStatement(expression=expression):
                text = self.format_expression(expression, level)
                if isinstance(expression, (ObjectExpression, FunctionExpression)):
                    text = f"({text})"
                return [f"{indent}{text};"]
            case VariableDeclaration():
                return [f"{indent}{self._format_variable_declaration(item, level)};"]
            case ReturnStatement(argument=argument):
                if argument is None:
                    return [f"{indent}return;"]
                return [f"{indent}return {self.format_expression(argument, level)};"]
            case FunctionDeclaration():
                return self._format_function_declaration(item, level)
            case RawStatement(text=text):
                return [f"{indent}{self._reindent(text, level)}"]
            case _:
                assert_never(item)

    def _prefixed(self, prefix: str, lines: list[str], level: int) -> list[str]:
        indent = self._indent_line(level, "")
        first = lines[0][len(indent) :]
        return [f"{indent}{prefix}{first}", *lines[1:]]

    def _format_import(self, decl: ImportDeclaration) -> str:
        source = json.dumps(decl.source, ensure_ascii=False)
        keyword = "import type" if decl.type_only else "import"
        if not decl.specifiers:
            return f"{keyword} {source};"

        clauses: list[str] = []
        named: list[str] = []
        for spec in decl.specifiers:
            match spec:
                case ImportDefaultSpecifier(local=local):
                    clauses.append(local)
                case ImportNamespaceSpecifier(local=local):
                    clauses.append(f"* as {local}")
                case ImportNamedSpecifier(local=local, imported=imported, type_only=type_only):
                    text = local if imported is None or imported == local else f"{_import_name(imported)} as {local}"
                    named.append(f"type {text}" if type_only else text)
                case _:
                    assert_never(spec)
        if named:
            clauses.append("{ " + ", ".join(named) + " }")
        return f"{keyword} {', '.join(clauses)} from {source};"

    def _format_variable_declaration(self, decl: VariableDeclaration, level: int) -> str:
        return f"{decl.kind} " + ", ".join(self._format_declarator(d, level) for d in decl.declarations)

    def _format_declarator(self, declarator: VariableDeclarator, level: int) -> str:
        match declarator.binding:
            case Identifier(name=name):
                target = name
            case RawPattern(text=text):
                target = self._reindent(text, level)
            case _:
                assert_never(declarator.binding)
        if declarator.type_annotation:
            target = f"{target}{declarator.type_annotation}"
        if declarator.init is None:
            return target
        return f"{target} = {self.format_expression(declarator.init, level)}"

    def _format_function_declaration(self, decl: FunctionDeclaration, level: int) -> list[str]:
        header = self._function_header(
            decl.is_async,
            decl.is_generator,
            decl.name,
            decl.params,
            decl.return_type,
            decl.type_parameters,
            level,
        )
        indent = self._indent_line(level, "")
        if decl.body is None:
            return [f"{indent}{header};"]
        return [f"{indent}{header} {self._format_block(decl.body, level)}"]

    def _function_header(
        self,
        is_async: bool,
        is_generator: bool,
        name: Optional[str],
        params: list[str],
        return_type: Optional[str],
        type_parameters: Optional[str],
        level: int,
    ) -> str:
        keyword = "async function" if is_async else "function"
        if is_generator:
            keyword += "*"
        signature = f"{type_parameters or ''}({self._format_params(params, level)}){return_type or ''}"
        return f"{keyword} {name}{signature}" if name else f"{keyword}{signature}"

    def _format_params(self, params: list[str], level: int) -> str:
        return ", ".join(self._reindent(param, level) for param in params)

    def _format_block(self, block: BlockStatement, level: int) -> str:
        if not block.body:
            return "{}"
        lines = ["{"]
        for stmt in block.body:
            lines.extend(self.format_item(stmt, level + 1))
        lines.append(self._indent_line(level, "}"))
        return "\n".join(lines)

    # ── Expressions ────────────────────────────────────────────

    def format_expression(self, expr: Expression, level: int) -> str:
        match expr:
            case Identifier(name=name):
                return name
            case StringLiteral(value=value, raw=raw):
                return raw if raw is not None else json.dumps(value, ensure_ascii=False)
            case NumericLiteral(raw=raw):
                return raw
            case BooleanLiteral(value=value):
                return "true" if value else "false"
            case ObjectExpression():
                return self._format_object(expr, level)
            case ArrayExpression(elements=elements):
                return f"[{self._format_arguments(elements, level)}]"
            case CallExpression(callee=callee, arguments=arguments, type_arguments=type_arguments):
                target = self._format_target(callee, level)
                return f"{target}{type_arguments or ''}({self._format_arguments(arguments, level)})"
            case NewExpression(callee=callee, arguments=arguments):
                target = self._format_target(callee, level)
                if arguments is None:
                    return f"new {target}"
                return f"new {target}({self._format_arguments(arguments, level)})"
            case MemberExpression(object=obj, property=prop):
                target = self._format_target(obj, level)
                if isinstance(obj, NewExpression) and obj.arguments is None:
                    target = f"({target})"
                if isinstance(obj, NumericLiteral):
                    target = f"({target})"
                return f"{target}.{prop}"
            case AwaitExpression(argument=argument):
                text = self.format_expression(argument, level)
                if isinstance(argument, (AssignmentExpression, ArrowFunction)):
                    text = f"({text})"
                return f"await {text}"
            case AssignmentExpression(operator=operator, left=left, right=right):
                return f"{self.format_expression(left, level)} {operator} {self.format_expression(right, level)}"
            case ArrowFunction():
                return self._format_arrow(expr, level)
            case FunctionExpression():
                header = self._function_header(
                    expr.is_async, expr.is_generator, expr.name, expr.params, expr.return_type, None, level
                )
                body = self._format_block(expr.body, level) if expr.body is not None else "{}"
                return f"{header} {body}"
            case RawExpression(text=text):
                return self._reindent(text, level)
            case _:
                assert_never(expr)

    def _format_target(self, expr: Expression, level: int) -> str:
        text = self.format_expression(expr, level)
        if isinstance(expr, _LOOSE_EXPRESSIONS):
            return f"({text})"
        return text

    def _format_arguments(self, arguments: list[Argument], level: int) -> str:
        return ", ".join(self._format_argument(arg, level) for arg in arguments)

    def _format_argument(self, arg: Argument, level: int) -> str:
        text = self.format_expression(arg.expression, level)
        if arg.spread:
            text = f"...{text}"
        line_break = "\n" + self._indent_line(level, "")
        for comment in reversed(arg.leading_comments):
            comment = self._reindent(comment, level)
            text = f"{comment}{line_break}{text}" if comment.startswith("//") else f"{comment} {text}"
        for comment in arg.trailing_comments:
            text = f"{text} {self._reindent(comment, level)}"
            if comment.startswith("//"):
                text += line_break
        return text

    def _format_arrow(self, arrow: ArrowFunction, level: int) -> str:
        prefix = "async " if arrow.is_async else ""
        head = f"{prefix}({self._format_params(arrow.params, level)}){arrow.return_type or ''} =>"
        match arrow.body:
            case BlockStatement():
                return f"{head} {self._format_block(arrow.body, level)}"
            case None:
                return f"{head} {{}}"
            case ObjectExpression():
                return f"{head} ({self.format_expression(arrow.body, level)})"
            case _:
                return f"{head} {self.format_expression(arrow.body, level)}"

    def _format_object(self, obj: ObjectExpression, level: int) -> str:
        if not obj.properties:
            return "{}"
        inner = self._indent_line(level + 1, "")
        members: list[str] = []
        for prop in obj.properties:
            match prop:
                case Property(key=key, value=value):
                    members.append(f"{inner}{key}: {self.format_expression(value, level + 1)}")
                case ShorthandProperty(name=name):
                    members.append(f"{inner}{name}")
                case SpreadProperty(argument=argument):
                    members.append(f"{inner}...{self.format_expression(argument, level + 1)}")
                case RawProperty(text=text):
                    members.append(f"{inner}{self._reindent(text, level + 1)}")
                case _:
                    assert_never(prop)
        closing = self._indent_line(level, "}")
        return "{\n" + ",\n".join(members) + "\n" + closing


def _import_name(name: str) -> str:
    """Module export names that are not identifiers must stay quoted."""
    return name if _IDENTIFIER_RE.fullmatch(name) else json.dumps(name, ensure_ascii=False)


def format_module(module: Module) -> str:
    return ModulePrinter().format_module(module)
