"""
Parser - lowers TypeScript/JavaScript source into the module tree model.

Parsing itself is delegated to tree-sitter (the TypeScript and TSX
grammars); this module only maps the concrete syntax tree onto `nodes`.
Supported shapes are lowered structurally. Everything else becomes a Raw
node carrying its verbatim source text, re-based so continuation lines are
relative to the line the construct starts on.

Comments between call arguments, array elements and object members travel
with the neighbouring element. Comments elsewhere inside a lowered
construct (between a key and its value, inside a statement head) are not
kept; comments inside Raw nodes and at statement level are.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Optional

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
    ImportSpecifier,
    MemberExpression,
    Module,
    ModuleItem,
    NewExpression,
    NumericLiteral,
    ObjectExpression,
    ObjectMember,
    Property,
    RawExpression,
    RawPattern,
    RawProperty,
    RawStatement,
    ReturnStatement,
    ShorthandProperty,
    SpreadProperty,
    Statement,
    StringLiteral,
    VariableDeclaration,
    VariableDeclarator,
)

# tree-sitter Node; typed loosely so the grammar bindings stay an import-time detail.
TSNode = Any

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "\n": "",
}
_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.DOTALL)


class TreeSitterDependencyError(RuntimeError):
    """Raised when the required tree-sitter bindings are missing."""


class ModuleParseError(SyntaxError):
    """Source that tree-sitter could not parse cleanly."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.line = line
        self.column = column
        if line is not None:
            super().__init__(f"{message} at line {line}, column {column}")
        else:
            super().__init__(message)


@lru_cache(maxsize=2)
def _language(tsx: bool) -> Any:
    try:
        import tree_sitter_typescript
        from tree_sitter import Language
    except ImportError as exc:  # pragma: no cover - triggered only when deps missing
        raise TreeSitterDependencyError(
            "Missing dependency 'tree-sitter-typescript'. "
            "Install with 'pip install tree-sitter tree-sitter-typescript'."
        ) from exc
    if tsx:
        return Language(tree_sitter_typescript.language_tsx())
    return Language(tree_sitter_typescript.language_typescript())


def _build_parser(tsx: bool) -> Any:
    from tree_sitter import Parser

    return Parser(_language(tsx))


def decode_string(raw: str) -> str:
    """Cooked value of a quoted JS string literal."""
    body = raw[1:-1]
    if "\\" not in body:
        return body

    def replace(match: re.Match[str]) -> str:
        escape = match.group(1)
        if escape.startswith("u{"):
            return chr(int(escape[2:-1], 16))
        if escape.startswith("u") and len(escape) == 5:
            return chr(int(escape[1:], 16))
        if escape.startswith("x") and len(escape) == 3:
            return chr(int(escape[1:], 16))
        return _ESCAPES.get(escape, escape)

    return _ESCAPE_RE.sub(replace, body)


class ModuleLowering:
    """Maps one tree-sitter parse tree onto `nodes`."""

    def __init__(self, source: bytes) -> None:
        self.source = source

    # ── Helpers ────────────────────────────────────────────────

    def text(self, node: TSNode) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8")

    def raw_text(self, node: TSNode) -> str:
        text = self.text(node)
        if "\n" not in text:
            return text
        line_start = self.source.rfind(b"\n", 0, node.start_byte) + 1
        line = self.source[line_start : node.start_byte]
        indent = len(line) - len(line.lstrip(b" \t"))
        lines = text.split("\n")
        rebased = [lines[0]]
        for line_text in lines[1:]:
            leading = len(line_text) - len(line_text.lstrip(" \t"))
            rebased.append(line_text[min(indent, leading) :])
        return "\n".join(rebased)

    def called_names(self, node: TSNode) -> tuple[str, ...]:
        names: list[str] = []
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type == "call_expression":
                callee = current.child_by_field_name("function")
                if callee is not None and callee.type == "identifier":
                    names.append(self.text(callee))
            stack.extend(reversed(current.children))
        return tuple(dict.fromkeys(names))

    def raw_statement(self, node: TSNode) -> RawStatement:
        return RawStatement(text=self.raw_text(node), called_names=self.called_names(node))

    def raw_expression(self, node: TSNode) -> RawExpression:
        return RawExpression(text=self.raw_text(node), called_names=self.called_names(node))

    @staticmethod
    def named(node: TSNode) -> list[TSNode]:
        return [child for child in node.named_children if child.type != "comment"]

    @staticmethod
    def only_comments(node: TSNode) -> bool:
        children = node.named_children
        return bool(children) and all(child.type == "comment" for child in children)

    def comment_groups(self, node: TSNode) -> list[tuple[tuple[str, ...], TSNode, tuple[str, ...]]]:
        """(leading comments, child, trailing comments) per non-comment named child.

        Comments attach to the element after them; comments after the last
        element trail it.
        """
        groups: list[tuple[tuple[str, ...], TSNode, tuple[str, ...]]] = []
        pending: list[str] = []
        for child in node.named_children:
            if child.type == "comment":
                pending.append(self.raw_text(child))
                continue
            groups.append((tuple(pending), child, ()))
            pending = []
        if pending and groups:
            leading, child, _ = groups[-1]
            groups[-1] = (leading, child, tuple(pending))
        return groups

    @staticmethod
    def has_token(node: TSNode, token: str) -> bool:
        return any(child.type == token for child in node.children)

    def optional_text(self, node: Optional[TSNode]) -> Optional[str]:
        return self.text(node) if node is not None else None

    # ── Module ─────────────────────────────────────────────────

    def lower_module(self, root: TSNode) -> Module:
        return Module(body=[self.lower_item(child) for child in root.named_children])

    def lower_item(self, node: TSNode) -> ModuleItem:
        match node.type:
            case "import_statement":
                return self.lower_import(node)
            case "export_statement":
                return self.lower_export(node)
            case _:
                return self.lower_statement(node)

    def lower_import(self, node: TSNode) -> ModuleItem:
        source_node = node.child_by_field_name("source")
        if source_node is None or source_node.type != "string":
            return self.raw_statement(node)

        specifiers: list[ImportSpecifier] = []
        for child in self.named(node):
            if child == source_node:
                continue
            if child.type != "import_clause":
                return self.raw_statement(node)
            for part in self.named(child):
                match part.type:
                    case "identifier":
                        specifiers.append(ImportDefaultSpecifier(local=self.text(part)))
                    case "namespace_import":
                        local = self.named(part)[-1]
                        specifiers.append(ImportNamespaceSpecifier(local=self.text(local)))
                    case "named_imports":
                        named = self.lower_named_imports(part)
                        if named is None:
                            return self.raw_statement(node)
                        specifiers.extend(named)
                    case _:
                        return self.raw_statement(node)

        return ImportDeclaration(
            source=decode_string(self.text(source_node)),
            specifiers=specifiers,
            type_only=self.has_token(node, "type") or self.has_token(node, "typeof"),
        )

    def lower_named_imports(self, node: TSNode) -> Optional[list[ImportSpecifier]]:
        specifiers: list[ImportSpecifier] = []
        for spec in self.named(node):
            if spec.type != "import_specifier" or self.has_token(spec, "typeof"):
                return None
            type_only = self.has_token(spec, "type")
            name_node = spec.child_by_field_name("name")
            alias_node = spec.child_by_field_name("alias")
            name = self.text(name_node)
            if name_node.type == "string":
                name = decode_string(name)
            if alias_node is None:
                specifiers.append(ImportNamedSpecifier(local=name, type_only=type_only))
            else:
                specifiers.append(
                    ImportNamedSpecifier(local=self.text(alias_node), imported=name, type_only=type_only)
                )
        return specifiers

    def lower_export(self, node: TSNode) -> ModuleItem:
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")
        if self.has_token(node, "default"):
            if declaration is not None and declaration.type in (
                "function_declaration",
                "generator_function_declaration",
            ):
                return ExportDefaultDeclaration(declaration=self.lower_function_declaration(declaration))
            # Some grammar versions surface `export default function name() {}` as a named expression.
            if (
                value is not None
                and value.type in ("function_expression", "function", "generator_function")
                and value.child_by_field_name("name") is not None
            ):
                return ExportDefaultDeclaration(declaration=self.lower_function_declaration(value))
            if value is not None:
                return ExportDefaultExpression(expression=self.lower_expression(value))
            return self.raw_statement(node)
        if declaration is not None and node.child_by_field_name("source") is None:
            lowered = self.lower_statement(declaration)
            if isinstance(lowered, (FunctionDeclaration, VariableDeclaration)):
                return ExportDeclaration(declaration=lowered)
        return self.raw_statement(node)

    # ── Statements ─────────────────────────────────────────────

    def lower_block(self, node: TSNode) -> BlockStatement:
        return BlockStatement(body=[self.lower_statement(child) for child in node.named_children])

    def lower_statement(self, node: TSNode) -> Statement:
        match node.type:
            case "expression_statement":
                children = self.named(node)
                if len(children) != 1:
                    return self.raw_statement(node)
                return ExpressionStatement(expression=self.lower_expression(children[0]))
            case "lexical_declaration" | "variable_declaration":
                return self.lower_variable_declaration(node)
            case "return_statement":
                children = self.named(node)
                if not children:
                    return ReturnStatement()
                if len(children) != 1:
                    return self.raw_statement(node)
                return ReturnStatement(argument=self.lower_expression(children[0]))
            case "function_declaration" | "generator_function_declaration":
                return self.lower_function_declaration(node)
            case _:
                return self.raw_statement(node)

    def lower_variable_declaration(self, node: TSNode) -> Statement:
        kind = node.children[0].type
        if kind not in ("const", "let", "var"):
            return self.raw_statement(node)
        declarators: list[VariableDeclarator] = []
        for child in self.named(node):
            if child.type != "variable_declarator" or self.has_token(child, "!"):
                return self.raw_statement(node)
            name_node = child.child_by_field_name("name")
            binding = (
                Identifier(self.text(name_node))
                if name_node.type == "identifier"
                else RawPattern(self.raw_text(name_node))
            )
            value = child.child_by_field_name("value")
            declarators.append(
                VariableDeclarator(
                    binding=binding,
                    init=self.lower_expression(value) if value is not None else None,
                    type_annotation=self.optional_text(child.child_by_field_name("type")),
                )
            )
        return VariableDeclaration(kind=kind, declarations=declarators)

    def lower_params(self, node: Optional[TSNode]) -> list[str]:
        if node is None:
            return []
        return [self.raw_text(param) for param in self.named(node)]

    def lower_function_declaration(self, node: TSNode) -> FunctionDeclaration:
        body = node.child_by_field_name("body")
        return FunctionDeclaration(
            name=self.text(node.child_by_field_name("name")),
            params=self.lower_params(node.child_by_field_name("parameters")),
            body=self.lower_block(body) if body is not None else None,
            is_async=self.has_token(node, "async"),
            is_generator=self.has_token(node, "*"),
            type_parameters=self.optional_text(node.child_by_field_name("type_parameters")),
            return_type=self.optional_text(node.child_by_field_name("return_type")),
        )

    # ── Expressions ────────────────────────────────────────────

    def lower_expression(self, node: TSNode) -> Expression:
        match node.type:
            case "identifier":
                return Identifier(self.text(node))
            case "string":
                raw = self.text(node)
                return StringLiteral(value=decode_string(raw), raw=raw)
            case "number":
                return NumericLiteral(self.text(node))
            case "true" | "false":
                return BooleanLiteral(node.type == "true")
            case "call_expression":
                return self.lower_call(node)
            case "new_expression":
                arguments = node.child_by_field_name("arguments")
                if node.child_by_field_name("type_arguments") is not None:
                    return self.raw_expression(node)
                if arguments is not None and self.only_comments(arguments):
                    return self.raw_expression(node)
                return NewExpression(
                    callee=self.lower_expression(node.child_by_field_name("constructor")),
                    arguments=self.lower_arguments(arguments) if arguments is not None else None,
                )
            case "member_expression":
                prop = node.child_by_field_name("property")
                if self.has_token(node, "optional_chain") or prop.type != "property_identifier":
                    return self.raw_expression(node)
                return MemberExpression(
                    object=self.lower_expression(node.child_by_field_name("object")),
                    property=self.text(prop),
                )
            case "await_expression":
                children = self.named(node)
                if len(children) != 1:
                    return self.raw_expression(node)
                return AwaitExpression(argument=self.lower_expression(children[0]))
            case "assignment_expression":
                return AssignmentExpression(
                    operator="=",
                    left=self.lower_expression(node.child_by_field_name("left")),
                    right=self.lower_expression(node.child_by_field_name("right")),
                )
            case "augmented_assignment_expression":
                return AssignmentExpression(
                    operator=self.text(node.child_by_field_name("operator")),
                    left=self.lower_expression(node.child_by_field_name("left")),
                    right=self.lower_expression(node.child_by_field_name("right")),
                )
            case "arrow_function":
                return self.lower_arrow(node)
            case "function_expression" | "function" | "generator_function":
                body = node.child_by_field_name("body")
                if node.child_by_field_name("type_parameters") is not None:
                    return self.raw_expression(node)
                return FunctionExpression(
                    name=self.optional_text(node.child_by_field_name("name")),
                    params=self.lower_params(node.child_by_field_name("parameters")),
                    body=self.lower_block(body) if body is not None else None,
                    is_async=self.has_token(node, "async"),
                    is_generator=self.has_token(node, "*"),
                    return_type=self.optional_text(node.child_by_field_name("return_type")),
                )
            case "object":
                return self.lower_object(node)
            case "array":
                return self.lower_array(node)
            case _:
                return self.raw_expression(node)

    def lower_call(self, node: TSNode) -> Expression:
        arguments = node.child_by_field_name("arguments")
        if self.has_token(node, "optional_chain") or arguments is None or arguments.type != "arguments":
            return self.raw_expression(node)
        if self.only_comments(arguments):
            return self.raw_expression(node)
        return CallExpression(
            callee=self.lower_expression(node.child_by_field_name("function")),
            arguments=self.lower_arguments(arguments),
            type_arguments=self.optional_text(node.child_by_field_name("type_arguments")),
        )

    def lower_arguments(self, node: TSNode) -> list[Argument]:
        return [
            self.lower_element(child, leading, trailing) for leading, child, trailing in self.comment_groups(node)
        ]

    def lower_element(
        self, node: TSNode, leading: tuple[str, ...] = (), trailing: tuple[str, ...] = ()
    ) -> Argument:
        spread = node.type == "spread_element"
        return Argument(
            expression=self.lower_expression(self.named(node)[0] if spread else node),
            spread=spread,
            leading_comments=leading,
            trailing_comments=trailing,
        )

    def lower_arrow(self, node: TSNode) -> Expression:
        if node.child_by_field_name("type_parameters") is not None:
            return self.raw_expression(node)
        single = node.child_by_field_name("parameter")
        params = [self.text(single)] if single is not None else self.lower_params(node.child_by_field_name("parameters"))
        body_node = node.child_by_field_name("body")
        body: BlockStatement | Expression
        if body_node.type == "statement_block":
            body = self.lower_block(body_node)
        else:
            body = self.lower_expression(body_node)
        return ArrowFunction(
            params=params,
            body=body,
            is_async=self.has_token(node, "async"),
            return_type=self.optional_text(node.child_by_field_name("return_type")),
        )

    def lower_object(self, node: TSNode) -> Expression:
        if self.only_comments(node):
            return self.raw_expression(node)
        members: list[ObjectMember] = []
        for leading, child, trailing in self.comment_groups(node):
            if leading or trailing:
                text = attach_comments(self.raw_text(child), leading, trailing)
                members.append(RawProperty(text=text, called_names=self.called_names(child)))
                continue
            match child.type:
                case "pair":
                    members.append(
                        Property(
                            key=self.text(child.child_by_field_name("key")),
                            value=self.lower_expression(child.child_by_field_name("value")),
                        )
                    )
                case "shorthand_property_identifier":
                    members.append(ShorthandProperty(name=self.text(child)))
                case "spread_element":
                    members.append(SpreadProperty(argument=self.lower_expression(self.named(child)[0])))
                case _:
                    members.append(RawProperty(text=self.raw_text(child), called_names=self.called_names(child)))
        return ObjectExpression(properties=members)

    def lower_array(self, node: TSNode) -> Expression:
        previous = None
        for child in node.children:
            if child.type == "," and previous in ("[", ","):
                return self.raw_expression(node)
            if child.type != "comment":
                previous = child.type
        if self.only_comments(node):
            return self.raw_expression(node)
        return ArrayExpression(elements=self.lower_arguments(node))


def attach_comments(text: str, leading: tuple[str, ...], trailing: tuple[str, ...]) -> str:
    """Glue comments onto verbatim member text; line comments end their line."""
    for comment in reversed(leading):
        text = f"{comment}\n{text}" if comment.startswith("//") else f"{comment} {text}"
    for comment in trailing:
        text = f"{text} {comment}"
    return text


def _first_error(node: TSNode) -> Optional[TSNode]:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current
        if current.has_error:
            stack.extend(reversed(current.children))
    return None


def parse_module(source: str, *, tsx: bool = False) -> Module:
    """Parse TypeScript/JavaScript module source into a `Module`.

    Raises ModuleParseError when the source contains syntax errors.
    """
    source_bytes = source.encode("utf-8")
    tree = _build_parser(tsx).parse(source_bytes)
    root = tree.root_node
    if root.has_error:
        error = _first_error(root)
        if error is None:
            raise ModuleParseError("invalid module source")
        line, column = error.start_point
        raise ModuleParseError("invalid module source", line + 1, column + 1)
    return ModuleLowering(source_bytes).lower_module(root)
