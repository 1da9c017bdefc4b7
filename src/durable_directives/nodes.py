"""
Module tree model - the ESTree-flavoured node kinds the pass understands.

Every construct outside these shapes is carried as a Raw node holding its
verbatim source text, so unsupported code always passes through untouched.
Nodes are plain mutable dataclasses; code that needs an independent copy of
a subtree (captured step bodies, inlining sites) takes a `copy.deepcopy`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NoReturn, Optional, Union


def assert_never(value: NoReturn) -> NoReturn:
    raise AssertionError(f"Unhandled value: {value!r}")


# =============================================================================
# Expression Nodes
# =============================================================================


@dataclass
class Identifier:
    name: str


@dataclass
class StringLiteral:
    """String literal. `raw` keeps the original quoting when parsed from source."""

    value: str
    raw: Optional[str] = None


@dataclass
class NumericLiteral:
    raw: str


@dataclass
class BooleanLiteral:
    value: bool


@dataclass
class Argument:
    """A call/new argument or array element, optionally spread (`...expr`).

    Comments written around the element in source ride along with it;
    comments after the last element are its `trailing_comments`.
    """

    expression: Expression
    spread: bool = False
    leading_comments: tuple[str, ...] = ()
    trailing_comments: tuple[str, ...] = ()


@dataclass
class Property:
    """Key/value object member. `key` is the key's source text."""

    key: str
    value: Expression


@dataclass
class ShorthandProperty:
    name: str


@dataclass
class SpreadProperty:
    argument: Expression


@dataclass
class RawProperty:
    """Object member kept verbatim (methods, getters, computed keys)."""

    text: str
    called_names: tuple[str, ...] = ()


ObjectMember = Union[Property, ShorthandProperty, SpreadProperty, RawProperty]


@dataclass
class ObjectExpression:
    properties: list[ObjectMember] = field(default_factory=list)


@dataclass
class ArrayExpression:
    elements: list[Argument] = field(default_factory=list)


@dataclass
class CallExpression:
    callee: Expression
    arguments: list[Argument] = field(default_factory=list)
    type_arguments: Optional[str] = None


@dataclass
class NewExpression:
    """`new callee(args)`. `arguments` is None for the bare `new Foo` form."""

    callee: Expression
    arguments: Optional[list[Argument]] = None


@dataclass
class MemberExpression:
    """Non-computed, non-optional property access: `object.property`."""

    object: Expression
    property: str


@dataclass
class AwaitExpression:
    argument: Expression


@dataclass
class AssignmentExpression:
    """Plain and compound assignment. The target is never rewritten."""

    operator: str
    left: Expression
    right: Expression


@dataclass
class ArrowFunction:
    params: list[str] = field(default_factory=list)
    body: Union[BlockStatement, Expression, None] = None
    is_async: bool = False
    return_type: Optional[str] = None


@dataclass
class FunctionExpression:
    name: Optional[str] = None
    params: list[str] = field(default_factory=list)
    body: Optional[BlockStatement] = None
    is_async: bool = False
    is_generator: bool = False
    return_type: Optional[str] = None


@dataclass
class RawExpression:
    """Expression kept verbatim.

    `called_names` lists every bare-identifier callee found inside the text
    so call scans still see through opaque code.
    """

    text: str
    called_names: tuple[str, ...] = ()


Expression = Union[
    Identifier,
    StringLiteral,
    NumericLiteral,
    BooleanLiteral,
    ObjectExpression,
    ArrayExpression,
    CallExpression,
    NewExpression,
    MemberExpression,
    AwaitExpression,
    AssignmentExpression,
    ArrowFunction,
    FunctionExpression,
    RawExpression,
]


# =============================================================================
# Statement Nodes
# =============================================================================


@dataclass
class RawPattern:
    """Destructuring binding kept verbatim."""

    text: str


Binding = Union[Identifier, RawPattern]


@dataclass
class ExpressionStatement:
    expression: Expression


@dataclass
class VariableDeclarator:
    binding: Binding
    init: Optional[Expression] = None
    type_annotation: Optional[str] = None


@dataclass
class VariableDeclaration:
    kind: str
    declarations: list[VariableDeclarator] = field(default_factory=list)


@dataclass
class ReturnStatement:
    argument: Optional[Expression] = None


@dataclass
class BlockStatement:
    body: list[Statement] = field(default_factory=list)


@dataclass
class FunctionDeclaration:
    name: str
    params: list[str] = field(default_factory=list)
    body: Optional[BlockStatement] = None
    is_async: bool = False
    is_generator: bool = False
    type_parameters: Optional[str] = None
    return_type: Optional[str] = None


@dataclass
class RawStatement:
    """Statement kept verbatim (control flow, classes, comments, TS-only syntax)."""

    text: str
    called_names: tuple[str, ...] = ()


Statement = Union[
    ExpressionStatement,
    VariableDeclaration,
    ReturnStatement,
    FunctionDeclaration,
    RawStatement,
]


# =============================================================================
# Module Items
# =============================================================================


@dataclass
class ImportNamedSpecifier:
    """`imported as local`; `imported` is None when it matches `local`.

    `type_only` marks an inline `type` specifier, erased at runtime.
    """

    local: str
    imported: Optional[str] = None
    type_only: bool = False


@dataclass
class ImportDefaultSpecifier:
    local: str


@dataclass
class ImportNamespaceSpecifier:
    local: str


ImportSpecifier = Union[ImportNamedSpecifier, ImportDefaultSpecifier, ImportNamespaceSpecifier]


@dataclass
class ImportDeclaration:
    source: str
    specifiers: list[ImportSpecifier] = field(default_factory=list)
    type_only: bool = False


@dataclass
class ExportDeclaration:
    """`export function ...` / `export const ...`."""

    declaration: Union[FunctionDeclaration, VariableDeclaration]


@dataclass
class ExportDefaultDeclaration:
    """`export default function name() {}`."""

    declaration: FunctionDeclaration


@dataclass
class ExportDefaultExpression:
    """`export default <expression>;`."""

    expression: Expression


ModuleItem = Union[
    ExpressionStatement,
    VariableDeclaration,
    ReturnStatement,
    FunctionDeclaration,
    RawStatement,
    ImportDeclaration,
    ExportDeclaration,
    ExportDefaultDeclaration,
    ExportDefaultExpression,
]


@dataclass
class Module:
    body: list[ModuleItem] = field(default_factory=list)

