from durable_directives.directives import (
    block_has_step_directive,
    block_has_workflow_directive,
    first_directive,
    is_directive,
    is_use_step_directive,
    is_use_workflow_directive,
)
from durable_directives.nodes import (
    BlockStatement,
    ExpressionStatement,
    Identifier,
    RawStatement,
    ReturnStatement,
    StringLiteral,
)


def _directive(text: str) -> ExpressionStatement:
    return ExpressionStatement(expression=StringLiteral(text))


def test_detects_use_workflow() -> None:
    stmt = _directive("use workflow")
    assert is_use_workflow_directive(stmt)
    assert not is_use_step_directive(stmt)


def test_detects_use_step() -> None:
    stmt = _directive("use step")
    assert is_use_step_directive(stmt)
    assert not is_use_workflow_directive(stmt)


def test_ignores_other_strings() -> None:
    stmt = _directive("use strict")
    assert not is_use_workflow_directive(stmt)
    assert not is_use_step_directive(stmt)
    assert is_directive(stmt, "use strict")


def test_requires_bare_string_expression() -> None:
    assert not is_directive(ExpressionStatement(expression=Identifier("use workflow")), "use workflow")
    assert not is_directive(ReturnStatement(argument=StringLiteral("use workflow")), "use workflow")
    assert not is_directive(RawStatement(text='"use workflow" + x;'), "use workflow")


def test_block_scan_is_top_level_only() -> None:
    block = BlockStatement(
        body=[
            RawStatement(text='if (x) { "use step"; }'),
            _directive("use workflow"),
        ]
    )
    assert block_has_workflow_directive(block)
    assert not block_has_step_directive(block)


def test_directive_anywhere_in_block_counts() -> None:
    block = BlockStatement(body=[ReturnStatement(), _directive("use step")])
    assert block_has_step_directive(block)


def test_first_directive_wins() -> None:
    assert first_directive([_directive("use step"), _directive("use workflow")]) == "use step"
    assert first_directive([_directive("use workflow"), _directive("use step")]) == "use workflow"
    assert first_directive([_directive("use strict")]) is None
