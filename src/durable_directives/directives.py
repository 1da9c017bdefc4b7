"""Detection of inline directive strings ("use workflow" / "use step")."""

from __future__ import annotations

from typing import Iterable, Optional

from .nodes import BlockStatement, ExpressionStatement, ModuleItem, StringLiteral

USE_WORKFLOW = "use workflow"
USE_STEP = "use step"


def is_directive(stmt: ModuleItem, text: str) -> bool:
    """True iff `stmt` is a bare string-literal expression statement equal to `text`."""
    return (
        isinstance(stmt, ExpressionStatement)
        and isinstance(stmt.expression, StringLiteral)
        and stmt.expression.value == text
    )


def is_use_workflow_directive(stmt: ModuleItem) -> bool:
    return is_directive(stmt, USE_WORKFLOW)


def is_use_step_directive(stmt: ModuleItem) -> bool:
    return is_directive(stmt, USE_STEP)


def block_has_workflow_directive(block: BlockStatement) -> bool:
    return any(is_use_workflow_directive(stmt) for stmt in block.body)


def block_has_step_directive(block: BlockStatement) -> bool:
    return any(is_use_step_directive(stmt) for stmt in block.body)


def first_directive(statements: Iterable[ModuleItem]) -> Optional[str]:
    """Return whichever of the two directives appears first among direct statements."""
    for stmt in statements:
        if is_use_workflow_directive(stmt):
            return USE_WORKFLOW
        if is_use_step_directive(stmt):
            return USE_STEP
    return None
