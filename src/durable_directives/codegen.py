"""
Node builders - the only place new syntax is fabricated.

Each builder takes plain values (names, statement lists, expressions) and
returns a freshly constructed fragment. Builders never mutate their inputs;
expressions passed in are embedded as-is, so callers hand over ownership.
"""

from __future__ import annotations

from typing import Sequence

from .nodes import (
    Argument,
    ArrayExpression,
    ArrowFunction,
    AwaitExpression,
    BlockStatement,
    BooleanLiteral,
    CallExpression,
    ExportDeclaration,
    ExportDefaultExpression,
    Expression,
    Identifier,
    ImportDeclaration,
    ImportNamedSpecifier,
    MemberExpression,
    ModuleItem,
    NewExpression,
    ObjectExpression,
    Property,
    ReturnStatement,
    Statement,
    StringLiteral,
    VariableDeclaration,
    VariableDeclarator,
)

DURABLE_WRAPPER = "withDurableExecution"
CONTEXT_PARAM = "ctx"
EVENT_PARAM = "event"
LAMBDA_SDK_SOURCE = "@aws-sdk/client-lambda"
LAMBDA_CLIENT = "LambdaClient"
INVOKE_COMMAND = "InvokeCommand"
INVOKE_STEP_NAME = "invoke"
WORKFLOW_META_NAME = "__workflowMeta"


def _member(obj: Expression | str, prop: str) -> MemberExpression:
    target = Identifier(obj) if isinstance(obj, str) else obj
    return MemberExpression(object=target, property=prop)


def _call(callee: Expression, *args: Expression) -> CallExpression:
    return CallExpression(callee=callee, arguments=[Argument(arg) for arg in args])


def _const(name: str, init: Expression) -> VariableDeclaration:
    return VariableDeclaration(
        kind="const",
        declarations=[VariableDeclarator(binding=Identifier(name), init=init)],
    )


def _object(**props: Expression) -> ObjectExpression:
    return ObjectExpression(properties=[Property(key=key, value=value) for key, value in props.items()])


def _async_arrow(params: Sequence[str], body: Sequence[Statement]) -> ArrowFunction:
    return ArrowFunction(params=list(params), body=BlockStatement(body=list(body)), is_async=True)


def sdk_import(package_name: str) -> ImportDeclaration:
    """`import { withDurableExecution } from "<package_name>";`"""
    return ImportDeclaration(
        source=package_name,
        specifiers=[ImportNamedSpecifier(local=DURABLE_WRAPPER)],
    )


def lambda_sdk_import() -> ImportDeclaration:
    """`import { LambdaClient, InvokeCommand } from "@aws-sdk/client-lambda";`"""
    return ImportDeclaration(
        source=LAMBDA_SDK_SOURCE,
        specifiers=[
            ImportNamedSpecifier(local=LAMBDA_CLIENT),
            ImportNamedSpecifier(local=INVOKE_COMMAND),
        ],
    )


def with_durable_execution_wrap(
    name: str,
    body: Sequence[Statement],
    is_exported: bool,
    is_default: bool,
) -> list[ModuleItem]:
    """`const <name> = withDurableExecution(async (event, ctx) => { ... })`.

    Named exports come back as a single `export const`. A default export has no
    `export default const` form, so it comes back as the const declaration
    followed by `export default <name>;`.
    """
    handler = _call(Identifier(DURABLE_WRAPPER), _async_arrow([EVENT_PARAM, CONTEXT_PARAM], body))
    declaration = _const(name, handler)
    if is_default:
        return [declaration, ExportDefaultExpression(expression=Identifier(name))]
    if is_exported:
        return [ExportDeclaration(declaration=declaration)]
    return [declaration]


def step_call(step_name: str, body: Sequence[Statement]) -> CallExpression:
    """`ctx.step("<step_name>", async () => { ... })`"""
    return _call(_member(CONTEXT_PARAM, "step"), StringLiteral(step_name), _async_arrow([], body))


def invoke_step(function_name: Expression, payload: Expression) -> CallExpression:
    """Remote invocation as a durable step.

    ctx.step("invoke", async () => {
        const client = new LambdaClient({});
        const response = await client.send(new InvokeCommand({
            FunctionName: <function_name>,
            Payload: JSON.stringify(<payload>)
        }));
        return JSON.parse(new TextDecoder().decode(response.Payload));
    })
    """
    client = NewExpression(callee=Identifier(LAMBDA_CLIENT), arguments=[Argument(ObjectExpression())])
    command = NewExpression(
        callee=Identifier(INVOKE_COMMAND),
        arguments=[
            Argument(
                _object(
                    FunctionName=function_name,
                    Payload=_call(_member("JSON", "stringify"), payload),
                )
            )
        ],
    )
    send = AwaitExpression(argument=_call(_member("client", "send"), command))
    decoded = _call(
        _member(NewExpression(callee=Identifier("TextDecoder"), arguments=[]), "decode"),
        _member("response", "Payload"),
    )
    body: list[Statement] = [
        _const("client", client),
        _const("response", send),
        ReturnStatement(argument=_call(_member("JSON", "parse"), decoded)),
    ]
    return step_call(INVOKE_STEP_NAME, body)


def wait_call(duration: Expression) -> CallExpression:
    """`ctx.wait(<duration>)`"""
    return _call(_member(CONTEXT_PARAM, "wait"), duration)


def wait_for_callback_call(args: Sequence[Argument]) -> CallExpression:
    """`ctx.waitForCallback(...args)` with the arguments forwarded verbatim."""
    return CallExpression(callee=_member(CONTEXT_PARAM, "waitForCallback"), arguments=list(args))


def workflow_meta_export(workflow_name: str, step_names: Sequence[str]) -> ExportDeclaration:
    """`export const __workflowMeta = { name: "<workflow>", steps: [...] };`"""
    steps = ArrayExpression(elements=[Argument(StringLiteral(name)) for name in step_names])
    meta = _object(name=StringLiteral(workflow_name), steps=steps)
    return ExportDeclaration(declaration=_const(WORKFLOW_META_NAME, meta))


def env_var_name(local_name: str, env_prefix: str) -> str:
    return f"{env_prefix}{local_name.upper()}"


def workflow_descriptor(local_name: str, env_prefix: str) -> VariableDeclaration:
    """`const X = { __workflow: true, name: "X", functionName: process.env.<PREFIX>X };`"""
    env_lookup = _member(_member("process", "env"), env_var_name(local_name, env_prefix))
    descriptor = _object(
        __workflow=BooleanLiteral(True),
        name=StringLiteral(local_name),
        functionName=env_lookup,
    )
    return _const(local_name, descriptor)
