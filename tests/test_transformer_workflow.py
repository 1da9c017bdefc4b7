import logging

import pytest

from durable_directives.collector import collect
from durable_directives.config import PluginConfig
from durable_directives.nodes import ImportDeclaration
from durable_directives.parser import parse_module
from durable_directives.plugin import transform_source
from durable_directives.printer import format_module
from durable_directives.transformer import WorkflowTransformer

SDK_IMPORT = 'import { withDurableExecution } from "@bento/aws-durable";\n'
LAMBDA_IMPORT = 'import { LambdaClient, InvokeCommand } from "@aws-sdk/client-lambda";\n'


def _meta(name: str, steps: str = "[]") -> str:
    return f'export const __workflowMeta = {{\n    name: "{name}",\n    steps: {steps}\n}};\n'


class TestWrapping:
    def test_exported_workflow_with_sleep_only(self) -> None:
        source = 'export async function flow() {\n    "use workflow";\n    await sleep(10);\n}\n'
        assert transform_source(source) == (
            SDK_IMPORT
            + "export const flow = withDurableExecution(async (event, ctx) => {\n"
            + "    await ctx.wait(10);\n"
            + "});\n"
            + _meta("flow")
        )

    def test_non_exported_workflow_becomes_plain_const(self) -> None:
        source = 'async function flow() {\n    "use workflow";\n    return 1;\n}\n'
        output = transform_source(source, PluginConfig(package_name="@acme/durable"))
        assert output == (
            'import { withDurableExecution } from "@acme/durable";\n'
            "const flow = withDurableExecution(async (event, ctx) => {\n"
            "    return 1;\n"
            "});\n" + _meta("flow")
        )

    def test_default_export(self) -> None:
        source = (
            "export default async function main() {\n"
            '    "use workflow";\n'
            '    const token = await waitForCallback("approval", { timeout: 60 });\n'
            "    return token;\n"
            "}\n"
        )
        assert transform_source(source) == (
            SDK_IMPORT
            + "const main = withDurableExecution(async (event, ctx) => {\n"
            + '    const token = await ctx.waitForCallback("approval", {\n'
            + "        timeout: 60\n"
            + "    });\n"
            + "    return token;\n"
            + "});\n"
            + "export default main;\n"
            + _meta("main")
        )

    def test_arrow_workflow(self) -> None:
        source = "export const flow = async () => {\n    'use workflow';\n    return 'done';\n};\n"
        assert transform_source(source) == (
            SDK_IMPORT
            + "export const flow = withDurableExecution(async (event, ctx) => {\n"
            + "    return 'done';\n"
            + "});\n"
            + _meta("flow")
        )

    def test_other_declarators_are_kept(self) -> None:
        source = "const limit = 3, flow = async () => {\n    \"use workflow\";\n};\n"
        assert transform_source(source) == (
            SDK_IMPORT
            + "const limit = 3;\n"
            + "const flow = withDurableExecution(async (event, ctx) => {});\n"
            + _meta("flow")
        )

    def test_unrelated_code_is_preserved(self) -> None:
        source = (
            'import { db } from "./db";\n'
            "const TABLE = 'users';\n"
            'export async function flow() {\n    "use workflow";\n}\n'
            "export function helper() {\n    return TABLE;\n}\n"
        )
        assert transform_source(source) == (
            SDK_IMPORT
            + 'import { db } from "./db";\n'
            + "const TABLE = 'users';\n"
            + "export const flow = withDurableExecution(async (event, ctx) => {});\n"
            + "export function helper() {\n    return TABLE;\n}\n"
            + _meta("flow")
        )


class TestSteps:
    def test_step_declarations_removed_and_inlined(self) -> None:
        source = (
            "async function load() {\n"
            '    "use step";\n'
            "    return fetchUser();\n"
            "}\n"
            "const save = async () => {\n"
            '    "use step";\n'
            "    await store(user);\n"
            "};\n"
            "export async function flow() {\n"
            '    "use workflow";\n'
            "    const user = await load();\n"
            "    await save();\n"
            "}\n"
        )
        assert transform_source(source) == (
            SDK_IMPORT
            + "export const flow = withDurableExecution(async (event, ctx) => {\n"
            + '    const user = await ctx.step("load", async () => {\n'
            + "        return fetchUser();\n"
            + "    });\n"
            + '    await ctx.step("save", async () => {\n'
            + "        await store(user);\n"
            + "    });\n"
            + "});\n"
            + _meta("flow", '["load", "save"]')
        )

    def test_meta_lists_every_step_in_declaration_order(self) -> None:
        source = (
            'function b() {\n    "use step";\n}\n'
            'function a() {\n    "use step";\n}\n'
            'export function flow() {\n    "use workflow";\n}\n'
        )
        assert transform_source(source).endswith(_meta("flow", '["b", "a"]'))

    def test_each_call_site_gets_its_own_copy(self) -> None:
        module = parse_module(
            'async function s() {\n    "use step";\n    await sleep(1);\n}\n'
            'export async function flow() {\n    "use workflow";\n    await s();\n    await s();\n}\n'
        )
        info = collect(module, PluginConfig())
        assert WorkflowTransformer(PluginConfig(), info).transform(module)
        wrapper = module.body[1].declaration.declarations[0].init
        body = wrapper.arguments[0].expression.body.body
        first_step = body[0].expression.argument.arguments[1].expression.body
        second_step = body[1].expression.argument.arguments[1].expression.body
        assert first_step == second_step
        assert first_step is not second_step
        assert first_step.body[0] is not second_step.body[0]
        assert format_module(module).count('ctx.wait(1)') == 2

    def test_reserved_calls_inside_steps_are_rewritten(self) -> None:
        source = (
            'async function pause() {\n    "use step";\n    await sleep(5);\n}\n'
            'export async function flow() {\n    "use workflow";\n    await pause();\n}\n'
        )
        assert '    await ctx.step("pause", async () => {\n        await ctx.wait(5);\n    });\n' in transform_source(
            source
        )

    def test_step_arguments_are_discarded(self, caplog: pytest.LogCaptureFixture) -> None:
        source = (
            'async function greet(name) {\n    "use step";\n    return name;\n}\n'
            'export async function flow() {\n    "use workflow";\n    return greet("ada");\n}\n'
        )
        with caplog.at_level(logging.WARNING, logger="durable_directives.transformer"):
            output = transform_source(source)
        assert '    return ctx.step("greet", async () => {\n        return name;\n    });\n' in output
        assert '"ada"' not in output
        assert "discarding 1 call-site argument(s) passed to step greet" in caplog.text

    def test_recursive_step_call_is_left_alone(self, caplog: pytest.LogCaptureFixture) -> None:
        source = (
            'async function s() {\n    "use step";\n    return await s();\n}\n'
            'export async function flow() {\n    "use workflow";\n    return await s();\n}\n'
        )
        with caplog.at_level(logging.WARNING, logger="durable_directives.transformer"):
            output = transform_source(source)
        assert '    return await ctx.step("s", async () => {\n        return await s();\n    });\n' in output
        assert "calls itself" in caplog.text


class TestReservedCalls:
    def test_invoke_adds_lambda_import(self) -> None:
        source = 'export async function flow() {\n    "use workflow";\n    return await invoke("fn", payload);\n}\n'
        output = transform_source(source)
        assert output.startswith(SDK_IMPORT + LAMBDA_IMPORT)
        assert '    return await ctx.step("invoke", async () => {\n' in output
        assert '            FunctionName: "fn",\n            Payload: JSON.stringify(payload)\n' in output

    def test_invoke_with_too_few_arguments_is_untouched(self, caplog: pytest.LogCaptureFixture) -> None:
        source = 'export async function flow() {\n    "use workflow";\n    await invoke("fn");\n}\n'
        with caplog.at_level(logging.WARNING, logger="durable_directives.transformer"):
            output = transform_source(source)
        assert '    await invoke("fn");\n' in output
        assert "invoke() called with 1 argument(s)" in caplog.text

    def test_sleep_without_arguments_is_untouched(self) -> None:
        source = 'export async function flow() {\n    "use workflow";\n    await sleep();\n}\n'
        assert "    await sleep();\n" in transform_source(source)

    def test_control_flow_is_not_rewritten(self) -> None:
        source = (
            "export async function flow(x) {\n"
            '    "use workflow";\n'
            "    if (x) {\n"
            "        await sleep(1);\n"
            "    }\n"
            "}\n"
        )
        assert "    if (x) {\n        await sleep(1);\n    }\n" in transform_source(source)

    def test_reserved_names_outside_workflows_are_untouched(self) -> None:
        source = (
            "export function later() {\n    return sleep(3);\n}\n"
            'export async function flow() {\n    "use workflow";\n}\n'
        )
        assert "export function later() {\n    return sleep(3);\n}\n" in transform_source(source)

    def test_assignment_right_hand_side_is_rewritten(self) -> None:
        source = 'export async function flow() {\n    "use workflow";\n    let r;\n    r = await sleep(2);\n}\n'
        assert "    r = await ctx.wait(2);\n" in transform_source(source)


class TestModuleLevel:
    def test_module_directive_without_workflows(self) -> None:
        source = '"use workflow";\nexport const answer = 42;\n'
        assert transform_source(source) == SDK_IMPORT + "export const answer = 42;\n"

    def test_module_without_directives_is_unchanged(self) -> None:
        source = "export const answer = 42;\n"
        module = parse_module(source)
        info = collect(module, PluginConfig())
        assert not WorkflowTransformer(PluginConfig(), info).transform(module)
        assert transform_source(source) == source

    def test_multiple_workflows_name_the_first(self, caplog: pytest.LogCaptureFixture) -> None:
        source = (
            'export function one() {\n    "use workflow";\n}\n'
            'export function two() {\n    "use workflow";\n}\n'
        )
        with caplog.at_level(logging.WARNING, logger="durable_directives.transformer"):
            output = transform_source(source)
        assert output.count("withDurableExecution(") == 2
        assert output.endswith(_meta("one"))
        assert "module declares 2 workflows" in caplog.text

    def test_sdk_import_comes_first(self) -> None:
        module = parse_module('import x from "lib";\nfunction flow() {\n    "use workflow";\n}\n')
        WorkflowTransformer(PluginConfig(), collect(module, PluginConfig())).transform(module)
        first, second = module.body[:2]
        assert isinstance(first, ImportDeclaration) and first.source == "@bento/aws-durable"
        assert isinstance(second, ImportDeclaration) and second.source == "lib"

    def test_output_is_a_fixed_point(self) -> None:
        source = (
            'async function s() {\n    "use step";\n}\n'
            'export async function flow() {\n    "use workflow";\n    await s();\n    await sleep(1);\n}\n'
        )
        once = transform_source(source)
        assert transform_source(once) == once

    def test_modules_do_not_share_facts(self) -> None:
        step_module = 'export async function s() {\n    "use step";\n    return 1;\n}\n'
        flow_module = 'export async function flow() {\n    "use workflow";\n    return await s();\n}\n'
        transform_source(step_module)
        assert "    return await s();\n" in transform_source(flow_module)


class TestPreservedSyntax:
    def test_string_named_import_survives(self) -> None:
        source = 'import { "a-b" as ab } from "lib";\nexport async function f() {\n    "use workflow";\n}\n'
        assert transform_source(source) == (
            SDK_IMPORT
            + 'import { "a-b" as ab } from "lib";\n'
            + "export const f = withDurableExecution(async (event, ctx) => {});\n"
            + _meta("f")
        )

    def test_comments_inside_rewritten_calls_survive(self) -> None:
        source = (
            "export async function flow(user) {\n"
            '    "use workflow";\n'
            "    await sleep({ /* c */ seconds: 1 });\n"
            "    await notify(/* who */ user);\n"
            "}\n"
        )
        output = transform_source(source)
        assert "    await ctx.wait({\n        /* c */ seconds: 1\n    });\n" in output
        assert "    await notify(/* who */ user);\n" in output
