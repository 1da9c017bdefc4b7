from durable_directives.collector import collect
from durable_directives.config import PluginConfig, TransformMode
from durable_directives.parser import parse_module
from durable_directives.plugin import transform_source
from durable_directives.transformer import WorkflowTransformer

CLIENT = PluginConfig(mode=TransformMode.CLIENT)


def _descriptor(name: str, env: str) -> str:
    return (
        f"const {name} = {{\n"
        "    __workflow: true,\n"
        f'    name: "{name}",\n'
        f"    functionName: process.env.{env}\n"
        "};\n"
    )


def test_each_specifier_becomes_a_descriptor() -> None:
    source = (
        'import { order, refund as giveBack } from "./workflows/billing";\n'
        'import onboarding from "../onboarding";\n'
        "start(order);\n"
    )
    assert transform_source(source, CLIENT) == (
        _descriptor("order", "WORKFLOW_ORDER")
        + _descriptor("giveBack", "WORKFLOW_GIVEBACK")
        + _descriptor("onboarding", "WORKFLOW_ONBOARDING")
        + "start(order);\n"
    )


def test_descriptors_follow_the_remaining_imports() -> None:
    source = (
        'import a from "lib-a";\n'
        'import { flow } from "./flow";\n'
        'import b from "lib-b";\n'
        "run(a, b, flow);\n"
    )
    assert transform_source(source, CLIENT) == (
        'import a from "lib-a";\n'
        'import b from "lib-b";\n'
        + _descriptor("flow", "WORKFLOW_FLOW")
        + "run(a, b, flow);\n"
    )


def test_descriptors_at_end_when_module_is_only_imports() -> None:
    source = 'import x from "pkg";\nimport { flow } from "./flow";\n'
    assert transform_source(source, CLIENT) == 'import x from "pkg";\n' + _descriptor("flow", "WORKFLOW_FLOW")


def test_custom_env_prefix() -> None:
    config = PluginConfig(mode=TransformMode.CLIENT, env_prefix="FN_")
    output = transform_source('import { checkout } from "./checkout";\n', config)
    assert "functionName: process.env.FN_CHECKOUT\n" in output


def test_namespace_import() -> None:
    output = transform_source('import * as flows from "./flows";\n', CLIENT)
    assert output == _descriptor("flows", "WORKFLOW_FLOWS")


def test_type_only_import_is_kept() -> None:
    source = 'import type { Order } from "./types";\nimport { flow } from "./flow";\n'
    assert transform_source(source, CLIENT) == (
        'import type { Order } from "./types";\n' + _descriptor("flow", "WORKFLOW_FLOW")
    )


def test_type_only_import_sharing_a_source_is_kept() -> None:
    source = 'import type { Input } from "./flow";\nimport { flow } from "./flow";\n'
    assert transform_source(source, CLIENT) == (
        'import type { Input } from "./flow";\n' + _descriptor("flow", "WORKFLOW_FLOW")
    )


def test_no_relative_imports_is_a_no_op() -> None:
    source = 'import { a } from "pkg";\nimport "./styles.css";\nrun(a);\n'
    module = parse_module(source)
    info = collect(module, CLIENT)
    assert not WorkflowTransformer(CLIENT, info).transform(module)
    assert transform_source(source, CLIENT) == source


def test_side_effect_relative_import_is_dropped_with_its_source() -> None:
    source = 'import "./flow";\nimport { flow } from "./flow";\nflow();\n'
    assert transform_source(source, CLIENT) == _descriptor("flow", "WORKFLOW_FLOW") + "flow();\n"


def test_directives_are_ignored_in_client_mode() -> None:
    source = 'export async function flow() {\n    "use workflow";\n}\n'
    assert transform_source(source, CLIENT) == source


def test_client_output_is_a_fixed_point() -> None:
    once = transform_source('import { flow } from "./flow";\nflow();\n', CLIENT)
    assert transform_source(once, CLIENT) == once


def test_inline_type_specifiers_stay_and_values_become_descriptors() -> None:
    source = 'import { type T, wf } from "./wf";\nwf();\n'
    assert transform_source(source, CLIENT) == (
        'import { type T } from "./wf";\n' + _descriptor("wf", "WORKFLOW_WF") + "wf();\n"
    )


def test_import_of_only_inline_types_is_a_no_op() -> None:
    source = 'import { type T } from "./wf";\nlet x: T;\n'
    assert transform_source(source, CLIENT) == source
