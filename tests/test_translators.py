import copy

import pytest

from schemas.n8n import N8nWorkflow
from schemas.make import MakeScenario, SchedulingType
from schemas.translation import TranslationContext, TranslationOptions, Platform
from translators import N8nToMakeTranslator, MakeToN8nTranslator


def to_make_context(**options):
    return TranslationContext(
        source_type=Platform.N8N, target_type=Platform.MAKE, options=TranslationOptions(**options)
    )


def to_n8n_context(**options):
    return TranslationContext(
        source_type=Platform.MAKE, target_type=Platform.N8N, options=TranslationOptions(**options)
    )


@pytest.mark.asyncio
async def test_n8n_to_make_builds_sequential_blueprint(n8n_workflow):
    result = await N8nToMakeTranslator().translate(n8n_workflow)

    assert result.success
    assert result.warnings == []
    scenario = result.data
    assert isinstance(scenario, MakeScenario)
    assert scenario.name == "Email Summaries"
    assert [m.module for m in scenario.blueprint.flow] == ["webhook", "openai", "slack.slack"]
    assert scenario.blueprint.flow[1].mapper == {"prompt": "Summarize: {{$json.body}}"}
    assert scenario.blueprint.flow[2].parameters == {"channel": "#summaries"}
    assert scenario.scheduling is None


@pytest.mark.asyncio
async def test_active_workflow_gets_recurring_schedule(n8n_workflow):
    n8n_workflow["active"] = True

    result = await N8nToMakeTranslator().translate(
        n8n_workflow, to_make_context(team_id="7", organization_id="99")
    )

    scheduling = result.data.scheduling
    assert scheduling.type == SchedulingType.INDEFINITELY
    assert scheduling.interval == 15
    assert result.data.team_id == "7"
    assert result.data.organization_id == "99"


@pytest.mark.asyncio
async def test_unmapped_node_becomes_http_with_warning(n8n_workflow):
    n8n_workflow["nodes"][1]["type"] = "n8n-nodes-base.homegrownThing"

    result = await N8nToMakeTranslator().translate(n8n_workflow)

    assert result.success
    assert result.data.blueprint.flow[1].module == "http"
    assert any("Summarize with OpenAI" in w for w in result.warnings)
    assert result.warnings[-1] == "Some nodes could not be fully translated"


@pytest.mark.asyncio
async def test_malformed_workflow_is_reported_not_raised():
    result = await N8nToMakeTranslator().translate({"name": "broken", "nodes": "not a list"})

    assert not result.success
    assert result.data is None
    assert result.errors[0].startswith("Translation failed:")


@pytest.mark.asyncio
async def test_translate_does_not_mutate_model_input(n8n_workflow):
    workflow = N8nWorkflow.model_validate(n8n_workflow)
    before = workflow.model_dump()

    await N8nToMakeTranslator().translate(workflow)

    assert workflow.model_dump() == before


@pytest.mark.asyncio
async def test_make_to_n8n_builds_connected_graph(make_scenario):
    result = await MakeToN8nTranslator().translate(make_scenario)

    assert result.success
    workflow = result.data
    assert isinstance(workflow, N8nWorkflow)
    assert workflow.active is False
    assert [n.type for n in workflow.nodes] == ["n8n-nodes-base.gmail", "n8n-nodes-base.slack"]
    assert [n.name for n in workflow.nodes] == ["Gmail", "Slack"]
    assert workflow.nodes[0].type_version == 2
    assert workflow.nodes[1].parameters == {"channel": "#general", "text": "{{1.subject}}"}
    assert workflow.nodes[1].position == [300, 0]
    assert workflow.connection_count() == 1
    assert workflow.connections[workflow.nodes[0].id]["main"][0].node == workflow.nodes[1].id


@pytest.mark.asyncio
async def test_make_to_n8n_uses_context_and_blueprint_name(make_scenario):
    make_scenario["name"] = ""

    result = await MakeToN8nTranslator().translate(make_scenario, to_n8n_context(default_active=True))

    assert result.data.name == "Gmail to Slack"
    assert result.data.active is True


@pytest.mark.asyncio
async def test_scenario_without_blueprint_is_empty_workflow():
    result = await MakeToN8nTranslator().translate({"name": "Draft"})

    assert result.success
    assert result.data.nodes == []
    assert result.data.connections == {}


@pytest.mark.asyncio
async def test_unmapped_module_becomes_http_request(make_scenario):
    make_scenario["blueprint"]["flow"][0]["module"] = "acme.widgets"

    result = await MakeToN8nTranslator().translate(make_scenario)

    assert result.data.nodes[0].type == "n8n-nodes-base.httpRequest"
    assert result.warnings[-1] == "Some modules could not be fully translated"


@pytest.mark.asyncio
async def test_sequence_round_trip_keeps_module_order(make_scenario):
    n8n = await MakeToN8nTranslator().translate(make_scenario)
    back = await N8nToMakeTranslator().translate(n8n.data)

    assert [m.module for m in back.data.blueprint.flow] == ["google.gmail", "slack.slack"]
    assert [m.id for m in back.data.blueprint.flow] == [1, 2]


@pytest.mark.asyncio
async def test_batch_isolates_unmapped_item(n8n_workflow, n8n_export):
    odd = copy.deepcopy(n8n_workflow)
    odd["nodes"][2]["type"] = "n8n-nodes-base.unknownService"

    results = await N8nToMakeTranslator().translate_batch([n8n_workflow, odd, n8n_export])

    assert [r.success for r in results] == [True, True, True]
    assert results[0].warnings == []
    assert results[1].warnings != []
    assert results[2].warnings == []
    assert results[2].data.name == "Lead Router"


@pytest.mark.asyncio
async def test_batch_failure_does_not_cancel_siblings(make_scenario):
    results = await MakeToN8nTranslator().translate_batch([make_scenario, {"blueprint": 5}])

    assert results[0].success
    assert not results[1].success


@pytest.mark.asyncio
async def test_fractional_type_version_survives_both_directions(n8n_workflow):
    n8n_workflow["nodes"][2]["typeVersion"] = 4.2

    to_make = await N8nToMakeTranslator().translate(n8n_workflow)
    back = await MakeToN8nTranslator().translate(to_make.data)

    assert to_make.success
    assert to_make.data.blueprint.flow[2].version == 4.2
    assert back.data.nodes[2].type_version == 4.2
    assert to_make.data.blueprint.flow[0].version == 1


@pytest.mark.asyncio
async def test_preserve_ids_reuses_module_ids(make_scenario):
    result = await MakeToN8nTranslator().translate(make_scenario, to_n8n_context(preserve_ids=True))

    workflow = result.data
    assert [n.id for n in workflow.nodes] == ["1", "2"]
    assert workflow.connections["1"]["main"][0].node == "2"


@pytest.mark.asyncio
async def test_fresh_ids_by_default(make_scenario):
    result = await MakeToN8nTranslator().translate(make_scenario)

    assert all(n.id not in ("1", "2") for n in result.data.nodes)
