import pytest

from schemas.n8n import N8nWorkflow
from schemas.make import MakeScenario, SchedulingType
from schemas.translation import Platform
from services.workflow_generator import WorkflowGenerator


@pytest.fixture
def generator():
    return WorkflowGenerator()


@pytest.mark.asyncio
async def test_gmail_to_slack_from_scratch(generator):
    result = await generator.generate_from_description(
        "create a workflow that reads Gmail and posts to Slack", Platform.N8N
    )

    assert result.success
    assert result.warnings == []
    workflow = result.data
    assert isinstance(workflow, N8nWorkflow)
    assert workflow.name == "Create: Gmail + Slack"
    assert [n.id for n in workflow.nodes] == ["trigger", "gmail_0", "slack_1"]
    assert [n.type for n in workflow.nodes] == [
        "n8n-nodes-base.gmailTrigger", "n8n-nodes-base.gmail", "n8n-nodes-base.slack",
    ]
    assert [n.position for n in workflow.nodes] == [[250, 300], [500, 300], [750, 300]]
    assert workflow.connections["trigger"]["main"][0].node == "gmail_0"
    assert workflow.connections["gmail_0"]["main"][0].node == "slack_1"
    assert workflow.connection_count() == 2
    assert workflow.tags == ["gmail", "slack", "create", "read"]


@pytest.mark.asyncio
async def test_ai_step_gets_message_defaults(generator):
    result = await generator.generate_from_description("summarize Notion pages with AI", "n8n")

    openai_node = result.data.nodes[-1]
    assert openai_node.type == "n8n-nodes-base.openAi"
    assert openai_node.parameters["operation"] == "message"
    assert openai_node.parameters["messages"]["values"][0]["content"] == "{{$json.content}}"


@pytest.mark.asyncio
async def test_make_scenario_from_scratch(generator):
    result = await generator.generate_from_description(
        "create a workflow that reads Gmail and posts to Slack", "make"
    )

    scenario = result.data
    assert isinstance(scenario, MakeScenario)
    assert scenario.name == scenario.blueprint.name == "Create: Gmail + Slack"
    assert [m.id for m in scenario.modules] == [1, 2, 3]
    assert [m.module for m in scenario.modules] == ["google.gmail", "google.gmail", "slack.slack"]
    assert [m.metadata.designer.x for m in scenario.modules] == [250, 500, 750]
    assert scenario.scheduling is None


@pytest.mark.asyncio
async def test_scheduled_make_scenario_runs_on_its_own(generator):
    result = await generator.generate_from_description("hourly Stripe export to Dropbox", "make")

    scenario = result.data
    assert scenario.modules[0].module == "webhook"
    assert scenario.scheduling.type == SchedulingType.INDEFINITELY


@pytest.mark.asyncio
async def test_matching_template_is_used_and_customized(generator):
    result = await generator.generate_from_description(
        "when a lead lands in Salesforce",
        Platform.N8N,
        customizations={"Notify Sales Team": {"channel": "#vip-leads"}},
    )

    assert result.success
    assert result.warnings == ["Using template: CRM Lead Enrichment"]
    notify = next(n for n in result.data.nodes if n.name == "Notify Sales Team")
    assert notify.parameters["channel"] == "#vip-leads"
    assert notify.parameters["operation"] == "post"


@pytest.mark.asyncio
async def test_template_customization_for_make_matches_module_type(generator):
    result = await generator.generate_from_template(
        "email_ai_summary", "make", {"slack.slack": {"channel": "#inbox"}}
    )

    assert result.success
    slack = result.data.modules[-1]
    assert slack.parameters["channel"] == "#inbox"


@pytest.mark.asyncio
async def test_unknown_template(generator):
    result = await generator.generate_from_template("nope", Platform.N8N)

    assert not result.success
    assert result.errors == ["Template not found: nope"]


@pytest.mark.asyncio
async def test_customizing_does_not_leak_into_catalogue(generator):
    await generator.generate_from_template("email_ai_summary", "n8n", {"Send to Slack": {"channel": "#x"}})
    again = await generator.generate_from_template("email_ai_summary", "n8n")

    slack = next(n for n in again.data.nodes if n.name == "Send to Slack")
    assert slack.parameters["channel"] == "#email-summaries"


@pytest.mark.asyncio
async def test_unsupported_platform_is_reported(generator):
    result = await generator.generate_from_description("post to Slack", "zapier")

    assert not result.success
    assert result.errors[0].startswith("Generation failed:")
