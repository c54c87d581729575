import pytest

from schemas.intent_schema import IntentAction, InsertPosition, TriggerKind
from services.intent_parser import IntentParser


@pytest.fixture
def parser():
    return IntentParser()


def test_remove_named_service(parser):
    intent = parser.parse_instruction("remove the OpenAI node")

    assert intent.action == IntentAction.REMOVE_STEP
    assert intent.services == ["openai"]
    assert intent.target_name is None
    assert intent.position == InsertPosition.END
    assert intent.raw_text == "remove the OpenAI node"


def test_rename_keeps_case_and_strips_quotes(parser):
    intent = parser.parse_instruction("rename it to 'Nightly Sync'")

    assert intent.action == IntentAction.RENAME
    assert intent.new_name == "Nightly Sync"


@pytest.mark.parametrize("text, expected", [
    ("call it \"Lead Pipeline\"", "Lead Pipeline"),
    ("rename 'Weekly Digest'", "Weekly Digest"),
    ("rename the workflow please", None),
])
def test_new_name_extraction(parser, text, expected):
    assert parser.parse_instruction(text).new_name == expected


def test_target_name_follows_node(parser):
    intent = parser.parse_instruction("delete node 'Send to Slack'")

    assert intent.action == IntentAction.REMOVE_STEP
    assert intent.target_name == "Send to Slack"


@pytest.mark.parametrize("text, action", [
    ("add a Slack step at the beginning", IntentAction.ADD_STEP),
    ("insert a node for Stripe", IntentAction.ADD_NODE),
    ("update the Gmail node", IntentAction.MODIFY_STEP),
    ("change the address field", IntentAction.MODIFY_STEP),
    ("activate the workflow", IntentAction.ACTIVATE),
    ("enable it", IntentAction.ACTIVATE),
    ("deactivate the workflow", IntentAction.DEACTIVATE),
    ("disable it for now", IntentAction.DEACTIVATE),
    ("make it faster", IntentAction.UNKNOWN),
])
def test_action_detection(parser, text, action):
    assert parser.parse_instruction(text).action == action


def test_action_priority_is_fixed(parser):
    # add outranks remove when both appear
    assert parser.parse_instruction("remove Gmail and add Slack step").action == IntentAction.ADD_STEP


@pytest.mark.parametrize("text, position", [
    ("add a Slack step at the start", InsertPosition.BEGINNING),
    ("add a Slack step after node 'Webhook'", InsertPosition.AFTER),
    ("add a Slack step before node 'Webhook'", InsertPosition.BEFORE),
    ("add a Slack step in the middle", InsertPosition.MIDDLE),
    ("add a Slack step", InsertPosition.END),
])
def test_position_detection(parser, text, position):
    assert parser.parse_instruction(text).position == position


def test_operation_is_last_listed_verb_found(parser):
    assert parser.parse_instruction("fetch the rows then send them").operation == "fetch"
    assert parser.parse_instruction("add a step to post updates").operation == "post"
    assert parser.parse_instruction("rename it to 'X'").operation is None


def test_description_for_gmail_to_slack(parser):
    intent = parser.parse_description("create a workflow that reads Gmail and posts to Slack")

    assert intent.services == ["gmail", "slack"]
    assert intent.action == IntentAction.UNKNOWN
    assert intent.trigger == TriggerKind.EMAIL
    assert intent.verbs == ["create", "read"]
    assert intent.primary_verb == "create"
    assert intent.keywords == ["gmail", "slack", "create", "read"]


def test_description_ai_adds_openai(parser):
    intent = parser.parse_description("summarize new Notion pages daily")

    assert intent.services == ["notion", "openai"]
    assert intent.trigger == TriggerKind.SCHEDULE
    assert intent.keywords[-1] == "ai"


def test_description_existing_ai_service_is_kept(parser):
    intent = parser.parse_description("use Claude to analyze tickets")

    assert intent.services == ["anthropic_claude"]
    assert "ai" in intent.keywords


def test_gmail_does_not_imply_ai(parser):
    intent = parser.parse_description("forward Gmail to Discord")

    assert "openai" not in intent.services
    assert "ai" not in intent.keywords


def test_description_defaults(parser):
    intent = parser.parse_description("hello there")

    assert intent.services == []
    assert intent.trigger == TriggerKind.WEBHOOK
    assert intent.primary_verb == "process"
    assert intent.keywords == []


def test_description_carries_customizations(parser):
    intent = parser.parse_description("post to Slack", {"Slack": {"channel": "#ops"}})

    assert intent.customizations == {"Slack": {"channel": "#ops"}}


@pytest.mark.parametrize("text, target, anchor", [
    ("add node 'Audit Log' after node 'Webhook'", "Audit Log", "Webhook"),
    ("add a Discord step before the 'Slack' module", None, "Slack"),
    ("add a Slack step after 'Gmail'", None, "Gmail"),
    ("add a Slack step at the end", None, None),
])
def test_anchor_name_is_separate_from_target(parser, text, target, anchor):
    intent = parser.parse_instruction(text)

    assert intent.target_name == target
    assert intent.anchor_name == anchor
