import pytest

from services.field_classifier import is_mapper_field, split_parameters, merge_parameters


@pytest.mark.parametrize("value", [
    "{{1.subject}}",
    "Hello {{$json.name}}!",
    "=$json.body",
    '$node["Webhook"].json.id',
])
def test_dynamic_strings_are_mapper_fields(value):
    assert is_mapper_field("text", value)
    assert is_mapper_field("text", value)


@pytest.mark.parametrize("value", [
    "#general",
    "just text with { braces }",
    42,
    True,
    None,
    ["{{1.subject}}"],
    {"nested": "{{1.subject}}"},
])
def test_static_values_are_configuration(value):
    assert not is_mapper_field("field", value)


def test_split_keeps_key_order():
    configuration, mapper = split_parameters({
        "channel": "#general",
        "text": "{{1.text}}",
        "asUser": False,
        "attachments": "$json.files",
    })

    assert list(configuration) == ["channel", "asUser"]
    assert list(mapper) == ["text", "attachments"]


def test_merge_prefers_mapper_on_collision():
    merged = merge_parameters({"text": "static", "channel": "#a"}, {"text": "{{1.text}}"})

    assert merged == {"text": "{{1.text}}", "channel": "#a"}
