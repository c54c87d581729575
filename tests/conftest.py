import copy
import os
import sys
from pathlib import Path

import pytest

BACKEND = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

os.environ.setdefault("LOG_LEVEL", "WARNING")

SAMPLE_N8N_WORKFLOW = {
    "name": "Email Summaries",
    "active": False,
    "nodes": [
        {
            "id": "webhook",
            "name": "Webhook",
            "type": "n8n-nodes-base.webhook",
            "typeVersion": 1,
            "position": [250, 300],
            "parameters": {"path": "incoming", "httpMethod": "POST"},
        },
        {
            "id": "openai",
            "name": "Summarize with OpenAI",
            "type": "n8n-nodes-base.openAi",
            "typeVersion": 1,
            "position": [500, 300],
            "parameters": {
                "operation": "message",
                "model": "gpt-4",
                "prompt": "Summarize: {{$json.body}}",
            },
        },
        {
            "id": "slack",
            "name": "Send to Slack",
            "type": "n8n-nodes-base.slack",
            "typeVersion": 1,
            "position": [750, 300],
            "parameters": {
                "channel": "#summaries",
                "text": "={{$json.choices[0].message.content}}",
            },
        },
    ],
    "connections": {
        "webhook": {"main": [{"node": "openai", "type": "main", "index": 0}]},
        "openai": {"main": [{"node": "slack", "type": "main", "index": 0}]},
    },
}

# n8n export format: connections keyed by node name, targets nested per output index
SAMPLE_N8N_EXPORT = {
    "name": "Lead Router",
    "nodes": [
        {
            "id": "a1",
            "name": "HubSpot",
            "type": "n8n-nodes-base.hubspot",
            "position": [100, 200],
            "parameters": {"operation": "get"},
        },
        {
            "id": "b2",
            "name": "Notion",
            "type": "n8n-nodes-base.notion",
            "position": [350, 200],
            "parameters": {"title": "{{$json.name}}"},
        },
    ],
    "connections": {
        "HubSpot": {"main": [[{"node": "Notion", "type": "main", "index": 0}]]},
    },
}

SAMPLE_MAKE_SCENARIO = {
    "name": "Gmail to Slack",
    "blueprint": {
        "name": "Gmail to Slack",
        "flow": [
            {
                "id": 1,
                "module": "google.gmail",
                "version": 2,
                "parameters": {"label": "INBOX"},
                "mapper": {},
                "metadata": {"designer": {"x": 0, "y": 0}},
            },
            {
                "id": 2,
                "module": "slack.slack",
                "version": 1,
                "parameters": {"channel": "#general"},
                "mapper": {"text": "{{1.subject}}"},
                "metadata": {"designer": {"x": 300, "y": 0}},
            },
        ],
    },
    "teamId": "42",
}


@pytest.fixture
def n8n_workflow():
    return copy.deepcopy(SAMPLE_N8N_WORKFLOW)


@pytest.fixture
def n8n_export():
    return copy.deepcopy(SAMPLE_N8N_EXPORT)


@pytest.fixture
def make_scenario():
    return copy.deepcopy(SAMPLE_MAKE_SCENARIO)
