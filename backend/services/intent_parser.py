"""
Intent Parser

Best-effort keyword extraction from free-form instructions and
workflow descriptions. Deterministic, never raises.
"""

import re
from typing import Any, Dict, Optional, Tuple

from schemas.intent_schema import (
    Intent, GenerationIntent, IntentAction, InsertPosition, TriggerKind
)
from services.service_registry import ServiceRegistry, default_registry


# Scanned in order; the first family present decides the action
ACTION_PATTERNS: Tuple[Tuple[IntentAction, re.Pattern], ...] = (
    (IntentAction.ADD_STEP, re.compile(r"\b(?:add(?:s|ed|ing)?|insert\w*)\b")),
    (IntentAction.REMOVE_STEP, re.compile(r"\b(?:remov\w*|delet\w*)\b")),
    (IntentAction.MODIFY_STEP, re.compile(r"\b(?:chang\w*|modif\w*|updat\w*)\b")),
    (IntentAction.RENAME, re.compile(r"\brenam\w*\b")),
    (IntentAction.ACTIVATE, re.compile(r"\b(?:activat\w*|enabl\w*)\b")),
    (IntentAction.DEACTIVATE, re.compile(r"\b(?:deactivat\w*|disabl\w*)\b")),
)

POSITION_PATTERNS: Tuple[Tuple[InsertPosition, re.Pattern], ...] = (
    (InsertPosition.BEGINNING, re.compile(r"\b(?:beginning|start|first)\b")),
    (InsertPosition.AFTER, re.compile(r"\bafter\b")),
    (InsertPosition.BEFORE, re.compile(r"\bbefore\b")),
    (InsertPosition.MIDDLE, re.compile(r"\bmiddle\b")),
)

TARGET_NAME_PATTERN = re.compile(r"\bnodes?\s+['\"](.*?)['\"]", re.IGNORECASE)
NEW_NAME_PATTERN = re.compile(r"\b(?:rename|call it|name it)\b[^'\"]*?['\"](.*?)['\"]", re.IGNORECASE)
ANCHOR_NAME_PATTERN = re.compile(
    r"\b(?:before|after)\s+(?:the\s+)?(?:(?:node|step|module)s?\s+)?['\"](.*?)['\"]", re.IGNORECASE
)
STEP_WORD_PATTERN = re.compile(r"\bsteps?\b")

OPERATIONS = ["send", "create", "read", "update", "delete", "fetch", "post", "get"]
DESCRIPTION_VERBS = [
    "send", "create", "update", "delete", "read", "fetch",
    "process", "analyze", "summarize", "extract",
]

AI_PATTERN = re.compile(r"\bai\b|summarize|analyze|generate")
AI_SERVICES = ("openai", "anthropic_claude")

TRIGGER_PATTERNS: Tuple[Tuple[TriggerKind, re.Pattern], ...] = (
    (TriggerKind.SCHEDULE, re.compile(r"schedule|daily|hourly")),
    (TriggerKind.EMAIL, re.compile(r"email|gmail|outlook")),
    (TriggerKind.WEBHOOK, re.compile(r"webhook|\bapi\b")),
)


def _word_start(word: str) -> re.Pattern:
    # "reads" counts as "read", "thread" does not
    return re.compile(r"\b" + re.escape(word))


_OPERATION_PATTERNS = [(op, _word_start(op)) for op in OPERATIONS]
_VERB_PATTERNS = [(verb, _word_start(verb)) for verb in DESCRIPTION_VERBS]


class IntentParser:
    """
    Turns text into Intent objects using the service registry for
    service detection.
    """

    def __init__(self, registry: Optional[ServiceRegistry] = None):
        self.registry = registry or default_registry()

    def parse_instruction(self, text: str) -> Intent:
        """
        Parse a modification instruction such as
        "add a Slack step at the beginning" or "rename it to 'Nightly Sync'".
        """
        lower_text = text.lower()

        action = self._detect_action(lower_text)
        if action == IntentAction.ADD_STEP and not STEP_WORD_PATTERN.search(lower_text):
            action = IntentAction.ADD_NODE

        return Intent(
            action=action,
            services=self.registry.detect_services(text),
            position=self._detect_position(lower_text),
            target_name=_first_group(TARGET_NAME_PATTERN, text),
            anchor_name=_first_group(ANCHOR_NAME_PATTERN, text),
            new_name=_first_group(NEW_NAME_PATTERN, text),
            operation=self._detect_operation(lower_text),
            raw_text=text,
        )

    def parse_description(
        self,
        text: str,
        customizations: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> GenerationIntent:
        """
        Parse a description of a whole workflow, e.g.
        "create a workflow that reads Gmail and posts to Slack".

        Services and verbs found also become keywords, in that order,
        followed by "ai" when the text asks for AI work.
        """
        lower_text = text.lower()
        services = self.registry.detect_services(text)
        keywords = list(services)

        verbs = [verb for verb, pattern in _VERB_PATTERNS if pattern.search(lower_text)]
        keywords.extend(verbs)

        if AI_PATTERN.search(lower_text):
            if not any(s in services for s in AI_SERVICES):
                services.append("openai")
            keywords.append("ai")

        return GenerationIntent(
            services=services,
            operation=self._detect_operation(lower_text),
            raw_text=text,
            keywords=keywords,
            trigger=self._detect_trigger(lower_text),
            verbs=verbs,
            customizations=customizations,
        )

    # ---------- Helpers ----------

    @staticmethod
    def _detect_action(lower_text: str) -> IntentAction:
        for action, pattern in ACTION_PATTERNS:
            if pattern.search(lower_text):
                return action
        return IntentAction.UNKNOWN

    @staticmethod
    def _detect_position(lower_text: str) -> InsertPosition:
        for position, pattern in POSITION_PATTERNS:
            if pattern.search(lower_text):
                return position
        return InsertPosition.END

    @staticmethod
    def _detect_operation(lower_text: str) -> Optional[str]:
        operation = None
        for op, pattern in _OPERATION_PATTERNS:
            if pattern.search(lower_text):
                operation = op
        return operation

    @staticmethod
    def _detect_trigger(lower_text: str) -> TriggerKind:
        for kind, pattern in TRIGGER_PATTERNS:
            if pattern.search(lower_text):
                return kind
        return TriggerKind.WEBHOOK


def _first_group(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    return match.group(1) if match else None
