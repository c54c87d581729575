"""
Intent Schema for Workflow Instructions

Structured form of a free-form generation or modification request.
Intents are produced by the intent parser and discarded after use.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from enum import Enum


class IntentAction(str, Enum):
    """
    Structural edit requested by an instruction.
    """
    ADD_STEP = "add_step"  # Add a service step with generated name and parameters
    ADD_NODE = "add_node"  # Add a standalone node named by the instruction
    REMOVE_STEP = "remove_step"
    MODIFY_STEP = "modify_step"
    RENAME = "rename"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    UNKNOWN = "unknown"


class InsertPosition(str, Enum):
    BEGINNING = "beginning"
    END = "end"
    BEFORE = "before"
    AFTER = "after"
    MIDDLE = "middle"


class TriggerKind(str, Enum):
    SCHEDULE = "schedule"
    EMAIL = "email"
    WEBHOOK = "webhook"


class Intent(BaseModel):
    """
    Result of parsing one instruction.
    """
    action: IntentAction = Field(default=IntentAction.UNKNOWN)
    services: List[str] = Field(default_factory=list, description="Registry keys mentioned, in registry order")
    position: InsertPosition = Field(default=InsertPosition.END)
    target_name: Optional[str] = Field(None, description="Quoted name following 'node'")
    anchor_name: Optional[str] = Field(None, description="Quoted name following 'before' or 'after'")
    new_name: Optional[str] = Field(None, description="Quoted name following 'rename', 'call it' or 'name it'")
    operation: Optional[str] = Field(None, description="Last operation verb found")
    raw_text: str = Field("", description="The instruction as given")


class GenerationIntent(Intent):
    """
    Intent parsed from a description of a whole new workflow.
    """
    keywords: List[str] = Field(default_factory=list)
    trigger: TriggerKind = Field(default=TriggerKind.WEBHOOK)
    verbs: List[str] = Field(default_factory=list)
    customizations: Optional[Dict[str, Dict[str, Any]]] = None

    @property
    def primary_verb(self) -> str:
        return self.verbs[0] if self.verbs else "process"
