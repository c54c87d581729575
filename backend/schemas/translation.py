# schemas/translation.py
from __future__ import annotations
from typing import List, Optional, Union
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from schemas.n8n import N8nWorkflow
from schemas.make import MakeScenario

class Platform(str, Enum):
    N8N = "n8n"
    MAKE = "make"

class TranslationOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    preserve_ids: bool = Field(default=False, alias="preserveIds")
    default_active: Optional[bool] = Field(default=None, alias="defaultActive")
    team_id: Optional[str] = Field(default=None, alias="teamId")
    organization_id: Optional[str] = Field(default=None, alias="organizationId")

class TranslationContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_type: Platform = Field(alias="sourceType")
    target_type: Platform = Field(alias="targetType")
    options: TranslationOptions = Field(default_factory=TranslationOptions)

class TranslationResult(BaseModel):
    """
    Outcome of a translate / generate / modify call.
    Warnings never flip success; errors are only present on failure.
    """
    success: bool
    data: Optional[Union[N8nWorkflow, MakeScenario]] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Union[N8nWorkflow, MakeScenario], warnings: Optional[List[str]] = None) -> "TranslationResult":
        return cls(success=True, data=data, warnings=list(warnings or []))

    @classmethod
    def failed(cls, error: str) -> "TranslationResult":
        return cls(success=False, errors=[error])
