# schemas/make.py
from __future__ import annotations
from typing import List, Optional, Dict, Any, Union
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from schemas.n8n import Parameters

# ---------- Core Enums ----------

class SchedulingType(str, Enum):
    INDEFINITELY = "indefinitely"
    ONCE = "once"
    CUSTOM = "custom"

class SchedulingUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

# ---------- Sequential Models ----------

class MakeDesigner(BaseModel):
    x: float
    y: float

class MakeModuleMetadata(BaseModel):
    designer: Optional[MakeDesigner] = None

class MakeModule(BaseModel):
    id: int
    module: str
    version: Union[int, float] = 1
    parameters: Parameters = Field(default_factory=dict)
    mapper: Parameters = Field(default_factory=dict)
    metadata: Optional[MakeModuleMetadata] = None

    def designer_position(self) -> Optional[MakeDesigner]:
        if self.metadata and self.metadata.designer:
            return self.metadata.designer
        return None

class MakeBlueprint(BaseModel):
    name: str
    flow: List[MakeModule] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

class MakeScheduling(BaseModel):
    type: SchedulingType
    interval: Optional[int] = None
    unit: Optional[SchedulingUnit] = None

class MakeScenario(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str
    blueprint: Optional[MakeBlueprint] = None
    scheduling: Optional[MakeScheduling] = None
    team_id: Optional[str] = Field(default=None, alias="teamId")
    organization_id: Optional[str] = Field(default=None, alias="organizationId")

    @property
    def modules(self) -> List[MakeModule]:
        return self.blueprint.flow if self.blueprint else []

# ---------- Defaults ----------

def recurring_schedule() -> MakeScheduling:
    """Schedule attached to scenarios that should run on their own."""
    return MakeScheduling(
        type=SchedulingType.INDEFINITELY,
        interval=15,
        unit=SchedulingUnit.MINUTES,
    )
