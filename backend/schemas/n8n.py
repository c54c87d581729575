# schemas/n8n.py
from __future__ import annotations
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

# ---------- Parameter Bags ----------

Parameters = Dict[str, JsonValue]

# ---------- Graph Models ----------

class N8nConnection(BaseModel):
    node: str
    type: str = "main"
    index: int = 0

# source node reference -> output port name -> ordered targets
ConnectionMap = Dict[str, Dict[str, List[N8nConnection]]]

class N8nNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: str
    type_version: Union[int, float] = Field(default=1, alias="typeVersion")
    position: Optional[List[float]] = None
    parameters: Parameters = Field(default_factory=dict)
    credentials: Optional[Dict[str, Any]] = None

class N8nWorkflow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str
    active: bool = False
    nodes: List[N8nNode] = Field(default_factory=list)
    connections: ConnectionMap = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)
    static_data: Dict[str, Any] = Field(default_factory=dict, alias="staticData")
    tags: List[str] = Field(default_factory=list)

    @field_validator("connections", mode="before")
    @classmethod
    def flatten_output_indexes(cls, value: Any) -> Any:
        """
        n8n exports nest targets per output index ("main": [[{...}], [{...}]]).
        Flatten that form into one ordered target list per port.
        """
        if not isinstance(value, dict):
            return value

        flattened: Dict[str, Dict[str, List[Any]]] = {}
        for source, ports in value.items():
            if not isinstance(ports, dict):
                flattened[source] = ports
                continue
            flattened[source] = {}
            for port, targets in ports.items():
                items: List[Any] = []
                for target in targets or []:
                    if isinstance(target, list):
                        items.extend(t for t in target if t is not None)
                    elif target is not None:
                        items.append(target)
                flattened[source][port] = items
        return flattened

    def node_lookup(self) -> Dict[str, N8nNode]:
        """Map both node ids and node names to nodes; ids win on clashes."""
        lookup: Dict[str, N8nNode] = {}
        for node in self.nodes:
            lookup.setdefault(node.name, node)
        for node in self.nodes:
            lookup[node.id] = node
        return lookup

    def connection_count(self) -> int:
        return sum(
            len(targets)
            for ports in self.connections.values()
            for targets in ports.values()
        )
