"""
Graph Linearizer / Expander

Converts an n8n node graph into Make's strictly sequential module chain,
and expands a Make module chain back into n8n nodes with one explicit
connection per adjacent pair. Positions are cosmetic; only order and
adjacency carry meaning.
"""

from typing import Callable, Dict, List, Optional, Set, Tuple
from collections import deque
from dataclasses import dataclass, field
import copy
import logging
import uuid

from schemas.n8n import N8nWorkflow, N8nNode, N8nConnection, ConnectionMap
from schemas.make import MakeModule, MakeModuleMetadata, MakeDesigner
from services.field_classifier import split_parameters, merge_parameters

logger = logging.getLogger(__name__)

HORIZONTAL_OFFSET = 250
DEFAULT_Y = 300
MAIN_PORT = "main"


@dataclass
class Linearization:
    modules: List[MakeModule] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ExpandedGraph:
    nodes: List[N8nNode] = field(default_factory=list)
    connections: ConnectionMap = field(default_factory=dict)


# ---------- Graph -> Sequence ----------

def _successors(workflow: N8nWorkflow, node: N8nNode, lookup: Dict[str, N8nNode]) -> List[N8nNode]:
    """Resolved targets of a node: all output ports flattened, port-then-target order."""
    keys = [node.id] if node.name == node.id else [node.id, node.name]
    targets: List[N8nNode] = []
    for key in keys:
        for port_targets in workflow.connections.get(key, {}).values():
            for connection in port_targets:
                target = lookup.get(connection.node)
                if target is None:
                    # edge to a pruned node
                    continue
                targets.append(target)
    return targets


def find_start_node(workflow: N8nWorkflow) -> Optional[N8nNode]:
    """First node, in declaration order, that no connection points at."""
    lookup = workflow.node_lookup()
    has_incoming: Set[str] = set()
    for node in workflow.nodes:
        for target in _successors(workflow, node, lookup):
            has_incoming.add(target.id)
    return next((n for n in workflow.nodes if n.id not in has_incoming), None)


def order_nodes(workflow: N8nWorkflow) -> Tuple[List[N8nNode], List[str]]:
    """
    Execution order for a node graph.

    Breadth-first from the start node; nodes unreachable from it are
    appended in declaration order so nothing is dropped.
    """
    warnings: List[str] = []
    if not workflow.nodes:
        return [], warnings

    start_node = find_start_node(workflow)
    if start_node is None:
        warnings.append(
            "No start node found (every node has an incoming connection); "
            "modules follow declaration order"
        )
        return list(workflow.nodes), warnings

    lookup = workflow.node_lookup()
    ordered: List[N8nNode] = []
    visited: Set[str] = set()
    queue = deque([start_node])

    while queue:
        node = queue.popleft()
        if node.id in visited:
            continue
        visited.add(node.id)
        ordered.append(node)
        for target in _successors(workflow, node, lookup):
            if target.id not in visited:
                queue.append(target)

    unreachable = [n for n in workflow.nodes if n.id not in visited]
    if unreachable:
        names = ", ".join(f"'{n.name}'" for n in unreachable)
        warnings.append(
            f"Nodes not reachable from '{start_node.name}' were appended at the end: {names}"
        )
        ordered.extend(unreachable)

    return ordered, warnings


def _module_position(node: N8nNode, previous: Optional[Tuple[float, float]]) -> Tuple[float, float]:
    if node.position and len(node.position) >= 2:
        return node.position[0], node.position[1]
    if previous is None:
        return HORIZONTAL_OFFSET, DEFAULT_Y
    return previous[0] + HORIZONTAL_OFFSET, previous[1]


def linearize(workflow: N8nWorkflow, map_node_type: Callable[[N8nNode], str]) -> Linearization:
    """
    Convert a node graph into a dense, 1-based module sequence.

    Args:
        workflow: Source graph
        map_node_type: Returns the Make module type for a node

    Returns:
        Linearization with the ordered modules and any ordering warnings
    """
    ordered, warnings = order_nodes(workflow)
    result = Linearization(warnings=warnings)

    previous: Optional[Tuple[float, float]] = None
    for module_id, node in enumerate(ordered, start=1):
        x, y = _module_position(node, previous)
        configuration, mapper = split_parameters(node.parameters)

        result.modules.append(MakeModule(
            id=module_id,
            module=map_node_type(node),
            version=node.type_version,
            parameters=copy.deepcopy(configuration),
            mapper=copy.deepcopy(mapper),
            metadata=MakeModuleMetadata(designer=MakeDesigner(x=x, y=y)),
        ))
        previous = (x, y)

    logger.debug(f"Linearized '{workflow.name}': {len(result.modules)} modules")
    return result


# ---------- Sequence -> Graph ----------

def node_name_for_module(module_type: str) -> str:
    """'google.gmail' -> 'Gmail'"""
    base = module_type.split(".")[-1] or module_type
    return base[:1].upper() + base[1:]


def unique_name(name: str, used: Set[str]) -> str:
    # n8n requires unique node names within a workflow
    candidate = name
    counter = 1
    while candidate in used:
        candidate = f"{name}{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def _node_position(module: MakeModule, index: int) -> List[float]:
    designer = module.designer_position()
    if designer:
        return [designer.x, designer.y]
    return [HORIZONTAL_OFFSET * index, DEFAULT_Y]


def expand(
    modules: List[MakeModule],
    map_module_type: Callable[[MakeModule], str],
    preserve_ids: bool = False,
) -> ExpandedGraph:
    """
    Convert a module sequence into nodes chained by "main" connections.

    Args:
        modules: Make flow, order is execution order
        map_module_type: Returns the n8n node type for a module
        preserve_ids: Use the module ids as node ids instead of fresh uuids

    Returns:
        ExpandedGraph with one connection per adjacent pair
    """
    graph = ExpandedGraph()
    used_names: Set[str] = set()

    for index, module in enumerate(modules):
        node = N8nNode(
            id=str(module.id) if preserve_ids else str(uuid.uuid4()),
            name=unique_name(node_name_for_module(module.module), used_names),
            type=map_module_type(module),
            type_version=module.version or 1,
            position=_node_position(module, index),
            parameters=copy.deepcopy(merge_parameters(module.parameters, module.mapper)),
        )
        graph.nodes.append(node)

    for current, following in zip(graph.nodes, graph.nodes[1:]):
        graph.connections[current.id] = {
            MAIN_PORT: [N8nConnection(node=following.id, type=MAIN_PORT, index=0)]
        }

    return graph
