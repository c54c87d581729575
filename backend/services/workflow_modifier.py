"""
Workflow Modifier Service

Applies plain-language edit instructions ("remove the OpenAI node",
"add a Slack step at the beginning") to existing n8n workflows and
Make scenarios. Every edit works on a copy of the input.
"""

from typing import Any, Callable, Dict, List, Optional, Set, Union
import logging
import re
import uuid

from schemas.intent_schema import Intent, IntentAction, InsertPosition
from schemas.n8n import N8nWorkflow, N8nNode, N8nConnection, Parameters
from schemas.make import (
    MakeScenario, MakeBlueprint, MakeModule, MakeModuleMetadata, MakeDesigner, recurring_schedule
)
from schemas.translation import TranslationResult
from services.service_registry import ServiceRegistry, default_registry
from services.intent_parser import IntentParser
from translators.graph_linearizer import HORIZONTAL_OFFSET, DEFAULT_Y, MAIN_PORT, unique_name

logger = logging.getLogger(__name__)

DEFAULT_SERVICE = "http"

QUOTED_TEXT_PATTERN = re.compile(r"['\"](.*?)['\"]")
CHANNEL_PATTERN = re.compile(r"channel\s+['\"](#?\w+)['\"]", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"[\w.-]+@[\w.-]+\.\w+")

N8nHandler = Callable[[N8nWorkflow, Intent, List[str]], N8nWorkflow]
MakeHandler = Callable[[MakeScenario, Intent, List[str]], MakeScenario]


class ModificationError(Exception):
    """Raised when a modification cannot be applied"""
    pass


def _check_dispatch(handlers: Dict[IntentAction, Any], platform: str) -> None:
    missing = [action.value for action in IntentAction if action not in handlers]
    if missing:
        raise ModificationError(f"No {platform} handler for actions: {', '.join(missing)}")


def step_name(display_name: str, operation: Optional[str]) -> str:
    """'Slack', 'send' -> 'Slack - Send'"""
    if operation:
        return f"{display_name} - {operation[:1].upper()}{operation[1:]}"
    return display_name


def step_parameters(operation: Optional[str], instruction: str) -> Parameters:
    """Parameter hints pulled from the instruction text."""
    params: Parameters = {}
    lower_instruction = instruction.lower()

    if "message" in lower_instruction or "text" in lower_instruction:
        message_match = QUOTED_TEXT_PATTERN.search(instruction)
        if message_match:
            params["text"] = message_match.group(1)

    if "channel" in lower_instruction:
        channel_match = CHANNEL_PATTERN.search(instruction)
        if channel_match:
            params["channel"] = channel_match.group(1)

    if "email" in lower_instruction or "to:" in lower_instruction:
        email_match = EMAIL_PATTERN.search(instruction)
        if email_match:
            params["to"] = email_match.group(0)

    if operation:
        params["operation"] = operation

    return params


class WorkflowModifier:
    """
    Instruction-driven editor for both platforms.

    Each IntentAction has exactly one handler per platform; the tables
    are checked for completeness on construction.
    """

    def __init__(self, registry: Optional[ServiceRegistry] = None):
        self.registry = registry or default_registry()
        self.parser = IntentParser(self.registry)

        self._n8n_handlers: Dict[IntentAction, N8nHandler] = {
            IntentAction.ADD_STEP: self._add_n8n_node,
            IntentAction.ADD_NODE: self._add_n8n_node,
            IntentAction.REMOVE_STEP: self._remove_n8n_node,
            IntentAction.MODIFY_STEP: self._modify_n8n_node,
            IntentAction.RENAME: self._rename_n8n_workflow,
            IntentAction.ACTIVATE: self._set_n8n_active,
            IntentAction.DEACTIVATE: self._set_n8n_active,
            IntentAction.UNKNOWN: self._unresolved,
        }
        self._make_handlers: Dict[IntentAction, MakeHandler] = {
            IntentAction.ADD_STEP: self._add_make_module,
            IntentAction.ADD_NODE: self._add_make_module,
            IntentAction.REMOVE_STEP: self._remove_make_module,
            IntentAction.MODIFY_STEP: self._modify_make_module,
            IntentAction.RENAME: self._rename_make_scenario,
            IntentAction.ACTIVATE: self._set_make_scheduling,
            IntentAction.DEACTIVATE: self._set_make_scheduling,
            IntentAction.UNKNOWN: self._unresolved,
        }
        _check_dispatch(self._n8n_handlers, "n8n")
        _check_dispatch(self._make_handlers, "Make")

    async def modify_n8n_workflow(
        self,
        workflow: Union[N8nWorkflow, Dict[str, Any]],
        instructions: str,
    ) -> TranslationResult:
        """
        Modify an n8n workflow based on instructions.

        Returns:
            TranslationResult with the modified copy; targets that cannot
            be found leave the workflow unchanged and add a warning
        """
        try:
            if isinstance(workflow, N8nWorkflow):
                workflow = workflow.model_copy(deep=True)
            else:
                workflow = N8nWorkflow.model_validate(workflow)

            intent = self.parser.parse_instruction(instructions)
            logger.info(f"Modifying n8n workflow '{workflow.name}': {intent.action.value}")

            warnings: List[str] = []
            modified = self._n8n_handlers[intent.action](workflow, intent, warnings)
            return TranslationResult.ok(modified, warnings)

        except Exception as e:
            logger.error(f"n8n modification failed: {e}", exc_info=True)
            return TranslationResult.failed(f"Modification failed: {str(e)}")

    async def modify_make_scenario(
        self,
        scenario: Union[MakeScenario, Dict[str, Any]],
        instructions: str,
    ) -> TranslationResult:
        """Modify a Make scenario based on instructions."""
        try:
            if isinstance(scenario, MakeScenario):
                scenario = scenario.model_copy(deep=True)
            else:
                scenario = MakeScenario.model_validate(scenario)

            intent = self.parser.parse_instruction(instructions)
            logger.info(f"Modifying Make scenario '{scenario.name}': {intent.action.value}")

            warnings: List[str] = []
            modified = self._make_handlers[intent.action](scenario, intent, warnings)
            return TranslationResult.ok(modified, warnings)

        except Exception as e:
            logger.error(f"Make modification failed: {e}", exc_info=True)
            return TranslationResult.failed(f"Modification failed: {str(e)}")

    # ---------- Shared ----------

    @staticmethod
    def _unresolved(process, intent: Intent, warnings: List[str]):
        warnings.append(f"Could not determine modification action from: {intent.raw_text}")
        return process

    def _primary_service(self, intent: Intent) -> str:
        services = intent.services
        if intent.anchor_name:
            # "add Slack after node 'Summarize with OpenAI'" is a Slack step
            services = self.registry.detect_services(intent.raw_text.replace(intent.anchor_name, ""))
        return services[0] if services else DEFAULT_SERVICE

    def _match_terms(self, intent: Intent) -> List[str]:
        """Lowercase fragments identifying the step an instruction refers to."""
        terms: List[str] = []
        if intent.target_name:
            terms.append(intent.target_name.lower())
        for service in intent.services:
            terms.append(service)
            terms.append(self.registry.display_name(service).lower())
        return terms

    def _insert_index(
        self,
        count: int,
        intent: Intent,
        anchor_index: Optional[int],
        warnings: List[str],
    ) -> int:
        if intent.position == InsertPosition.BEGINNING:
            # keep the trigger first
            return min(1, count)
        if intent.position == InsertPosition.MIDDLE:
            return count // 2
        if intent.position in (InsertPosition.BEFORE, InsertPosition.AFTER):
            if anchor_index is None:
                reference = f"'{intent.anchor_name}'" if intent.anchor_name else "given"
                warnings.append(f"No step {reference} to insert {intent.position.value}; appended at the end")
                return count
            return anchor_index if intent.position == InsertPosition.BEFORE else anchor_index + 1
        return count

    # ---------- n8n ----------

    def _find_n8n_node(self, workflow: N8nWorkflow, intent: Intent) -> Optional[N8nNode]:
        terms = self._match_terms(intent)
        mapped_types = {self.registry.get_n8n_node_type(s).lower() for s in intent.services}
        for node in workflow.nodes:
            name, node_type = node.name.lower(), node.type.lower()
            if node_type in mapped_types:
                return node
            if any(term in name or term in node_type for term in terms):
                return node
        return None

    def _anchor_types(self, anchor: str, mapped_type: Callable[[str], str]) -> Set[str]:
        return {mapped_type(s).lower() for s in self.registry.detect_services(anchor)}

    def _find_n8n_anchor(self, workflow: N8nWorkflow, intent: Intent) -> Optional[int]:
        if not intent.anchor_name:
            return None
        anchor = intent.anchor_name.lower()
        for index, node in enumerate(workflow.nodes):
            if anchor in node.name.lower():
                return index
        anchor_types = self._anchor_types(anchor, self.registry.get_n8n_node_type)
        for index, node in enumerate(workflow.nodes):
            if node.type.lower() in anchor_types:
                return index
        return None

    def _find_make_anchor(self, scenario: MakeScenario, intent: Intent) -> Optional[int]:
        if not intent.anchor_name:
            return None
        anchor = intent.anchor_name.lower()
        anchor_types = self._anchor_types(anchor, self.registry.get_make_module_type)
        for index, module in enumerate(scenario.modules):
            module_type = module.module.lower()
            if anchor in module_type or module_type in anchor_types:
                return index
        return None

    @staticmethod
    def _references(node: N8nNode) -> Set[str]:
        """Connection keys that may refer to the node."""
        return {node.id, node.name}

    def _targets_of(self, workflow: N8nWorkflow, node: N8nNode) -> List[N8nConnection]:
        targets: List[N8nConnection] = []
        for key in self._references(node):
            for port_targets in workflow.connections.get(key, {}).values():
                targets.extend(port_targets)
        return targets

    def _add_n8n_node(self, workflow: N8nWorkflow, intent: Intent, warnings: List[str]) -> N8nWorkflow:
        service = self._primary_service(intent)
        nodes = workflow.nodes
        lookup = workflow.node_lookup()

        anchor_index = self._find_n8n_anchor(workflow, intent)
        if intent.action == IntentAction.ADD_STEP:
            name = step_name(self.registry.display_name(service), intent.operation)
            parameters = step_parameters(intent.operation, intent.raw_text)
        else:
            own_name = intent.target_name if intent.target_name != intent.anchor_name else None
            name = own_name or f"{service} Node"
            parameters = {}

        insert_index = self._insert_index(len(nodes), intent, anchor_index, warnings)
        predecessor = nodes[insert_index - 1] if insert_index > 0 else None
        successor = nodes[insert_index] if insert_index < len(nodes) else None

        if successor is not None and successor.position:
            x_pos, y_pos = successor.position[0], successor.position[1]
        elif predecessor is not None and predecessor.position:
            x_pos, y_pos = predecessor.position[0] + HORIZONTAL_OFFSET, predecessor.position[1]
        else:
            x_pos, y_pos = HORIZONTAL_OFFSET, DEFAULT_Y

        for node in nodes[insert_index:]:
            if node.position:
                node.position[0] += HORIZONTAL_OFFSET

        new_node = N8nNode(
            id=f"{service}_{uuid.uuid4().hex[:8]}",
            name=unique_name(name, {n.name for n in nodes}),
            type=self.registry.get_n8n_node_type(service),
            position=[x_pos, y_pos],
            parameters=parameters,
        )
        nodes.insert(insert_index, new_node)

        if predecessor is not None:
            rerouted = False
            for key in self._references(predecessor):
                for port_targets in workflow.connections.get(key, {}).values():
                    for connection in port_targets:
                        if successor is not None and lookup.get(connection.node) is successor:
                            connection.node = new_node.id
                            rerouted = True
            if not rerouted:
                ports = workflow.connections.setdefault(predecessor.id, {})
                ports.setdefault(MAIN_PORT, []).append(N8nConnection(node=new_node.id))

        if successor is not None:
            workflow.connections[new_node.id] = {MAIN_PORT: [N8nConnection(node=successor.id)]}

        logger.debug(f"Inserted '{new_node.name}' at index {insert_index}")
        return workflow

    def _remove_n8n_node(self, workflow: N8nWorkflow, intent: Intent, warnings: List[str]) -> N8nWorkflow:
        target = self._find_n8n_node(workflow, intent)
        if target is None:
            warnings.append(f"No node matching '{intent.raw_text}' found; workflow unchanged")
            return workflow

        lookup = workflow.node_lookup()
        removed_refs = self._references(target)
        successors = [
            lookup[c.node] for c in self._targets_of(workflow, target)
            if c.node in lookup and lookup[c.node] is not target
        ]

        for key in removed_refs:
            workflow.connections.pop(key, None)

        for source in list(workflow.connections):
            ports = workflow.connections[source]
            for port in list(ports):
                bridged: List[N8nConnection] = []
                for connection in ports[port]:
                    if connection.node not in removed_refs:
                        bridged.append(connection)
                        continue
                    for successor in successors:
                        if not any(lookup.get(c.node) is successor for c in bridged):
                            bridged.append(N8nConnection(node=successor.id, type=connection.type))
                if bridged:
                    ports[port] = bridged
                else:
                    del ports[port]
            if not ports:
                del workflow.connections[source]

        workflow.nodes = [n for n in workflow.nodes if n is not target]
        logger.debug(f"Removed node '{target.name}'")
        return workflow

    def _modify_n8n_node(self, workflow: N8nWorkflow, intent: Intent, warnings: List[str]) -> N8nWorkflow:
        target = self._find_n8n_node(workflow, intent)
        if target is None:
            warnings.append(f"No node matching '{intent.raw_text}' found; workflow unchanged")
            return workflow

        if intent.new_name and intent.new_name != target.name:
            old_name = target.name
            taken = {n.name for n in workflow.nodes if n is not target}
            target.name = unique_name(intent.new_name, taken)
            if target.name != intent.new_name:
                warnings.append(f"Node name '{intent.new_name}' is taken; renamed to '{target.name}'")
            # connections may reference the node by name
            if old_name in workflow.connections and old_name != target.id:
                workflow.connections[target.name] = workflow.connections.pop(old_name)
            for ports in workflow.connections.values():
                for port_targets in ports.values():
                    for connection in port_targets:
                        if connection.node == old_name:
                            connection.node = target.name

        if intent.operation:
            target.parameters = {**target.parameters, "operation": intent.operation}

        if not intent.new_name and not intent.operation:
            warnings.append(f"No change found in instruction for node '{target.name}'")
        return workflow

    @staticmethod
    def _rename_n8n_workflow(workflow: N8nWorkflow, intent: Intent, warnings: List[str]) -> N8nWorkflow:
        if not intent.new_name:
            warnings.append("No quoted new name found; workflow name unchanged")
            return workflow
        workflow.name = intent.new_name
        return workflow

    @staticmethod
    def _set_n8n_active(workflow: N8nWorkflow, intent: Intent, warnings: List[str]) -> N8nWorkflow:
        workflow.active = intent.action == IntentAction.ACTIVATE
        return workflow

    # ---------- Make ----------

    def _find_make_module(self, scenario: MakeScenario, intent: Intent) -> Optional[MakeModule]:
        terms = self._match_terms(intent)
        mapped_types = {self.registry.get_make_module_type(s).lower() for s in intent.services}
        for module in scenario.modules:
            module_type = module.module.lower()
            if module_type in mapped_types or any(term in module_type for term in terms):
                return module
        return None

    def _add_make_module(self, scenario: MakeScenario, intent: Intent, warnings: List[str]) -> MakeScenario:
        if scenario.blueprint is None:
            scenario.blueprint = MakeBlueprint(name=scenario.name)
        modules = scenario.blueprint.flow
        service = self._primary_service(intent)

        anchor_index = self._find_make_anchor(scenario, intent)
        insert_index = self._insert_index(len(modules), intent, anchor_index, warnings)

        predecessor = modules[insert_index - 1] if insert_index > 0 else None
        successor = modules[insert_index] if insert_index < len(modules) else None
        if successor is not None and successor.designer_position():
            designer = successor.designer_position()
            x_pos, y_pos = designer.x, designer.y
        elif predecessor is not None and predecessor.designer_position():
            designer = predecessor.designer_position()
            x_pos, y_pos = designer.x + HORIZONTAL_OFFSET, designer.y
        else:
            x_pos, y_pos = HORIZONTAL_OFFSET, DEFAULT_Y

        for module in modules[insert_index:]:
            designer = module.designer_position()
            if designer:
                designer.x += HORIZONTAL_OFFSET

        parameters: Parameters = {}
        if intent.action == IntentAction.ADD_STEP:
            parameters = step_parameters(intent.operation, intent.raw_text)

        modules.insert(insert_index, MakeModule(
            id=max((m.id for m in modules), default=0) + 1,
            module=self.registry.get_make_module_type(service),
            parameters=parameters,
            metadata=MakeModuleMetadata(designer=MakeDesigner(x=x_pos, y=y_pos)),
        ))
        return scenario

    def _remove_make_module(self, scenario: MakeScenario, intent: Intent, warnings: List[str]) -> MakeScenario:
        target = self._find_make_module(scenario, intent)
        if target is None:
            warnings.append(f"No module matching '{intent.raw_text}' found; scenario unchanged")
            return scenario
        scenario.blueprint.flow = [m for m in scenario.blueprint.flow if m is not target]
        return scenario

    def _modify_make_module(self, scenario: MakeScenario, intent: Intent, warnings: List[str]) -> MakeScenario:
        target = self._find_make_module(scenario, intent)
        if target is None:
            warnings.append(f"No module matching '{intent.raw_text}' found; scenario unchanged")
            return scenario
        if not intent.operation:
            warnings.append(f"No change found in instruction for module {target.id}")
            return scenario
        target.parameters = {**target.parameters, "operation": intent.operation}
        return scenario

    @staticmethod
    def _rename_make_scenario(scenario: MakeScenario, intent: Intent, warnings: List[str]) -> MakeScenario:
        if not intent.new_name:
            warnings.append("No quoted new name found; scenario name unchanged")
            return scenario
        scenario.name = intent.new_name
        if scenario.blueprint:
            scenario.blueprint.name = intent.new_name
        return scenario

    @staticmethod
    def _set_make_scheduling(scenario: MakeScenario, intent: Intent, warnings: List[str]) -> MakeScenario:
        if intent.action == IntentAction.ACTIVATE:
            scenario.scheduling = recurring_schedule()
        else:
            scenario.scheduling = None
        return scenario
