"""
Workflow Generator Service

Builds new n8n workflows or Make scenarios from a plain-language
description, starting from a matching template when one exists.
"""

from typing import Any, Dict, List, Optional, Union
import logging

from schemas.intent_schema import GenerationIntent, TriggerKind
from schemas.n8n import N8nWorkflow, N8nNode, N8nConnection, Parameters
from schemas.make import (
    MakeScenario, MakeBlueprint, MakeModule, MakeModuleMetadata, MakeDesigner, recurring_schedule
)
from schemas.translation import Platform, TranslationResult
from services.service_registry import ServiceRegistry, default_registry
from services.field_classifier import split_parameters
from services.intent_parser import IntentParser, AI_SERVICES
from services.workflow_templates import WorkflowTemplatesService, WorkflowTemplate, TemplateNotFoundError
from translators.graph_linearizer import HORIZONTAL_OFFSET, DEFAULT_Y, MAIN_PORT

logger = logging.getLogger(__name__)

Customizations = Dict[str, Dict[str, Any]]

TRIGGER_NODE_ID = "trigger"
DEFAULT_MAKE_TRIGGER = "webhook"


def default_parameters(service: str) -> Parameters:
    """Sensible starting parameters for a freshly generated step."""
    if service in AI_SERVICES:
        return {
            "operation": "message",
            "messages": {
                "values": [{"role": "user", "content": "{{$json.content}}"}],
            },
        }
    return {}


class WorkflowGenerator:
    """
    Generates workflows for either platform.

    Template-based generation copies the template skeleton and merges
    per-step customizations; otherwise a trigger followed by one step
    per detected service is built and wired in sequence.
    """

    def __init__(
        self,
        registry: Optional[ServiceRegistry] = None,
        templates: Optional[WorkflowTemplatesService] = None,
    ):
        self.registry = registry or default_registry()
        self.parser = IntentParser(self.registry)
        self.templates = templates or WorkflowTemplatesService(self.registry)

    async def generate_from_description(
        self,
        description: str,
        platform: Union[Platform, str],
        customizations: Optional[Customizations] = None,
    ) -> TranslationResult:
        """
        Generate a workflow from a natural language description.

        Args:
            description: e.g. "create a workflow that reads Gmail and posts to Slack"
            platform: Target platform
            customizations: Parameter overrides keyed by node name (n8n) or module type (Make)

        Returns:
            TranslationResult with the generated workflow or scenario
        """
        try:
            platform = Platform(platform)
            intent = self.parser.parse_description(description, customizations)
            logger.info(
                f"Generating {platform.value} workflow: services={intent.services}, "
                f"trigger={intent.trigger.value}"
            )

            matches: List[WorkflowTemplate] = []
            if intent.keywords:
                matches = self.templates.find_by_keyword(" ".join(intent.keywords))

            if matches:
                template = matches[0]
                warnings = [f"Using template: {template.name}"]
                return TranslationResult.ok(self._customize(template, platform, intent.customizations), warnings)

            if platform == Platform.N8N:
                return TranslationResult.ok(self._build_n8n_workflow(intent))
            return TranslationResult.ok(self._build_make_scenario(intent))

        except Exception as e:
            logger.error(f"Workflow generation failed: {e}", exc_info=True)
            return TranslationResult.failed(f"Generation failed: {str(e)}")

    async def generate_from_template(
        self,
        template_id: str,
        platform: Union[Platform, str],
        customizations: Optional[Customizations] = None,
    ) -> TranslationResult:
        """Instantiate a specific template, applying optional customizations."""
        try:
            template = self.templates.get_template(template_id)
        except TemplateNotFoundError as e:
            logger.warning(str(e))
            return TranslationResult.failed(str(e))

        try:
            return TranslationResult.ok(self._customize(template, Platform(platform), customizations))
        except Exception as e:
            logger.error(f"Template generation failed: {e}", exc_info=True)
            return TranslationResult.failed(f"Generation failed: {str(e)}")

    # ---------- Templates ----------

    def _customize(
        self,
        template: WorkflowTemplate,
        platform: Platform,
        customizations: Optional[Customizations],
    ) -> Union[N8nWorkflow, MakeScenario]:
        customizations = customizations or {}

        if platform == Platform.N8N:
            workflow = template.n8n_template
            for node in workflow.nodes:
                if node.name in customizations:
                    node.parameters = {**node.parameters, **customizations[node.name]}
            return workflow

        scenario = template.make_template
        for module in scenario.modules:
            if module.module in customizations:
                module.parameters = {**module.parameters, **customizations[module.module]}
        return scenario

    # ---------- From scratch ----------

    def _workflow_name(self, intent: GenerationIntent) -> str:
        verb = intent.primary_verb
        services = " + ".join(self.registry.display_name(s) for s in intent.services[:2])
        return f"{verb[:1].upper()}{verb[1:]}: {services or 'Automation'}"

    def _build_n8n_workflow(self, intent: GenerationIntent) -> N8nWorkflow:
        trigger = self.registry.trigger(intent.trigger)
        x_pos = HORIZONTAL_OFFSET

        nodes = [N8nNode(
            id=TRIGGER_NODE_ID,
            name=trigger.name,
            type=trigger.n8n_node_type,
            position=[x_pos, DEFAULT_Y],
        )]
        connections: Dict[str, Dict[str, List[N8nConnection]]] = {}

        for index, service in enumerate(intent.services):
            x_pos += HORIZONTAL_OFFSET
            node = N8nNode(
                id=f"{service}_{index}",
                name=self.registry.display_name(service),
                type=self.registry.get_n8n_node_type(service),
                position=[x_pos, DEFAULT_Y],
                parameters=default_parameters(service),
            )
            connections[nodes[-1].id] = {MAIN_PORT: [N8nConnection(node=node.id)]}
            nodes.append(node)

        return N8nWorkflow(
            name=self._workflow_name(intent),
            active=False,
            nodes=nodes,
            connections=connections,
            settings={},
            static_data={},
            tags=list(intent.keywords),
        )

    def _build_make_scenario(self, intent: GenerationIntent) -> MakeScenario:
        trigger = self.registry.trigger(intent.trigger)
        x_pos = HORIZONTAL_OFFSET

        modules = [MakeModule(
            id=1,
            module=trigger.make_module_type or DEFAULT_MAKE_TRIGGER,
            metadata=MakeModuleMetadata(designer=MakeDesigner(x=x_pos, y=DEFAULT_Y)),
        )]

        for service in intent.services:
            x_pos += HORIZONTAL_OFFSET
            configuration, mapper = split_parameters(default_parameters(service))
            modules.append(MakeModule(
                id=len(modules) + 1,
                module=self.registry.get_make_module_type(service),
                parameters=configuration,
                mapper=mapper,
                metadata=MakeModuleMetadata(designer=MakeDesigner(x=x_pos, y=DEFAULT_Y)),
            ))

        name = self._workflow_name(intent)
        scenario = MakeScenario(name=name, blueprint=MakeBlueprint(name=name, flow=modules))
        if intent.trigger == TriggerKind.SCHEDULE:
            scenario.scheduling = recurring_schedule()
        return scenario
