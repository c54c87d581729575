"""
Make -> n8n Translator

Converts a Make scenario into an n8n workflow with explicit
sequential connections.
"""

from typing import Any, Dict, List, Optional, Union
import asyncio
import logging

from schemas.n8n import N8nWorkflow
from schemas.make import MakeScenario, MakeModule
from schemas.translation import TranslationContext, TranslationResult
from services.service_registry import ServiceRegistry, GENERIC_N8N_NODE_TYPE, default_registry
from translators.graph_linearizer import expand

logger = logging.getLogger(__name__)


class MakeToN8nTranslator:
    """
    Deterministic translator from Make scenarios to n8n workflows.
    """

    def __init__(self, registry: Optional[ServiceRegistry] = None):
        self.registry = registry or default_registry()

    async def translate(
        self,
        scenario: Union[MakeScenario, Dict[str, Any]],
        context: Optional[TranslationContext] = None,
    ) -> TranslationResult:
        """
        Translate one Make scenario.

        Args:
            scenario: Scenario model or raw Make JSON
            context: Optional default activation state and id handling

        Returns:
            TranslationResult holding an N8nWorkflow on success
        """
        try:
            if not isinstance(scenario, MakeScenario):
                scenario = MakeScenario.model_validate(scenario)
            return self._translate(scenario, context)
        except Exception as e:
            logger.error(f"Make -> n8n translation failed: {e}", exc_info=True)
            return TranslationResult.failed(f"Translation failed: {str(e)}")

    async def translate_batch(
        self,
        scenarios: List[Union[MakeScenario, Dict[str, Any]]],
        context: Optional[TranslationContext] = None,
    ) -> List[TranslationResult]:
        """Translate independently; one result per input, in input order."""
        return list(await asyncio.gather(*(self.translate(s, context) for s in scenarios)))

    def _translate(self, scenario: MakeScenario, context: Optional[TranslationContext]) -> TranslationResult:
        warnings: List[str] = []

        def map_module_type(module: MakeModule) -> str:
            node_type = self.registry.n8n_node_for_make_type(module.module)
            if node_type is None:
                warnings.append(
                    f"Module {module.id} has unmapped type '{module.module}'; "
                    f"translated as generic '{GENERIC_N8N_NODE_TYPE}' node"
                )
                return GENERIC_N8N_NODE_TYPE
            return node_type

        options = context.options if context else None
        graph = expand(scenario.modules, map_module_type, preserve_ids=bool(options and options.preserve_ids))

        default_active = options.default_active if options else None
        name = scenario.name or (scenario.blueprint.name if scenario.blueprint else "")

        workflow = N8nWorkflow(
            name=name,
            active=default_active if default_active is not None else False,
            nodes=graph.nodes,
            connections=graph.connections,
            settings={},
            static_data={},
            tags=[],
        )

        if warnings:
            warnings.append("Some modules could not be fully translated")

        logger.info(
            f"Translated Make scenario '{name}' to n8n: "
            f"{len(workflow.nodes)} nodes, {workflow.connection_count()} connections"
        )
        return TranslationResult.ok(workflow, warnings)
