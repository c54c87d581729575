"""
n8n -> Make Translator

Converts an n8n workflow into a Make scenario. Never raises: every
failure comes back as an unsuccessful TranslationResult.
"""

from typing import Any, Dict, List, Optional, Union
import asyncio
import logging

from schemas.n8n import N8nWorkflow, N8nNode
from schemas.make import MakeScenario, MakeBlueprint, recurring_schedule
from schemas.translation import TranslationContext, TranslationResult
from services.service_registry import ServiceRegistry, GENERIC_MAKE_MODULE_TYPE, default_registry
from translators.graph_linearizer import linearize

logger = logging.getLogger(__name__)


class N8nToMakeTranslator:
    """
    Deterministic translator from n8n workflows to Make scenarios.
    """

    def __init__(self, registry: Optional[ServiceRegistry] = None):
        self.registry = registry or default_registry()

    async def translate(
        self,
        workflow: Union[N8nWorkflow, Dict[str, Any]],
        context: Optional[TranslationContext] = None,
    ) -> TranslationResult:
        """
        Translate one n8n workflow.

        Args:
            workflow: Workflow model or raw n8n JSON
            context: Optional team / organization scoping

        Returns:
            TranslationResult holding a MakeScenario on success
        """
        try:
            if not isinstance(workflow, N8nWorkflow):
                workflow = N8nWorkflow.model_validate(workflow)
            return self._translate(workflow, context)
        except Exception as e:
            logger.error(f"n8n -> Make translation failed: {e}", exc_info=True)
            return TranslationResult.failed(f"Translation failed: {str(e)}")

    async def translate_batch(
        self,
        workflows: List[Union[N8nWorkflow, Dict[str, Any]]],
        context: Optional[TranslationContext] = None,
    ) -> List[TranslationResult]:
        """Translate independently; one result per input, in input order."""
        return list(await asyncio.gather(*(self.translate(w, context) for w in workflows)))

    def _translate(self, workflow: N8nWorkflow, context: Optional[TranslationContext]) -> TranslationResult:
        unmapped: List[str] = []

        def map_node_type(node: N8nNode) -> str:
            module_type = self.registry.make_module_for_n8n_type(node.type)
            if module_type is None:
                unmapped.append(
                    f"Node '{node.name}' has unmapped type '{node.type}'; "
                    f"translated as generic '{GENERIC_MAKE_MODULE_TYPE}' module"
                )
                return GENERIC_MAKE_MODULE_TYPE
            return module_type

        linearization = linearize(workflow, map_node_type)
        warnings = linearization.warnings + unmapped

        blueprint = MakeBlueprint(
            name=workflow.name,
            flow=linearization.modules,
            metadata={"version": 1, "scenario": workflow.name},
        )

        options = context.options if context else None
        scenario = MakeScenario(
            name=workflow.name,
            blueprint=blueprint,
            team_id=options.team_id if options else None,
            organization_id=options.organization_id if options else None,
        )
        if workflow.active:
            scenario.scheduling = recurring_schedule()

        if unmapped:
            warnings.append("Some nodes could not be fully translated")

        logger.info(
            f"Translated n8n workflow '{workflow.name}' to Make: "
            f"{len(blueprint.flow)} modules, {len(warnings)} warnings"
        )
        return TranslationResult.ok(scenario, warnings)
