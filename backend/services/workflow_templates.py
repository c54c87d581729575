"""
Workflow Templates Service
Provides ready-made automation skeletons that generation can start from
"""

from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field
from enum import Enum
import copy
import logging

from schemas.n8n import N8nWorkflow, N8nNode
from schemas.make import MakeScenario, MakeBlueprint, recurring_schedule
from services.service_registry import ServiceRegistry, GENERIC_MAKE_MODULE_TYPE, default_registry
from translators.graph_linearizer import linearize

logger = logging.getLogger(__name__)

SCHEDULE_TRIGGER_TYPE = "n8n-nodes-base.scheduleTrigger"


class TemplateNotFoundError(Exception):
    """Raised when a template id is not in the catalogue"""
    pass


class TemplateCategory(str, Enum):
    PRODUCTIVITY = "productivity"
    SALES = "sales"
    FINANCE = "finance"
    MARKETING = "marketing"


@dataclass
class WorkflowTemplate:
    id: str
    name: str
    description: str
    category: TemplateCategory
    keywords: List[str]
    required_services: List[str]
    n8n_template: N8nWorkflow
    make_template: Optional[MakeScenario] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def _main(target: str) -> Dict[str, Any]:
    return {"main": [{"node": target, "type": "main", "index": 0}]}


def _chain(*node_ids: str) -> Dict[str, Any]:
    """Sequential connections between the given node ids"""
    return {source: _main(target) for source, target in zip(node_ids, node_ids[1:])}


def _node(node_id: str, name: str, node_type: str, x: int, parameters: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": node_id,
        "name": name,
        "type": f"n8n-nodes-base.{node_type}",
        "typeVersion": 1,
        "position": [x, 300],
        "parameters": parameters,
    }


class WorkflowTemplatesService:
    """Service for looking up workflow templates"""

    def __init__(self, registry: Optional[ServiceRegistry] = None):
        self.registry = registry or default_registry()
        self.templates = self._load_templates()

    def _load_templates(self) -> Dict[str, WorkflowTemplate]:
        """Load all available templates and derive their Make skeletons"""
        templates: Dict[str, WorkflowTemplate] = {}

        templates.update(self._get_productivity_templates())
        templates.update(self._get_sales_templates())
        templates.update(self._get_finance_templates())
        templates.update(self._get_marketing_templates())

        for template in templates.values():
            template.make_template = self._derive_make_template(template.n8n_template)

        logger.debug(f"Loaded {len(templates)} workflow templates")
        return templates

    def _derive_make_template(self, workflow: N8nWorkflow) -> MakeScenario:
        """Linearize the n8n skeleton into the equivalent Make scenario"""

        def map_node_type(node: N8nNode) -> str:
            return self.registry.make_module_for_n8n_type(node.type) or GENERIC_MAKE_MODULE_TYPE

        linearization = linearize(workflow, map_node_type)
        scenario = MakeScenario(
            name=workflow.name,
            blueprint=MakeBlueprint(name=workflow.name, flow=linearization.modules),
        )
        if workflow.nodes and workflow.nodes[0].type == SCHEDULE_TRIGGER_TYPE:
            scenario.scheduling = recurring_schedule()
        return scenario

    # ---------- Catalogue ----------

    def _get_productivity_templates(self) -> Dict[str, WorkflowTemplate]:
        return {
            "email_ai_summary": WorkflowTemplate(
                id="email_ai_summary",
                name="AI Email Summarizer",
                description="Automatically summarize incoming emails using AI and send summaries to Slack",
                category=TemplateCategory.PRODUCTIVITY,
                keywords=["email", "ai", "summary", "slack", "automation"],
                required_services=["gmail", "openai", "slack"],
                n8n_template=N8nWorkflow.model_validate({
                    "name": "AI Email Summarizer",
                    "nodes": [
                        _node("gmail_trigger", "Gmail Trigger", "gmailTrigger", 250, {
                            "event": "messageReceived",
                        }),
                        _node("openai", "Summarize with OpenAI", "openAi", 500, {
                            "operation": "message",
                            "model": "gpt-4",
                            "messages": {"values": [{
                                "role": "user",
                                "content": "Summarize this email in 2-3 sentences: {{$json.snippet}}",
                            }]},
                        }),
                        _node("slack", "Send to Slack", "slack", 750, {
                            "operation": "post",
                            "channel": "#email-summaries",
                            "text": "Email Summary:\n{{$json.choices[0].message.content}}",
                        }),
                    ],
                    "connections": _chain("gmail_trigger", "openai", "slack"),
                }),
            ),
        }

    def _get_sales_templates(self) -> Dict[str, WorkflowTemplate]:
        return {
            "crm_lead_enrichment": WorkflowTemplate(
                id="crm_lead_enrichment",
                name="CRM Lead Enrichment",
                description="Enrich new Salesforce leads with company data and notify sales team",
                category=TemplateCategory.SALES,
                keywords=["salesforce", "crm", "lead", "enrichment", "sales"],
                required_services=["salesforce", "http", "slack"],
                n8n_template=N8nWorkflow.model_validate({
                    "name": "CRM Lead Enrichment",
                    "nodes": [
                        _node("salesforce_trigger", "New Lead in Salesforce", "salesforceTrigger", 250, {
                            "object": "Lead",
                            "event": "create",
                        }),
                        _node("enrich_data", "Enrich Company Data", "httpRequest", 500, {
                            "method": "GET",
                            "url": "https://api.clearbit.com/v2/companies/find",
                            "qs": {"domain": "={{$json.Company}}"},
                        }),
                        _node("update_salesforce", "Update Lead", "salesforce", 750, {
                            "operation": "update",
                            "resource": "lead",
                            "leadId": '={{$node["salesforce_trigger"].json.Id}}',
                            "updateFields": {
                                "Industry": "={{$json.category.industry}}",
                                "NumberOfEmployees": "={{$json.metrics.employees}}",
                            },
                        }),
                        _node("notify_slack", "Notify Sales Team", "slack", 1000, {
                            "operation": "post",
                            "channel": "#sales-leads",
                            "text": (
                                'New qualified lead: {{$node["salesforce_trigger"].json.Name}} '
                                'from {{$node["salesforce_trigger"].json.Company}}'
                            ),
                        }),
                    ],
                    "connections": _chain("salesforce_trigger", "enrich_data", "update_salesforce", "notify_slack"),
                }),
            ),

            "customer_onboarding": WorkflowTemplate(
                id="customer_onboarding",
                name="Customer Onboarding Automation",
                description="Automate new customer onboarding: create accounts, send welcome emails, add to CRM",
                category=TemplateCategory.SALES,
                keywords=["customer", "onboarding", "crm", "email", "automation"],
                required_services=["shopify", "hubspot", "microsoft_outlook"],
                n8n_template=N8nWorkflow.model_validate({
                    "name": "Customer Onboarding",
                    "nodes": [
                        _node("shopify_trigger", "New Customer", "shopifyTrigger", 250, {
                            "topic": "customers/create",
                        }),
                        _node("create_hubspot_contact", "Add to HubSpot", "hubspot", 500, {
                            "operation": "create",
                            "resource": "contact",
                            "email": "={{$json.email}}",
                            "firstname": "={{$json.first_name}}",
                            "lastname": "={{$json.last_name}}",
                        }),
                        _node("send_welcome_email", "Send Welcome Email", "microsoftOutlook", 750, {
                            "operation": "send",
                            "to": "={{$json.email}}",
                            "subject": "Welcome to our platform!",
                            "bodyContent": "Hi {{$json.first_name}}, welcome aboard!",
                        }),
                    ],
                    "connections": _chain("shopify_trigger", "create_hubspot_contact", "send_welcome_email"),
                }),
            ),
        }

    def _get_finance_templates(self) -> Dict[str, WorkflowTemplate]:
        return {
            "expense_report_automation": WorkflowTemplate(
                id="expense_report_automation",
                name="Expense Report Automation",
                description="Process expense receipts from email, extract data with AI, and create QuickBooks expenses",
                category=TemplateCategory.FINANCE,
                keywords=["expense", "receipt", "quickbooks", "ai", "ocr"],
                required_services=["gmail", "openai", "quickbooks"],
                n8n_template=N8nWorkflow.model_validate({
                    "name": "Expense Report Automation",
                    "nodes": [
                        _node("gmail_trigger", "Receipt Email", "gmailTrigger", 250, {
                            "event": "messageReceived",
                            "filters": {"labelIds": ["INBOX"], "subject": "Receipt"},
                        }),
                        _node("extract_data", "Extract Receipt Data", "openAi", 500, {
                            "operation": "message",
                            "model": "gpt-4-vision",
                            "messages": {"values": [{
                                "role": "user",
                                "content": "Extract: amount, vendor, date, category from this receipt image. Return as JSON.",
                            }]},
                        }),
                        _node("create_expense", "Create QuickBooks Expense", "quickbooks", 750, {
                            "operation": "create",
                            "resource": "expense",
                            "amount": "={{$json.amount}}",
                            "vendor": "={{$json.vendor}}",
                            "date": "={{$json.date}}",
                            "category": "={{$json.category}}",
                        }),
                    ],
                    "connections": _chain("gmail_trigger", "extract_data", "create_expense"),
                }),
            ),

            "invoice_processing": WorkflowTemplate(
                id="invoice_processing",
                name="Automated Invoice Processing",
                description="Process invoices from email, extract data, and create records in accounting software",
                category=TemplateCategory.FINANCE,
                keywords=["invoice", "accounting", "ai", "automation", "finance"],
                required_services=["microsoft_outlook", "openai", "quickbooks"],
                n8n_template=N8nWorkflow.model_validate({
                    "name": "Invoice Processing",
                    "nodes": [
                        _node("outlook_trigger", "Invoice Email", "microsoftOutlookTrigger", 250, {
                            "event": "messageReceived",
                            "folder": "Invoices",
                        }),
                        _node("extract_invoice_data", "Extract Invoice Data", "openAi", 500, {
                            "operation": "message",
                            "model": "gpt-4",
                            "messages": {"values": [{
                                "role": "user",
                                "content": "Extract invoice number, amount, vendor, due date from this invoice. Return as JSON.",
                            }]},
                        }),
                        _node("create_quickbooks_bill", "Create Bill in QuickBooks", "quickbooks", 750, {
                            "operation": "create",
                            "resource": "bill",
                            "vendor": "={{$json.vendor}}",
                            "amount": "={{$json.amount}}",
                            "dueDate": "={{$json.due_date}}",
                        }),
                    ],
                    "connections": _chain("outlook_trigger", "extract_invoice_data", "create_quickbooks_bill"),
                }),
            ),
        }

    def _get_marketing_templates(self) -> Dict[str, WorkflowTemplate]:
        return {
            "social_media_content": WorkflowTemplate(
                id="social_media_content",
                name="AI Social Media Content Generator",
                description="Generate social media posts with AI based on blog content and schedule them",
                category=TemplateCategory.MARKETING,
                keywords=["social", "content", "ai", "marketing", "automation"],
                required_services=["http", "anthropic_claude", "airtable"],
                n8n_template=N8nWorkflow.model_validate({
                    "name": "AI Social Media Generator",
                    "nodes": [
                        _node("schedule_trigger", "Daily Schedule", "scheduleTrigger", 250, {
                            "rule": {"interval": [{"field": "days", "daysInterval": 1}]},
                        }),
                        _node("get_blog_posts", "Get Recent Blog Posts", "httpRequest", 500, {
                            "method": "GET",
                            "url": "https://blog.example.com/api/posts/recent",
                        }),
                        _node("generate_social_post", "Generate Post with Claude", "anthropic", 750, {
                            "operation": "message",
                            "model": "claude-3-5-sonnet-20241022",
                            "prompt": (
                                "Create 3 engaging social media posts based on this blog: "
                                "{{$json.title}}. Keep them under 280 characters."
                            ),
                        }),
                        _node("save_to_airtable", "Save to Content Calendar", "airtable", 1000, {
                            "operation": "create",
                            "table": "Content Calendar",
                            "fields": {
                                "Post": "={{$json.content}}",
                                "Status": "Scheduled",
                                "Date": "={{$now}}",
                            },
                        }),
                    ],
                    "connections": _chain("schedule_trigger", "get_blog_posts", "generate_social_post", "save_to_airtable"),
                }),
            ),
        }

    # ---------- Lookup ----------

    def list_templates(self) -> List[WorkflowTemplate]:
        """All templates in declaration order"""
        return [copy.deepcopy(t) for t in self.templates.values()]

    def get_template(self, template_id: str) -> WorkflowTemplate:
        """Get a specific template by ID"""
        template = self.templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template not found: {template_id}")
        return copy.deepcopy(template)

    def find_by_keyword(self, keyword: str) -> List[WorkflowTemplate]:
        """Templates whose keywords, name or description contain the keyword"""
        lower_keyword = keyword.lower()
        return [
            copy.deepcopy(t) for t in self.templates.values()
            if any(lower_keyword in k for k in t.keywords)
            or lower_keyword in t.name.lower()
            or lower_keyword in t.description.lower()
        ]

    def find_by_category(self, category: str) -> List[WorkflowTemplate]:
        lower_category = category.lower()
        return [copy.deepcopy(t) for t in self.templates.values() if t.category.value == lower_category]

    def find_by_service(self, service: str) -> List[WorkflowTemplate]:
        lower_service = service.lower()
        return [copy.deepcopy(t) for t in self.templates.values() if lower_service in t.required_services]

    def list_categories(self) -> List[TemplateCategory]:
        """Categories that have at least one template, in first-use order"""
        categories: List[TemplateCategory] = []
        for template in self.templates.values():
            if template.category not in categories:
                categories.append(template.category)
        return categories
