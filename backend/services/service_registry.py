"""
Service Registry

Fixed mapping from abstract service keys (e.g. "gmail") to the node type
used by n8n and the module type used by Make, with category and
operation metadata. Components receive a registry value instead of
reading module globals, so tests can substitute their own table.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from schemas.intent_schema import TriggerKind

GENERIC_N8N_NODE_TYPE = "n8n-nodes-base.httpRequest"
GENERIC_MAKE_MODULE_TYPE = "http"


class ServiceCategory(str, Enum):
    COMMUNICATION = "communication"
    PRODUCTIVITY = "productivity"
    AI = "ai"
    CRM = "crm"
    ECOMMERCE = "ecommerce"
    FINANCE = "finance"
    STORAGE = "storage"
    DATABASE = "database"


@dataclass(frozen=True)
class ApiMapping:
    name: str
    n8n_node_type: str
    make_module_type: str
    category: ServiceCategory
    common_operations: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()
    # False: only the display name and aliases identify the service in text
    match_key: bool = True


@dataclass(frozen=True)
class TriggerMapping:
    name: str
    n8n_node_type: str
    make_module_type: Optional[str] = None


class ServiceRegistry:
    """Immutable lookup table shared by translators, parser and generators."""

    def __init__(
        self,
        services: Mapping[str, ApiMapping],
        triggers: Optional[Mapping[TriggerKind, TriggerMapping]] = None,
    ):
        self._services = MappingProxyType(dict(services))
        self._triggers = MappingProxyType(dict(triggers or {}))

    # ---------- Mapping protocol ----------

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._services

    def __len__(self) -> int:
        return len(self._services)

    def get(self, key: str) -> Optional[ApiMapping]:
        return self._services.get(key.lower())

    def keys(self) -> List[str]:
        return list(self._services)

    def items(self) -> Iterable[Tuple[str, ApiMapping]]:
        return self._services.items()

    @property
    def triggers(self) -> Mapping[TriggerKind, TriggerMapping]:
        return self._triggers

    def trigger(self, kind: TriggerKind) -> TriggerMapping:
        return self._triggers.get(kind) or self._triggers[TriggerKind.WEBHOOK]

    # ---------- Service -> platform type ----------

    def get_n8n_node_type(self, service: str) -> str:
        mapping = self.get(service)
        return mapping.n8n_node_type if mapping else GENERIC_N8N_NODE_TYPE

    def get_make_module_type(self, service: str) -> str:
        mapping = self.get(service)
        return mapping.make_module_type if mapping else GENERIC_MAKE_MODULE_TYPE

    def display_name(self, service: str) -> str:
        mapping = self.get(service)
        return mapping.name if mapping else service

    # ---------- Platform type -> platform type ----------

    def make_module_for_n8n_type(self, node_type: str) -> Optional[str]:
        """Make module type for an n8n node type, or None when unmapped."""
        for candidate in (node_type, self._strip_trigger_suffix(node_type)):
            if candidate is None:
                continue
            for mapping in self._services.values():
                if mapping.n8n_node_type == candidate:
                    return mapping.make_module_type
            for trigger in self._triggers.values():
                if trigger.n8n_node_type == candidate and trigger.make_module_type:
                    return trigger.make_module_type
        return None

    def n8n_node_for_make_type(self, module_type: str) -> Optional[str]:
        """n8n node type for a Make module type, or None when unmapped."""
        for mapping in self._services.values():
            if mapping.make_module_type == module_type:
                return mapping.n8n_node_type
        for trigger in self._triggers.values():
            if trigger.make_module_type == module_type:
                return trigger.n8n_node_type

        # "google.gmail" -> "gmail"
        base_name = module_type.split(".")[-1].lower()
        mapping = self._services.get(base_name)
        if mapping:
            return mapping.n8n_node_type
        for mapping in self._services.values():
            if mapping.n8n_node_type.split(".")[-1].lower() == base_name:
                return mapping.n8n_node_type
        return None

    @staticmethod
    def _strip_trigger_suffix(node_type: str) -> Optional[str]:
        if node_type.endswith("Trigger"):
            return node_type[: -len("Trigger")]
        return None

    # ---------- Search ----------

    def get_services_by_category(self, category: ServiceCategory) -> List[str]:
        return [key for key, mapping in self._services.items() if mapping.category == category]

    def search_services(self, keyword: str) -> List[str]:
        lower_keyword = keyword.lower()
        return [
            key for key, mapping in self._services.items()
            if lower_keyword in key or lower_keyword in mapping.name.lower()
        ]

    def detect_services(self, text: str) -> List[str]:
        """Services whose key, display name or alias occurs in the text."""
        lower_text = text.lower()
        found: List[str] = []
        for key, mapping in self._services.items():
            terms = (mapping.name.lower(),) + mapping.aliases
            if mapping.match_key:
                terms = (key,) + terms
            if any(term in lower_text for term in terms):
                found.append(key)
        return found


# ---------- Built-in table ----------

_BUSINESS_API_MAPPINGS: Dict[str, ApiMapping] = {
    # Microsoft Office 365 / Graph API
    "microsoft_outlook": ApiMapping(
        "Microsoft Outlook", "n8n-nodes-base.microsoftOutlook", "microsoft365.outlook",
        ServiceCategory.COMMUNICATION, ("send_email", "read_email", "create_event", "update_event"),
        aliases=("outlook",),
    ),
    "microsoft_teams": ApiMapping(
        "Microsoft Teams", "n8n-nodes-base.microsoftTeams", "microsoft365.teams",
        ServiceCategory.COMMUNICATION, ("send_message", "create_channel", "post_to_channel"),
        aliases=("ms teams",),
    ),
    "microsoft_excel": ApiMapping(
        "Microsoft Excel", "n8n-nodes-base.microsoftExcel", "microsoft365.excel",
        ServiceCategory.PRODUCTIVITY, ("read_worksheet", "write_worksheet", "create_row", "update_row"),
        aliases=("excel",),
    ),
    "microsoft_onedrive": ApiMapping(
        "Microsoft OneDrive", "n8n-nodes-base.microsoftOneDrive", "microsoft365.onedrive",
        ServiceCategory.STORAGE, ("upload_file", "download_file", "list_files", "delete_file"),
        aliases=("onedrive",),
    ),
    "microsoft_sharepoint": ApiMapping(
        "Microsoft SharePoint", "n8n-nodes-base.microsoftSharepoint", "microsoft365.sharepoint",
        ServiceCategory.PRODUCTIVITY, ("create_list_item", "update_list_item", "read_list", "upload_file"),
        aliases=("sharepoint",),
    ),

    # AI Services
    "openai": ApiMapping(
        "OpenAI", "n8n-nodes-base.openAi", "openai",
        ServiceCategory.AI,
        ("chat_completion", "text_completion", "image_generation", "embeddings", "audio_transcription"),
        aliases=("gpt",),
    ),
    "anthropic_claude": ApiMapping(
        "Anthropic Claude", "n8n-nodes-base.anthropic", "anthropic",
        ServiceCategory.AI, ("create_message", "stream_message"),
        aliases=("claude", "anthropic"),
    ),

    # Google Workspace
    "gmail": ApiMapping(
        "Gmail", "n8n-nodes-base.gmail", "google.gmail",
        ServiceCategory.COMMUNICATION, ("send_email", "search_email", "read_email", "add_label"),
    ),
    "google_sheets": ApiMapping(
        "Google Sheets", "n8n-nodes-base.googleSheets", "google.sheets",
        ServiceCategory.PRODUCTIVITY, ("append_row", "update_row", "read_sheet", "create_sheet"),
        aliases=("sheets", "spreadsheet"),
    ),
    "google_drive": ApiMapping(
        "Google Drive", "n8n-nodes-base.googleDrive", "google.drive",
        ServiceCategory.STORAGE, ("upload_file", "create_folder", "share_file", "search_files"),
    ),
    "google_calendar": ApiMapping(
        "Google Calendar", "n8n-nodes-base.googleCalendar", "google.calendar",
        ServiceCategory.PRODUCTIVITY, ("create_event", "update_event", "list_events", "delete_event"),
    ),

    # CRM & Sales
    "salesforce": ApiMapping(
        "Salesforce", "n8n-nodes-base.salesforce", "salesforce",
        ServiceCategory.CRM, ("create_lead", "update_opportunity", "search_records", "create_account"),
    ),
    "hubspot": ApiMapping(
        "HubSpot", "n8n-nodes-base.hubspot", "hubspot",
        ServiceCategory.CRM, ("create_contact", "update_deal", "create_company", "add_to_list"),
    ),

    # E-commerce
    "shopify": ApiMapping(
        "Shopify", "n8n-nodes-base.shopify", "shopify",
        ServiceCategory.ECOMMERCE, ("create_order", "update_product", "create_customer", "fulfill_order"),
    ),
    "woocommerce": ApiMapping(
        "WooCommerce", "n8n-nodes-base.wooCommerce", "woocommerce",
        ServiceCategory.ECOMMERCE, ("create_product", "update_order", "create_customer"),
    ),

    # Finance & Accounting
    "quickbooks": ApiMapping(
        "QuickBooks", "n8n-nodes-base.quickbooks", "quickbooks",
        ServiceCategory.FINANCE, ("create_invoice", "create_customer", "create_payment", "get_reports"),
    ),
    "stripe": ApiMapping(
        "Stripe", "n8n-nodes-base.stripe", "stripe",
        ServiceCategory.FINANCE, ("create_customer", "create_charge", "create_subscription", "refund_payment"),
    ),

    # Communication
    "slack": ApiMapping(
        "Slack", "n8n-nodes-base.slack", "slack.slack",
        ServiceCategory.COMMUNICATION, ("send_message", "create_channel", "invite_user", "upload_file"),
    ),
    "discord": ApiMapping(
        "Discord", "n8n-nodes-base.discord", "discord",
        ServiceCategory.COMMUNICATION, ("send_message", "create_channel", "send_dm"),
    ),
    "twilio": ApiMapping(
        "Twilio", "n8n-nodes-base.twilio", "twilio",
        ServiceCategory.COMMUNICATION, ("send_sms", "make_call", "send_whatsapp"),
    ),

    # Databases
    "postgresql": ApiMapping(
        "PostgreSQL", "n8n-nodes-base.postgres", "postgresql",
        ServiceCategory.DATABASE, ("execute_query", "insert", "update", "delete"),
        aliases=("postgres",),
    ),
    "mysql": ApiMapping(
        "MySQL", "n8n-nodes-base.mysql", "mysql",
        ServiceCategory.DATABASE, ("execute_query", "insert", "update", "delete"),
    ),
    "mongodb": ApiMapping(
        "MongoDB", "n8n-nodes-base.mongoDb", "mongodb",
        ServiceCategory.DATABASE, ("find", "insert", "update", "delete"),
    ),

    # Productivity & Project Management
    "notion": ApiMapping(
        "Notion", "n8n-nodes-base.notion", "notion.notion",
        ServiceCategory.PRODUCTIVITY, ("create_page", "update_database", "query_database", "create_block"),
    ),
    "airtable": ApiMapping(
        "Airtable", "n8n-nodes-base.airtable", "airtable.airtable",
        ServiceCategory.PRODUCTIVITY, ("create_record", "update_record", "search_records", "list_records"),
    ),
    "asana": ApiMapping(
        "Asana", "n8n-nodes-base.asana", "asana",
        ServiceCategory.PRODUCTIVITY, ("create_task", "update_task", "create_project", "add_comment"),
    ),
    "trello": ApiMapping(
        "Trello", "n8n-nodes-base.trello", "trello",
        ServiceCategory.PRODUCTIVITY, ("create_card", "update_card", "create_board", "add_checklist"),
    ),

    # Storage & Files
    "dropbox": ApiMapping(
        "Dropbox", "n8n-nodes-base.dropbox", "dropbox",
        ServiceCategory.STORAGE, ("upload_file", "download_file", "create_folder", "share_link"),
    ),
    "aws_s3": ApiMapping(
        "AWS S3", "n8n-nodes-base.awsS3", "aws.s3",
        ServiceCategory.STORAGE, ("upload_file", "download_file", "list_objects", "delete_object"),
    ),

    # Development & DevOps
    "github": ApiMapping(
        "GitHub", "n8n-nodes-base.github", "github",
        ServiceCategory.PRODUCTIVITY, ("create_issue", "create_pr", "create_repo", "add_comment"),
    ),
    "gitlab": ApiMapping(
        "GitLab", "n8n-nodes-base.gitlab", "gitlab",
        ServiceCategory.PRODUCTIVITY, ("create_issue", "create_merge_request", "create_project"),
    ),

    # Generic HTTP
    "http": ApiMapping(
        "HTTP Request", GENERIC_N8N_NODE_TYPE, GENERIC_MAKE_MODULE_TYPE,
        ServiceCategory.PRODUCTIVITY, ("get", "post", "put", "delete", "patch"),
        match_key=False,
    ),
}

_TRIGGER_MAPPINGS: Dict[TriggerKind, TriggerMapping] = {
    TriggerKind.SCHEDULE: TriggerMapping("Schedule", "n8n-nodes-base.scheduleTrigger"),
    TriggerKind.EMAIL: TriggerMapping("Email Trigger", "n8n-nodes-base.gmailTrigger", "google.gmail"),
    TriggerKind.WEBHOOK: TriggerMapping("Webhook", "n8n-nodes-base.webhook", "webhook"),
}

_DEFAULT_REGISTRY = ServiceRegistry(_BUSINESS_API_MAPPINGS, _TRIGGER_MAPPINGS)


def default_registry() -> ServiceRegistry:
    """The built-in registry. Safe to share: it cannot be mutated."""
    return _DEFAULT_REGISTRY
