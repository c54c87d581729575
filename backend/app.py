from fastapi import FastAPI, HTTPException, Request
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

from schemas.translation import Platform, TranslationContext, TranslationResult
from services.service_registry import ServiceCategory, default_registry
from services.workflow_templates import WorkflowTemplatesService, WorkflowTemplate, TemplateNotFoundError
from services.workflow_generator import WorkflowGenerator
from services.workflow_modifier import WorkflowModifier
from translators import N8nToMakeTranslator, MakeToN8nTranslator

# Initialize services
registry = default_registry()
templates_service = WorkflowTemplatesService(registry)
n8n_to_make = N8nToMakeTranslator(registry)
make_to_n8n = MakeToN8nTranslator(registry)
workflow_generator = WorkflowGenerator(registry, templates_service)
workflow_modifier = WorkflowModifier(registry)

# Lifespan event handler
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting up Workflow Bridge API: {len(registry)} services, "
        f"{len(templates_service.templates)} templates"
    )
    yield
    logger.info("Shutting down Workflow Bridge API...")

app = FastAPI(
    title="Workflow Bridge",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
default_origins = "http://localhost:5173,http://localhost:3000,http://localhost:8000"
allowed_origins = [
    origin.strip() for origin in os.getenv("CORS_ORIGINS", default_origins).split(",") if origin.strip()
]

logger.info(f"CORS enabled for origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": f"Validation error: {exc.errors()}"})


# ============================================================================
# REQUEST MODELS
# ============================================================================

class TranslateN8nRequest(BaseModel):
    workflow: Dict[str, Any]
    context: Optional[TranslationContext] = None

class TranslateMakeRequest(BaseModel):
    scenario: Dict[str, Any]
    context: Optional[TranslationContext] = None

class BatchTranslateN8nRequest(BaseModel):
    workflows: List[Dict[str, Any]]
    context: Optional[TranslationContext] = None

class BatchTranslateMakeRequest(BaseModel):
    scenarios: List[Dict[str, Any]]
    context: Optional[TranslationContext] = None

class BatchTranslationResponse(BaseModel):
    results: List[TranslationResult]

class GenerateRequest(BaseModel):
    description: str
    platform: Platform = Platform.N8N
    customizations: Optional[Dict[str, Dict[str, Any]]] = None

class GenerateFromTemplateRequest(BaseModel):
    platform: Platform = Platform.N8N
    customizations: Optional[Dict[str, Dict[str, Any]]] = None

class ModifyN8nRequest(BaseModel):
    workflow: Dict[str, Any]
    instructions: str

class ModifyMakeRequest(BaseModel):
    scenario: Dict[str, Any]
    instructions: str

class TemplateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str
    category: str
    keywords: List[str]
    required_services: List[str] = Field(alias="requiredServices")
    n8n_template: Dict[str, Any] = Field(alias="n8nTemplate")
    make_template: Optional[Dict[str, Any]] = Field(default=None, alias="makeTemplate")

    @classmethod
    def from_template(cls, template: WorkflowTemplate) -> "TemplateResponse":
        return cls(
            id=template.id,
            name=template.name,
            description=template.description,
            category=template.category.value,
            keywords=template.keywords,
            required_services=template.required_services,
            n8n_template=template.n8n_template.model_dump(by_alias=True),
            make_template=template.make_template.model_dump(by_alias=True) if template.make_template else None,
        )

class ServiceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    name: str
    category: str
    n8n_node_type: str = Field(alias="n8nNodeType")
    make_module_type: str = Field(alias="makeModuleType")
    common_operations: List[str] = Field(alias="commonOperations")


# ============================================================================
# BASIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    return {"message": "Workflow Bridge API - n8n <-> Make"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# ============================================================================
# TRANSLATION ENDPOINTS
# ============================================================================

@app.post("/translate/n8n-to-make")
async def translate_n8n_to_make(request: TranslateN8nRequest):
    """Translate an n8n workflow into a Make scenario"""
    return await n8n_to_make.translate(request.workflow, request.context)

@app.post("/translate/make-to-n8n")
async def translate_make_to_n8n(request: TranslateMakeRequest):
    """Translate a Make scenario into an n8n workflow"""
    return await make_to_n8n.translate(request.scenario, request.context)

@app.post("/translate/n8n-to-make/batch")
async def translate_n8n_to_make_batch(request: BatchTranslateN8nRequest):
    results = await n8n_to_make.translate_batch(request.workflows, request.context)
    return BatchTranslationResponse(results=results)

@app.post("/translate/make-to-n8n/batch")
async def translate_make_to_n8n_batch(request: BatchTranslateMakeRequest):
    results = await make_to_n8n.translate_batch(request.scenarios, request.context)
    return BatchTranslationResponse(results=results)


# ============================================================================
# GENERATION & MODIFICATION ENDPOINTS
# ============================================================================

@app.post("/generate")
async def generate_workflow(request: GenerateRequest):
    """Generate a workflow from a plain-language description"""
    return await workflow_generator.generate_from_description(
        request.description, request.platform, request.customizations
    )

@app.post("/generate/template/{template_id}")
async def generate_from_template(template_id: str, request: Optional[GenerateFromTemplateRequest] = None):
    """Instantiate a template for the requested platform"""
    request = request or GenerateFromTemplateRequest()
    return await workflow_generator.generate_from_template(
        template_id, request.platform, request.customizations
    )

@app.post("/modify/n8n")
async def modify_n8n_workflow(request: ModifyN8nRequest):
    return await workflow_modifier.modify_n8n_workflow(request.workflow, request.instructions)

@app.post("/modify/make")
async def modify_make_scenario(request: ModifyMakeRequest):
    return await workflow_modifier.modify_make_scenario(request.scenario, request.instructions)


# ============================================================================
# CATALOGUE ENDPOINTS
# ============================================================================

@app.get("/templates", response_model=List[TemplateResponse])
async def list_templates(keyword: Optional[str] = None):
    """List templates, optionally filtered by keyword"""
    templates = templates_service.find_by_keyword(keyword or "")
    return [TemplateResponse.from_template(t) for t in templates]

@app.get("/templates/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: str):
    """Get a specific template"""
    try:
        return TemplateResponse.from_template(templates_service.get_template(template_id))
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

@app.get("/services", response_model=List[ServiceResponse])
async def list_services(keyword: Optional[str] = None, category: Optional[str] = None):
    """List registry services, optionally filtered by keyword and category"""
    keys = registry.search_services(keyword) if keyword else registry.keys()
    if category:
        try:
            wanted = ServiceCategory(category.lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown service category: {category}")
        keys = [k for k in keys if registry.get(k).category == wanted]

    return [
        ServiceResponse(
            key=key,
            name=mapping.name,
            category=mapping.category.value,
            n8n_node_type=mapping.n8n_node_type,
            make_module_type=mapping.make_module_type,
            common_operations=list(mapping.common_operations),
        )
        for key, mapping in ((k, registry.get(k)) for k in keys)
    ]


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
