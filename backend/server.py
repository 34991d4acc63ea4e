# -*- coding: utf-8 -*-
"""
Payload Template Server
HTTP API for OpenAPI-driven payload templates and payload fixture validation
"""

from fastapi import FastAPI, APIRouter, HTTPException, UploadFile, File, Form
from fastapi.responses import Response
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
import json
from dataclasses import asdict
from pathlib import Path
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from spec_registry import (
    SpecRegistry,
    SpecParseError,
    generate_app_id,
    list_endpoints,
    parse_spec_document,
)
from template_generator import (
    TemplateGenerator,
    generate_template_json,
    template_filename,
)

VERSION = "1.0.0"

# Load environment
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Configure logging
logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(
    title="Payload Template Service",
    description="OpenAPI-driven payload templates and fixture validation for load test configuration",
    version=VERSION
)

api_router = APIRouter(prefix="/api/v1")

# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class TemplateRequest(BaseModel):
    """Payload template request for one endpoint"""
    app_id: str
    path: str
    method: str  # case-insensitive
    spec: Optional[Dict[str, Any]] = None  # Overrides the registered specification


class ValidationRequest(TemplateRequest):
    """Payload validation request"""
    records: List[Any] = Field(default_factory=list)


class PayloadTemplateResponse(BaseModel):
    api_id: str
    api_path: str
    method: str
    template: Dict[str, Any]
    required_fields: List[str]
    field_descriptions: Dict[str, str]
    template_json: str


class ValidationErrorResponse(BaseModel):
    field: str
    message: str
    row: int


class ValidationResultResponse(BaseModel):
    is_valid: bool
    errors: List[ValidationErrorResponse]
    valid_count: int
    invalid_count: int
    record_count: Optional[int] = None
    file_name: Optional[str] = None


class ApiEndpointResponse(BaseModel):
    id: str
    method: str
    path: str
    category: str
    description: str


class SpecRegistrationResponse(BaseModel):
    app_id: str
    name: str
    description: str
    endpoint_count: int
    endpoints: List[ApiEndpointResponse]


# ============================================================================
# CORE SERVICES
# ============================================================================

class PayloadTemplateService:
    """Holds the spec registry and the generator bound to it"""

    def __init__(self, registry: Optional[SpecRegistry] = None):
        self.registry = registry or SpecRegistry()
        self.generator = TemplateGenerator(self.registry)

    def build_template(self, request: TemplateRequest) -> Optional[PayloadTemplateResponse]:
        template = self.generator.generate_payload_template(
            request.app_id, request.path, request.method, request.spec
        )
        if template is None:
            return None
        return PayloadTemplateResponse(**asdict(template), template_json=generate_template_json(template))


service = PayloadTemplateService()


def _reject_constant(literal: str):
    raise ValueError(f"Unsupported JSON literal: {literal}")


def _template_or_404(request: TemplateRequest) -> PayloadTemplateResponse:
    template = service.build_template(request)
    if template is None:
        raise HTTPException(
            status_code=404,
            detail=f"No request schema or parameters found for {request.method.upper()} {request.path}"
        )
    return template


# ============================================================================
# SPEC REGISTRY ENDPOINTS
# ============================================================================

@api_router.get("/specs")
async def list_specs():
    """List registered application ids"""
    return {"apps": service.registry.app_ids()}


@api_router.post("/specs", response_model=SpecRegistrationResponse, status_code=201)
async def register_spec(
    file: UploadFile = File(...),
    app_name: Optional[str] = Form(None),
    app_id: Optional[str] = Form(None)
):
    """Register an OpenAPI specification (JSON or YAML) for an application"""
    try:
        content = (await file.read()).decode("utf-8")
        spec = parse_spec_document(content)

        info = spec.get("info") if isinstance(spec.get("info"), dict) else {}
        name_sources = (app_name, info.get("title"), Path(file.filename or "spec").stem, "spec")
        name = next(str(source).strip() for source in name_sources
                    if source is not None and str(source).strip())
        resolved_id = app_id or generate_app_id(name)
        description = info.get("description")
        if not isinstance(description, str) or not description:
            description = f"Custom application: {name}"

        endpoints = service.registry.register(resolved_id, spec)
    except (UnicodeDecodeError, SpecParseError) as e:
        logger.warning(f"Rejected specification upload {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=f"Failed to parse OpenAPI spec: {e}")

    return SpecRegistrationResponse(
        app_id=resolved_id,
        name=name,
        description=description,
        endpoint_count=len(endpoints),
        endpoints=[ApiEndpointResponse(**asdict(endpoint)) for endpoint in endpoints]
    )


@api_router.get("/specs/{app_id}/endpoints", response_model=List[ApiEndpointResponse])
async def get_spec_endpoints(app_id: str):
    """List the endpoints of a registered specification"""
    spec = service.registry.get(app_id)
    if spec is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return [ApiEndpointResponse(**asdict(endpoint)) for endpoint in list_endpoints(spec, app_id)]


@api_router.delete("/specs/{app_id}", status_code=204)
async def delete_spec(app_id: str):
    """Remove a registered specification"""
    if not service.registry.unregister(app_id):
        raise HTTPException(status_code=404, detail="Application not found")
    return Response(status_code=204)


# ============================================================================
# TEMPLATE & VALIDATION ENDPOINTS
# ============================================================================

@api_router.post("/templates", response_model=PayloadTemplateResponse)
async def generate_template(request: TemplateRequest):
    """Generate an example payload for an endpoint"""
    return _template_or_404(request)


@api_router.post("/templates/download")
async def download_template(request: TemplateRequest):
    """Generate an endpoint's payload template as a downloadable JSON file"""
    template = _template_or_404(request)
    filename = template_filename(request.path, request.method)
    return Response(
        content=template.template_json,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@api_router.post("/validate", response_model=ValidationResultResponse)
async def validate_records(request: ValidationRequest):
    """Validate payload records against an endpoint's request schema"""
    result = service.generator.validate_payload(
        request.app_id, request.path, request.method, request.records, request.spec
    )
    return ValidationResultResponse(**asdict(result), record_count=len(request.records))


@api_router.post("/validate/upload", response_model=ValidationResultResponse)
async def validate_upload(
    file: UploadFile = File(...),
    app_id: str = Form(...),
    path: str = Form(...),
    method: str = Form(...)
):
    """Validate an uploaded JSON payload file against an endpoint's request schema"""
    try:
        parsed = json.loads((await file.read()).decode("utf-8"), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError) as e:
        logger.warning(f"Rejected payload upload {file.filename}: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON file. Please upload a valid JSON array.")

    records = parsed if isinstance(parsed, list) else [parsed]
    if not records:
        raise HTTPException(status_code=400, detail="File contains no data")

    result = service.generator.validate_payload(app_id, path, method, records)
    return ValidationResultResponse(
        **asdict(result),
        record_count=len(records),
        file_name=file.filename
    )


@api_router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": VERSION,
        "registered_apps": len(service.registry)
    }


# ============================================================================
# APP CONFIGURATION
# ============================================================================

# Include router
app.include_router(api_router)

# Configure CORS
cors_origins = os.environ.get('CORS_ORIGINS', '*')
if cors_origins == '*':
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins.split(','),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
async def startup_event():
    """Preload specifications on startup"""
    logger.info("Payload Template Service starting up...")

    specs_dir = os.environ.get('SPECS_DIR')
    if specs_dir:
        service.registry.load_directory(Path(specs_dir))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "server:app",
        host=os.environ.get('HOST', '0.0.0.0'),
        port=int(os.environ.get('PORT', '8000')),
        reload=True,
        log_level="info"
    )
