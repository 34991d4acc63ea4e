"""
conftest.py — Shared pytest fixtures for the payload template service tests.
"""

import sys
from pathlib import Path

import pytest

# backend/ holds the service modules, imported as top-level modules
_BACKEND = Path(__file__).parent.parent / "backend"
if str(_BACKEND) not in sys.path:
    sys.path.insert(0, str(_BACKEND))

from spec_registry import SpecRegistry  # noqa: E402
from template_generator import TemplateGenerator  # noqa: E402


@pytest.fixture
def patient_spec():
    """OpenAPI document with body, parameter-only and body-less operations."""
    return {
        "openapi": "3.0.0",
        "info": {"title": "Clinical Data API", "version": "1.0.0", "description": "Clinical records"},
        "paths": {
            "/api/v1/patients": {
                "post": {
                    "summary": "Create patient",
                    "tags": ["Patients"],
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "required": ["firstName", "birthDate"],
                                    "properties": {
                                        "firstName": {"type": "string", "description": "Given name"},
                                        "birthDate": {"type": "string", "format": "date"},
                                        "email": {"type": "string", "format": "email"},
                                        "gender": {"type": "string", "enum": ["male", "female", "other"]},
                                        "age": {"type": "integer", "minimum": 0},
                                        "weight": {"type": "number"},
                                        "active": {"type": "boolean"},
                                        "tags": {"type": "array", "items": {"type": "string"}},
                                        "address": {
                                            "type": "object",
                                            "properties": {
                                                "city": {"type": "string"},
                                                "zip": {"type": "string", "example": "02139"},
                                            },
                                        },
                                    },
                                }
                            }
                        }
                    },
                },
                "get": {
                    "summary": "Search patients",
                    "parameters": [
                        {"name": "name", "in": "query", "required": True, "description": "Name filter"},
                        {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 20}},
                        {"name": "X-Trace", "in": "header", "schema": {"type": "string"}},
                    ],
                },
            },
            "/api/v1/patients/{patientId}": {
                "get": {
                    "parameters": [
                        {"name": "patientId", "in": "path", "required": True, "example": "pt-001"},
                    ],
                },
                "delete": {"description": "Remove a patient"},
                "patch": {
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {"type": "object", "properties": {"note": {"type": "string"}}}
                            }
                        }
                    }
                },
            },
            "/health": {
                "head": {},
            },
        },
    }


@pytest.fixture
def registry(patient_spec):
    return SpecRegistry({"clinical-data": patient_spec})


@pytest.fixture
def generator(registry):
    return TemplateGenerator(registry)


def body_spec(schema, path="/items", method="post"):
    """Minimal document whose only operation takes schema as its JSON body."""
    return {
        "openapi": "3.0.0",
        "info": {"title": "Items", "version": "1.0.0"},
        "paths": {
            path: {
                method: {
                    "requestBody": {"content": {"application/json": {"schema": schema}}}
                }
            }
        },
    }


@pytest.fixture
def make_body_spec():
    return body_spec
