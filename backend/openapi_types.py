# -*- coding: utf-8 -*-
"""
OpenAPI Types Module
Structured views over OpenAPI documents used for payload templates and validation
"""

from typing import Dict, Any, List, Optional, Union, Set
from dataclasses import dataclass, field
from enum import Enum


class _Unset:
    """Marker for schema keywords that are absent (as opposed to null)"""

    def __repr__(self):
        return "UNSET"


UNSET = _Unset()

MAX_VALIDATION_ERRORS = 50


class SchemaType(Enum):
    """JSON Schema primitive types"""
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class HttpMethod(Enum):
    """HTTP methods an OpenAPI path item can declare"""
    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    PATCH = "patch"
    HEAD = "head"
    OPTIONS = "options"


# Methods payload templates are generated and validated for
TEMPLATE_METHODS = (HttpMethod.GET, HttpMethod.POST, HttpMethod.PUT, HttpMethod.DELETE)


@dataclass
class SchemaNode:
    """Schema for a single value"""
    type: Optional[SchemaType] = None
    format: Optional[str] = None
    description: Optional[str] = None
    properties: Optional[Dict[str, 'SchemaNode']] = None
    items: Optional['SchemaNode'] = None
    required: List[str] = field(default_factory=list)
    enum: Optional[List[Any]] = None
    example: Any = UNSET
    default: Any = UNSET
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    nullable: bool = False

    @classmethod
    def from_dict(cls, schema: Any, component_schemas: Optional[Dict[str, Any]] = None,
                  _seen: Optional[Set[str]] = None) -> 'SchemaNode':
        """
        Build a SchemaNode from a raw JSON Schema mapping

        Args:
            schema: Raw schema mapping (anything else yields an untyped node)
            component_schemas: Named schemas that $ref pointers resolve against

        Returns:
            SchemaNode; unknown types and unresolvable references become untyped nodes
        """
        component_schemas = component_schemas or {}
        seen = set(_seen or ())

        if not isinstance(schema, dict):
            return cls()

        # Handle references
        if "$ref" in schema:
            ref_name = str(schema["$ref"]).split("/")[-1]
            target = component_schemas.get(ref_name)
            if ref_name in seen or not isinstance(target, dict):
                return cls()
            seen.add(ref_name)
            schema = target

        node = cls(
            type=_map_schema_type(schema.get("type")),
            format=_text(schema.get("format")),
            description=_text(schema.get("description")),
            nullable=bool(schema.get("nullable", False)),
        )

        # Extract constraints
        if "example" in schema:
            node.example = schema["example"]
        if "default" in schema:
            node.default = schema["default"]
        if isinstance(schema.get("enum"), list):
            node.enum = list(schema["enum"])
        if "minimum" in schema:
            node.minimum = schema["minimum"]
        if "maximum" in schema:
            node.maximum = schema["maximum"]
        if "minLength" in schema:
            node.min_length = schema["minLength"]
        if "maxLength" in schema:
            node.max_length = schema["maxLength"]
        if "pattern" in schema:
            node.pattern = schema["pattern"]
        if isinstance(schema.get("required"), list):
            node.required = [name for name in schema["required"] if isinstance(name, str)]

        # Handle nested objects
        if node.type in (SchemaType.OBJECT, None) and isinstance(schema.get("properties"), dict):
            node.properties = {
                name: cls.from_dict(prop_schema, component_schemas, seen)
                for name, prop_schema in schema["properties"].items()
            }

        # Handle arrays
        if node.type == SchemaType.ARRAY and isinstance(schema.get("items"), dict):
            node.items = cls.from_dict(schema["items"], component_schemas, seen)

        return node

    @property
    def has_example(self) -> bool:
        return self.example is not UNSET

    @property
    def has_default(self) -> bool:
        return self.default is not UNSET


@dataclass
class Parameter:
    """Operation parameter (path, query, header or cookie)"""
    name: str
    location: str
    required: bool = False
    schema: Optional[SchemaNode] = None
    description: Optional[str] = None
    example: Any = None

    @classmethod
    def from_dict(cls, param: Dict[str, Any], component_schemas: Optional[Dict[str, Any]] = None) -> 'Parameter':
        schema = param.get("schema")
        return cls(
            name=str(param.get("name", "")),
            location=str(param.get("in", "")),
            required=bool(param.get("required", False)),
            schema=SchemaNode.from_dict(schema, component_schemas) if isinstance(schema, dict) else None,
            description=_text(param.get("description")),
            example=param.get("example"),
        )


@dataclass
class Operation:
    """A single HTTP operation of an OpenAPI path item"""
    method: HttpMethod
    path: str
    request_schema: Optional[SchemaNode] = None
    parameters: List[Parameter] = field(default_factory=list)
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, path: str, method: HttpMethod, operation: Dict[str, Any],
                  component_schemas: Optional[Dict[str, Any]] = None) -> 'Operation':
        request_schema = None
        request_body = operation.get("requestBody")
        if isinstance(request_body, dict):
            content = request_body.get("content")
            media_type = content.get("application/json") if isinstance(content, dict) else None
            if isinstance(media_type, dict) and isinstance(media_type.get("schema"), dict):
                request_schema = SchemaNode.from_dict(media_type["schema"], component_schemas)

        parameters = [
            Parameter.from_dict(param, component_schemas)
            for param in operation.get("parameters") or []
            if isinstance(param, dict)
        ]

        tags = operation.get("tags")
        return cls(
            method=method,
            path=path,
            request_schema=request_schema,
            parameters=parameters,
            summary=_text(operation.get("summary")),
            description=_text(operation.get("description")),
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
        )


@dataclass
class PayloadTemplate:
    """Example payload derived for one (application, path, method)"""
    api_id: str
    api_path: str
    method: str
    template: Dict[str, Any]
    required_fields: List[str]
    field_descriptions: Dict[str, str]


@dataclass
class ValidationError:
    """A single problem found in an uploaded record"""
    field: str
    message: str
    row: int


@dataclass
class ValidationResult:
    """Outcome of validating a batch of records"""
    is_valid: bool
    errors: List[ValidationError]
    valid_count: int
    invalid_count: int


@dataclass
class ApiEndpoint:
    """An operation listed from a registered specification"""
    id: str
    method: str
    path: str
    category: str
    description: str


def component_schemas_of(spec: Dict[str, Any]) -> Dict[str, Any]:
    """Named schemas of an OpenAPI 3 (components) or Swagger 2 (definitions) document"""
    components = spec.get("components")
    if isinstance(components, dict) and isinstance(components.get("schemas"), dict):
        return components["schemas"]
    if isinstance(spec.get("definitions"), dict):
        return spec["definitions"]
    return {}


def _map_schema_type(json_type: Any) -> Optional[SchemaType]:
    """Map JSON Schema type to SchemaType"""
    try:
        return SchemaType(json_type)
    except ValueError:
        return None


def _text(value: Any) -> Optional[str]:
    """Keep free-text keywords only when they are strings"""
    return value if isinstance(value, str) else None
