# -*- coding: utf-8 -*-
"""
Payload Template Generation Module
Derives example payloads from OpenAPI request schemas and validates uploaded
payload records against them
"""

import json
import math
import re
import logging
from typing import Dict, Any, List, Optional

from openapi_types import (
    MAX_VALIDATION_ERRORS,
    TEMPLATE_METHODS,
    Operation,
    PayloadTemplate,
    SchemaNode,
    SchemaType,
    ValidationError,
    ValidationResult,
)
from spec_registry import SpecRegistry, get_api_path_key, resolve_operation

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

EXAMPLE_DATE = "2024-01-15"
EXAMPLE_DATETIME = "2024-01-15T10:00:00Z"
EXAMPLE_EMAIL = "example@email.com"


def generate_value_from_schema(schema: SchemaNode, field_name: str) -> Any:
    """
    Synthesize a representative value for a schema

    Precedence: example, default, first enum member, then a type-specific value.
    """
    if schema.has_example:
        return schema.example

    if schema.has_default:
        return schema.default

    if schema.enum:
        return schema.enum[0]

    if schema.type == SchemaType.STRING:
        if schema.format == "date":
            return EXAMPLE_DATE
        if schema.format == "date-time":
            return EXAMPLE_DATETIME
        if schema.format == "email":
            return EXAMPLE_EMAIL
        return f"{field_name}_value"

    if schema.type in (SchemaType.INTEGER, SchemaType.NUMBER):
        return schema.minimum if schema.minimum is not None else 1

    if schema.type == SchemaType.BOOLEAN:
        return True

    if schema.type == SchemaType.ARRAY:
        if schema.items is not None:
            return [generate_value_from_schema(schema.items, field_name)]
        return []

    if schema.type == SchemaType.OBJECT:
        return {
            key: generate_value_from_schema(prop_schema, key)
            for key, prop_schema in (schema.properties or {}).items()
        }

    return None


def get_field_descriptions(schema: SchemaNode) -> Dict[str, str]:
    """Human-readable description per top-level property"""
    descriptions = {}

    for key, prop_schema in (schema.properties or {}).items():
        desc = prop_schema.description or ""

        if prop_schema.enum:
            desc += f" (Values: {_join_values(prop_schema.enum)})"
        if prop_schema.format:
            desc += f" [Format: {prop_schema.format}]"
        if key in schema.required:
            desc = f"(Required) {desc}"

        descriptions[key] = desc.strip()

    return descriptions


def generate_template_json(template: PayloadTemplate) -> str:
    """Single-record JSON array, pretty-printed"""
    return json.dumps([template.template], indent=2, ensure_ascii=False, default=str)


def generate_template_with_comments(template: PayloadTemplate) -> str:
    """Single-record array with each field's description as a // comment (JSONC)"""
    lines = ["[", "  {"]

    entries = list(template.template.items())
    for index, (key, value) in enumerate(entries):
        description = template.field_descriptions.get(key, "")
        if description:
            lines.append(f"    // {description}")
        separator = "" if index == len(entries) - 1 else ","
        lines.append(f"    {json.dumps(key)}: {json.dumps(value, ensure_ascii=False, default=str)}{separator}")

    lines.append("  }")
    lines.append("]")
    return "\n".join(lines)


def template_filename(api_path: str, method: str) -> str:
    """Download file name for an endpoint's payload template"""
    path_part = re.sub(r"[{}]", "", api_path.replace("/", "_"))
    return f"template-{method.lower()}-{path_part}.json"


class TemplateGenerator:
    """Generates and validates endpoint payloads against registered specifications"""

    def __init__(self, registry: SpecRegistry):
        self.registry = registry

    def _resolve(self, app_id: str, api_path: str, method: str,
                 spec: Optional[Dict[str, Any]]) -> Optional[Operation]:
        if spec is None:
            spec = self.registry.get(app_id)
        if spec is None:
            return None
        return resolve_operation(spec, api_path, method)

    def generate_payload_template(self, app_id: str, api_path: str, method: str,
                                  spec: Optional[Dict[str, Any]] = None) -> Optional[PayloadTemplate]:
        """
        Generate an example payload for an endpoint

        Args:
            app_id: Application whose registered spec is used when spec is not given
            api_path: API path, may contain {param} placeholders
            method: HTTP method (case-insensitive)
            spec: Specification overriding the registry

        Returns:
            PayloadTemplate, or None when the operation is unknown or takes no input
        """
        operation = self._resolve(app_id, api_path, method, spec)
        if operation is None or operation.method not in TEMPLATE_METHODS:
            return None

        api_id = f"{app_id}-{operation.method.value}-{get_api_path_key(api_path)}"

        schema = operation.request_schema
        if schema is None:
            return self._template_from_parameters(operation, api_id, api_path, method)

        template = {
            key: generate_value_from_schema(prop_schema, key)
            for key, prop_schema in (schema.properties or {}).items()
        }

        return PayloadTemplate(
            api_id=api_id,
            api_path=api_path,
            method=method,
            template=template,
            required_fields=list(schema.required),
            field_descriptions=get_field_descriptions(schema),
        )

    def _template_from_parameters(self, operation: Operation, api_id: str, api_path: str,
                                  method: str) -> Optional[PayloadTemplate]:
        template = {}
        required_fields = []
        field_descriptions = {}

        for param in operation.parameters:
            if param.location not in ("path", "query"):
                continue

            template[param.name] = param.example or generate_value_from_schema(
                param.schema or SchemaNode(type=SchemaType.STRING), param.name
            )
            if param.required:
                required_fields.append(param.name)
            field_descriptions[param.name] = param.description or ""

        if not template:
            return None

        return PayloadTemplate(
            api_id=api_id,
            api_path=api_path,
            method=method,
            template=template,
            required_fields=required_fields,
            field_descriptions=field_descriptions,
        )

    def has_schema_for_api(self, app_id: str, api_path: str, method: str,
                           spec: Optional[Dict[str, Any]] = None) -> bool:
        return self.generate_payload_template(app_id, api_path, method, spec) is not None

    def validate_payload(self, app_id: str, api_path: str, method: str, records: List[Any],
                         spec: Optional[Dict[str, Any]] = None) -> ValidationResult:
        """
        Validate payload records against the endpoint's JSON request schema

        Endpoints without a resolvable request schema accept every record.
        Only the first MAX_VALIDATION_ERRORS errors are returned; counts cover
        all records.
        """
        operation = self._resolve(app_id, api_path, method, spec)
        schema = operation.request_schema if operation is not None else None
        if schema is None or operation.method not in TEMPLATE_METHODS:
            return ValidationResult(is_valid=True, errors=[], valid_count=len(records), invalid_count=0)

        errors: List[ValidationError] = []
        valid_count = 0
        invalid_count = 0

        for row, record in enumerate(records, start=1):
            record_errors = validate_record(record, schema, row)
            errors.extend(record_errors)
            if record_errors:
                invalid_count += 1
            else:
                valid_count += 1

        if errors:
            logger.debug(f"{invalid_count} of {len(records)} record(s) invalid for {method} {api_path}")

        return ValidationResult(
            is_valid=not errors,
            errors=errors[:MAX_VALIDATION_ERRORS],
            valid_count=valid_count,
            invalid_count=invalid_count,
        )


def validate_record(record: Any, schema: SchemaNode, row: int) -> List[ValidationError]:
    """All errors for a single record"""
    if not isinstance(record, dict):
        return [ValidationError(field="root", message="Record must be an object", row=row)]

    errors = []

    for field_name in schema.required:
        if record.get(field_name) in (None, ""):
            errors.append(ValidationError(
                field=field_name,
                message=f"Missing required field: {field_name}",
                row=row,
            ))

    for field_name, field_schema in (schema.properties or {}).items():
        value = record.get(field_name)
        if value is None:
            continue

        field_error = validate_field_type(value, field_schema, field_name, row)
        if field_error:
            errors.append(field_error)

    return errors


def validate_field_type(value: Any, schema: SchemaNode, field_name: str, row: int) -> Optional[ValidationError]:
    """First problem with a single field value, or None"""
    if schema.enum and not any(_same_value(value, option) for option in schema.enum):
        return ValidationError(
            field=field_name,
            message=f"Invalid value for {field_name}. Expected one of: {_join_values(schema.enum)}",
            row=row,
        )

    message = None

    if schema.type == SchemaType.STRING:
        if not isinstance(value, str):
            message = f"{field_name} must be a string"
        elif schema.format == "date" and not DATE_PATTERN.fullmatch(value):
            message = f"{field_name} must be a valid date (YYYY-MM-DD)"
        elif schema.format == "email" and not EMAIL_PATTERN.fullmatch(value):
            message = f"{field_name} must be a valid email address"

    elif schema.type == SchemaType.INTEGER:
        if not _is_integer(value):
            message = f"{field_name} must be an integer"

    elif schema.type == SchemaType.NUMBER:
        if not _is_number(value):
            message = f"{field_name} must be a number"

    elif schema.type == SchemaType.BOOLEAN:
        if not isinstance(value, bool):
            message = f"{field_name} must be a boolean"

    elif schema.type == SchemaType.ARRAY:
        if not isinstance(value, list):
            message = f"{field_name} must be an array"

    elif schema.type == SchemaType.OBJECT:
        if not isinstance(value, dict):
            message = f"{field_name} must be an object"

    if message is None:
        return None
    return ValidationError(field=field_name, message=message, row=row)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    if not _is_number(value):
        return False
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer()
    return True


def _same_value(value: Any, option: Any) -> bool:
    # True == 1 in Python; booleans only match booleans
    if isinstance(value, bool) or isinstance(option, bool):
        return isinstance(value, bool) and isinstance(option, bool) and value == option
    return value == option


def _join_values(values: List[Any]) -> str:
    return ", ".join(json.dumps(v, default=str) if not isinstance(v, str) else v for v in values)
