# -*- coding: utf-8 -*-
"""
Spec Registry Module
Keeps the OpenAPI specification registered for each application and resolves
API paths and methods to operations
"""

import json
import yaml
import re
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

from openapi_types import (
    ApiEndpoint,
    HttpMethod,
    Operation,
    component_schemas_of,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_SEGMENT = "{param}"
SPEC_FILE_SUFFIXES = (".json", ".yaml", ".yml")


class SpecLoader(yaml.SafeLoader):
    """SafeLoader producing JSON types only; unquoted dates stay strings"""


SpecLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class SpecParseError(ValueError):
    """Raised when a document is not a usable OpenAPI specification"""


def get_api_path_key(api_path: str) -> str:
    """
    Normalize an API path to the key used for lookups

    "/patients/{patientId}/", "patients/:id?x=1" and "/patients/{id}" all map
    to "/patients/{param}".
    """
    path = re.split(r"[?#]", api_path or "", maxsplit=1)[0].strip()
    segments = []
    for segment in path.split("/"):
        if not segment:
            continue
        if (segment.startswith("{") and segment.endswith("}")) or segment.startswith(":"):
            segment = PLACEHOLDER_SEGMENT
        segments.append(segment)
    return "/" + "/".join(segments)


def generate_app_id(name: str) -> str:
    """Application id for an admin-registered specification"""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return f"admin-{slug}"


def parse_spec_document(content: str) -> Dict[str, Any]:
    """
    Parse an OpenAPI/Swagger document from JSON or YAML text

    Raises:
        SpecParseError: content is neither, or lacks a version or paths
    """
    data = None

    # Try JSON first
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        # Try YAML
        try:
            data = yaml.load(content, Loader=SpecLoader)
        except yaml.YAMLError as e:
            raise SpecParseError(f"Specification is neither valid JSON nor YAML: {e}") from e

    check_spec_shape(data)
    return data


def check_spec_shape(spec: Any) -> None:
    """Raise SpecParseError unless spec looks like an OpenAPI document"""
    if not isinstance(spec, dict):
        raise SpecParseError("Specification must be a JSON/YAML object")
    if not (spec.get("openapi") or spec.get("swagger")):
        raise SpecParseError("Invalid OpenAPI specification: missing 'openapi' version")
    if not isinstance(spec.get("paths"), dict):
        raise SpecParseError("Invalid OpenAPI specification: missing 'paths'")


def resolve_path_item(spec: Dict[str, Any], api_path: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """
    Find the path item for api_path

    Exact key and raw path are tried first; otherwise the first spec path, in
    document order, whose normalized key matches wins.
    """
    paths = spec.get("paths")
    if not isinstance(paths, dict):
        return None

    path_key = get_api_path_key(api_path)
    for candidate in (path_key, api_path):
        if isinstance(paths.get(candidate), dict):
            return candidate, paths[candidate]

    matches = [
        spec_path for spec_path, path_item in paths.items()
        if isinstance(path_item, dict)
        and (get_api_path_key(spec_path) == path_key or spec_path == api_path)
    ]
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            f"Path {api_path} matches {len(matches)} spec paths {matches}; using {matches[0]}"
        )
    return matches[0], paths[matches[0]]


def resolve_operation(spec: Optional[Dict[str, Any]], api_path: str, method: str) -> Optional[Operation]:
    """Resolve (path, method) to an Operation, or None if the spec does not declare it"""
    if not isinstance(spec, dict):
        return None

    try:
        http_method = HttpMethod(str(method).lower())
    except ValueError:
        return None

    resolved = resolve_path_item(spec, api_path)
    if resolved is None:
        return None

    spec_path, path_item = resolved
    operation = path_item.get(http_method.value)
    if not isinstance(operation, dict):
        return None

    return Operation.from_dict(spec_path, http_method, operation, component_schemas_of(spec))


def extract_category(path: str, operation: Operation) -> str:
    """Group name for an endpoint: first tag, else first meaningful path segment"""
    if operation.tags:
        return operation.tags[0]

    for segment in path.split("/"):
        if segment and not segment.startswith("{") and segment not in ("api", "v1", "v2"):
            return segment[0].upper() + segment[1:]

    return "General"


def list_endpoints(spec: Dict[str, Any], app_id: str) -> List[ApiEndpoint]:
    """List every supported operation of spec in document order"""
    endpoints = []
    component_schemas = component_schemas_of(spec)

    for path, path_item in (spec.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        for http_method in HttpMethod:
            raw_operation = path_item.get(http_method.value)
            if not isinstance(raw_operation, dict):
                continue
            operation = Operation.from_dict(path, http_method, raw_operation, component_schemas)
            method = http_method.value.upper()
            endpoints.append(ApiEndpoint(
                id=f"{app_id}-ep-{len(endpoints) + 1}",
                method=method,
                path=path,
                category=extract_category(path, operation),
                description=operation.summary or operation.description or f"{method} {path}",
            ))

    return endpoints


class SpecRegistry:
    """Application id to OpenAPI specification mapping"""

    def __init__(self, specs: Optional[Dict[str, Dict[str, Any]]] = None):
        self._specs: Dict[str, Dict[str, Any]] = {}
        for app_id, spec in (specs or {}).items():
            self.register(app_id, spec)

    def register(self, app_id: str, spec: Dict[str, Any]) -> List[ApiEndpoint]:
        """
        Register (or replace) the specification for an application

        Returns:
            The endpoints the specification declares

        Raises:
            SpecParseError: spec is malformed or declares no supported operations
        """
        check_spec_shape(spec)
        endpoints = list_endpoints(spec, app_id)
        if not endpoints:
            raise SpecParseError(
                "The specification does not contain any API endpoints with supported "
                "HTTP methods (GET, POST, PUT, DELETE, PATCH, HEAD, OPTIONS)"
            )

        self._specs[app_id] = spec
        logger.info(f"Registered specification for {app_id} with {len(endpoints)} endpoint(s)")
        return endpoints

    def unregister(self, app_id: str) -> bool:
        if self._specs.pop(app_id, None) is None:
            return False
        logger.info(f"Removed specification for {app_id}")
        return True

    def get(self, app_id: str) -> Optional[Dict[str, Any]]:
        return self._specs.get(app_id)

    def app_ids(self) -> List[str]:
        return list(self._specs)

    def __contains__(self, app_id: str) -> bool:
        return app_id in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def load_directory(self, directory: Path) -> int:
        """Register every spec file in directory, keyed by file stem"""
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning(f"Spec directory not found: {directory}")
            return 0

        loaded = 0
        for spec_file in sorted(directory.iterdir()):
            if spec_file.suffix.lower() not in SPEC_FILE_SUFFIXES:
                continue
            try:
                spec = parse_spec_document(spec_file.read_text(encoding="utf-8"))
                self.register(spec_file.stem, spec)
                loaded += 1
            except (OSError, SpecParseError) as e:
                logger.warning(f"Skipping spec file {spec_file.name}: {e}")

        logger.info(f"Loaded {loaded} specification(s) from {directory}")
        return loaded
