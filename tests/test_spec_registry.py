"""
test_spec_registry.py — Unit tests for backend/spec_registry.py

Covers path keys, document parsing, endpoint listing and registry bookkeeping.
"""

import json

import pytest
import yaml

from spec_registry import (
    SpecParseError,
    SpecRegistry,
    generate_app_id,
    get_api_path_key,
    list_endpoints,
    parse_spec_document,
    resolve_operation,
)


class TestPathKey:
    @pytest.mark.parametrize(
        "path, key",
        [
            ("/api/v1/patients", "/api/v1/patients"),
            ("/api/v1/patients/", "/api/v1/patients"),
            ("api/v1/patients", "/api/v1/patients"),
            ("/api//v1/patients", "/api/v1/patients"),
            ("/patients/{patientId}", "/patients/{param}"),
            ("/patients/:id/visits/{visitId}", "/patients/{param}/visits/{param}"),
            ("/patients?active=true", "/patients"),
            ("/patients#top", "/patients"),
            ("/", "/"),
            ("", "/"),
        ],
    )
    def test_normalization(self, path, key):
        assert get_api_path_key(path) == key

    def test_case_is_preserved(self):
        assert get_api_path_key("/Patients") == "/Patients"


class TestParseSpecDocument:
    def test_json(self, patient_spec):
        assert parse_spec_document(json.dumps(patient_spec)) == patient_spec

    def test_yaml(self, patient_spec):
        assert parse_spec_document(yaml.safe_dump(patient_spec)) == patient_spec

    def test_swagger_2(self):
        spec = parse_spec_document('{"swagger": "2.0", "paths": {}}')
        assert spec["swagger"] == "2.0"

    @pytest.mark.parametrize(
        "content",
        [
            "just some text",
            "[1, 2, 3]",
            '{"paths": {}}',
            '{"openapi": "3.0.0"}',
            '{"openapi": "3.0.0", "paths": ["/a"]}',
            "openapi: [unclosed",
        ],
    )
    def test_rejected_documents(self, content):
        with pytest.raises(SpecParseError):
            parse_spec_document(content)

    def test_parse_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_spec_document("")


class TestListEndpoints:
    def test_document_and_method_order(self, patient_spec):
        endpoints = list_endpoints(patient_spec, "clinical-data")

        assert [(e.method, e.path) for e in endpoints] == [
            ("GET", "/api/v1/patients"),
            ("POST", "/api/v1/patients"),
            ("GET", "/api/v1/patients/{patientId}"),
            ("DELETE", "/api/v1/patients/{patientId}"),
            ("PATCH", "/api/v1/patients/{patientId}"),
            ("HEAD", "/health"),
        ]
        assert [e.id for e in endpoints] == [f"clinical-data-ep-{n}" for n in range(1, 7)]

    def test_descriptions(self, patient_spec):
        descriptions = [e.description for e in list_endpoints(patient_spec, "app")]
        assert descriptions == [
            "Search patients",
            "Create patient",
            "GET /api/v1/patients/{patientId}",
            "Remove a patient",
            "PATCH /api/v1/patients/{patientId}",
            "HEAD /health",
        ]

    def test_categories(self, patient_spec):
        categories = {(e.method, e.path): e.category for e in list_endpoints(patient_spec, "app")}
        assert categories[("POST", "/api/v1/patients")] == "Patients"
        assert categories[("GET", "/api/v1/patients")] == "Patients"
        assert categories[("HEAD", "/health")] == "Health"

    def test_placeholder_only_path_is_general(self):
        spec = {"openapi": "3.0.0", "paths": {"/v2/{id}": {"get": {}}}}
        assert list_endpoints(spec, "app")[0].category == "General"

    def test_non_operation_keys_ignored(self):
        spec = {"openapi": "3.0.0", "paths": {"/a": {"parameters": [], "summary": "x", "trace": {}}}}
        assert list_endpoints(spec, "app") == []


class TestResolveOperation:
    def test_request_schema_and_parameters(self, patient_spec):
        operation = resolve_operation(patient_spec, "/api/v1/patients", "GET")
        assert operation.request_schema is None
        assert [p.name for p in operation.parameters] == ["name", "limit", "X-Trace"]
        assert [p.location for p in operation.parameters] == ["query", "query", "header"]

    def test_unknown_method(self, patient_spec):
        assert resolve_operation(patient_spec, "/api/v1/patients", "FETCH") is None

    def test_missing_spec(self):
        assert resolve_operation(None, "/a", "GET") is None


class TestRegistry:
    def test_register_and_lookup(self, patient_spec):
        registry = SpecRegistry()
        endpoints = registry.register("clinical-data", patient_spec)

        assert len(endpoints) == 6
        assert "clinical-data" in registry
        assert registry.get("clinical-data") is patient_spec
        assert registry.app_ids() == ["clinical-data"]
        assert len(registry) == 1

    def test_register_replaces_existing(self, patient_spec):
        registry = SpecRegistry({"app": patient_spec})
        replacement = {"openapi": "3.0.0", "paths": {"/x": {"get": {}}}}
        registry.register("app", replacement)
        assert registry.get("app") is replacement

    def test_register_rejects_spec_without_operations(self):
        registry = SpecRegistry()
        with pytest.raises(SpecParseError, match="does not contain any API endpoints"):
            registry.register("empty", {"openapi": "3.0.0", "paths": {"/a": {}}})
        assert "empty" not in registry

    def test_register_rejects_malformed(self):
        with pytest.raises(SpecParseError):
            SpecRegistry().register("bad", {"paths": {}})

    def test_unregister(self, patient_spec):
        registry = SpecRegistry({"app": patient_spec})
        assert registry.unregister("app") is True
        assert registry.unregister("app") is False
        assert registry.get("app") is None

    def test_load_directory(self, tmp_path, patient_spec):
        (tmp_path / "clinical.json").write_text(json.dumps(patient_spec))
        (tmp_path / "claims.yaml").write_text(yaml.safe_dump(patient_spec))
        (tmp_path / "broken.yml").write_text("openapi: [")
        (tmp_path / "notes.txt").write_text("ignored")

        registry = SpecRegistry()
        assert registry.load_directory(tmp_path) == 2
        assert sorted(registry.app_ids()) == ["claims", "clinical"]

    def test_load_missing_directory(self, tmp_path):
        assert SpecRegistry().load_directory(tmp_path / "absent") == 0


class TestAppId:
    @pytest.mark.parametrize(
        "name, app_id",
        [
            ("Clinical Data API", "admin-clinical-data-api"),
            ("  My Cool API!  ", "admin-my-cool-api"),
            ("pharmacy_network v2", "admin-pharmacy-network-v2"),
        ],
    )
    def test_slug(self, name, app_id):
        assert generate_app_id(name) == app_id


class TestYamlScalars:
    def test_unquoted_dates_stay_strings(self):
        spec = parse_spec_document(
            "openapi: 3.0.0\n"
            "info:\n"
            "  title: 2024\n"
            "paths:\n"
            "  /visits:\n"
            "    post:\n"
            "      requestBody:\n"
            "        content:\n"
            "          application/json:\n"
            "            schema:\n"
            "              type: object\n"
            "              properties:\n"
            "                visitDate:\n"
            "                  type: string\n"
            "                  format: date\n"
            "                  example: 2024-03-01\n"
            "                  enum: [2024-03-01, 2024-03-02]\n"
        )
        visit_date = spec["paths"]["/visits"]["post"]["requestBody"]["content"]["application/json"]["schema"][
            "properties"]["visitDate"]
        assert visit_date["example"] == "2024-03-01"
        assert visit_date["enum"] == ["2024-03-01", "2024-03-02"]
        assert spec["info"]["title"] == 2024

    def test_non_string_summary_falls_back_to_method_and_path(self):
        spec = {"openapi": "3.0.0", "paths": {"/a": {"get": {"summary": 3, "description": ["x"]}}}}
        assert list_endpoints(spec, "app")[0].description == "GET /a"
