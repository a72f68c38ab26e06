"""Tests for parameter descriptors and the merged argument schema."""

import logging

import pytest

from mcpify.openapi.parameters import (
    ParameterDescriptor,
    build_parameter_schema,
    contains_ref,
    is_object_schema,
)
from tests.fixtures.factories import ParameterFactory


class TestParameterDescriptor:
    """Test building descriptors from OpenAPI parameter objects."""

    @pytest.mark.unit
    def test_from_openapi(self):
        """Test a query parameter keeps its name, location and schema."""
        # Act
        result = ParameterDescriptor.from_openapi(
            {"name": "limit", "in": "query", "required": True, "schema": {"type": "integer"}}
        )

        # Assert
        assert result == ParameterDescriptor(name="limit", location="query", required=True)
        assert result.schema == {"type": "integer"}

    @pytest.mark.unit
    def test_path_parameters_always_required(self):
        """Test path parameters are required even when the document omits it."""
        result = ParameterDescriptor.from_openapi({"name": "id", "in": "path"})
        assert result is not None
        assert result.required is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw",
        [
            {"in": "query"},
            {"name": 3, "in": "query"},
            {"name": "file", "in": "formData"},
            {"name": "body", "in": "body"},
        ],
    )
    def test_invalid_parameters(self, raw):
        """Test parameters without a name or with an unknown location are rejected."""
        assert ParameterDescriptor.from_openapi(raw) is None


class TestSchemaHelpers:
    """Test schema inspection helpers."""

    @pytest.mark.unit
    def test_contains_ref(self):
        """Test $ref detection at any depth."""
        assert contains_ref({"$ref": "#/components/schemas/Pet"})
        assert contains_ref({"type": "array", "items": {"$ref": "#/x"}})
        assert contains_ref({"allOf": [{"type": "object"}, {"$ref": "#/x"}]})
        assert not contains_ref({"type": "object", "properties": {"ref": {"type": "string"}}})
        assert not contains_ref(None)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "schema,expected",
        [
            ({"type": "object"}, True),
            ({"properties": {"a": {}}}, True),
            ({"type": ["object", "null"]}, True),
            ({"type": "array", "items": {}}, False),
            ({"type": "string"}, False),
            ({}, False),
            ({"allOf": [{"type": "object"}, {"required": ["a"]}]}, True),
            ({"allOf": [{"type": "object"}, {"type": "string"}]}, False),
            ({"oneOf": [{"type": "object"}, {"properties": {"b": {}}}]}, True),
            ({"anyOf": [{"type": "object"}, {"type": "array"}]}, False),
            ({"anyOf": []}, False),
        ],
    )
    def test_is_object_schema(self, schema, expected):
        assert is_object_schema(schema) is expected


class TestBuildParameterSchema:
    """Test merging parameters and request bodies into one schema."""

    @pytest.mark.unit
    def test_no_parameters_no_body(self):
        """Test operations without inputs accept any arguments."""
        assert build_parameter_schema([]) is None

    @pytest.mark.unit
    def test_parameters_only(self):
        """Test every location becomes a property and required names are collected."""
        # Arrange
        parameters = [
            ParameterFactory.create("id", "path", schema={"type": "string"}),
            ParameterFactory.create("limit", "query", schema={"type": "integer"}),
            ParameterFactory.create("X-Trace", "header"),
            ParameterFactory.create("session", "cookie", required=True),
        ]

        # Act
        result = build_parameter_schema(parameters)

        # Assert
        assert result == {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "limit": {"type": "integer"},
                "X-Trace": {"type": "string"},
                "session": {"type": "string"},
            },
            "required": ["id", "session"],
        }

    @pytest.mark.unit
    def test_parameter_without_schema_accepts_anything(self):
        """Test a parameter with no schema still becomes a property."""
        # Arrange
        parameters = [ParameterDescriptor(name="q", location="query")]

        # Act
        result = build_parameter_schema(parameters)

        # Assert
        assert result["properties"] == {"q": {}}

    @pytest.mark.unit
    def test_object_body_only(self):
        """Test an object body schema is used as-is."""
        # Arrange
        body = {
            "type": "object",
            "properties": {"name": {"type": "string"}},
            "required": ["name"],
        }

        # Act
        result = build_parameter_schema([], body)

        # Assert
        assert result == body

    @pytest.mark.unit
    def test_untyped_object_body_declares_object(self):
        """Test a body with properties but no type still yields an object schema."""
        # Arrange
        body = {"properties": {"name": {"type": "string"}}}

        # Act
        result = build_parameter_schema([], body)

        # Assert
        assert result == {"type": "object", "properties": {"name": {"type": "string"}}}
        assert "type" not in body

    @pytest.mark.unit
    def test_all_of_body_flattened(self):
        """Test an allOf object body keeps its properties and required names."""
        # Arrange
        body = {
            "allOf": [
                {
                    "type": "object",
                    "properties": {"name": {"type": "string"}},
                    "required": ["name"],
                },
                {"properties": {"tag": {"type": "string"}}},
            ],
            "description": "A pet",
        }

        # Act
        result = build_parameter_schema([], body, body_required=True)

        # Assert
        assert result == {
            "type": "object",
            "description": "A pet",
            "properties": {"name": {"type": "string"}, "tag": {"type": "string"}},
            "required": ["name"],
        }

    @pytest.mark.unit
    def test_one_of_body_requires_only_common_names(self):
        """Test oneOf branches contribute properties but only shared required names."""
        # Arrange
        body = {
            "oneOf": [
                {"type": "object", "properties": {"id": {}, "a": {}}, "required": ["id", "a"]},
                {"type": "object", "properties": {"id": {}, "b": {}}, "required": ["id"]},
            ]
        }
        parameters = [ParameterFactory.create("petId", "path")]

        # Act
        result = build_parameter_schema(parameters, body)

        # Assert
        assert set(result["properties"]) == {"petId", "id", "a", "b"}
        assert result["required"] == ["petId", "id"]

    @pytest.mark.unit
    @pytest.mark.parametrize("body_required,required", [(True, ["body"]), (False, [])])
    def test_non_object_body_wrapped(self, body_required, required):
        """Test array and scalar bodies become a synthetic body property."""
        # Arrange
        body = {"type": "array", "items": {"type": "string"}}

        # Act
        result = build_parameter_schema([], body, body_required=body_required)

        # Assert
        assert result == {"type": "object", "properties": {"body": body}, "required": required}

    @pytest.mark.unit
    def test_merge_body_wins_and_required_unioned(self):
        """Test body properties override same-named parameters."""
        # Arrange
        parameters = [
            ParameterFactory.create("id", "path"),
            ParameterFactory.create("name", "query", schema={"type": "integer"}),
        ]
        body = {
            "type": "object",
            "properties": {"name": {"type": "string"}, "tag": {"type": "string"}},
            "required": ["name", "id"],
        }

        # Act
        result = build_parameter_schema(parameters, body)

        # Assert
        assert result["properties"] == {
            "id": {"type": "string"},
            "name": {"type": "string"},
            "tag": {"type": "string"},
        }
        assert result["required"] == ["id", "name"]

    @pytest.mark.unit
    def test_unresolved_ref_yields_none(self, caplog):
        """Test a leftover $ref fails soft with an error log."""
        # Arrange
        log = logging.getLogger("test.parameters")
        parameters = [ParameterFactory.create("pet", schema={"$ref": "#/components/schemas/Pet"})]

        # Act
        with caplog.at_level(logging.ERROR, logger="test.parameters"):
            result = build_parameter_schema(parameters, log=log)

        # Assert
        assert result is None
        assert "$ref" in caplog.text

    @pytest.mark.unit
    def test_required_is_subset_of_properties(self):
        """Test every required name refers to a declared property."""
        # Arrange
        parameters = [
            ParameterFactory.create("a", "path"),
            ParameterFactory.create("b", "query", required=True),
        ]
        body = {"type": "object", "properties": {"c": {}}, "required": ["c"]}

        # Act
        result = build_parameter_schema(parameters, body)

        # Assert
        assert set(result["required"]) <= set(result["properties"])
