"""Tests for building request descriptors."""

import json

import pytest

from mcpify.core.mcp.exceptions import MissingPathParameterError, RequestBuildError
from mcpify.openapi.bucketing import BucketedArguments, bucket_arguments
from mcpify.openapi.request import (
    RequestDescriptor,
    append_query,
    build_request,
    expand_path,
    normalize_base_url,
    simple_style,
)
from tests.fixtures.factories import BASE_URL, OperationFactory, ParameterFactory


@pytest.fixture
def id_and_query():
    return [ParameterFactory.create("id", "path"), ParameterFactory.create("q", "query")]


class TestUrlHelpers:
    """Test URL construction helpers."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "base,expected",
        [
            ("https://api.example.com/", "https://api.example.com"),
            ("https://api.example.com/v1", "https://api.example.com/v1"),
            ("", ""),
        ],
    )
    def test_normalize_base_url(self, base, expected):
        assert normalize_base_url(base) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "values,expected",
        [
            ({"id": "42"}, "/pets/42"),
            ({"id": "a b/c"}, "/pets/a%20b%2Fc"),
            ({"id": 7}, "/pets/7"),
            ({"id": ["x", "y"]}, "/pets/x,y"),
        ],
    )
    def test_expand_path_percent_encodes(self, values, expected):
        assert expand_path("/pets/{id}", values) == expected

    @pytest.mark.unit
    def test_expand_path_is_deterministic(self):
        """Test expanding the same template twice yields identical URLs."""
        values = {"owner": "ann & bob", "repo": "ü/x"}
        first = expand_path("/repos/{owner}/{repo}", values)
        second = expand_path("/repos/{owner}/{repo}", values)
        assert first == second

    @pytest.mark.unit
    def test_missing_path_value_names_parameter(self):
        """Test a missing path value is a construction error naming the parameter."""
        # Act
        with pytest.raises(MissingPathParameterError) as exc_info:
            expand_path("/pets/{petId}", {}, operation="showPetById")

        # Assert
        assert exc_info.value.parameter == "petId"
        assert "petId" in str(exc_info.value)
        assert "showPetById" in str(exc_info.value)
        assert isinstance(exc_info.value, RequestBuildError)

    @pytest.mark.unit
    def test_append_query_repeats_arrays(self):
        result = append_query("https://x.test/a", {"tag": ["a", "b"], "q": "hi there"})
        assert result == "https://x.test/a?tag=a&tag=b&q=hi+there"

    @pytest.mark.unit
    def test_append_query_keeps_existing_query(self):
        assert append_query("https://x.test/a?k=v", {"q": 1}) == "https://x.test/a?k=v&q=1"

    @pytest.mark.unit
    def test_append_query_empty(self):
        assert append_query("https://x.test/a", {}) == "https://x.test/a"


class TestBuildRequest:
    """Test request descriptor construction."""

    @pytest.mark.unit
    def test_get_with_path_and_query(self, id_and_query):
        """Test GET with a path and query parameter drops undeclared arguments."""
        # Arrange
        view = OperationFactory.create_view(path="/test/{id}", parameters=id_and_query)
        bucketed = bucket_arguments(view, {"id": "42", "q": "test", "extra": "unused"})

        # Act
        result = build_request(view, bucketed)

        # Assert
        assert result.method == "GET"
        assert result.url == f"{BASE_URL}/test/42?q=test"
        assert result.body is None
        assert "Content-Type" not in result.headers

    @pytest.mark.unit
    def test_post_json_body(self, id_and_query):
        """Test leftovers are sent as a JSON body with a JSON content type."""
        # Arrange
        view = OperationFactory.create_view(
            method="post",
            path="/test/{id}",
            parameters=id_and_query,
            request_body=OperationFactory.json_body(
                {"type": "object", "properties": {"extra": {"type": "string"}}}
            ),
        )
        bucketed = bucket_arguments(view, {"id": "42", "q": "test", "extra": "body"})

        # Act
        result = build_request(view, bucketed)

        # Assert
        assert result.method == "POST"
        assert result.url == f"{BASE_URL}/test/42?q=test"
        assert json.loads(result.body) == {"extra": "body"}
        assert result.headers["Content-Type"] == "application/json"

    @pytest.mark.unit
    def test_string_body_passed_verbatim(self):
        """Test a string body is sent as-is, as plain text when no type is declared."""
        # Arrange
        view = OperationFactory.create_view(method="put")
        bucketed = BucketedArguments(body="hello")

        # Act
        result = build_request(view, bucketed)

        # Assert
        assert result.body == "hello"
        assert result.headers["Content-Type"] == "text/plain"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "media_type,expected",
        [
            ("application/xml", "application/xml"),
            ("text/plain", "text/plain"),
            ("application/json", "text/plain"),
        ],
    )
    def test_string_body_uses_declared_media_type(self, media_type, expected):
        """Test a string body carries the declared non-JSON request media type."""
        # Arrange
        view = OperationFactory.create_view(
            method="post",
            path="/notes",
            request_body=OperationFactory.json_body({"type": "string"}, media_type=media_type),
        )

        # Act
        result = build_request(view, BucketedArguments(body="<note/>"))

        # Assert
        assert result.body == "<note/>"
        assert result.headers["Content-Type"] == expected

    @pytest.mark.unit
    def test_string_body_keeps_configured_content_type(self):
        view = OperationFactory.create_view(method="post")
        result = build_request(
            view, BucketedArguments(body="a,b"), headers={"content-type": "text/csv"}
        )
        assert result.headers == {"content-type": "text/csv"}

    @pytest.mark.unit
    def test_array_body_is_json(self):
        view = OperationFactory.create_view(method="post")
        result = build_request(view, BucketedArguments(body=[1, 2]))
        assert result.body == "[1,2]"
        assert result.headers["Content-Type"] == "application/json"

    @pytest.mark.unit
    def test_form_body(self):
        """Test form pairs are URL-encoded with the form content type."""
        # Arrange
        view = OperationFactory.create_view(method="post")
        bucketed = BucketedArguments(form_data=[("name", "rex the dog"), ("tag", "a&b")])

        # Act
        result = build_request(view, bucketed)

        # Assert
        assert result.body == "name=rex+the+dog&tag=a%26b"
        assert result.headers["Content-Type"] == "application/x-www-form-urlencoded"

    @pytest.mark.unit
    def test_method_always_uppercase(self):
        view = OperationFactory.create_view(method="Delete")
        assert build_request(view, BucketedArguments()).method == "DELETE"

    @pytest.mark.unit
    def test_headers_and_cookies(self):
        """Test static headers apply first and parameter headers override them."""
        # Arrange
        view = OperationFactory.create_view()
        bucketed = BucketedArguments(
            header={"X-Trace": "t-1", "X-Flag": True},
            cookie={"a": "1", "b": 2},
        )

        # Act
        result = build_request(
            view, bucketed, headers={"Authorization": "Bearer abc", "X-Trace": "static"}
        )

        # Assert
        assert result.headers == {
            "Authorization": "Bearer abc",
            "X-Trace": "t-1",
            "X-Flag": "true",
            "Cookie": "a=1; b=2",
        }

    @pytest.mark.unit
    def test_header_and_cookie_arrays_use_simple_style(self):
        """Test list and object values are comma-joined rather than rendered as Python."""
        # Arrange
        view = OperationFactory.create_view()
        bucketed = BucketedArguments(
            header={"X-Ids": ["a", "b"], "X-Filter": {"role": "admin", "active": True}},
            cookie={"ids": [1, 2]},
        )

        # Act
        result = build_request(view, bucketed)

        # Assert
        assert result.headers == {
            "X-Ids": "a,b",
            "X-Filter": "role,admin,active,true",
            "Cookie": "ids=1,2",
        }

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,expected",
        [("x", "x"), (["a", "b"], "a,b"), ({"k": 1}, "k,1"), (False, "false"), ([], "")],
    )
    def test_simple_style(self, value, expected):
        assert simple_style(value) == expected

    @pytest.mark.unit
    def test_base_url_override(self):
        view = OperationFactory.create_view(path="/pets")
        result = build_request(view, BucketedArguments(), base_url="http://localhost:9000/")
        assert result.url == "http://localhost:9000/pets"

    @pytest.mark.unit
    def test_missing_path_value_is_fatal(self):
        view = OperationFactory.create_view(
            path="/pets/{petId}", parameters=[ParameterFactory.create("petId", "path")]
        )
        with pytest.raises(MissingPathParameterError):
            build_request(view, BucketedArguments())

    @pytest.mark.unit
    def test_descriptor_to_dict(self):
        descriptor = RequestDescriptor(url="https://x.test", method="GET", headers={"A": "b"})
        assert descriptor.to_dict() == {
            "url": "https://x.test",
            "method": "GET",
            "headers": {"A": "b"},
            "body": None,
        }
