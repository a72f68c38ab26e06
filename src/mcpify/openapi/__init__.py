"""OpenAPI operation adapter: classification, argument routing and translation."""

from .bucketing import BucketedArguments, bucket_arguments
from .client import OperationClient
from .extensions import OperationExtensions, resolve_extensions
from .operation import OperationView, SourceOperation
from .parameters import ParameterDescriptor, build_parameter_schema
from .request import RequestDescriptor, build_request
from .response import (
    ResourceEnvelope,
    ToolEnvelope,
    translate_resource_response,
    translate_tool_response,
)
from .safety import ChangeSafety, Delete, HttpVerb, ReadOnly, ToolHints, Update
from .spec import OpenApiSpec

__all__ = [
    "HttpVerb",
    "ChangeSafety",
    "ReadOnly",
    "Update",
    "Delete",
    "ToolHints",
    "OperationExtensions",
    "resolve_extensions",
    "ParameterDescriptor",
    "build_parameter_schema",
    "SourceOperation",
    "OperationView",
    "BucketedArguments",
    "bucket_arguments",
    "RequestDescriptor",
    "build_request",
    "ToolEnvelope",
    "ResourceEnvelope",
    "translate_tool_response",
    "translate_resource_response",
    "OperationClient",
    "OpenApiSpec",
]
