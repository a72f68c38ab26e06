"""Test fixtures and factories."""

from .factories import DocumentFactory, OperationFactory, ParameterFactory

__all__ = ["DocumentFactory", "OperationFactory", "ParameterFactory"]
