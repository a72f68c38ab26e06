"""Core abstractions shared across mcpify."""
