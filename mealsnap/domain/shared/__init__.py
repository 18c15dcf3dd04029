"""Shared domain primitives: errors, value objects, ports."""
