"""Shared helpers: validation, HTTP responses, time."""
