"""Shared helpers: HTTP access and logging utilities."""
