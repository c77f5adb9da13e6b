"""Shared helpers: HTTP, logging and ordered collections."""
