"""Logging setup and domain event recording."""
