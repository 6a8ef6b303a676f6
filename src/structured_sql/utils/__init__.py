"""Shared utilities for structured-sql."""
