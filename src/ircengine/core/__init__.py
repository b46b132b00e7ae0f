"""Shared constants and domain errors."""
