"""Concrete execution adapters."""
