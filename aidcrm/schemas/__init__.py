"""Pydantic schemas: records handed out by the store and field rules for input."""
