"""Pydantic schemas and value objects."""
