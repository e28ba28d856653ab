"""Schemas Pydantic / Pydantic schemas."""
