"""Pydantic schemas: what the operation layer accepts and returns."""
