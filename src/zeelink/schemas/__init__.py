"""Pydantic schemas for request bodies and the response envelope."""
