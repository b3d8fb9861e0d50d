"""Pydantic data models for CareerPath."""
