"""LLM prompt templates and stream decoding."""
