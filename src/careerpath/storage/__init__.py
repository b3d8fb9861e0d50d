"""Durable store and local cache backends."""
