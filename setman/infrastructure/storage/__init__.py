"""Durable setting stores (in-memory and diskcache-backed)."""
