"""Setting cache implementation.

Provides the bounded, sliding-TTL in-memory cache that fronts the durable
setting store.
Bounded Context: Cache Management
"""
