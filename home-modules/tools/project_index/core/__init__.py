"""Core cache subsystem: configuration, descriptor parsing, cache store, recency."""
