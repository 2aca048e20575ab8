"""Ingestion layer.

This package contains adapters that turn raw store documents and caller
payloads into validated domain objects.
"""

__all__: list[str] = []
