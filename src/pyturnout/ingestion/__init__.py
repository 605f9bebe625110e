"""Ingestion layer.

This package turns rows fetched over HTTP and payloads received on the
change feed into validated domain models. Nothing here touches the
entity store.
"""

__all__: list[str] = []
