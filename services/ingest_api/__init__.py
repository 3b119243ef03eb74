"""Moodtrack - Ingest API service.

FastAPI service for track ingestion (file upload or YouTube extraction)
into the mood catalog, plus song deletion.
"""

__all__: list[str] = []
