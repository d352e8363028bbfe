"""
Test suite for the photovault ingestion pipeline.

- Unit tests for services, models and handlers
- Security tests for owner isolation and metadata privacy
"""
