"""
photovault - Invite-only private photo storage

Image ingestion pipeline and library for a private photo vault:
- Upload validation against a MIME allow-list and a size limit
- Preview and full WebP renditions with all metadata stripped
- Concurrent storage of both renditions in Google Cloud Storage
- Metadata records in DuckDB with compensating deletes on failure
- Short-lived signed read URLs
"""

__version__ = "0.1.0"
__author__ = "photovault"
__description__ = "Image ingestion pipeline for an invite-only photo vault"
