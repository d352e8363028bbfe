"""
Services module for photovault.

This module contains the service classes that implement ingestion:
- ImageProcessor: decoding, orientation and WebP encoding
- DerivativeGenerator: preview and full renditions of one upload
- IngestionService: validation, storage, metadata and signed URLs
- PhotoLibrary: listing, lookup and deletion of stored images
- AuthService: current-actor resolution
"""

from .auth import ActorResolver, AuthService, UserInfo
from .derivatives import DerivativeGenerator, DerivativeProfile, DerivativeSet
from .image_processor import DecodedImage, Derivative, ImageProcessor
from .ingestion import IngestedImage, IngestionService, create_ingestion_service
from .library import ImagePage, PhotoLibrary
from .signed_urls import SignedUrlIssuer
from .storage import GCSObjectStore, ObjectStore

__all__ = [
    "ActorResolver",
    "AuthService",
    "UserInfo",
    "DecodedImage",
    "Derivative",
    "DerivativeGenerator",
    "DerivativeProfile",
    "DerivativeSet",
    "ImageProcessor",
    "IngestedImage",
    "IngestionService",
    "create_ingestion_service",
    "ImagePage",
    "PhotoLibrary",
    "SignedUrlIssuer",
    "GCSObjectStore",
    "ObjectStore",
]
