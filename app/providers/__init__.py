"""Upstream adapters: Cohere text generation and Google Cloud Storage."""

from .cohere import CohereError, CohereProvider
from .gcs import GcsStorageProvider

__all__ = ["CohereError", "CohereProvider", "GcsStorageProvider"]
