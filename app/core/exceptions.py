"""Custom exceptions for the face greeter kiosk."""
from typing import Optional


class KioskError(Exception):
    """Base exception for kiosk operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize kiosk error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class InvalidInputError(KioskError):
    """Base exception for malformed input rejected before any state changes."""
    pass


class InvalidEmbeddingError(InvalidInputError):
    """Raised when an embedding is empty, non-finite or has the wrong length."""
    pass


class InvalidFrameError(InvalidInputError):
    """Raised when a frame is missing or cannot be decoded."""
    pass


class InvalidIdentityError(InvalidInputError):
    """Raised when an identity or gallery violates its invariants."""
    pass


class GalleryStoreError(KioskError):
    """Raised when the gallery store fails to load or persist identities."""
    pass


class IdentityNotFoundError(KioskError):
    """Raised when an identity id is not present in the gallery."""
    pass


class MediaStoreError(KioskError):
    """Raised when media files cannot be saved or deleted."""
    pass


class EmbeddingSourceError(KioskError):
    """Raised when the embedding model fails on a frame (not on "no face")."""
    pass


class EmbeddingSourceUnavailableError(EmbeddingSourceError):
    """Raised once when the embedding source keeps failing and the loop gives up."""
    pass


class ModelLoadError(KioskError):
    """Raised when the face embedding model fails to load."""
    pass


class EnrollmentError(KioskError):
    """Base exception for enrollment session operations."""
    pass


class EnrollmentCancelledError(EnrollmentError):
    """Raised when a cancelled enrollment session is used again."""
    pass


class EnrollmentIncompleteError(EnrollmentError):
    """Raised when results are requested before all samples were captured."""
    pass


class NoActiveEnrollmentError(EnrollmentError):
    """Raised when an enrollment operation is called with no session running."""
    pass


class ServiceNotInitializedError(KioskError):
    """Raised when a service is requested before the container is initialized."""
    pass
