"""
Exception hierarchy for the inventory report builder.

Only two failures ever reach a caller of the PDF export: a
``DocumentGenerationError`` (the document could not be produced at all) or
input validation errors. Image decode problems and missing analysis text are
recovered inside the document with a visible placeholder.
"""

from __future__ import annotations


class InventoryReportError(Exception):
    """Base class for all errors raised by this package."""


class ImageDecodeError(InventoryReportError):
    """An image could not be decoded in the requested format."""

    def __init__(self, message: str, *, image_format: str | None = None):
        super().__init__(message)
        self.image_format = image_format


class DocumentGenerationError(InventoryReportError):
    """The PDF document could not be assembled.

    The original exception is attached both as ``__cause__`` and as
    ``cause`` so callers can report it without walking the chain.
    """

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class AnalysisError(InventoryReportError):
    """The image analysis provider failed for one image."""

    def __init__(self, message: str, *, image_id: str | None = None):
        super().__init__(message)
        self.image_id = image_id


class StorageError(InventoryReportError):
    """Library, draft or template persistence failed."""
