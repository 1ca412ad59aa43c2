"""Exceptions raised by the verification pipeline.

Only input that cannot be read at all is raised to callers. Missing or
malformed metadata fields, storage failures and collaborator failures
degrade to absent values instead.
"""


class VerificationError(Exception):
    """Base class for verification failures."""


class UnsupportedFileTypeError(VerificationError):
    """File is not a JPEG or PNG image and was rejected before processing."""


class UnreadableImageError(VerificationError):
    """File bytes could not be parsed as an image or metadata container."""
