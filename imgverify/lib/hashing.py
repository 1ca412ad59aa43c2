"""
Content hashing for duplicate submission detection.

SHA256 over the exact file bytes: identical uploads produce identical
digests, any byte change produces a different one.
"""
import hashlib


def hash_bytes(data: bytes) -> str:
    """
    Calculate the SHA256 digest of in-memory file content.

    Uploads are size-limited by MAX_CONTENT_LENGTH, so the whole
    buffer is hashed at once.

    Args:
        data: Raw file bytes

    Returns:
        Lowercase hex digest string (64 characters)
    """
    return hashlib.sha256(data).hexdigest()
