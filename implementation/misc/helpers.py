"""
Small helpers shared by the catalog client, the counter store and the API.
"""

import os
import uuid
from typing import Optional

TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"

# Process-wide fallback guest id, generated on first use when GUEST_ID is unset.
_generated_guest_id: Optional[str] = None


def build_poster_url(poster_path: Optional[str]) -> Optional[str]:
    """
    Build the full w500 poster URL for a TMDB poster path.

    TMDB paths normally start with a slash, but stored values have shown up
    both with and without it, so both forms map to the same URL.

    Examples:
        >>> build_poster_url("/abc.jpg")
        'https://image.tmdb.org/t/p/w500/abc.jpg'
        >>> build_poster_url("abc.jpg")
        'https://image.tmdb.org/t/p/w500/abc.jpg'
        >>> build_poster_url(None) is None
        True
    """
    if not poster_path:
        return None
    return f"{TMDB_IMAGE_BASE_URL}/{poster_path.lstrip('/')}"


def get_guest_id() -> str:
    """Return the configured guest id, or a stable generated one for this process."""
    global _generated_guest_id
    configured = os.getenv("GUEST_ID")
    if configured:
        return configured
    if _generated_guest_id is None:
        _generated_guest_id = uuid.uuid4().hex
    return _generated_guest_id
