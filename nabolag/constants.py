# nabolag/constants.py
"""
Centralized magic constants organized by domain.

All hardcoded numbers/strings used throughout the codebase should be
defined here with documentation explaining their purpose.
"""

from datetime import timedelta


class LifecycleDefaults:
    """Post lifecycle and garbage collection constants."""

    POST_TTL_DAYS = 14                  # Posts live this long after creation
    POST_TTL = timedelta(days=POST_TTL_DAYS)

    # Prune job
    PRUNE_ROWS_LIMIT = 1000             # Candidate rows fetched per query
    PRUNE_STORAGE_CHUNK = 100           # Paths per storage batch-remove call
    PRUNE_MAX_LOOPS = 10                # Safety stop, not a correctness mechanism

    # Queue drain job
    DRAIN_PAGE_SIZE = 100               # Queue rows fetched per page
    DRAIN_MAX_LOOPS = 1000              # Safety stop for a single drain run


class PostLimits:
    """Limits for post creation."""

    MAX_IMAGES = 6                      # Images per post
    MAX_IMAGE_BYTES = 5 * 1024 * 1024   # Decoded size per image
    TITLE_MAX_CHARS = 120
    BODY_MAX_CHARS = 5000


POST_TTL = LifecycleDefaults.POST_TTL
