"""
Response envelope handling.
"""

from .normalizer import normalize_envelope, is_paginated

__all__ = ["normalize_envelope", "is_paginated"]
