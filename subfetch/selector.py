#!/usr/bin/env python3
"""
Candidate selection - pick which catalog result to download
"""

import logging
from typing import Iterable, Optional

from subfetch.constants import DEFAULT_LANGUAGE_PREFIX
from subfetch.opensubtitles import SubtitleCandidate

logger = logging.getLogger(__name__)


def select_candidate(candidates: Iterable[SubtitleCandidate],
                     language_prefix: str = DEFAULT_LANGUAGE_PREFIX) -> Optional[SubtitleCandidate]:
    """
    Return the first candidate whose language name starts with language_prefix

    The catalog's own ranking is trusted: no secondary scoring, first match
    in supplied order wins. Comparison is case-insensitive on both sides.
    Returns None for an empty list or when no language matches.
    """
    prefix = language_prefix.lower()
    for candidate in candidates:
        if (candidate.language_name or '').lower().startswith(prefix):
            logger.debug(f"Selected: {candidate.title} ({candidate.language_name})")
            return candidate
    return None
