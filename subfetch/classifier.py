#!/usr/bin/env python3
"""
Extension classifier - decides whether a file is worth a subtitle lookup
"""

from typing import AbstractSet

from subfetch.constants import VIDEO_EXTENSIONS, SKIPPABLE_EXTENSIONS

VIDEO = 'video'
SKIPPABLE = 'skippable'
UNRECOGNIZED = 'unrecognized'


def split_extension(filename: str) -> str:
    """
    Return the extension of filename, leading dot included

    Uses the LAST '.' so dotted scene names still resolve on the rightmost
    segment. Dotfiles count: '.DS_Store' has extension '.DS_Store'.
    Returns '' when there is no '.' at all.
    """
    index = filename.rfind('.')
    if index < 0:
        return ''
    return filename[index:]


class ExtensionClassifier:
    """Classify filenames as video, skippable byproduct or unrecognized"""

    def __init__(self,
                 video_extensions: AbstractSet[str] = VIDEO_EXTENSIONS,
                 skippable_extensions: AbstractSet[str] = SKIPPABLE_EXTENSIONS):
        self.video_extensions = frozenset(video_extensions)
        self.skippable_extensions = frozenset(skippable_extensions)

    def classify(self, filename: str) -> str:
        """Return VIDEO, SKIPPABLE or UNRECOGNIZED (case-sensitive match)"""
        extension = split_extension(filename)
        if not extension:
            return UNRECOGNIZED

        if extension in self.skippable_extensions:
            return SKIPPABLE

        if extension in self.video_extensions:
            return VIDEO

        return UNRECOGNIZED
