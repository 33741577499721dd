#!/usr/bin/env python3
"""
Filename parser for turning noisy media filenames into catalog queries

Two pure operations live here:
- season/episode extraction (S01E02, s1x05, ...)
- search query building (tokenize, drop noise, keep "Part N")
"""

import re
from pathlib import Path
from typing import AbstractSet, List, Optional
from dataclasses import dataclass

from subfetch.classifier import split_extension
from subfetch.constants import STOP_WORDS

# S01E02 / s1x05 - delimiter is whichever letter follows the season digits
SEASON_EPISODE_PATTERN = re.compile(r'[sS]([0-9]+)[eExX]([0-9]+)')

# Runs of ASCII letters/digits; '_' and punctuation are separators
TOKEN_PATTERN = re.compile(r'[A-Za-z0-9]+')

# "Part 2", "PART 12" - single literal space
PART_PATTERN = re.compile(r'part [0-9]+', re.IGNORECASE)


@dataclass(frozen=True)
class MediaFile:
    """One discovered filesystem entry, identified by absolute path and filename"""
    path: Path
    filename: str

    @classmethod
    def from_path(cls, path: Path) -> 'MediaFile':
        path = Path(path).absolute()
        return cls(path=path, filename=path.name)

    @property
    def extension(self) -> str:
        """Text from the last '.' inclusive ('' if none)"""
        return split_extension(self.filename)

    @property
    def stem(self) -> str:
        return strip_suffix(self.filename, self.extension)

    @property
    def parent_name(self) -> str:
        return self.path.parent.name

    def sibling_with_extension(self, extension: str) -> Path:
        """Path next to this file with the extension swapped (Show.mkv -> Show.srt)"""
        return self.path.with_name(self.stem + extension)


@dataclass(frozen=True)
class SeasonEpisode:
    """Season and episode as digit strings, leading zeros preserved"""
    season: str
    episode: str


def strip_suffix(name: str, suffix: str) -> str:
    """Remove suffix only when it terminates name"""
    if suffix and name.endswith(suffix):
        return name[:-len(suffix)]
    return name


def tokenize(name: str) -> List[str]:
    """
    Split name into alphanumeric tokens, dropping anything of length <= 1

    Order of appearance is preserved and duplicates are kept.
    """
    return [token for token in TOKEN_PATTERN.findall(name) if len(token) > 1]


def filter_stop_words(tokens: List[str], stop_words: AbstractSet[str]) -> List[str]:
    """Drop whole tokens whose lower-cased form is a stop word"""
    return [token for token in tokens if token.lower() not in stop_words]


class FilenameParser:
    """Extract season/episode and build search queries from filenames"""

    def __init__(self, stop_words: AbstractSet[str] = STOP_WORDS):
        # Compare lower-cased so callers can pass mixed-case vocabularies
        self.stop_words = frozenset(word.lower() for word in stop_words)

    def extract_season_episode(self, filename: str) -> Optional[SeasonEpisode]:
        """
        Find the first S<digits>[E|X]<digits> marker in filename

        Only the leaf filename is scanned; pass MediaFile.filename, never the
        full path. Returns None when there is no marker.
        """
        match = SEASON_EPISODE_PATTERN.search(filename)
        if not match:
            return None
        season, episode = match.groups()
        return SeasonEpisode(season=season, episode=episode)

    def find_part(self, filename: str) -> Optional[str]:
        """Return the literal 'Part N' fragment from filename, if any"""
        match = PART_PATTERN.search(filename)
        if match:
            return match.group(0)
        return None

    def build_query(self,
                    filename: str,
                    extension: str,
                    parent_name: str = '',
                    use_parent_folder: bool = False) -> str:
        """
        Build the free-text query for a catalog search

        Steps:
        1. Strip the trailing extension (anchored, not a global replace)
        2. Optionally prefix the parent directory name
        3. Tokenize into alphanumeric runs, dropping 1-char tokens
        4. Append the 'Part N' fragment found in the original filename
        5. Drop stop words (whole tokens, case-insensitive)
        6. Join with single spaces

        Never raises; an empty string is a valid (if useless) query.
        """
        name = strip_suffix(filename, extension)
        if use_parent_folder and parent_name:
            name = f"{parent_name} {name}"

        tokens = tokenize(name)

        part = self.find_part(filename)
        if part:
            tokens.extend(part.split())

        tokens = filter_stop_words(tokens, self.stop_words)

        return ' '.join(tokens)

    def build_query_for(self, media: MediaFile, use_parent_folder: bool = False) -> str:
        """build_query() for a MediaFile"""
        return self.build_query(
            media.filename,
            media.extension,
            parent_name=media.parent_name,
            use_parent_folder=use_parent_folder
        )
