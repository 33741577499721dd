#!/usr/bin/env python3
"""
Shared constants for the subtitle fetcher

Single source of truth for extension sets, stop words and catalog defaults.
DO NOT duplicate these lists in other modules - import from here instead.
"""

# Video containers we try to find subtitles for
# Matched case-sensitively against the text from the last '.' onwards
VIDEO_EXTENSIONS = frozenset(
    '.' + ext for ext in [
        'mp4',
        'avi',
        'mkv',
        'm4v',
    ]
)

# Byproducts that sit next to videos in a library and are skipped silently
SKIPPABLE_EXTENSIONS = frozenset(
    '.' + ext for ext in [
        'wmv',
        'png',
        'mov',
        'srt',
        'txt',
        'jpg',
        'jpeg',
        'DS_Store',
        'gz',
        'dat',
        'zip',
        'nfo',
        'db',
        'm2ts',
        'sub',
        'rar',
        'idx',
        'sfv',
    ]
)

# Tokens that describe the release rather than the title
# Stored lower-cased; filtering compares against token.lower()
STOP_WORDS = frozenset(word.lower() for word in [
    'AC',
    'HD',
    'season',
    'episode',
    'WEB',
    'DL',
    'HDCLUB',
    'BDrip',
    'multisub',
    'BluRay',
    'molpol',
    'HEVC',
    'anoXmous',
    'sujaidr',
    'DVDScr',
    'xvid',
    'HQ',
    'CM',
    # Source / codec / resolution markers
    'HDTV',
    'x264',
    'x265',
    'h264',
    'h265',
    '720p',
    '1080p',
    '2160p',
    'WEBRip',
    'BRRip',
    'DVDRip',
    'HDRip',
    'AAC',
    'AC3',
    'DTS',
    'PROPER',
    'REPACK',
])

SUBTITLE_EXTENSION = '.srt'

# Catalog defaults
DEFAULT_LANGUAGE = 'eng'          # sublanguageid sent to the catalog
DEFAULT_LANGUAGE_PREFIX = 'eng'   # matched against LanguageName
DEFAULT_MAX_RESULTS = 10
DEFAULT_SERVER_URL = 'https://api.opensubtitles.org/xml-rpc'
DEFAULT_USER_AGENT = 'TemporaryUserAgent'
