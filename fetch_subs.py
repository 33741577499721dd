#!/usr/bin/env python3
"""
fetch_subs.py - Find and download English subtitles for a media library

For every video without a sibling .srt:
1. [PRECISION] Extension gate → skip byproducts, report unknown extensions
2. [PRECISION] Existing subtitle → skip unless --force
3. [PRECISION] Hash search → OpenSubtitles movie hash (disable with --no-hash)
4. [REASONING] Text search → cleaned filename query + season/episode
5. [PRECISION] Selection → first result in the target language
6. Download to <video stem>.srt

One file failing never stops the run.
"""

import sys
import logging
import argparse
from collections import defaultdict
from pathlib import Path
from typing import Dict, Optional

import yaml

from subfetch.classifier import ExtensionClassifier, VIDEO, SKIPPABLE
from subfetch.config import FetchConfig, build_config, load_config
from subfetch.constants import SUBTITLE_EXTENSION
from subfetch.opensubtitles import OpenSubtitlesClient, CatalogError
from subfetch.parser import FilenameParser, MediaFile, strip_suffix
from subfetch.selector import select_candidate
from subfetch.walker import walk

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path('config.yaml')

# Per-file outcomes, also the keys of the stats table
DOWNLOADED = 'downloaded'
WOULD_DOWNLOAD = 'would_download'
NOT_FOUND = 'not_found'
SKIPPED_EXISTING = 'skipped_existing'
SKIPPED_EXTENSION = 'skipped_extension'
UNRECOGNIZED = 'unrecognized'
ERRORS = 'errors'


def download_url(link: str) -> str:
    """Ask for the uncompressed subtitle by dropping a trailing .gz"""
    return strip_suffix(link, '.gz')


class SubtitleFetcher:
    """Runs classify → lookup → select → download for one file at a time"""

    def __init__(self, config: FetchConfig, client: OpenSubtitlesClient,
                 parser: Optional[FilenameParser] = None,
                 classifier: Optional[ExtensionClassifier] = None):
        self.config = config
        self.client = client
        self.parser = parser or FilenameParser(config.stop_words)
        self.classifier = classifier or ExtensionClassifier()
        self.stats = defaultdict(int)

    def _search(self, media: MediaFile):
        """Hash search first, then text search when it finds nothing"""
        results = []
        if self.config.use_hash:
            results = self.client.search_by_hash(media.path, self.config.language)
            print(f"\t{len(results)} results from hash search.")

        if not results:
            season_episode = self.parser.extract_season_episode(media.filename)
            season = season_episode.season if season_episode else ''
            episode = season_episode.episode if season_episode else ''

            query = self.parser.build_query_for(media, self.config.use_parent_folder)
            print(f"\tQuerying: `{query}` S{season}E{episode}")
            results = self.client.search_by_query(
                query,
                season,
                episode,
                self.config.max_results,
                self.config.language
            )
            print(f"\t\t{len(results)} results from search.")

        for candidate in results:
            if candidate.file_name:
                print(f"\t\t{candidate.title} [{candidate.language_name}] {candidate.file_name}")
            else:
                print(f"\t\t{candidate.title} [{candidate.language_name}]")

        return results

    def process_file(self, path: Path) -> str:
        """Process one file and return its outcome key"""
        media = MediaFile.from_path(path)

        kind = self.classifier.classify(media.filename)
        if kind == SKIPPABLE:
            logger.debug(f"Skipping non-media file: {media.path}")
            return SKIPPED_EXTENSION
        if kind != VIDEO:
            logger.warning(f"Unrecognized extension: '{media.extension}' ({media.filename})")
            return UNRECOGNIZED

        subtitle_path = media.sibling_with_extension(SUBTITLE_EXTENSION)
        if subtitle_path.exists() and not self.config.force:
            logger.info(f"Found existing subtitle. Skipping: {media.path}")
            return SKIPPED_EXISTING

        print(f"File - `{media.filename}`")
        results = self._search(media)

        candidate = select_candidate(results, self.config.language_prefix)
        if candidate is None:
            print("\tNot found")
            return NOT_FOUND

        url = download_url(candidate.download_link)
        if self.config.dry_run:
            print(f"\t[DRY RUN] {url}")
            print(f"\t  -> {subtitle_path}")
            return WOULD_DOWNLOAD

        print("\tDownloading...")
        if not self.client.download(url, subtitle_path):
            return ERRORS
        logger.info(f"Saved: {subtitle_path}")
        return DOWNLOADED

    def process(self, root: Path) -> Dict[str, int]:
        """Process every file under root; failures are counted, never raised"""
        for path in walk(root, self.config.recursive):
            self.stats['total'] += 1
            try:
                outcome = self.process_file(path)
            except CatalogError as e:
                logger.error(f"Catalog error for {path.name}: {e}")
                outcome = ERRORS
            except Exception as e:
                logger.error(f"Error processing {path.name}: {e}")
                outcome = ERRORS
            self.stats[outcome] += 1

        return self.stats


def print_stats(stats: Dict[str, int], dry_run: bool):
    """Print summary statistics"""
    print("\n" + "=" * 60)
    if dry_run:
        print("DRY RUN SUMMARY (no subtitles were written)")
    else:
        print("FETCH SUMMARY")
    print("=" * 60)
    print(f"  Files seen:          {stats.get('total', 0):5d}")
    if dry_run:
        print(f"  Would download:      {stats.get(WOULD_DOWNLOAD, 0):5d}")
    else:
        print(f"  Downloaded:          {stats.get(DOWNLOADED, 0):5d}")
    print(f"  Not found:           {stats.get(NOT_FOUND, 0):5d}")
    print(f"  Skipped (existing):  {stats.get(SKIPPED_EXISTING, 0):5d}")
    print(f"  Skipped (non-media): {stats.get(SKIPPED_EXTENSION, 0):5d}")
    print(f"  Unrecognized:        {stats.get(UNRECOGNIZED, 0):5d}")
    print(f"  Errors:              {stats.get(ERRORS, 0):5d}")
    print("=" * 60)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Download missing English subtitles from OpenSubtitles',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python fetch_subs.py --file /media/tv -R
  python fetch_subs.py --file "/media/tv/Show/Show.S01E02.mkv" --no-hash
  python fetch_subs.py --file /media/tv -R -P -u me -p secret
  python fetch_subs.py --file /media/films --dry-run
        """
    )
    parser.add_argument('--file', '-f', type=str, default=None,
                        help='Directory or file to find subtitles for')
    parser.add_argument('--username', '-u', default=None,
                        help='OpenSubtitles username (default: anonymous)')
    parser.add_argument('--password', '-p', default=None,
                        help='OpenSubtitles password')
    parser.add_argument('--no-hash', '-H', action='store_true',
                        help='Disable hash search')
    parser.add_argument('--parent-folder', '-P', action='store_true', default=None,
                        dest='use_parent_folder',
                        help='Include parent folder name in search')
    parser.add_argument('--recursive', '-R', action='store_true', default=None,
                        help='Descend into sub-directories')
    parser.add_argument('--force', '-F', action='store_true', default=None,
                        help='Re-fetch even if a subtitle exists (overwrites .srt files!)')
    parser.add_argument('--language', default=None,
                        help='Catalog language code (default: eng)')
    parser.add_argument('--max-results', type=int, default=None,
                        help='Maximum results for text search (default: 10)')
    parser.add_argument('--config', type=Path, default=None,
                        help=f'Configuration file (default: {DEFAULT_CONFIG_PATH} if present)')
    parser.add_argument('--dry-run', action='store_true', default=None,
                        help='Search and select but do not write subtitles')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Debug logging')
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.file:
        logger.error("No target given: pass --file PATH")
        return 1

    root = Path(args.file)
    if not root.exists():
        logger.error(f"Path does not exist: {root}")
        return 1

    file_values = {}
    config_path = args.config or DEFAULT_CONFIG_PATH
    if config_path.exists():
        try:
            file_values = load_config(config_path)
        except (yaml.YAMLError, ValueError) as e:
            logger.error(f"Invalid config file {config_path}: {e}")
            return 1
        logger.debug(f"Loaded config from {config_path}")
    elif args.config:
        logger.error(f"Config file not found: {args.config}")
        return 1

    try:
        config = build_config(
            file_values,
            username=args.username,
            password=args.password,
            language=args.language,
            max_results=args.max_results,
            use_hash=False if args.no_hash else None,
            use_parent_folder=args.use_parent_folder,
            recursive=args.recursive,
            force=args.force,
            dry_run=args.dry_run,
        )
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    client = OpenSubtitlesClient(server_url=config.server_url, user_agent=config.user_agent)
    try:
        client.login(config.username, config.password)
    except CatalogError as e:
        logger.error(f"Login failed: {e}")
        return 1

    fetcher = SubtitleFetcher(config, client)
    logger.info(f"Scanning: {root}")
    try:
        stats = fetcher.process(root)
    finally:
        client.logout()

    print_stats(stats, config.dry_run)

    return 0 if stats.get(ERRORS, 0) == 0 else 1


if __name__ == '__main__':
    sys.exit(main())
