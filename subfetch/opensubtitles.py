#!/usr/bin/env python3
"""
OpenSubtitles XML-RPC client: session, hash/text search, download
"""

import gzip
import logging
import struct
import xmlrpc.client
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, List

import requests

from subfetch.constants import DEFAULT_SERVER_URL, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 65536


class CatalogError(Exception):
    """Raised when the subtitle catalog cannot be reached or refuses a call"""


@dataclass
class SubtitleCandidate:
    """One entry from a catalog search result"""
    title: str
    language_name: str
    download_link: str
    file_name: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict) -> 'SubtitleCandidate':
        """Build from one SearchSubtitles 'data' entry"""
        return cls(
            title=record.get('MovieName', '') or '',
            language_name=record.get('LanguageName', '') or '',
            download_link=record.get('SubDownloadLink', '') or '',
            file_name=record.get('SubFileName')
        )


def compute_movie_hash(path: Path) -> Optional[str]:
    """
    OpenSubtitles movie hash: file size plus the 64-bit little-endian word
    sum of the first and last 64 KiB, truncated to 64 bits

    Returns None for files smaller than two chunks.
    """
    longlongformat = '<q'
    bytesize = struct.calcsize(longlongformat)

    filesize = path.stat().st_size
    if filesize < HASH_CHUNK_SIZE * 2:
        return None

    hash_value = filesize
    with open(path, 'rb') as f:
        for offset in (0, filesize - HASH_CHUNK_SIZE):
            f.seek(offset)
            for _ in range(HASH_CHUNK_SIZE // bytesize):
                (word,) = struct.unpack(longlongformat, f.read(bytesize))
                hash_value = (hash_value + word) & 0xFFFFFFFFFFFFFFFF

    return "%016x" % hash_value


class _TimeoutMixin:
    """Apply a socket timeout to every connection the transport opens"""

    def __init__(self, timeout: int, **kwargs):
        super().__init__(**kwargs)
        self.timeout = timeout

    def make_connection(self, host):
        connection = super().make_connection(host)
        connection.timeout = self.timeout
        return connection


class TimeoutTransport(_TimeoutMixin, xmlrpc.client.Transport):
    pass


class SafeTimeoutTransport(_TimeoutMixin, xmlrpc.client.SafeTransport):
    pass


def make_transport(server_url: str, timeout: int) -> xmlrpc.client.Transport:
    """Pick the http or https transport for server_url"""
    if server_url.lower().startswith('https:'):
        return SafeTimeoutTransport(timeout)
    return TimeoutTransport(timeout)


class OpenSubtitlesClient:
    """Interface to the OpenSubtitles XML-RPC API with a single session"""

    def __init__(self,
                 server_url: str = DEFAULT_SERVER_URL,
                 user_agent: str = DEFAULT_USER_AGENT,
                 proxy: Optional[xmlrpc.client.ServerProxy] = None,
                 timeout: int = 30):
        self.server_url = server_url
        self.user_agent = user_agent
        self.timeout = timeout
        # timeout covers both catalog calls and downloads
        if proxy is None:
            proxy = xmlrpc.client.ServerProxy(
                server_url,
                transport=make_transport(server_url, timeout),
                allow_none=True
            )
        self.proxy = proxy
        self.token: Optional[str] = None

    def _call(self, method: str, *params) -> Dict:
        """Invoke an XML-RPC method and check the status field"""
        try:
            response = getattr(self.proxy, method)(*params)
        except (xmlrpc.client.Error, OSError) as e:
            raise CatalogError(f"{method} failed: {e}") from e

        status = str(response.get('status', ''))
        if not status.startswith('200'):
            raise CatalogError(f"{method} returned status '{status}'")
        return response

    def login(self, username: str = '', password: str = '', language: str = 'en'):
        """Open a session; empty credentials give an anonymous session"""
        response = self._call('LogIn', username or '', password or '', language, self.user_agent)
        self.token = response.get('token')
        who = username if username else 'anonymous'
        logger.info(f"Logged in to OpenSubtitles as {who}")

    def logout(self):
        """Close the session (no-op when not logged in)"""
        if not self.token:
            return
        try:
            self._call('LogOut', self.token)
            logger.debug("Logged out of OpenSubtitles")
        except CatalogError as e:
            logger.warning(f"Logout failed: {e}")
        finally:
            self.token = None

    def _search(self, criteria: Dict, limit: Optional[int] = None) -> List[SubtitleCandidate]:
        if not self.token:
            raise CatalogError("Not logged in")

        params = [self.token, [criteria]]
        if limit is not None:
            params.append({'limit': int(limit)})

        response = self._call('SearchSubtitles', *params)
        data = response.get('data') or []
        return [SubtitleCandidate.from_record(record) for record in data]

    def search_by_hash(self, path: Path, language: str) -> List[SubtitleCandidate]:
        """Signature lookup keyed by the movie hash and byte size of path"""
        path = Path(path)
        movie_hash = compute_movie_hash(path)
        if movie_hash is None:
            logger.debug(f"File too small to hash: {path}")
            return []

        criteria = {
            'moviehash': movie_hash,
            'moviebytesize': str(path.stat().st_size),
            'sublanguageid': language,
        }
        return self._search(criteria)

    def search_by_query(self,
                        query: str,
                        season: str,
                        episode: str,
                        max_results: int,
                        language: str) -> List[SubtitleCandidate]:
        """Text lookup; season/episode are passed through even when empty"""
        criteria = {
            'query': query,
            'season': season,
            'episode': episode,
            'sublanguageid': language,
        }
        return self._search(criteria, limit=max_results)

    def download(self, url: str, destination: Path) -> bool:
        """
        Fetch url and write the subtitle to destination

        Gzip payloads are decompressed in case the server ignores the
        uncompressed link. Returns True on success, False otherwise.
        """
        try:
            response = requests.get(
                url,
                headers={'User-Agent': self.user_agent},
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Download failed for {url}: {e}")
            return False

        content = response.content
        if content[:2] == b'\x1f\x8b':
            try:
                content = gzip.decompress(content)
            except (OSError, EOFError) as e:
                logger.error(f"Could not decompress {url}: {e}")
                return False

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with open(destination, 'wb') as f:
            f.write(content)

        logger.debug(f"Wrote {len(content)} bytes to {destination}")
        return True
