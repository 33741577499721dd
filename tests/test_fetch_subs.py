#!/usr/bin/env python3
"""
Test suite for fetch_subs.py — per-file pipeline and CLI entry point
"""

import logging
import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from fetch_subs import (
    SubtitleFetcher, main, download_url,
    DOWNLOADED, WOULD_DOWNLOAD, NOT_FOUND, SKIPPED_EXISTING,
    SKIPPED_EXTENSION, UNRECOGNIZED, ERRORS,
)
from subfetch.config import FetchConfig
from subfetch.opensubtitles import SubtitleCandidate, CatalogError

ENGLISH = SubtitleCandidate(title='The Show', language_name='English',
                            download_link='http://dl.example/sub/123.gz')
FRENCH = SubtitleCandidate(title='The Show', language_name='French',
                           download_link='http://dl.example/sub/456.gz')


@pytest.fixture
def client():
    client = MagicMock()
    client.search_by_hash.return_value = []
    client.search_by_query.return_value = [FRENCH, ENGLISH]
    client.download.return_value = True
    return client


def make_fetcher(client, **settings):
    return SubtitleFetcher(FetchConfig(**settings), client)


class TestDownloadUrl:
    """Compression suffix removal"""

    def test_strips_trailing_gz(self):
        assert download_url('http://dl.example/sub/123.gz') == 'http://dl.example/sub/123'

    def test_leaves_other_links_alone(self):
        assert download_url('http://dl.example/sub/123') == 'http://dl.example/sub/123'


class TestProcessFile:
    """Single-file outcomes"""

    def test_text_search_and_download(self, client, tmp_path):
        video = tmp_path / "The.Show.S01E02.HDTV.x264.mkv"
        video.touch()

        outcome = make_fetcher(client).process_file(video)

        assert outcome == DOWNLOADED
        client.search_by_hash.assert_called_once_with(video.absolute(), 'eng')
        client.search_by_query.assert_called_once_with('The Show S01E02', '01', '02', 10, 'eng')
        client.download.assert_called_once_with(
            'http://dl.example/sub/123',
            tmp_path / "The.Show.S01E02.HDTV.x264.srt"
        )

    def test_hash_results_skip_text_search(self, client, tmp_path):
        video = tmp_path / "Film.mkv"
        video.touch()
        client.search_by_hash.return_value = [ENGLISH]

        assert make_fetcher(client).process_file(video) == DOWNLOADED
        client.search_by_query.assert_not_called()

    def test_hash_search_disabled(self, client, tmp_path):
        video = tmp_path / "Film.mkv"
        video.touch()

        make_fetcher(client, use_hash=False).process_file(video)
        client.search_by_hash.assert_not_called()
        client.search_by_query.assert_called_once()

    def test_movie_gets_empty_season_episode(self, client, tmp_path):
        video = tmp_path / "Movie.2020.mkv"
        video.touch()

        make_fetcher(client).process_file(video)
        client.search_by_query.assert_called_once_with('Movie 2020', '', '', 10, 'eng')

    def test_parent_folder_in_query(self, client, tmp_path):
        folder = tmp_path / "Firefly"
        folder.mkdir()
        video = folder / "S01E01.mkv"
        video.touch()

        make_fetcher(client, use_parent_folder=True).process_file(video)
        assert client.search_by_query.call_args[0][0] == 'Firefly S01E01'

    def test_existing_subtitle_skipped(self, client, tmp_path):
        video = tmp_path / "Film.mkv"
        video.touch()
        (tmp_path / "Film.srt").touch()

        assert make_fetcher(client).process_file(video) == SKIPPED_EXISTING
        client.search_by_hash.assert_not_called()

    def test_force_overwrites(self, client, tmp_path):
        video = tmp_path / "Film.mkv"
        video.touch()
        (tmp_path / "Film.srt").touch()

        assert make_fetcher(client, force=True).process_file(video) == DOWNLOADED
        client.download.assert_called_once()

    def test_not_found(self, client, tmp_path):
        video = tmp_path / "Film.mkv"
        video.touch()
        client.search_by_query.return_value = [FRENCH]

        assert make_fetcher(client).process_file(video) == NOT_FOUND
        client.download.assert_not_called()

    def test_skippable_extension(self, client, tmp_path):
        nfo = tmp_path / "Film.nfo"
        nfo.touch()
        assert make_fetcher(client).process_file(nfo) == SKIPPED_EXTENSION
        client.search_by_hash.assert_not_called()

    def test_unrecognized_extension(self, client, tmp_path):
        pdf = tmp_path / "manual.pdf"
        pdf.touch()
        assert make_fetcher(client).process_file(pdf) == UNRECOGNIZED

    def test_unrecognized_extension_warns(self, client, tmp_path, caplog):
        pdf = tmp_path / "manual.pdf"
        pdf.touch()
        with caplog.at_level(logging.WARNING, logger='fetch_subs'):
            make_fetcher(client).process_file(pdf)
        assert "Unrecognized extension" in caplog.text
        assert "'.pdf'" in caplog.text
        assert "manual.pdf" in caplog.text

    def test_no_extension(self, client, tmp_path):
        readme = tmp_path / "README"
        readme.touch()
        assert make_fetcher(client).process_file(readme) == UNRECOGNIZED
        client.search_by_query.assert_not_called()

    def test_dry_run_does_not_download(self, client, tmp_path):
        video = tmp_path / "Film.mkv"
        video.touch()
        assert make_fetcher(client, dry_run=True).process_file(video) == WOULD_DOWNLOAD
        client.download.assert_not_called()

    def test_failed_download_is_error(self, client, tmp_path):
        video = tmp_path / "Film.mkv"
        video.touch()
        client.download.return_value = False
        assert make_fetcher(client).process_file(video) == ERRORS

    def test_custom_language(self, client, tmp_path):
        video = tmp_path / "Film.mkv"
        video.touch()
        outcome = make_fetcher(client, language='fre', language_prefix='fre').process_file(video)
        assert outcome == DOWNLOADED
        client.download.assert_called_once_with('http://dl.example/sub/456', tmp_path / "Film.srt")

    def test_candidate_file_name_printed(self, client, tmp_path, capsys):
        video = tmp_path / "Film.mkv"
        video.touch()
        client.search_by_query.return_value = [SubtitleCandidate(
            title='Film', language_name='English',
            download_link='http://dl.example/sub/789.gz', file_name='Film.2020.srt')]

        make_fetcher(client).process_file(video)
        assert "Film [English] Film.2020.srt" in capsys.readouterr().out


class TestProcess:
    """Whole-run loop"""

    def test_one_failure_does_not_stop_run(self, client, tmp_path):
        (tmp_path / "A.mkv").touch()
        (tmp_path / "B.mkv").touch()
        client.search_by_query.side_effect = [CatalogError('boom'), [ENGLISH]]

        stats = make_fetcher(client).process(tmp_path)

        assert stats['total'] == 2
        assert stats[ERRORS] == 1
        assert stats[DOWNLOADED] == 1

    def test_unexpected_error_counted(self, client, tmp_path):
        (tmp_path / "A.mkv").touch()
        client.search_by_hash.side_effect = PermissionError('denied')

        stats = make_fetcher(client).process(tmp_path)
        assert stats[ERRORS] == 1

    def test_recursive(self, client, tmp_path):
        (tmp_path / "Season 1").mkdir()
        (tmp_path / "Season 1" / "Show.S01E01.mkv").touch()
        (tmp_path / "Season 1" / "Show.S01E01.nfo").touch()

        assert make_fetcher(client).process(tmp_path)['total'] == 0

        stats = make_fetcher(client, recursive=True).process(tmp_path)
        assert stats['total'] == 2
        assert stats[DOWNLOADED] == 1
        assert stats[SKIPPED_EXTENSION] == 1

    def test_symlink_loop_counted_once(self, client, tmp_path):
        show = tmp_path / "Show"
        show.mkdir()
        (show / "Show.S01E01.mkv").touch()
        (show / "again").symlink_to(show, target_is_directory=True)

        stats = make_fetcher(client, recursive=True).process(tmp_path)
        assert stats['total'] == 1
        assert stats[DOWNLOADED] == 1


class TestMain:
    """CLI entry point"""

    def test_missing_target(self):
        assert main([]) == 1

    def test_empty_target(self):
        assert main(['--file', '']) == 1

    def test_nonexistent_target(self, tmp_path):
        assert main(['--file', str(tmp_path / "nope")]) == 1

    def test_bad_flag_exits(self):
        with pytest.raises(SystemExit) as exc:
            main(['--no-such-flag'])
        assert exc.value.code == 2

    def test_missing_explicit_config(self, tmp_path):
        assert main(['--file', str(tmp_path), '--config', str(tmp_path / "missing.yaml")]) == 1

    def test_full_run(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        library = tmp_path / "library"
        library.mkdir()
        (library / "Show.S01E02.mkv").touch()

        with patch('fetch_subs.OpenSubtitlesClient') as client_cls:
            client = client_cls.return_value
            client.search_by_query.return_value = [ENGLISH]
            client.download.return_value = True

            code = main(['--file', str(library), '-H', '-u', 'me', '-p', 'pw'])

        assert code == 0
        client.login.assert_called_once_with('me', 'pw')
        client.logout.assert_called_once()
        client.search_by_hash.assert_not_called()
        client.download.assert_called_once()

    def test_login_failure(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch('fetch_subs.OpenSubtitlesClient') as client_cls:
            client_cls.return_value.login.side_effect = CatalogError('401')
            assert main(['--file', str(tmp_path)]) == 1

    def test_logout_after_crash(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch('fetch_subs.OpenSubtitlesClient') as client_cls, \
                patch('fetch_subs.SubtitleFetcher.process', side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                main(['--file', str(tmp_path)])
            client_cls.return_value.logout.assert_called_once()

    def test_config_file_used(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("username: from-file\npassword: secret\n")
        with patch('fetch_subs.OpenSubtitlesClient') as client_cls:
            main(['--file', str(tmp_path)])
            client_cls.return_value.login.assert_called_once_with('from-file', 'secret')

    def test_malformed_config_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("username: [unclosed\n")
        with patch('fetch_subs.OpenSubtitlesClient') as client_cls:
            assert main(['--file', str(tmp_path)]) == 1
            client_cls.assert_not_called()

    def test_bad_config_value(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("max_results: ten\n")
        with patch('fetch_subs.OpenSubtitlesClient') as client_cls:
            assert main(['--file', str(tmp_path)]) == 1
            client_cls.assert_not_called()

    def test_numeric_password_sent_as_string(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("username: 2024\npassword: 123456\n")
        with patch('fetch_subs.OpenSubtitlesClient') as client_cls:
            main(['--file', str(tmp_path)])
            client_cls.return_value.login.assert_called_once_with('2024', '123456')
