#!/usr/bin/env python3
"""
Run-wide configuration: YAML file values overlaid with CLI flags
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Dict, FrozenSet

import yaml

from subfetch.constants import (
    STOP_WORDS, DEFAULT_LANGUAGE, DEFAULT_LANGUAGE_PREFIX,
    DEFAULT_MAX_RESULTS, DEFAULT_SERVER_URL, DEFAULT_USER_AGENT,
)

logger = logging.getLogger(__name__)

STRING_FIELDS = ('username', 'password', 'language', 'language_prefix', 'user_agent', 'server_url')
BOOL_FIELDS = ('use_hash', 'use_parent_folder', 'recursive', 'force', 'dry_run')


@dataclass(frozen=True)
class FetchConfig:
    """Settings shared by every file processed in one run"""
    username: str = ''
    password: str = ''
    language: str = DEFAULT_LANGUAGE
    language_prefix: str = DEFAULT_LANGUAGE_PREFIX
    max_results: int = DEFAULT_MAX_RESULTS
    server_url: str = DEFAULT_SERVER_URL
    user_agent: str = DEFAULT_USER_AGENT
    stop_words: FrozenSet[str] = STOP_WORDS
    use_hash: bool = True
    use_parent_folder: bool = False
    recursive: bool = False
    force: bool = False
    dry_run: bool = False


def load_config(config_path: Path) -> Dict:
    """Load configuration from YAML file (empty file -> {})"""
    with open(config_path, 'r') as f:
        values = yaml.safe_load(f) or {}
    if not isinstance(values, dict):
        raise ValueError(f"{config_path} must contain a mapping of settings")
    return values


def build_config(file_values: Optional[Dict] = None, **overrides) -> FetchConfig:
    """
    Build a FetchConfig from YAML values, then apply non-None overrides

    extra_stop_words in the file extends the default stop-word set.
    Unknown keys are logged and ignored. String and boolean settings are
    coerced; a value that cannot be coerced raises ValueError.
    """
    file_values = dict(file_values or {})
    config = FetchConfig()

    extra = file_values.pop('extra_stop_words', None) or []
    if extra:
        stop_words = config.stop_words | frozenset(str(word).lower() for word in extra)
        config = replace(config, stop_words=stop_words)

    known = set(FetchConfig.__dataclass_fields__) - {'stop_words'}
    values = {}
    for key, value in file_values.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {key}")
            continue
        if value is not None:
            values[key] = value

    values.update({key: value for key, value in overrides.items() if value is not None})

    # YAML turns "password: 123456" into an int and "force: no" into a bool
    for key in STRING_FIELDS:
        if key in values:
            values[key] = str(values[key])
    for key in BOOL_FIELDS:
        if key in values:
            values[key] = _to_bool(key, values[key])
    if 'max_results' in values:
        values['max_results'] = int(values['max_results'])

    return replace(config, **values)


def _to_bool(key: str, value) -> bool:
    """Accept YAML booleans plus the usual string spellings"""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in ('1', 'true', 'yes', 'on'):
        return True
    if text in ('0', 'false', 'no', 'off', ''):
        return False
    raise ValueError(f"Config key '{key}' expects true/false, got '{value}'")
