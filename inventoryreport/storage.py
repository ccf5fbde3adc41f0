from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import get_settings
from .exceptions import StorageError


_SAFE_KEY_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$')


def data_root() -> Path:
    root = get_settings().data_dir
    root.mkdir(parents=True, exist_ok=True)
    return root


def safe_key(key: str) -> str:
    token = str(key or '').strip()
    if not token:
        raise ValueError('key is required')
    if not _SAFE_KEY_PATTERN.match(token):
        raise ValueError(f'invalid key: {key}')
    return token


def library_path() -> Path:
    return data_root() / 'library.json'


def drafts_path() -> Path:
    return data_root() / 'drafts.json'


def templates_path() -> Path:
    return data_root() / 'templates.json'


def events_path() -> Path:
    return data_root() / 'events.jsonl'


def exports_dir() -> Path:
    path = data_root() / 'exports'
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    try:
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding='utf-8')
        tmp.replace(path)
    except OSError as exc:
        raise StorageError(f'failed to write {path}: {exc}') from exc


def write_bytes_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    try:
        tmp.write_bytes(content)
        tmp.replace(path)
    except OSError as exc:
        raise StorageError(f'failed to write {path}: {exc}') from exc


def read_json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding='utf-8'))


def append_event(event: str, **extra: Any) -> None:
    now = datetime.now(timezone.utc).isoformat()
    row = {
        'ts': now,
        'event': event,
        **extra,
    }
    events_file = events_path()
    events_file.parent.mkdir(parents=True, exist_ok=True)
    with events_file.open('a', encoding='utf-8') as f:
        f.write(json.dumps(row, ensure_ascii=False) + '\n')
