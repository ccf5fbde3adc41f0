"""Local report library and draft store.

Both are small JSON documents under ``data_dir``; every read-modify-write
happens under one process-wide lock.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from .config import get_settings
from .exceptions import StorageError
from .storage import append_event, drafts_path, library_path, read_json, safe_key, write_json_atomic
from .types import DraftRecord, Report, new_id, utcnow


logger = logging.getLogger(__name__)

_STORE_LOCK = threading.RLock()


def _load_rows(path: Path, key: str) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    try:
        payload = read_json(path)
    except (OSError, ValueError) as exc:
        logger.warning('Ignoring unreadable store file %s: %s', path, exc)
        return []
    rows = payload.get(key) if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]


# -- library ---------------------------------------------------------------


def _load_reports() -> list[Report]:
    reports: list[Report] = []
    for row in _load_rows(library_path(), 'reports'):
        try:
            reports.append(Report.model_validate(row))
        except ValidationError as exc:
            logger.warning('Skipping invalid library entry %s: %s', row.get('id'), exc)
    return reports


def _save_reports(reports: list[Report]) -> None:
    write_json_atomic(library_path(), {'reports': [report.to_json_payload() for report in reports]})


def list_reports() -> list[Report]:
    with _STORE_LOCK:
        return _load_reports()


def get_report(report_id: str) -> Report | None:
    key = safe_key(report_id)
    for report in list_reports():
        if report.id == key:
            return report
    return None


def add_report(report: Report) -> Report:
    """Store a copy of *report* under a fresh id, newest first."""
    stored = report.model_copy(deep=True, update={'id': new_id('report')})
    with _STORE_LOCK:
        reports = _load_reports()
        reports.insert(0, stored)
        _save_reports(reports)
    append_event('report_added', report_id=stored.id, title=stored.title)
    return stored


def update_report(report: Report) -> Report:
    with _STORE_LOCK:
        reports = _load_reports()
        for index, existing in enumerate(reports):
            if existing.id == report.id:
                reports[index] = report
                break
        else:
            raise StorageError(f'Report not found: {report.id}')
        _save_reports(reports)
    append_event('report_updated', report_id=report.id, title=report.title)
    return report


def mutate_report(report_id: str, fn: Callable[[Report], Report]) -> Report:
    with _STORE_LOCK:
        existing = get_report(report_id)
        if existing is None:
            raise StorageError(f'Report not found: {report_id}')
        return update_report(fn(existing))


def delete_report(report_id: str) -> bool:
    key = safe_key(report_id)
    with _STORE_LOCK:
        reports = _load_reports()
        kept = [report for report in reports if report.id != key]
        if len(kept) == len(reports):
            return False
        _save_reports(kept)
    append_event('report_deleted', report_id=key)
    return True


# -- drafts ----------------------------------------------------------------


def _load_drafts() -> list[DraftRecord]:
    drafts: list[DraftRecord] = []
    for row in _load_rows(drafts_path(), 'drafts'):
        try:
            drafts.append(DraftRecord.model_validate(row))
        except ValidationError as exc:
            logger.warning('Skipping invalid draft %s: %s', row.get('id'), exc)
    return drafts


def _save_drafts(drafts: list[DraftRecord]) -> None:
    write_json_atomic(
        drafts_path(),
        {'drafts': [draft.model_dump(mode='json', by_alias=True) for draft in drafts]},
    )


def list_drafts() -> list[DraftRecord]:
    with _STORE_LOCK:
        return _load_drafts()


def save_draft(report: Report, draft_id: str | None = None) -> str:
    """Save *report* as the most recent draft and return the draft id.

    Only the ``max_drafts`` most recent drafts are kept.
    """
    record = DraftRecord(
        id=safe_key(draft_id) if draft_id else new_id('draft'),
        data=report.model_copy(deep=True),
        last_modified=utcnow(),
    )
    limit = max(1, int(get_settings().max_drafts))
    with _STORE_LOCK:
        drafts = [draft for draft in _load_drafts() if draft.id != record.id]
        drafts.insert(0, record)
        dropped = drafts[limit:]
        _save_drafts(drafts[:limit])
    for draft in dropped:
        logger.info('Dropped old draft %s', draft.id)
    append_event('draft_saved', draft_id=record.id, report_id=report.id)
    return record.id


def get_draft(draft_id: str) -> DraftRecord | None:
    key = safe_key(draft_id)
    for draft in list_drafts():
        if draft.id == key:
            return draft
    return None


def delete_draft(draft_id: str) -> bool:
    key = safe_key(draft_id)
    with _STORE_LOCK:
        drafts = _load_drafts()
        kept = [draft for draft in drafts if draft.id != key]
        if len(kept) == len(drafts):
            return False
        _save_drafts(kept)
    append_event('draft_deleted', draft_id=key)
    return True


def clear_drafts() -> None:
    with _STORE_LOCK:
        path = drafts_path()
        if path.exists():
            path.unlink()
    append_event('drafts_cleared')


class AutoSaver:
    """Saves a report as a draft only when its content changed."""

    def __init__(self, draft_id: str | None = None):
        self.draft_id = draft_id
        self._last_saved = ''

    @staticmethod
    def _fingerprint(report: Report) -> str:
        return json.dumps(report.to_json_payload(), sort_keys=True, ensure_ascii=False)

    def maybe_save(self, report: Report) -> bool:
        fingerprint = self._fingerprint(report)
        if fingerprint == self._last_saved:
            return False
        self.draft_id = save_draft(report, self.draft_id)
        self._last_saved = fingerprint
        return True

    def save_now(self, report: Report) -> str:
        self.draft_id = save_draft(report, self.draft_id)
        self._last_saved = self._fingerprint(report)
        return self.draft_id


def search_reports(term: str) -> list[Report]:
    """Reports whose title, address or property type contain *term*."""
    needle = str(term or '').strip().lower()
    reports = list_reports()
    if not needle:
        return reports
    return [
        report
        for report in reports
        if needle in report.title.lower()
        or needle in report.property.address.lower()
        or needle in report.property.type.lower()
    ]
