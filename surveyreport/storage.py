from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .types import SurveyRecord


def write_bytes_atomic(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    try:
        tmp.write_bytes(payload)
        tmp.replace(path)
    finally:
        if tmp.exists():
            tmp.unlink()


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding='utf-8'))


def records_from_payload(payload: Any) -> list[SurveyRecord]:
    """Accept a bare list of records or the backend's ``{"data": [...]}`` envelope."""
    rows = payload
    if isinstance(payload, dict):
        rows = payload.get('data')
    if not isinstance(rows, list):
        raise ValueError('expected a list of survey records or an object with a "data" list')

    records: list[SurveyRecord] = []
    for position, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ValueError(f'record #{position} is not an object: {row!r}')
        try:
            records.append(SurveyRecord.model_validate(row))
        except ValidationError as exc:
            raise ValueError(f'record #{position} is invalid: {exc}') from exc
    return records


def load_records(path: Path) -> list[SurveyRecord]:
    try:
        payload = read_json(path)
    except json.JSONDecodeError as exc:
        raise ValueError(f'invalid JSON in {path}: {exc}') from exc
    return records_from_payload(payload)
