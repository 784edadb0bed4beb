"""
Fix Log Reader/Writer.

Recorded fix streams are stored as CSV (header row) or JSON lines with the
keys latitude, longitude, accuracy, timestamp and optional bearing.
Malformed rows are skipped and counted; unreadable files raise
FixLogFormatError.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from turf_core.proto.fix import Fix
from turf_core.proto.track import RunSummary
from turf_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)

FIELDS = ['latitude', 'longitude', 'accuracy', 'timestamp', 'bearing']


class FixLogFormatError(ValueError):
    """Fix log cannot be read at all (unknown format, missing columns)."""


def _optional_float(value) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


def parse_fix(record: dict) -> Fix:
    """
    Build a Fix from one log record.

    Raises:
        KeyError, ValueError, TypeError: Record is malformed
    """
    return Fix(
        latitude=float(record['latitude']),
        longitude=float(record['longitude']),
        accuracy_meters=_optional_float(record.get('accuracy')),
        timestamp_millis=int(float(record['timestamp'])),
        bearing=_optional_float(record.get('bearing')),
    )


def _detect_format(path: Path, fmt: Optional[str]) -> str:
    if fmt is not None:
        fmt = fmt.lower()
    elif path.suffix.lower() == '.csv':
        fmt = 'csv'
    elif path.suffix.lower() in ('.jsonl', '.ndjson'):
        fmt = 'jsonl'
    else:
        raise FixLogFormatError(f"Cannot infer fix log format from '{path.name}'")

    if fmt not in ('csv', 'jsonl'):
        raise FixLogFormatError(f"Unsupported fix log format '{fmt}'")
    return fmt


def load_fixes(
    path: Union[str, Path],
    fmt: Optional[str] = None,
    metrics: Optional[MetricsCollector] = None
) -> List[Fix]:
    """
    Load a recorded fix stream.

    Args:
        path: CSV or JSON-lines file
        fmt: 'csv' or 'jsonl' (inferred from the suffix if None)
        metrics: Metrics collector (global if None)

    Returns:
        Fixes in file order

    Raises:
        FixLogFormatError: Unknown format or CSV without required columns
    """
    path = Path(path)
    metrics = metrics or get_metrics()
    fmt = _detect_format(path, fmt)

    fixes: List[Fix] = []
    with path.open('r', newline='', encoding='utf-8') as fh:
        if fmt == 'csv':
            reader = csv.DictReader(fh)
            missing = {'latitude', 'longitude', 'timestamp'} - set(reader.fieldnames or [])
            if missing:
                raise FixLogFormatError(f"{path.name}: missing columns {sorted(missing)}")
            records = ((reader.line_num, row) for row in reader)
        else:
            records = _json_records(fh)

        for line_no, record in records:
            if record is None:
                _skip(metrics, path, line_no, 'invalid JSON')
                continue
            try:
                fixes.append(parse_fix(record))
            except (KeyError, ValueError, TypeError) as e:
                _skip(metrics, path, line_no, str(e))

    logger.info(f"Loaded {len(fixes)} fixes from {path}")
    return fixes


def _json_records(fh):
    for line_no, line in enumerate(fh, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            yield line_no, None
            continue
        yield line_no, record if isinstance(record, dict) else None


def _skip(metrics: MetricsCollector, path: Path, line_no: int, detail: str):
    metrics.increment_drop('parse_error')
    logger.warning(f"{path.name}:{line_no}: skipping malformed fix ({detail})")


def dump_fixes(fixes: Iterable[Fix], path: Union[str, Path], fmt: Optional[str] = None):
    """
    Write fixes in the same formats load_fixes reads.

    Args:
        fixes: Fixes to write
        path: Output file
        fmt: 'csv' or 'jsonl' (inferred from the suffix if None)
    """
    path = Path(path)
    fmt = _detect_format(path, fmt)

    with path.open('w', newline='', encoding='utf-8') as fh:
        if fmt == 'csv':
            writer = csv.DictWriter(fh, fieldnames=FIELDS)
            writer.writeheader()
            for fix in fixes:
                writer.writerow(_record(fix))
        else:
            for fix in fixes:
                fh.write(json.dumps(_record(fix)) + '\n')


def _record(fix: Fix) -> dict:
    return {
        'latitude': fix.latitude,
        'longitude': fix.longitude,
        'accuracy': fix.accuracy_meters,
        'timestamp': fix.timestamp_millis,
        'bearing': fix.bearing,
    }


def summary_to_dict(summary: RunSummary) -> dict:
    """Serialize a run summary for the run-history store."""
    data = summary.to_dict()
    data['path'] = [list(p) for p in summary.path]
    data['point_count'] = len(data['path'])
    return data


def load_rings(path: Union[str, Path]):
    """
    Load stored territory rings from JSON.

    Accepts either a list of rings or a mapping of owner id to a list of
    rings. Each ring is a list of [lat, lng] pairs.

    Raises:
        FixLogFormatError: File is not valid JSON of either shape
    """
    path = Path(path)
    try:
        with path.open('r', encoding='utf-8') as fh:
            data = json.load(fh)
    except json.JSONDecodeError as e:
        raise FixLogFormatError(f"{path.name}: invalid JSON ({e})") from e

    if isinstance(data, list):
        return [_ring(r) for r in data]
    if isinstance(data, dict):
        return {str(owner): [_ring(r) for r in rings] for owner, rings in data.items()}
    raise FixLogFormatError(f"{path.name}: expected a list or an owner mapping")


def _ring(raw) -> list:
    try:
        return [(float(p[0]), float(p[1])) for p in raw]
    except (TypeError, ValueError, IndexError) as e:
        raise FixLogFormatError(f"Malformed ring: {e}") from e
