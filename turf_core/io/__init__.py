"""
I/O Module: Recorded fix logs and run summaries.

- CSV / JSON-lines fix logs for replay
- Territory ring files for offline union
- Run summary serialization
"""

from .fix_log import (
    FixLogFormatError,
    parse_fix,
    load_fixes,
    dump_fixes,
    load_rings,
    summary_to_dict,
)

__all__ = [
    'FixLogFormatError',
    'parse_fix',
    'load_fixes',
    'dump_fixes',
    'load_rings',
    'summary_to_dict',
]
