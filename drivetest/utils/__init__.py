"""Utility modules."""
from drivetest.utils.file_utils import resolve_under
from drivetest.utils.json_utils import (
    json_dump,
    json_load,
    load_json_field,
    parse_id_list,
)
from drivetest.utils.time_utils import (
    ensure_utc,
    seconds_between,
    utc_now,
    utc_now_iso,
)

__all__ = [
    "resolve_under",
    "json_dump",
    "json_load",
    "load_json_field",
    "parse_id_list",
    "ensure_utc",
    "seconds_between",
    "utc_now",
    "utc_now_iso",
]
