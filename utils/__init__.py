from utils.localization import get_string, normalize_language
from utils.text import clip, short_list, split_names
from utils.time_utils import end_of_day_after, parse_utc_iso, resolve_zone, unix_timestamp, utc_now

__all__ = [
    "clip",
    "end_of_day_after",
    "get_string",
    "normalize_language",
    "parse_utc_iso",
    "resolve_zone",
    "short_list",
    "split_names",
    "unix_timestamp",
    "utc_now",
]
