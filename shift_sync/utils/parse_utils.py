# utils/parse_utils.py
import json
from typing import Any, Optional


def clean_json_string(text: str) -> str:
    """Strip the newline artifacts older writers left inside embedded JSON."""
    return text.replace("\r\n", "").replace("\n", "").replace("\r", "").strip()


def parse_embedded_json(value: Any) -> Optional[Any]:
    """
    Value that may be JSON encoded as a string (sometimes twice).
    - dict / list -> returned as is
    - str -> cleaned and decoded; a second pass un-escapes \\" quoting
    - anything else, or undecodable text -> None
    """
    if isinstance(value, (dict, list)):
        return value
    if not isinstance(value, str):
        return None
    text = clean_json_string(value)
    if not text:
        return None
    for candidate in (text, text.replace('\\"', '"')):
        try:
            decoded = json.loads(candidate)
        except ValueError:
            continue
        # a JSON string that itself holds JSON
        if isinstance(decoded, str):
            return parse_embedded_json(decoded)
        return decoded
    return None


def parse_id_list(value) -> list[str]:
    """
    ['e1', None, 'e2'] -> ['e1', None, 'e2']
    'e1, e2' -> ['e1', 'e2']
    Empty strings become None so slot positions are kept.
    """
    if value is None:
        return []
    if isinstance(value, str):
        decoded = parse_embedded_json(value)
        if isinstance(decoded, list):
            value = decoded
        else:
            return [tok.strip() for tok in value.split(",") if tok.strip()]
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        if item is None or (isinstance(item, str) and not item.strip()):
            out.append(None)
        elif isinstance(item, (str, int)):
            out.append(str(item).strip())
    return out


def to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def to_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
