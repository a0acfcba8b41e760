"""JSON serialization utilities."""
import json


def json_dump(payload: object) -> str:
    """Serialize object to compact JSON string for storage."""
    return json.dumps(payload, ensure_ascii=False)


def json_load(data: str) -> object:
    """Deserialize JSON string to object."""
    return json.loads(data)


def load_json_field(raw: str | None, default: object) -> object:
    """Parse a JSON text column, falling back to default on empty/invalid data."""
    if not raw:
        return default
    try:
        value = json_load(raw)
    except (json.JSONDecodeError, TypeError):
        return default
    if not isinstance(value, type(default)):
        return default
    return value


def parse_id_list(raw: str | None) -> list[int]:
    """Parse a comma-separated id list ("1,2,,3") into positive integers."""
    if not raw:
        return []
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            value = int(part)
        except ValueError:
            continue
        if value > 0:
            ids.append(value)
    return ids
