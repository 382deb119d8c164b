import json
from dataclasses import dataclass
from typing import Any, List

from company_import.domain.imports.errors import ParseError


@dataclass
class JsonPayload:
    records: List[Any]
    single_record: bool


def process_json(file_content: bytes) -> JsonPayload:
    """Process a JSON file: an array is many records, a lone object is one."""
    try:
        data = json.loads(file_content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ParseError(f"Failed to parse JSON: {e}") from e

    if isinstance(data, list):
        return JsonPayload(records=data, single_record=False)
    if isinstance(data, dict):
        return JsonPayload(records=[data], single_record=True)
    raise ParseError("Failed to parse JSON: JSON must contain an object or array of objects")
