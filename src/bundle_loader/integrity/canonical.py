"""
Canonical JSON encoding for archive headers.

Ensures the same header always encodes to the same bytes.
"""

import json
from typing import Any


def canonical_json(obj: Any) -> bytes:
    """
    Encode an object to canonical JSON bytes.

    Rules:
    - Keys sorted alphabetically
    - No whitespace
    - UTF-8 encoding
    - No NaN or infinity
    - No trailing newlines
    """
    json_str = json.dumps(
        obj,
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False,
        allow_nan=False,
    )
    return json_str.encode('utf-8')


def parse_canonical_json(data: bytes) -> Any:
    """
    Decode JSON bytes produced by canonical_json.

    Raises ValueError if the bytes are not valid UTF-8 JSON.
    """
    try:
        return json.loads(data.decode('utf-8'))
    except UnicodeDecodeError as e:
        raise ValueError(f"Header is not UTF-8: {e}")
    except RecursionError:
        raise ValueError("Header nests too deeply")
