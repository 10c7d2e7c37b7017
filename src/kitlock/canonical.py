"""Canonical JSON encoding.

Marker files, the external kit metadata file, and manifest digests must be
byte-identical across runs for identical inputs. Canonical form is:

- UTF-8
- object keys sorted
- no insignificant whitespace
"""

from __future__ import annotations

import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Encode a JSON-serializable value in canonical form."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")
