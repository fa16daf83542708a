"""Decoding of AGE ``agtype`` text into Python values.

agtype is JSON extended with type annotations: vertices, edges and paths
are printed as ``{...}::vertex``, ``{...}::edge`` and ``[...]::path``, and
exact decimals as ``1.5::numeric``. Stripping the annotations outside of
string literals leaves plain JSON.
"""

from __future__ import annotations

import json
import re
from typing import Any

# Matches either a JSON string literal (kept) or a type annotation (dropped).
_TOKEN = re.compile(r'"(?:[^"\\]|\\.)*"|::(?:vertex|edge|path|numeric)\b')


def strip_type_annotations(text: str) -> str:
    return _TOKEN.sub(lambda m: m.group(0) if m.group(0).startswith('"') else "", text)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not representable in JSON")


def decode_agtype(payload: Any) -> Any:
    """Decode one agtype value.

    Args:
        payload: Column value as returned by the driver. SQL NULL is None.

    Returns:
        The structured value (dict, list, str, number, bool or None).

    Raises:
        ValueError: If the payload is not valid agtype, or holds a float
            JSON cannot carry (NaN, Infinity, -Infinity).
    """
    if payload is None:
        return None
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    return json.loads(
        strip_type_annotations(str(payload)), parse_constant=_reject_constant
    )
