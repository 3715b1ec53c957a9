"""
Deterministic cache-key derivation.
"""

import hashlib
import json
from typing import Any, Dict, Mapping, Optional, Sequence

from reelgen.models import Coordinates

COORDINATE_PRECISION = 6


def _normalize(value: Any) -> Any:
    if isinstance(value, Coordinates):
        rounded = value.rounded(COORDINATE_PRECISION)
        return {"lat": rounded.lat, "lng": rounded.lng}
    if isinstance(value, float):
        # 1.0 and 1 must hash alike
        return int(value) if value.is_integer() else round(value, 10)
    if isinstance(value, Mapping):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def derive_cache_key(
    stage_kind: str,
    input_refs: Sequence[str],
    params: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Build the cache key for one stage output.

    Identical (stage, inputs, params) always produce the same key; input
    order is significant, parameter order is not.

    Returns:
        ``"{stage_kind}_{md5 hex}"``
    """
    canonical = json.dumps(
        {
            "stage": stage_kind,
            "inputs": list(input_refs),
            "params": _normalize(params or {}),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return f"{stage_kind}_{hashlib.md5(canonical.encode('utf-8')).hexdigest()}"


def content_hash(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()
