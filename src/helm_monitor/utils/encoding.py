"""Decoding of helm's release storage payloads."""

from __future__ import annotations

import base64
import binascii
import gzip
import json

_GZIP_MAGIC = b"\x1f\x8b"


def _unwrap_base64(data: bytes, max_layers: int = 3) -> bytes:
    """Strip base64 layers until a gzip stream shows up.

    Read through the kubernetes client, Secret data carries two layers (the
    API's own encoding on top of helm's) and ConfigMap data carries one.
    """
    for _ in range(max_layers):
        if data[:2] == _GZIP_MAGIC:
            return data
        data = base64.b64decode(data, validate=False)
    if data[:2] != _GZIP_MAGIC:
        raise ValueError("release payload is not gzip compressed")
    return data


def decode_release(data: bytes | str) -> dict:
    """Decode a helm v3 release record.

    Pipeline: base64 (one or more layers) -> gzip -> utf-8 -> json.
    Raises ValueError on any malformed layer.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        compressed = _unwrap_base64(data)
        payload = gzip.decompress(compressed)
        return json.loads(payload.decode("utf-8"))
    except (binascii.Error, OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"malformed release payload: {e}") from e


def encode_release(payload: dict, layers: int = 1) -> str:
    """Encode a release dict the way helm stores it (used by tests)."""
    data = gzip.compress(json.dumps(payload).encode("utf-8"))
    for _ in range(layers):
        data = base64.b64encode(data)
    return data.decode("ascii")
