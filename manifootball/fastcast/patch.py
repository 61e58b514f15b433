"""
Result frame decoding and patch application.

A result frame's `pl` is a JSON string of the form::

    {"ts": 1700000000000, "~c": 1, "pl": "<base64 deflate of the op list>"}

When `~c` is falsy the inner `pl` already is the operation list.
"""

import base64
import binascii
import json
import logging
import zlib
from typing import Any, Union

from ..models import PatchOp, ResultFrame

logger = logging.getLogger(__name__)


def inflate(data: bytes) -> bytes:
    """Inflate a zlib, gzip or raw deflate stream."""
    try:
        return zlib.decompress(data, zlib.MAX_WBITS | 32)
    except zlib.error:
        return zlib.decompress(data, -zlib.MAX_WBITS)


def decode_result(frame: Union[ResultFrame, dict]) -> list:
    """
    Extract the operation list from a result frame.

    Never raises: a malformed payload is logged and decodes to an empty list.
    """
    raw_payload = frame.payload if isinstance(frame, ResultFrame) else frame.get("pl")

    try:
        payload = json.loads(raw_payload) if isinstance(raw_payload, (str, bytes)) else raw_payload

        if payload.get("~c"):
            text = inflate(base64.b64decode(payload["pl"])).decode("utf-8")
            ops = json.loads(text)
        else:
            ops = payload["pl"]
            if isinstance(ops, str):
                ops = json.loads(ops)

        if not isinstance(ops, list):
            raise ValueError(f"expected an operation list, got {type(ops).__name__}")
        return ops

    except (binascii.Error, zlib.error, UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error(f"Failed to decode result payload: {e} (payload={raw_payload!r:.200})")
        return []


def as_path(path: str) -> list[str]:
    """Split a slash-delimited path, dropping empty segments."""
    return [segment for segment in path.split("/") if segment]


def _key(container: Any, segment: str) -> Union[str, int]:
    if isinstance(container, list):
        if not segment.isdigit():
            raise TypeError(f"non-numeric segment {segment!r} into a list")
        return int(segment)
    if isinstance(container, dict):
        return segment
    raise TypeError(f"cannot address {segment!r} inside {type(container).__name__}")


def _set_item(container: Any, key: Union[str, int], value: Any) -> None:
    if isinstance(container, list):
        while len(container) <= key:
            container.append(None)
    container[key] = value


def set_path(document: Any, segments: list[str], value: Any) -> None:
    """Set `value` at `segments`, creating intermediate containers as needed."""
    if not segments:
        raise ValueError("empty path")

    node = document
    for index, segment in enumerate(segments[:-1]):
        key = _key(node, segment)
        child = node[key] if isinstance(node, dict) and key in node else None
        if isinstance(node, list) and key < len(node):
            child = node[key]

        if not isinstance(child, (dict, list)):
            child = [] if segments[index + 1].isdigit() else {}
            _set_item(node, key, child)
        node = child

    _set_item(node, _key(node, segments[-1]), value)


def unset_path(document: Any, segments: list[str]) -> None:
    """Delete the field at `segments`; a missing path is left untouched."""
    if not segments:
        raise ValueError("empty path")

    node = document
    for segment in segments[:-1]:
        if isinstance(node, dict):
            node = node.get(segment)
        elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        else:
            return

    last = segments[-1]
    if isinstance(node, dict):
        node.pop(last, None)
    elif isinstance(node, list) and last.isdigit() and int(last) < len(node):
        # the slot stays, like a hole left in a sparse array
        node[int(last)] = None


def apply_operations(document: Any, ops: list) -> None:
    """
    Apply an operation batch to `document` in place.

    Operations run in order. A failing operation is logged and skipped;
    the rest of the batch is still applied.

    `add` operations are currently ignored.
    """
    for op in ops:
        try:
            kind = op["op"]
            if kind == PatchOp.ADD:
                continue
            if kind == PatchOp.REPLACE:
                set_path(document, as_path(op["path"]), op["value"])
            elif kind == PatchOp.REMOVE:
                unset_path(document, as_path(op["path"]))
            else:
                logger.warning(f"Unknown patch operation: {op}")
        except Exception as e:
            logger.error(f"Failed to apply operation {op}: {e}")
