from __future__ import annotations

from typing import Dict, List, Optional

from .meta import PatchOperation

ANNOTATIONS_PATH = "/metadata/annotations"


def escape_json_pointer(key: str) -> str:
    # "~" must be escaped before "/" or the "~1" produced would be re-escaped.
    return key.replace("~", "~0").replace("/", "~1")


def unescape_json_pointer(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def annotation_patches(
    existing: Optional[Dict[str, str]], desired: Dict[str, str]
) -> List[PatchOperation]:
    """One operation per desired key, in sorted key order.

    When the pod has no annotation map the first key creates it; every other
    key is added or, if it already holds a non-empty value, replaced.
    """

    patches: List[PatchOperation] = []
    current = existing
    for key in sorted(desired):
        value = desired[key]
        if current is None:
            current = {}
            patches.append(PatchOperation("add", ANNOTATIONS_PATH, {key: value}))
            continue
        op = "replace" if current.get(key) else "add"
        patches.append(PatchOperation(op, f"{ANNOTATIONS_PATH}/{escape_json_pointer(key)}", value))
    return patches


__all__ = ["escape_json_pointer", "unescape_json_pointer", "annotation_patches"]
