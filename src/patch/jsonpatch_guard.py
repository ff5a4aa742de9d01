from __future__ import annotations

import copy
from typing import Any, Dict, List

import jsonpatch
import yaml

from .guards import PatchError


def load_pod(pod_yaml: str) -> Dict[str, Any]:
    if pod_yaml is None:
        raise PatchError("pod YAML unavailable")
    documents = [doc for doc in yaml.safe_load_all(pod_yaml) if doc is not None]
    if not documents:
        raise PatchError("pod YAML empty")
    pod = documents[0]
    if not isinstance(pod, dict):
        raise PatchError("pod must be a mapping")
    return pod


def default_pod(pod: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``pod`` with the fields the API server defaults before admission."""

    defaulted = copy.deepcopy(pod)
    spec = defaulted.setdefault("spec", {})
    if spec.get("securityContext") is None:
        spec["securityContext"] = {}
    return defaulted


def apply_to_pod(pod: Dict[str, Any], patch_ops: List[dict]) -> Dict[str, Any]:
    """Apply compiled operations to a defaulted copy of ``pod``."""

    try:
        return jsonpatch.apply_patch(default_pod(pod), patch_ops, in_place=False)
    except (jsonpatch.JsonPatchException, jsonpatch.JsonPointerException) as exc:
        raise PatchError(f"bad path or conflict: {exc}") from exc


__all__ = ["load_pod", "default_pod", "apply_to_pod"]
