from __future__ import annotations

import re
from typing import Any, Dict

from src.patch.guards import RenderError
from src.patch.meta import SecretMount

TRACING_CONFIG_VOLUME = "envoy-tracing-config"
TRACING_CONFIG_DIR = "/tmp/envoy"
TRACING_CONFIG_FILE = f"{TRACING_CONFIG_DIR}/envoyconf.yaml"

# DNS-1123 label, which is what Kubernetes accepts for volume names.
_VOLUME_NAME_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


def render_tracing_config_volume() -> Dict[str, Any]:
    return {"name": TRACING_CONFIG_VOLUME, "emptyDir": {}}


def render_tracing_config_mount() -> Dict[str, Any]:
    return {"name": TRACING_CONFIG_VOLUME, "mountPath": TRACING_CONFIG_DIR}


def _check_secret_mount(mount: SecretMount) -> None:
    if not mount.name or not _VOLUME_NAME_RE.match(mount.name) or len(mount.name) > 63:
        raise RenderError(f"invalid secret name for volume: {mount.name!r}")
    if not mount.mount_path or not mount.mount_path.startswith("/"):
        raise RenderError(f"secret {mount.name} mount path must be absolute: {mount.mount_path!r}")


def render_secret_volume(mount: SecretMount) -> Dict[str, Any]:
    _check_secret_mount(mount)
    return {"name": mount.name, "secret": {"secretName": mount.name}}


def render_secret_volume_mount(mount: SecretMount) -> Dict[str, Any]:
    _check_secret_mount(mount)
    return {"name": mount.name, "mountPath": mount.mount_path, "readOnly": True}


__all__ = [
    "TRACING_CONFIG_VOLUME",
    "TRACING_CONFIG_DIR",
    "TRACING_CONFIG_FILE",
    "render_tracing_config_volume",
    "render_tracing_config_mount",
    "render_secret_volume",
    "render_secret_volume_mount",
]
