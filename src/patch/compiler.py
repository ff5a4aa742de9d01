"""Compile a resolved injection :class:`Meta` into an ordered JSON patch.

Later steps read the structural state written by earlier ones, so the order
of the steps in :func:`generate_patch` is fixed: init container (or CNI
annotations), fsGroup, sidecars, pull secret, tracing, secret mounts.
"""

from __future__ import annotations

import json
import logging
from typing import List

from src.render import (
    render_datadog_init_container,
    render_init,
    render_jaeger_init_container,
    render_secret_volume,
    render_secret_volume_mount,
    render_sidecars,
    render_tracing_config_volume,
)

from .annotations import annotation_patches
from .guards import InvariantError, validate_operations
from .meta import (
    CNI_ANNOTATION,
    DEFAULT_FS_GROUP,
    ECR_SECRET_NAME,
    EGRESS_IGNORED_IPS_ANNOTATION,
    EGRESS_IGNORED_PORTS_ANNOTATION,
    FARGATE_PROFILE_LABEL,
    IGNORED_UID_ANNOTATION,
    PORTS_ANNOTATION,
    PROXY_EGRESS_PORT,
    PROXY_EGRESS_PORT_ANNOTATION,
    PROXY_INGRESS_PORT,
    PROXY_INGRESS_PORT_ANNOTATION,
    PROXY_UID,
    SIDECAR_INJECT_ANNOTATION,
    Meta,
    PatchOperation,
    operations_to_dicts,
)
from .state import (
    CONTAINERS,
    IMAGE_PULL_SECRETS,
    INIT_CONTAINERS,
    SIDECAR_VOLUME_MOUNTS,
    VOLUMES,
    StructuralState,
)

logger = logging.getLogger(__name__)


def is_cni_enabled(meta: Meta) -> bool:
    annotations = meta.pod_metadata.annotations or {}
    if CNI_ANNOTATION in annotations:
        return annotations[CNI_ANNOTATION] == "enabled"
    # Fargate runs the mesh CNI for every pod.
    labels = meta.pod_metadata.labels or {}
    if FARGATE_PROFILE_LABEL in labels:
        return len(labels[FARGATE_PROFILE_LABEL]) > 0
    return False


def cni_annotation_patches(meta: Meta) -> List[PatchOperation]:
    desired = {
        EGRESS_IGNORED_IPS_ANNOTATION: meta.init.ignored_ips,
        EGRESS_IGNORED_PORTS_ANNOTATION: meta.init.egress_ignored_ports,
        PORTS_ANNOTATION: meta.init.ports,
        SIDECAR_INJECT_ANNOTATION: "enabled",
        # Fixed by the App Mesh proxy runtime.
        IGNORED_UID_ANNOTATION: PROXY_UID,
        PROXY_EGRESS_PORT_ANNOTATION: PROXY_EGRESS_PORT,
        PROXY_INGRESS_PORT_ANNOTATION: PROXY_INGRESS_PORT,
    }
    return annotation_patches(meta.pod_metadata.annotations, desired)


def fs_group_patch(fs_group: int = DEFAULT_FS_GROUP) -> PatchOperation:
    # Not configurable: pods wanting a specific fsGroup set it themselves.
    return PatchOperation("add", "/spec/securityContext/fsGroup", fs_group)


def validate_meta(meta: Meta) -> None:
    if meta.append_init and not meta.append_sidecar and not is_cni_enabled(meta):
        raise InvariantError(
            "init containers appended while sidecar containers are created; "
            "sidecar container index is ambiguous"
        )


def generate_patch(meta: Meta) -> List[PatchOperation]:
    state = StructuralState.from_meta(meta)
    patches: List[PatchOperation] = []

    if is_cni_enabled(meta):
        logger.debug("mesh CNI enabled, emitting annotations only")
        patches.extend(cni_annotation_patches(meta))
    else:
        patches.append(state.emit(INIT_CONTAINERS, render_init(meta.init)))

    if meta.inject_fs_group:
        patches.append(fs_group_patch())

    patches.extend(state.emit_all(CONTAINERS, render_sidecars(meta.sidecar)))

    if meta.has_image_pull_secret:
        patches.append(state.emit(IMAGE_PULL_SECRETS, {"name": ECR_SECRET_NAME}))

    sidecar = meta.sidecar
    if sidecar.enable_datadog_tracing:
        patches.append(state.emit(VOLUMES, render_tracing_config_volume()))
        patches.append(
            state.emit(
                INIT_CONTAINERS,
                render_datadog_init_container(sidecar.datadog_address, sidecar.datadog_port),
            )
        )
    if sidecar.enable_jaeger_tracing:
        patches.append(state.emit(VOLUMES, render_tracing_config_volume()))
        patches.append(
            state.emit(
                INIT_CONTAINERS,
                render_jaeger_init_container(sidecar.jaeger_address, sidecar.jaeger_port),
            )
        )

    for mount in sidecar.secret_mounts:
        patches.append(state.emit(SIDECAR_VOLUME_MOUNTS, render_secret_volume_mount(mount)))
        patches.append(state.emit(VOLUMES, render_secret_volume(mount)))

    logger.debug("compiled %d patch operation(s)", len(patches))
    return patches


def compile_patch(meta: Meta) -> bytes:
    """Serialized JSON patch for ``meta``; raises :class:`PatchError` on failure."""

    validate_meta(meta)
    ops = validate_operations(operations_to_dicts(generate_patch(meta)))
    return json.dumps(ops).encode("utf-8")


__all__ = [
    "is_cni_enabled",
    "cni_annotation_patches",
    "fs_group_patch",
    "validate_meta",
    "generate_patch",
    "compile_patch",
]
