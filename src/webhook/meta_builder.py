"""Resolve a raw admission Pod object plus injector configuration into :class:`Meta`."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from src.patch.guards import RenderError
from src.patch.meta import (
    CPU_REQUESTS_ANNOTATION,
    EGRESS_IGNORED_IPS_ANNOTATION,
    EGRESS_IGNORED_PORTS_ANNOTATION,
    MEMORY_REQUESTS_ANNOTATION,
    PORTS_ANNOTATION,
    PREVIEW_ANNOTATION,
    SECRET_MOUNTS_ANNOTATION,
    SIDECAR_INJECT_ANNOTATION,
    VIRTUAL_NODE_ANNOTATION,
    InitMeta,
    Meta,
    PodMetadata,
    PodSpec,
    SecretMount,
    SidecarMeta,
)

from .config import InjectorConfig

SIDECAR_NAME = "envoy"
DEFAULT_EGRESS_IGNORED_PORTS = "22"
DEFAULT_EGRESS_IGNORED_IPS = "169.254.169.254"


def _list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def should_inject(pod: Dict[str, Any]) -> bool:
    metadata = pod.get("metadata") or {}
    annotations = metadata.get("annotations") or {}
    if str(annotations.get(SIDECAR_INJECT_ANNOTATION, "")).strip().lower() == "disabled":
        return False
    containers = _list((pod.get("spec") or {}).get("containers"))
    return not any(isinstance(c, dict) and c.get("name") == SIDECAR_NAME for c in containers)


def parse_secret_mounts(raw: Optional[str]) -> Tuple[SecretMount, ...]:
    """Parse ``name:/mount/path`` pairs separated by commas."""

    mounts: List[SecretMount] = []
    for entry in (raw or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, path = entry.partition(":")
        if not sep or not name.strip() or not path.strip():
            raise RenderError(f"malformed secret mount {entry!r}; expected name:/mount/path")
        mounts.append(SecretMount(name=name.strip(), mount_path=path.strip()))
    return tuple(mounts)


def _container_ports(containers: List[Any]) -> str:
    ports: List[str] = []
    for container in containers:
        if not isinstance(container, dict):
            continue
        for port in _list(container.get("ports")):
            if isinstance(port, dict) and port.get("containerPort") is not None:
                value = str(port["containerPort"])
                if value not in ports:
                    ports.append(value)
    return ",".join(ports)


def _virtual_node_name(metadata: Dict[str, Any], annotations: Dict[str, str]) -> str:
    explicit = annotations.get(VIRTUAL_NODE_ANNOTATION)
    if explicit:
        return explicit
    name = metadata.get("name") or (metadata.get("generateName") or "").rstrip("-")
    namespace = metadata.get("namespace") or "default"
    return f"{name}-{namespace}" if name else ""


def _string_map(values: Dict[Any, Any]) -> Dict[str, str]:
    # A null annotation or label value reads as unset.
    return {str(k): "" if v is None else str(v) for k, v in values.items()}


def _fs_group_set(spec: Dict[str, Any]) -> bool:
    security_context = spec.get("securityContext")
    return isinstance(security_context, dict) and security_context.get("fsGroup") is not None


def build_meta(pod: Dict[str, Any], config: InjectorConfig) -> Meta:
    metadata = pod.get("metadata") or {}
    spec = pod.get("spec") or {}
    raw_annotations = metadata.get("annotations")
    annotations = _string_map(raw_annotations) if isinstance(raw_annotations, dict) else None
    lookup = annotations or {}
    labels = _string_map(metadata.get("labels") or {})

    containers = _list(spec.get("containers"))
    init_containers = _list(spec.get("initContainers"))
    pull_secrets = _list(spec.get("imagePullSecrets"))

    init = InitMeta(
        image=config.init_image,
        ports=lookup.get(PORTS_ANNOTATION) or _container_ports(containers),
        egress_ignored_ports=lookup.get(EGRESS_IGNORED_PORTS_ANNOTATION, DEFAULT_EGRESS_IGNORED_PORTS),
        ignored_ips=lookup.get(EGRESS_IGNORED_IPS_ANNOTATION, DEFAULT_EGRESS_IGNORED_IPS),
    )
    preview = lookup.get(PREVIEW_ANNOTATION)
    sidecar = SidecarMeta(
        name=SIDECAR_NAME,
        image=config.sidecar_image,
        region=config.region,
        mesh_name=config.mesh_name,
        virtual_node_name=_virtual_node_name(metadata, lookup),
        log_level=config.log_level,
        cpu_request=lookup.get(CPU_REQUESTS_ANNOTATION) or config.sidecar_cpu_request,
        memory_request=lookup.get(MEMORY_REQUESTS_ANNOTATION) or config.sidecar_memory_request,
        preview=config.preview if preview is None else preview.strip().lower() in {"1", "true", "enabled"},
        enable_xray_tracing=config.enable_xray_tracing,
        enable_datadog_tracing=config.enable_datadog_tracing,
        datadog_address=config.datadog_address,
        datadog_port=config.datadog_port,
        enable_jaeger_tracing=config.enable_jaeger_tracing,
        jaeger_address=config.jaeger_address,
        jaeger_port=config.jaeger_port,
        enable_stats_tags=config.enable_stats_tags,
        enable_statsd=config.enable_statsd,
        secret_mounts=parse_secret_mounts(lookup.get(SECRET_MOUNTS_ANNOTATION)),
    )
    automount = spec.get("automountServiceAccountToken")
    return Meta(
        init=init,
        sidecar=sidecar,
        append_init=len(init_containers) > 0,
        append_sidecar=len(containers) > 0,
        append_image_pull_secret=len(pull_secrets) > 0,
        has_image_pull_secret=config.ecr_secret,
        inject_fs_group=config.enable_iam_for_service_accounts and not _fs_group_set(spec),
        pod_metadata=PodMetadata(annotations=annotations, labels=labels),
        pod_spec=PodSpec(
            volumes=tuple(_list(spec.get("volumes"))),
            automount_service_account_token=automount if isinstance(automount, bool) else None,
        ),
    )


__all__ = ["build_meta", "should_inject", "parse_secret_mounts", "SIDECAR_NAME"]
