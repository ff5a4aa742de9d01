"""Typed inputs and outputs of one patch compilation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_FS_GROUP = 1337
PROXY_UID = "1337"
PROXY_INGRESS_PORT = "15000"
PROXY_EGRESS_PORT = "15001"

CNI_ANNOTATION = "appmesh.k8s.aws/appmeshCNI"
FARGATE_PROFILE_LABEL = "eks.amazonaws.com/fargate-profile"
PORTS_ANNOTATION = "appmesh.k8s.aws/ports"
EGRESS_IGNORED_IPS_ANNOTATION = "appmesh.k8s.aws/egressIgnoredIPs"
EGRESS_IGNORED_PORTS_ANNOTATION = "appmesh.k8s.aws/egressIgnoredPorts"
SIDECAR_INJECT_ANNOTATION = "appmesh.k8s.aws/sidecarInjectorWebhook"
IGNORED_UID_ANNOTATION = "appmesh.k8s.aws/ignoredUID"
PROXY_EGRESS_PORT_ANNOTATION = "appmesh.k8s.aws/proxyEgressPort"
PROXY_INGRESS_PORT_ANNOTATION = "appmesh.k8s.aws/proxyIngressPort"
VIRTUAL_NODE_ANNOTATION = "appmesh.k8s.aws/virtualNode"
CPU_REQUESTS_ANNOTATION = "appmesh.k8s.aws/cpuRequests"
MEMORY_REQUESTS_ANNOTATION = "appmesh.k8s.aws/memoryRequests"
SECRET_MOUNTS_ANNOTATION = "appmesh.k8s.aws/secretMounts"
PREVIEW_ANNOTATION = "appmesh.k8s.aws/preview"

ECR_SECRET_NAME = "appmesh-ecr-secret"


@dataclass(frozen=True)
class SecretMount:
    name: str
    mount_path: str


@dataclass(frozen=True)
class InitMeta:
    image: str
    cpu_request: str = "10m"
    memory_request: str = "32Mi"
    ports: str = ""
    egress_ignored_ports: str = "22"
    ignored_ips: str = "169.254.169.254"


@dataclass(frozen=True)
class SidecarMeta:
    name: str
    image: str
    region: str
    mesh_name: str
    virtual_node_name: str
    log_level: str = "info"
    cpu_request: str = "10m"
    memory_request: str = "32Mi"
    preview: bool = False
    enable_xray_tracing: bool = False
    enable_datadog_tracing: bool = False
    datadog_address: str = "datadog.default.svc.cluster.local"
    datadog_port: str = "8126"
    enable_jaeger_tracing: bool = False
    jaeger_address: str = "appmesh-jaeger.appmesh-system"
    jaeger_port: str = "9411"
    enable_stats_tags: bool = False
    enable_statsd: bool = False
    secret_mounts: Tuple[SecretMount, ...] = ()

    @property
    def tracing_enabled(self) -> bool:
        return self.enable_datadog_tracing or self.enable_jaeger_tracing


@dataclass(frozen=True)
class PodMetadata:
    # None means the pod carries no annotation map at all.
    annotations: Optional[Dict[str, str]] = None
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PodSpec:
    volumes: Tuple[Dict[str, Any], ...] = ()
    automount_service_account_token: Optional[bool] = None


@dataclass(frozen=True)
class Meta:
    init: InitMeta
    sidecar: SidecarMeta
    append_init: bool = False
    append_sidecar: bool = False
    append_image_pull_secret: bool = False
    has_image_pull_secret: bool = False
    inject_fs_group: bool = False
    pod_metadata: PodMetadata = field(default_factory=PodMetadata)
    pod_spec: PodSpec = field(default_factory=PodSpec)


@dataclass(frozen=True)
class PatchOperation:
    op: str
    path: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.op, "path": self.path, "value": self.value}


def operations_to_dicts(ops: List[PatchOperation]) -> List[Dict[str, Any]]:
    return [op.to_dict() for op in ops]


__all__ = [
    "SecretMount",
    "InitMeta",
    "SidecarMeta",
    "PodMetadata",
    "PodSpec",
    "Meta",
    "PatchOperation",
    "operations_to_dicts",
]
