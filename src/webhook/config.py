from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Optional

_TRUE_VALUES = {"1", "true", "yes", "on", "enabled"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled", ""}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Environment variable {name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class InjectorConfig:
    mesh_name: str
    region: str
    log_level: str = "info"
    sidecar_image: str = "840364872350.dkr.ecr.us-west-2.amazonaws.com/aws-appmesh-envoy:v1.12.1.0-prod"
    init_image: str = "111345817488.dkr.ecr.us-west-2.amazonaws.com/aws-appmesh-proxy-route-manager:v2"
    sidecar_cpu_request: str = "10m"
    sidecar_memory_request: str = "32Mi"
    preview: bool = False
    ecr_secret: bool = False
    enable_xray_tracing: bool = False
    enable_stats_tags: bool = False
    enable_statsd: bool = False
    enable_datadog_tracing: bool = False
    datadog_address: str = "datadog.default.svc.cluster.local"
    datadog_port: str = "8126"
    enable_jaeger_tracing: bool = False
    jaeger_address: str = "appmesh-jaeger.appmesh-system"
    jaeger_port: str = "9411"
    enable_iam_for_service_accounts: bool = True
    port: int = 8080
    tls_cert: str = "/etc/webhook/certs/cert.pem"
    tls_key: str = "/etc/webhook/certs/key.pem"

    def validate(self) -> "InjectorConfig":
        if not self.mesh_name:
            raise ValueError("App Mesh name is required (APPMESH_NAME)")
        if not self.region:
            raise ValueError("App Mesh region is required (APPMESH_REGION)")
        if not 0 < self.port < 65536:
            raise ValueError(f"Webhook port out of range: {self.port}")
        return self

    def with_overrides(self, **overrides: Any) -> "InjectorConfig":
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    @classmethod
    def from_env(
        cls,
        mesh_name: Optional[str] = None,
        region: Optional[str] = None,
    ) -> "InjectorConfig":
        defaults = cls(mesh_name="", region="")
        return cls(
            mesh_name=mesh_name or os.getenv("APPMESH_NAME", ""),
            region=region or os.getenv("APPMESH_REGION", ""),
            log_level=os.getenv("APPMESH_LOG_LEVEL") or defaults.log_level,
            sidecar_image=os.getenv("SIDECAR_IMAGE") or defaults.sidecar_image,
            init_image=os.getenv("INIT_IMAGE") or defaults.init_image,
            sidecar_cpu_request=os.getenv("SIDECAR_CPU_REQUESTS") or defaults.sidecar_cpu_request,
            sidecar_memory_request=os.getenv("SIDECAR_MEMORY_REQUESTS") or defaults.sidecar_memory_request,
            preview=_env_bool("APPMESH_PREVIEW", defaults.preview),
            ecr_secret=_env_bool("ECR_SECRET", defaults.ecr_secret),
            enable_xray_tracing=_env_bool("INJECT_XRAY_SIDECAR", defaults.enable_xray_tracing),
            enable_stats_tags=_env_bool("ENABLE_STATS_TAGS", defaults.enable_stats_tags),
            enable_statsd=_env_bool("ENABLE_STATSD", defaults.enable_statsd),
            enable_datadog_tracing=_env_bool("INJECT_DATADOG_TRACER", defaults.enable_datadog_tracing),
            datadog_address=os.getenv("DATADOG_ADDRESS") or defaults.datadog_address,
            datadog_port=os.getenv("DATADOG_PORT") or defaults.datadog_port,
            enable_jaeger_tracing=_env_bool("INJECT_JAEGER_TRACER", defaults.enable_jaeger_tracing),
            jaeger_address=os.getenv("JAEGER_ADDRESS") or defaults.jaeger_address,
            jaeger_port=os.getenv("JAEGER_PORT") or defaults.jaeger_port,
            enable_iam_for_service_accounts=_env_bool(
                "ENABLE_IAM_FOR_SERVICE_ACCOUNTS", defaults.enable_iam_for_service_accounts
            ),
            port=_env_int("PORT", defaults.port),
            tls_cert=os.getenv("TLS_CERT") or defaults.tls_cert,
            tls_key=os.getenv("TLS_KEY") or defaults.tls_key,
        )


__all__ = ["InjectorConfig"]
