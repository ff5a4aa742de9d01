"""Container fragments injected next to the application containers.

Every renderer returns a plain JSON-compatible mapping. Input that would
produce a container the kubelet cannot run (unparseable port lists, missing
images, non-numeric tracer ports) raises :class:`RenderError` so the whole
compilation is abandoned.
"""

from __future__ import annotations

import ipaddress
from typing import Any, Dict, List

import yaml

from src.patch.guards import RenderError
from src.patch.meta import (
    InitMeta,
    PROXY_EGRESS_PORT,
    PROXY_INGRESS_PORT,
    PROXY_UID,
    SidecarMeta,
)
from .volumes import TRACING_CONFIG_FILE, render_tracing_config_mount

INIT_CONTAINER_NAME = "proxyinit"
XRAY_DAEMON_IMAGE = "amazon/aws-xray-daemon"
CONFIG_WRITER_IMAGE = "busybox"
ENVOY_ADMIN_PORT = 9901
XRAY_DAEMON_PORT = 2000


def _env(name: str, value: str) -> Dict[str, str]:
    return {"name": name, "value": value}


def _parse_port(raw: str, what: str) -> int:
    try:
        port = int(str(raw).strip())
    except ValueError as exc:
        raise RenderError(f"{what} is not a port number: {raw!r}") from exc
    if not 0 < port < 65536:
        raise RenderError(f"{what} out of range: {port}")
    return port


def _normalise_port_list(raw: str, what: str) -> str:
    """Validate a comma separated port list and return it without blanks."""

    items = [item.strip() for item in (raw or "").split(",") if item.strip()]
    return ",".join(str(_parse_port(item, what)) for item in items)


def _normalise_ip_list(raw: str) -> str:
    items = [item.strip() for item in (raw or "").split(",") if item.strip()]
    for item in items:
        try:
            ipaddress.ip_network(item, strict=False)
        except ValueError as exc:
            raise RenderError(f"egress ignored IP is not an address or CIDR: {item!r}") from exc
    return ",".join(items)


def _requests(cpu: str, memory: str) -> Dict[str, Any]:
    requests: Dict[str, str] = {}
    if cpu:
        requests["cpu"] = cpu
    if memory:
        requests["memory"] = memory
    return {"requests": requests}


def render_init(init: InitMeta) -> Dict[str, Any]:
    if not init.image:
        raise RenderError("init container image is required")
    return {
        "name": INIT_CONTAINER_NAME,
        "image": init.image,
        "securityContext": {"capabilities": {"add": ["NET_ADMIN"]}},
        "env": [
            _env("APPMESH_START_ENABLED", "1"),
            _env("APPMESH_IGNORE_UID", PROXY_UID),
            _env("APPMESH_ENVOY_INGRESS_PORT", PROXY_INGRESS_PORT),
            _env("APPMESH_ENVOY_EGRESS_PORT", PROXY_EGRESS_PORT),
            _env("APPMESH_APP_PORTS", _normalise_port_list(init.ports, "application port")),
            _env("APPMESH_EGRESS_IGNORED_IP", _normalise_ip_list(init.ignored_ips)),
            _env(
                "APPMESH_EGRESS_IGNORED_PORTS",
                _normalise_port_list(init.egress_ignored_ports, "egress ignored port"),
            ),
        ],
        "resources": _requests(init.cpu_request, init.memory_request),
    }


def _render_envoy(sidecar: SidecarMeta) -> Dict[str, Any]:
    if not sidecar.image:
        raise RenderError("sidecar image is required")
    if not sidecar.mesh_name or not sidecar.virtual_node_name:
        raise RenderError("mesh name and virtual node name are required")
    env = [
        _env(
            "APPMESH_VIRTUAL_NODE_NAME",
            f"mesh/{sidecar.mesh_name}/virtualNode/{sidecar.virtual_node_name}",
        ),
        _env("APPMESH_PREVIEW", "1" if sidecar.preview else "0"),
        _env("ENVOY_LOG_LEVEL", sidecar.log_level),
        _env("AWS_REGION", sidecar.region),
    ]
    if sidecar.enable_xray_tracing:
        env.append(_env("ENABLE_ENVOY_XRAY_TRACING", "1"))
    if sidecar.enable_stats_tags:
        env.append(_env("ENABLE_ENVOY_STATS_TAGS", "1"))
    if sidecar.enable_statsd:
        env.append(_env("ENABLE_ENVOY_DOG_STATSD", "1"))

    container: Dict[str, Any] = {
        "name": sidecar.name,
        "image": sidecar.image,
        "securityContext": {"runAsUser": int(PROXY_UID)},
        "ports": [{"containerPort": ENVOY_ADMIN_PORT, "name": "stats", "protocol": "TCP"}],
        "env": env,
        "resources": _requests(sidecar.cpu_request, sidecar.memory_request),
    }
    if sidecar.tracing_enabled:
        env.append(_env("ENVOY_TRACING_CFG_FILE", TRACING_CONFIG_FILE))
        container["volumeMounts"] = [render_tracing_config_mount()]
    return container


def _render_xray_daemon() -> Dict[str, Any]:
    return {
        "name": "xray-daemon",
        "image": XRAY_DAEMON_IMAGE,
        "securityContext": {"runAsUser": int(PROXY_UID)},
        "ports": [{"containerPort": XRAY_DAEMON_PORT, "name": "xray", "protocol": "UDP"}],
        "resources": _requests("10m", "32Mi"),
    }


def render_sidecars(sidecar: SidecarMeta) -> List[Dict[str, Any]]:
    """Envoy first, then the X-Ray daemon when tracing with X-Ray."""

    sidecars = [_render_envoy(sidecar)]
    if sidecar.enable_xray_tracing:
        sidecars.append(_render_xray_daemon())
    return sidecars


def _tracing_cluster(name: str, address: str, port: int) -> Dict[str, Any]:
    return {
        "name": name,
        "connect_timeout": "1s",
        "type": "strict_dns",
        "lb_policy": "round_robin",
        "load_assignment": {
            "cluster_name": name,
            "endpoints": [
                {
                    "lb_endpoints": [
                        {
                            "endpoint": {
                                "address": {
                                    "socket_address": {"address": address, "port_value": port}
                                }
                            }
                        }
                    ]
                }
            ],
        },
    }


def _config_writer(name: str, config: Dict[str, Any]) -> Dict[str, Any]:
    rendered = yaml.safe_dump(config, sort_keys=False)
    script = (
        f"cat <<EOF >> {TRACING_CONFIG_FILE}\n{rendered}EOF\n\ncat {TRACING_CONFIG_FILE}\n"
    )
    return {
        "name": name,
        "image": CONFIG_WRITER_IMAGE,
        "imagePullPolicy": "IfNotPresent",
        "command": ["sh", "-c", script],
        "volumeMounts": [render_tracing_config_mount()],
    }


def _check_address(address: str, what: str) -> str:
    address = (address or "").strip()
    if not address:
        raise RenderError(f"{what} address is required")
    return address


def render_datadog_init_container(address: str, port: str) -> Dict[str, Any]:
    address = _check_address(address, "datadog")
    port_value = _parse_port(port, "datadog port")
    config = {
        "tracing": {
            "http": {
                "name": "envoy.tracers.datadog",
                "config": {"collector_cluster": "datadog_agent", "service_name": "envoy"},
            }
        },
        "static_resources": {"clusters": [_tracing_cluster("datadog_agent", address, port_value)]},
    }
    return _config_writer("inject-datadog-config", config)


def render_jaeger_init_container(address: str, port: str) -> Dict[str, Any]:
    address = _check_address(address, "jaeger")
    port_value = _parse_port(port, "jaeger port")
    config = {
        "tracing": {
            "http": {
                "name": "envoy.tracers.zipkin",
                "config": {
                    "collector_cluster": "jaeger",
                    "collector_endpoint": "/api/v1/spans",
                    "shared_span_context": False,
                },
            }
        },
        "static_resources": {"clusters": [_tracing_cluster("jaeger", address, port_value)]},
    }
    return _config_writer("inject-jaeger-config", config)


__all__ = [
    "render_init",
    "render_sidecars",
    "render_datadog_init_container",
    "render_jaeger_init_container",
]
