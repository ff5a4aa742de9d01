"""Renderers producing the container and volume fragments embedded in patches."""

from .containers import (
    render_datadog_init_container,
    render_init,
    render_jaeger_init_container,
    render_sidecars,
)
from .volumes import (
    render_secret_volume,
    render_secret_volume_mount,
    render_tracing_config_volume,
)

__all__ = [
    "render_init",
    "render_sidecars",
    "render_datadog_init_container",
    "render_jaeger_init_container",
    "render_tracing_config_volume",
    "render_secret_volume",
    "render_secret_volume_mount",
]
