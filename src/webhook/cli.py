from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn
import yaml

from src.patch.compiler import compile_patch
from src.patch.guards import PatchError
from src.patch.jsonpatch_guard import apply_to_pod, load_pod

from .config import InjectorConfig
from .meta_builder import build_meta
from .server import app as server_app, get_config

app = typer.Typer(help="App Mesh sidecar injector: admission webhook and patch tooling.")


_LOG_LEVEL_ALIASES = {"warn": "warning", "fatal": "critical"}
_LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def _normalise_log_level(level: str) -> str:
    """Map a log level to a name both logging and uvicorn accept."""

    value = (level or "").strip().lower()
    value = _LOG_LEVEL_ALIASES.get(value, value)
    if value not in _LOG_LEVELS:
        raise typer.BadParameter(f"Unknown log level {level!r}; expected one of {', '.join(_LOG_LEVELS)}")
    return value


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(mesh_name: Optional[str], region: Optional[str], **overrides) -> InjectorConfig:
    try:
        return InjectorConfig.from_env(mesh_name=mesh_name, region=region).with_overrides(**overrides).validate()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def serve(
    name: Optional[str] = typer.Option(None, "--name", help="AWS App Mesh name (default: $APPMESH_NAME)."),
    region: Optional[str] = typer.Option(None, "--region", help="AWS App Mesh region (default: $APPMESH_REGION)."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Envoy log level."),
    ecr_secret: Optional[bool] = typer.Option(
        None, "--ecr-secret/--no-ecr-secret", help="Inject the App Mesh ECR pull secret."
    ),
    port: Optional[int] = typer.Option(None, "--port", help="Webhook port (default: 8080)."),
    tls_cert: Optional[Path] = typer.Option(None, "--tlscert", help="Location of TLS cert file."),
    tls_key: Optional[Path] = typer.Option(None, "--tlskey", help="Location of TLS key file."),
    enable_tls: bool = typer.Option(True, "--enable-tls/--disable-tls", help="Serve over TLS."),
    verbosity: str = typer.Option("info", "--verbosity", help="Webhook process log level."),
) -> None:
    verbosity = _normalise_log_level(verbosity)
    _configure_logging(verbosity)
    config = _load_config(
        name,
        region,
        log_level=log_level,
        ecr_secret=ecr_secret,
        port=port,
        tls_cert=str(tls_cert) if tls_cert else None,
        tls_key=str(tls_key) if tls_key else None,
    )
    server_app.dependency_overrides[get_config] = lambda: config

    ssl_options = {}
    if enable_tls:
        ssl_options = {"ssl_certfile": config.tls_cert, "ssl_keyfile": config.tls_key}
    typer.echo(f"Serving sidecar injector for mesh {config.mesh_name} on port {config.port}")
    uvicorn.run(server_app, host="0.0.0.0", port=config.port, log_level=verbosity, **ssl_options)


@app.command("compile")
def compile_command(
    pod: Path = typer.Option(..., "--pod", "-p", help="Pod manifest (YAML or JSON)."),
    name: Optional[str] = typer.Option(None, "--name", help="AWS App Mesh name (default: $APPMESH_NAME)."),
    region: Optional[str] = typer.Option(None, "--region", help="AWS App Mesh region (default: $APPMESH_REGION)."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write output here instead of stdout."),
    apply: bool = typer.Option(False, "--apply", help="Output the patched pod instead of the patch."),
    verbosity: str = typer.Option("warning", "--verbosity", help="Log level."),
) -> None:
    _configure_logging(_normalise_log_level(verbosity))
    config = _load_config(name, region)
    try:
        pod_obj = load_pod(pod.read_text(encoding="utf-8"))
    except OSError as exc:
        raise typer.BadParameter(f"Failed to read pod manifest {pod}: {exc}") from exc
    except (PatchError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Invalid pod manifest {pod}: {exc}") from exc

    try:
        patch = compile_patch(build_meta(pod_obj, config))
    except PatchError as exc:
        typer.echo(f"Patch compilation failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if apply:
        try:
            patched = apply_to_pod(pod_obj, json.loads(patch))
        except PatchError as exc:
            typer.echo(f"Patch does not apply to {pod}: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        rendered = yaml.safe_dump(patched, sort_keys=False)
    else:
        rendered = json.dumps(json.loads(patch), indent=2) + "\n"

    if out is None:
        typer.echo(rendered, nl=False)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(rendered, encoding="utf-8")
    typer.echo(f"Wrote {'patched pod' if apply else 'patch'} to {out.resolve()}")


if __name__ == "__main__":  # pragma: no cover
    app()
