from __future__ import annotations

from typing import Any, Dict, List

from .guards import InvariantError
from .meta import Meta, PatchOperation

INIT_CONTAINERS = "initContainers"
CONTAINERS = "containers"
VOLUMES = "volumes"
IMAGE_PULL_SECRETS = "imagePullSecrets"
SIDECAR_VOLUME_MOUNTS = "sidecarVolumeMounts"

_POD_COLLECTIONS = (INIT_CONTAINERS, CONTAINERS, VOLUMES, IMAGE_PULL_SECRETS)


class StructuralState:
    """Tracks which pod arrays exist while one patch is being compiled.

    A collection that does not exist yet is created with a single ``add`` of
    the whole array; every later mutation of it appends to ``<path>/-``.
    """

    def __init__(self, existing: Dict[str, bool], *, append_sidecar: bool = False) -> None:
        self._exists = {name: False for name in _POD_COLLECTIONS + (SIDECAR_VOLUME_MOUNTS,)}
        for name, value in existing.items():
            self._check(name)
            self._exists[name] = bool(value)
        self._append_sidecar = append_sidecar

    @classmethod
    def from_meta(cls, meta: Meta) -> "StructuralState":
        spec = meta.pod_spec
        volumes = len(spec.volumes) > 0
        # Automount injects a token volume the submitted pod spec does not show.
        if not volumes and spec.automount_service_account_token is not None:
            volumes = spec.automount_service_account_token
        return cls(
            {
                INIT_CONTAINERS: meta.append_init,
                CONTAINERS: meta.append_sidecar,
                VOLUMES: volumes,
                IMAGE_PULL_SECRETS: meta.append_image_pull_secret,
                # The rendered sidecar already mounts the tracing config.
                SIDECAR_VOLUME_MOUNTS: meta.sidecar.tracing_enabled,
            },
            append_sidecar=meta.append_sidecar,
        )

    def exists(self, collection: str) -> bool:
        self._check(collection)
        return self._exists[collection]

    def mark_created(self, collection: str) -> None:
        self._check(collection)
        self._exists[collection] = True

    @property
    def sidecar_index(self) -> int:
        if not self._exists[CONTAINERS]:
            raise InvariantError("sidecar index referenced before containers were established")
        return 1 if self._append_sidecar else 0

    def path(self, collection: str) -> str:
        self._check(collection)
        if collection == SIDECAR_VOLUME_MOUNTS:
            return f"/spec/containers/{self.sidecar_index}/volumeMounts"
        return f"/spec/{collection}"

    def emit(self, collection: str, value: Any) -> PatchOperation:
        """Return the create or append operation for ``value`` and record it."""

        path = self.path(collection)
        if self.exists(collection):
            return PatchOperation("add", f"{path}/-", value)
        self.mark_created(collection)
        return PatchOperation("add", path, [value])

    def emit_all(self, collection: str, values: List[Any]) -> List[PatchOperation]:
        """Append each of ``values``, or create the collection holding all of them."""

        if not values:
            return []
        path = self.path(collection)
        if self.exists(collection):
            return [PatchOperation("add", f"{path}/-", value) for value in values]
        self.mark_created(collection)
        return [PatchOperation("add", path, list(values))]

    def snapshot(self) -> Dict[str, bool]:
        return dict(self._exists)

    @staticmethod
    def _check(collection: str) -> None:
        if collection not in _POD_COLLECTIONS and collection != SIDECAR_VOLUME_MOUNTS:
            raise InvariantError(f"unknown collection: {collection}")


__all__ = [
    "StructuralState",
    "INIT_CONTAINERS",
    "CONTAINERS",
    "VOLUMES",
    "IMAGE_PULL_SECRETS",
    "SIDECAR_VOLUME_MOUNTS",
]
