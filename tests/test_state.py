import unittest

from src.patch.guards import InvariantError
from src.patch.meta import InitMeta, Meta, PodSpec, SidecarMeta
from src.patch.state import (
    CONTAINERS,
    INIT_CONTAINERS,
    SIDECAR_VOLUME_MOUNTS,
    VOLUMES,
    StructuralState,
)


def _meta(**overrides) -> Meta:
    sidecar_kwargs = overrides.pop("sidecar", {})
    sidecar = SidecarMeta(
        name="envoy",
        image="envoy:latest",
        region="us-west-2",
        mesh_name="mesh",
        virtual_node_name="vn",
        **sidecar_kwargs,
    )
    return Meta(init=InitMeta(image="proxy-route-manager:v2"), sidecar=sidecar, **overrides)


class StructuralStateTests(unittest.TestCase):
    def test_volumes_exist_when_pod_has_volumes(self) -> None:
        state = StructuralState.from_meta(_meta(pod_spec=PodSpec(volumes=({"name": "data"},))))
        self.assertTrue(state.exists(VOLUMES))

    def test_automount_token_counts_as_existing_volume(self) -> None:
        state = StructuralState.from_meta(_meta(pod_spec=PodSpec(automount_service_account_token=True)))
        self.assertTrue(state.exists(VOLUMES))
        state = StructuralState.from_meta(_meta(pod_spec=PodSpec(automount_service_account_token=False)))
        self.assertFalse(state.exists(VOLUMES))

    def test_tracing_marks_sidecar_mounts_existing(self) -> None:
        state = StructuralState.from_meta(_meta(sidecar={"enable_jaeger_tracing": True}))
        self.assertTrue(state.exists(SIDECAR_VOLUME_MOUNTS))
        state = StructuralState.from_meta(_meta())
        self.assertFalse(state.exists(SIDECAR_VOLUME_MOUNTS))

    def test_emit_creates_once_then_appends(self) -> None:
        state = StructuralState.from_meta(_meta())
        first = state.emit(INIT_CONTAINERS, {"name": "a"})
        second = state.emit(INIT_CONTAINERS, {"name": "b"})
        self.assertEqual(first.path, "/spec/initContainers")
        self.assertEqual(first.value, [{"name": "a"}])
        self.assertEqual(second.path, "/spec/initContainers/-")
        self.assertEqual(second.value, {"name": "b"})

    def test_emit_all_creates_single_array(self) -> None:
        state = StructuralState.from_meta(_meta())
        ops = state.emit_all(CONTAINERS, [{"name": "envoy"}, {"name": "xray-daemon"}])
        self.assertEqual(len(ops), 1)
        self.assertEqual(ops[0].path, "/spec/containers")
        self.assertEqual([c["name"] for c in ops[0].value], ["envoy", "xray-daemon"])

    def test_emit_all_appends_each_when_present(self) -> None:
        state = StructuralState.from_meta(_meta(append_sidecar=True))
        ops = state.emit_all(CONTAINERS, [{"name": "envoy"}, {"name": "xray-daemon"}])
        self.assertEqual([op.path for op in ops], ["/spec/containers/-", "/spec/containers/-"])

    def test_mark_created_is_idempotent(self) -> None:
        state = StructuralState.from_meta(_meta())
        state.mark_created(VOLUMES)
        before = state.snapshot()
        state.mark_created(VOLUMES)
        self.assertEqual(before, state.snapshot())
        self.assertEqual(state.emit(VOLUMES, {"name": "x"}).path, "/spec/volumes/-")

    def test_sidecar_index_requires_containers(self) -> None:
        state = StructuralState.from_meta(_meta())
        with self.assertRaises(InvariantError):
            _ = state.sidecar_index
        state.mark_created(CONTAINERS)
        self.assertEqual(state.sidecar_index, 0)
        self.assertEqual(state.path(SIDECAR_VOLUME_MOUNTS), "/spec/containers/0/volumeMounts")

    def test_sidecar_index_follows_append_sidecar(self) -> None:
        state = StructuralState.from_meta(_meta(append_sidecar=True))
        self.assertEqual(state.sidecar_index, 1)

    def test_unknown_collection_rejected(self) -> None:
        state = StructuralState.from_meta(_meta())
        with self.assertRaises(InvariantError):
            state.exists("ephemeralContainers")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
