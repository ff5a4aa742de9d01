import unittest

from src.patch.guards import RenderError
from src.patch.meta import SecretMount
from src.webhook.config import InjectorConfig
from src.webhook.meta_builder import build_meta, parse_secret_mounts, should_inject

CONFIG = InjectorConfig(mesh_name="global", region="us-west-2", ecr_secret=True)


def _pod(**spec):
    body = {"containers": [{"name": "web", "image": "nginx", "ports": [{"containerPort": 80}]}]}
    body.update(spec)
    return {
        "metadata": {"name": "web-7d9f", "namespace": "shop"},
        "spec": body,
    }


class MetaBuilderTests(unittest.TestCase):
    def test_flags_follow_observed_arrays(self) -> None:
        meta = build_meta(_pod(initContainers=[{"name": "migrate"}]), CONFIG)
        self.assertTrue(meta.append_init)
        self.assertTrue(meta.append_sidecar)
        self.assertFalse(meta.append_image_pull_secret)
        self.assertTrue(meta.has_image_pull_secret)
        self.assertTrue(meta.inject_fs_group)
        self.assertIsNone(meta.pod_metadata.annotations)

    def test_ports_default_to_container_ports(self) -> None:
        meta = build_meta(_pod(), CONFIG)
        self.assertEqual(meta.init.ports, "80")
        self.assertEqual(meta.init.egress_ignored_ports, "22")
        self.assertEqual(meta.sidecar.virtual_node_name, "web-7d9f-shop")

    def test_annotations_override_defaults(self) -> None:
        pod = _pod(securityContext={"fsGroup": 2000}, automountServiceAccountToken=False)
        pod["metadata"]["annotations"] = {
            "appmesh.k8s.aws/ports": "8080,9090",
            "appmesh.k8s.aws/virtualNode": "catalog",
            "appmesh.k8s.aws/cpuRequests": "50m",
            "appmesh.k8s.aws/secretMounts": "tls:/certs, ca:/etc/ca",
        }
        meta = build_meta(pod, CONFIG)
        self.assertEqual(meta.init.ports, "8080,9090")
        self.assertEqual(meta.sidecar.virtual_node_name, "catalog")
        self.assertEqual(meta.sidecar.cpu_request, "50m")
        self.assertEqual(
            meta.sidecar.secret_mounts, (SecretMount("tls", "/certs"), SecretMount("ca", "/etc/ca"))
        )
        self.assertFalse(meta.inject_fs_group)
        self.assertIs(meta.pod_spec.automount_service_account_token, False)

    def test_null_annotation_values_read_as_empty(self) -> None:
        pod = _pod()
        pod["metadata"]["annotations"] = {"appmesh.k8s.aws/virtualNode": None, "team": None}
        pod["metadata"]["labels"] = {"tier": None}
        meta = build_meta(pod, CONFIG)
        self.assertEqual(meta.pod_metadata.annotations, {"appmesh.k8s.aws/virtualNode": "", "team": ""})
        self.assertEqual(meta.pod_metadata.labels, {"tier": ""})
        self.assertEqual(meta.sidecar.virtual_node_name, "web-7d9f-shop")

    def test_parse_secret_mounts_rejects_malformed(self) -> None:
        with self.assertRaises(RenderError):
            parse_secret_mounts("tls")
        self.assertEqual(parse_secret_mounts(""), ())

    def test_should_inject(self) -> None:
        self.assertTrue(should_inject(_pod()))
        disabled = _pod()
        disabled["metadata"]["annotations"] = {"appmesh.k8s.aws/sidecarInjectorWebhook": "disabled"}
        self.assertFalse(should_inject(disabled))
        injected = _pod()
        injected["spec"]["containers"].append({"name": "envoy"})
        self.assertFalse(should_inject(injected))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
