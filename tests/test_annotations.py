import unittest

from src.patch.annotations import annotation_patches, escape_json_pointer, unescape_json_pointer


class AnnotationMergerTests(unittest.TestCase):
    def test_escape_order(self) -> None:
        key = "appmesh.k8s.aws/odd~key"
        escaped = escape_json_pointer(key)
        self.assertEqual(escaped, "appmesh.k8s.aws~1odd~0key")
        self.assertEqual(unescape_json_pointer(escaped), key)

    def test_escape_tilde_followed_by_one(self) -> None:
        # "~1" in a key must not decode back to "/".
        key = "a~1/b"
        escaped = escape_json_pointer(key)
        self.assertEqual(escaped, "a~01~1b")
        self.assertEqual(unescape_json_pointer(escaped), key)

    def test_absent_map_created_with_first_key_only(self) -> None:
        ops = annotation_patches(None, {"b/key": "2", "a/key": "1", "c": "3"})
        self.assertEqual(ops[0].op, "add")
        self.assertEqual(ops[0].path, "/metadata/annotations")
        self.assertEqual(ops[0].value, {"a/key": "1"})
        self.assertEqual(
            [(op.op, op.path, op.value) for op in ops[1:]],
            [
                ("add", "/metadata/annotations/b~1key", "2"),
                ("add", "/metadata/annotations/c", "3"),
            ],
        )

    def test_existing_key_replaced(self) -> None:
        ops = annotation_patches({"a": "old", "b": ""}, {"a": "new", "b": "x", "c": "y"})
        self.assertEqual([op.op for op in ops], ["replace", "add", "add"])
        self.assertTrue(all(op.path.startswith("/metadata/annotations/") for op in ops))

    def test_empty_existing_map_is_not_recreated(self) -> None:
        ops = annotation_patches({}, {"a": "1"})
        self.assertEqual(ops[0].path, "/metadata/annotations/a")
        self.assertEqual(ops[0].op, "add")

    def test_caller_map_not_mutated(self) -> None:
        existing = {"a": "1"}
        annotation_patches(existing, {"b": "2"})
        self.assertEqual(existing, {"a": "1"})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
