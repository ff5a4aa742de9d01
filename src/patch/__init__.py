"""JSON patch construction for App Mesh sidecar injection.

The compiler lives in :mod:`src.patch.compiler`; it is not re-exported here
because it depends on :mod:`src.render`, which itself uses these types.
"""

from .annotations import annotation_patches, escape_json_pointer, unescape_json_pointer
from .guards import InvariantError, PatchError, RenderError
from .meta import InitMeta, Meta, PatchOperation, PodMetadata, PodSpec, SecretMount, SidecarMeta
from .state import StructuralState

__all__ = [
    "annotation_patches",
    "escape_json_pointer",
    "unescape_json_pointer",
    "InvariantError",
    "PatchError",
    "RenderError",
    "InitMeta",
    "Meta",
    "PatchOperation",
    "PodMetadata",
    "PodSpec",
    "SecretMount",
    "SidecarMeta",
    "StructuralState",
]
