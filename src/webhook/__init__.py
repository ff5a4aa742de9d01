"""Admission webhook surface for the App Mesh sidecar injector."""

from .config import InjectorConfig
from .meta_builder import build_meta, should_inject

__all__ = ["InjectorConfig", "build_meta", "should_inject"]
