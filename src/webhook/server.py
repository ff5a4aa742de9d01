from __future__ import annotations

import base64
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Response, status
from pydantic import BaseModel, Field

from src.patch.compiler import compile_patch
from src.patch.guards import PatchError

from .config import InjectorConfig
from .meta_builder import build_meta, should_inject

logger = logging.getLogger(__name__)


class AdmissionRequest(BaseModel):
    uid: str = Field(..., description="Request identifier echoed back in the response")
    object: Dict[str, Any] = Field(..., description="Pod submitted for admission")
    namespace: Optional[str] = Field(default=None)
    operation: Optional[str] = Field(default=None)


class AdmissionReview(BaseModel):
    apiVersion: str = Field(default="admission.k8s.io/v1")
    kind: str = Field(default="AdmissionReview")
    request: Optional[AdmissionRequest] = None


def create_app() -> FastAPI:
    app = FastAPI(
        title="App Mesh Sidecar Injector",
        description="Mutating admission webhook injecting the App Mesh Envoy proxy into pods.",
        version="0.1.0",
    )

    @app.post("/mutate")
    def mutate(
        review: AdmissionReview,
        config: InjectorConfig = Depends(get_config),
    ) -> Dict[str, Any]:
        if review.request is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="AdmissionReview is missing request",
            )
        request = review.request
        pod = dict(request.object)
        if request.namespace and not (pod.get("metadata") or {}).get("namespace"):
            pod["metadata"] = dict(pod.get("metadata") or {}, namespace=request.namespace)

        response: Dict[str, Any] = {"uid": request.uid, "allowed": True}
        if not should_inject(pod):
            logger.info("skipping injection for request %s", request.uid)
        else:
            try:
                patch = compile_patch(build_meta(pod, config))
            except PatchError as exc:
                logger.error("patch compilation failed for request %s: %s", request.uid, exc)
                response = {"uid": request.uid, "allowed": False, "status": {"message": str(exc)}}
            else:
                logger.info("injecting sidecar for request %s", request.uid)
                logger.debug("patch for request %s: %s", request.uid, patch.decode("utf-8"))
                response["patchType"] = "JSONPatch"
                response["patch"] = base64.b64encode(patch).decode("ascii")

        return {"apiVersion": review.apiVersion, "kind": review.kind, "response": response}

    @app.get("/healthz")
    def healthz() -> Response:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


@lru_cache()
def get_config() -> InjectorConfig:
    return InjectorConfig.from_env().validate()


app = create_app()


__all__ = ["app", "create_app", "get_config", "AdmissionReview", "AdmissionRequest"]
