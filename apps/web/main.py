"""FastAPI web application for BumpGate."""

from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from core.config import parse_allowed_update_types
from core.diff import diff_manifests
from core.errors import BumpGateError
from core.models import ChangedFile, Result
from core.policy import evaluate
from core.scope import validate_scope

app = FastAPI(
    title="BumpGate",
    description="Check whether a dependency bump may be merged unattended",
    version="0.1.0",
)


class ChangedFileModel(BaseModel):
    """A file touched by the pull request's head commit."""
    name: str
    status: str = "modified"


class EvaluateRequest(BaseModel):
    """Request model for a dry-run evaluation."""
    base: dict[str, Any]
    head: dict[str, Any]
    allowed_update_types: str = ""
    package_block_list: list[str] = []
    changed_files: Optional[list[ChangedFileModel]] = None


class EvaluateResponse(BaseModel):
    """Response model for a dry-run evaluation."""
    allowed: bool
    result: str
    exit_code: int
    diff: Optional[dict[str, dict[str, Any]]] = None


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/api/evaluate", response_model=EvaluateResponse)
async def evaluate_change(request: EvaluateRequest):
    """Evaluate a manifest change against the given policy."""
    try:
        policy = parse_allowed_update_types(request.allowed_update_types)
    except BumpGateError as e:
        raise HTTPException(status_code=400, detail=e.message)

    if request.changed_files is not None:
        files = [ChangedFile(name=f.name, status=f.status) for f in request.changed_files]
        if not validate_scope(files):
            return _response(Result.FILE_NOT_ALLOWED)

    try:
        diff = diff_manifests(request.base, request.head)
        verdict = evaluate(
            diff, request.base, request.head, policy, request.package_block_list
        )
    except BumpGateError as e:
        raise HTTPException(status_code=400, detail=e.message)

    return _response(
        verdict.reason,
        diff={"added": diff.added, "removed": diff.removed, "updated": diff.updated},
    )


def _response(result: Result, diff: Optional[dict] = None) -> EvaluateResponse:
    return EvaluateResponse(
        allowed=result is Result.SUCCESS,
        result=result.name,
        exit_code=result.value,
        diff=diff,
    )
