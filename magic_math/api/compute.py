"""Magic math endpoints: usage info, benchmark, batch and single computation."""

import re
from typing import Any

from fastapi import APIRouter, Depends, Request

from magic_math.algorithms import LARGE_INPUT_THRESHOLD
from magic_math.api.deps import get_compute_service
from magic_math.core.exceptions import BatchTooLargeError, InvalidPathError
from magic_math.models import BatchRequest
from magic_math.services.benchmark_service import benchmark_summary
from magic_math.services.compute_service import ComputeService

router = APIRouter(tags=["compute"])

_NUMBER_PATH = re.compile(r"^-?\d+$")


@router.get("/")
async def usage(request: Request) -> dict[str, Any]:
    """Describe how to call the API."""
    service = getattr(request.app.state, "compute_service", None)
    threshold = service.engine.threshold if service else LARGE_INPUT_THRESHOLD
    return {
        "message": "Magic Math API",
        "usage": "GET /:number - Calculate magic math for a given number",
        "batch": "POST /batch {\"inputs\": [...]} - Calculate several numbers at once",
        "example": "curl http://127.0.0.1:5000/5",
        "note": (
            f"For large numbers (n >= {threshold}), an iterative algorithm is used "
            "to avoid stack overflow"
        ),
    }


@router.get("/benchmark")
def benchmark() -> dict[str, Any]:
    """Time both strategies on a few input sizes.

    Declared sync so the timing loop runs in the threadpool.
    """
    return benchmark_summary()


@router.post("/batch")
async def compute_batch(
    payload: BatchRequest,
    request: Request,
    service: ComputeService = Depends(get_compute_service),
) -> dict[str, Any]:
    """Compute several inputs; invalid items get a per-position error."""
    max_items = request.app.state.settings.max_batch_size
    if len(payload.inputs) > max_items:
        raise BatchTooLargeError(max_items)

    results = await service.compute_batch(payload.inputs)
    return {"results": [item.model_dump(mode="json") for item in results]}


@router.get("/{value}")
async def compute_single(
    value: str,
    service: ComputeService = Depends(get_compute_service),
) -> dict[str, Any]:
    """Compute magic math for the number in the path.

    Negative numbers match the path but fail validation with 400.
    """
    if not _NUMBER_PATH.match(value):
        raise InvalidPathError()
    result = await service.compute_with_cache(int(value))
    return result.model_dump(mode="json")
