# ─────────────────────────────────────────────────────────────────────────────
# POST /listing-rewrite — three tone variations of one listing (THIN)
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter, Depends, Request

from app.dependencies import get_pipeline_orchestrator, get_user_id
from app.rate_limit import limiter, rewrite_rate_limit
from app.schemas import RewriteRequest, RewriteResponse
from app.services.pipeline import PipelineOrchestrator

router = APIRouter()


@router.post("/listing-rewrite", response_model=RewriteResponse)
@limiter.limit(rewrite_rate_limit)
async def listing_rewrite(
    request: Request,
    body: RewriteRequest,
    orchestrator: PipelineOrchestrator = Depends(get_pipeline_orchestrator),
    user_id: str | None = Depends(get_user_id),
) -> RewriteResponse:
    """Rewrite a listing description in professional, fun, and balanced tones.

    Validation failures are 400, an exhausted credit balance is 402, and a
    failed variation is 502. Notifications run after the response.
    This endpoint is just wiring.
    """
    outcome = await orchestrator.run(body, user_id=user_id)
    return RewriteResponse.from_outcome(outcome)
