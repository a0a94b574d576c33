# ─────────────────────────────────────────────────────────────────────────────
# Debug Routes — prompt previews and effective configuration
# ─────────────────────────────────────────────────────────────────────────────
# Only mounted when settings.enable_debug_routes is True.
# Nothing here calls the generation service.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any

from fastapi import APIRouter, Depends

from app.config import Settings
from app.dependencies import get_settings_dep
from app.exceptions import ListingValidationError
from app.generation.types import GenerationRequest
from app.pipeline.enrichment_prompts import build_enrichment_request
from app.pipeline.listing import EnrichmentKind, ListingContext, Tone
from app.pipeline.variation_prompts import build_variation_request, get_variation_spec
from app.schemas import PromptPreview, PromptPreviewResponse, RewriteRequest

router = APIRouter()

# Settings that must never be echoed back, even masked.
_SECRET_FIELDS = frozenset({"generation_api_key", "api_key"})


def _preview(request: GenerationRequest) -> PromptPreview:
    return PromptPreview(
        label=request.label,
        temperature=request.temperature,
        max_output_tokens=request.max_output_tokens,
        system=request.system_text,
        user="\n\n".join(turn.text for turn in request.turns),
    )


@router.post("/prompts", response_model=PromptPreviewResponse)
async def preview_prompts(
    body: RewriteRequest,
    settings: Settings = Depends(get_settings_dep),
) -> PromptPreviewResponse:
    """Render every prompt a rewrite would send.

    Variation prompts are rendered with every enrichment at its
    placeholder text, since no research call is made.
    """
    facts = body.to_facts()
    missing = facts.missing_required()
    if missing:
        raise ListingValidationError(missing)

    enrichment = [
        _preview(
            build_enrichment_request(
                kind,
                facts,
                temperature=settings.enrichment_temperature,
                max_output_tokens=settings.enrichment_max_tokens,
            )
        )
        for kind in EnrichmentKind
    ]
    context = ListingContext(facts=facts, enrichments=())
    variations = [
        _preview(
            build_variation_request(
                get_variation_spec(tone),
                context,
                max_output_tokens=settings.variation_max_tokens,
            )
        )
        for tone in Tone
    ]
    return PromptPreviewResponse(enrichment=enrichment, variations=variations)


@router.get("/config")
async def effective_config(settings: Settings = Depends(get_settings_dep)) -> dict[str, Any]:
    """Effective non-secret settings, plus whether each secret is set."""
    data = settings.model_dump(exclude=set(_SECRET_FIELDS))
    data["generation_api_key_set"] = bool(settings.generation_api_key.get_secret_value())
    data["api_key_set"] = bool(settings.api_key.get_secret_value())
    return data
