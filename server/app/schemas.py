# ─────────────────────────────────────────────────────────────────────────────
# Pydantic v2 Request / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────
# Blank address/description pass schema validation; the
# orchestrator rejects them with a 400 ListingValidationError.
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.pipeline.listing import ListingFacts, PipelineOutcome, Tone


class RewriteRequest(BaseModel):
    """Incoming listing to rewrite in three tones."""

    address: str = Field("", max_length=300, description="Street address")
    unit: str | None = Field(None, max_length=50, description="Optional unit number")
    price: str | None = Field(None, max_length=50)
    beds: str | None = Field(None, max_length=20)
    baths: str | None = Field(None, max_length=20)
    sqft: str | None = Field(None, max_length=20)
    description: str = Field("", max_length=10_000, description="Original listing description")
    email: str | None = Field(None, max_length=320, description="Where to email the results")
    opt_in_tips: bool = Field(False, alias="optInTips")

    model_config = {"populate_by_name": True}

    @field_validator("price", "beds", "baths", "sqft", "unit", "email", mode="before")
    @classmethod
    def coerce_optional_text(cls, v: Any) -> str | None:
        # Form clients send numbers for beds/sqft and "" for untouched fields.
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    def to_facts(self) -> ListingFacts:
        return ListingFacts(
            address=ListingFacts.full_address(self.address, self.unit),
            description=self.description.strip(),
            price=self.price,
            beds=self.beds,
            baths=self.baths,
            sqft=self.sqft,
        )


class ListingVariations(BaseModel):
    """One description per tone."""

    professional: str
    fun: str
    balanced: str


class RewriteResponse(BaseModel):
    """Three tone variations plus bookkeeping."""

    success: bool = True
    message: str = "Processing complete! Check your email in the next 5 minutes."
    variations: ListingVariations
    char_counts: dict[str, int]
    description: str = Field(..., description="The balanced variation")
    character_count: int = Field(..., ge=0)
    address: str
    credits_remaining: int | None = None

    @classmethod
    def from_outcome(cls, outcome: PipelineOutcome) -> "RewriteResponse":
        balanced = outcome.text_for(Tone.balanced)
        return cls(
            variations=ListingVariations(
                professional=outcome.text_for(Tone.professional),
                fun=outcome.text_for(Tone.fun),
                balanced=balanced,
            ),
            char_counts=outcome.char_counts,
            description=balanced,
            character_count=len(balanced),
            address=outcome.address,
            credits_remaining=outcome.credits_remaining,
        )


class LivenessResponse(BaseModel):
    """Liveness probe — minimal, near-zero cost."""

    status: str = "ok"


class ReadinessResponse(BaseModel):
    """Readiness probe — can the instance serve traffic?"""

    status: str  # "ready" or "not_ready"
    generation_configured: bool
    notifications_configured: bool
    credit_backend: str


class PromptPreview(BaseModel):
    """Rendered system + user prompt for one upstream request."""

    label: str
    temperature: float
    max_output_tokens: int
    system: str
    user: str


class PromptPreviewResponse(BaseModel):
    """Every prompt a rewrite would send, without calling upstream."""

    enrichment: list[PromptPreview]
    variations: list[PromptPreview]
