# ─────────────────────────────────────────────────────────────────────────────
# Enrichment Prompts — short factual research requests, one per kind
# ─────────────────────────────────────────────────────────────────────────────

from app.generation.types import GenerationRequest
from app.pipeline.listing import EnrichmentKind, ListingFacts

RESEARCH_SYSTEM_PROMPT = (
    "You are a factual real estate researcher. Only provide verified, general "
    "information. Never invent specific details about properties."
)

NO_INFO_PHRASE = "No additional verified information available."

# ── Kind-specific questions ──────────────────────────────────────────────────
# Each asks for context a listing agent would want before writing copy.

_QUESTIONS: dict[EnrichmentKind, str] = {
    EnrichmentKind.property_facts: (
        "What verifiable selling points might this property have based on its "
        "architectural style, era of construction, layout, or likely energy "
        "efficiency features?"
    ),
    EnrichmentKind.neighborhood_info: (
        "What neighborhood amenities are near this address: schools, parks, "
        "transit, shopping, and dining?"
    ),
    EnrichmentKind.comparable_insights: (
        "What do comparable listings in this area typically emphasize, and what "
        "recent market patterns would a buyer here care about?"
    ),
}


def _known_facts(facts: ListingFacts) -> str:
    lines = [f"- Address: {facts.address}"]
    if facts.price:
        lines.append(f"- Price: {facts.price}")
    if facts.beds:
        lines.append(f"- Beds: {facts.beds}")
    if facts.baths:
        lines.append(f"- Baths: {facts.baths}")
    if facts.sqft:
        lines.append(f"- Sq Ft: {facts.sqft}")
    return "\n".join(lines)


def build_enrichment_prompt(kind: EnrichmentKind, facts: ListingFacts) -> str:
    """User prompt for one enrichment kind."""
    return (
        "I'm analyzing a property listing and need additional context that could "
        "make the listing more appealing.\n\n"
        f"Property Details:\n{_known_facts(facts)}\n\n"
        f"{_QUESTIONS[kind]}\n\n"
        "CRITICAL INSTRUCTION: Only suggest factual information that could "
        "reasonably be verified. DO NOT hallucinate or invent details. If you "
        f'don\'t have reliable information, say "{NO_INFO_PHRASE}"\n\n'
        "Keep your response concise (2-3 sentences max) and factual."
    )


def build_enrichment_request(
    kind: EnrichmentKind,
    facts: ListingFacts,
    *,
    temperature: float = 0.3,
    max_output_tokens: int = 200,
) -> GenerationRequest:
    return GenerationRequest.from_prompts(
        RESEARCH_SYSTEM_PROMPT,
        build_enrichment_prompt(kind, facts),
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        label=f"enrichment:{kind}",
    )
