# ─────────────────────────────────────────────────────────────────────────────
# Variation Prompts — tone personas, shared writing rules, few-shot anchors
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from dataclasses import dataclass

from app.generation.types import GenerationRequest
from app.pipeline.listing import EnrichmentKind, ListingContext, Tone

# Real human-written MLS descriptions. They anchor style and length; the
# rules forbid copying them.
FEW_SHOT_EXAMPLES = """\
EXAMPLE 1 (Chicago condo, 847 chars):
"Sun-drenched corner unit in the heart of Lincoln Park with skyline views from floor-to-ceiling windows. The open layout flows naturally from the chef's kitchen with quartz counters and stainless appliances to a generous living space perfect for entertaining. Primary suite includes a spa-like bath and custom closet system. Building amenities include 24-hour door staff, fitness center, and rooftop deck. Steps to the Diversey Brown Line, Lincoln Park Zoo, and some of the city's best dining along Halsted. Deeded parking included. One of the few units in this boutique building to hit the market this year."

EXAMPLE 2 (Suburban home, 912 chars):
"Original owner, meticulously maintained brick colonial on a quiet cul-de-sac in award-winning District 34. Hardwood floors throughout the main level lead to a remodeled kitchen with soft-close cabinetry, granite surfaces, and breakfast bar overlooking the family room. Four generous bedrooms upstairs include a primary with renovated en-suite. The finished basement adds flexible space for a home office, playroom, or gym. Mature landscaping surrounds the private backyard with bluestone patio, perfect for summer evenings. Walk to Avoca West Elementary. New roof 2022, HVAC 2021. Attached two-car garage with epoxy floors and built-in storage.\""""

WRITING_RULES = """\
RULES. Follow these exactly.

DO NOT:
- Use "Welcome to" or "Step into" openings
- Use "boasts," "features," or "offers" as main verbs
- Use "Whether you're..." constructions
- Use "Don't miss" or "Act now" cliches
- Use em dashes, exclamation points, or colon lists
- Use ** bold markers or bullet points
- Use "stunning," "amazing," "charming," "cozy," "unique," or "motivated seller"
- Sound like AI wrote it
- Invent or assume any facts not present in the PROPERTY DATA, ORIGINAL DESCRIPTION, or RESEARCH NOTES
- Copy sentences from the examples

DO:
- Lead with the most specific, compelling detail (not generic praise)
- Convert features to lifestyle benefits
- Flow naturally from space to space
- Treat RESEARCH NOTES that say "No data available" as absent
- Output exactly 900-1000 characters, one paragraph, no line breaks"""


@dataclass(frozen=True)
class VariationSpec:
    """Static persona and style rules for one tone."""

    tone: Tone
    persona: str
    style_rules: str
    temperature: float

    def system_prompt(self) -> str:
        return f"{self.persona}\n\n{WRITING_RULES}\n\nTONE: {self.style_rules}\n\n{FEW_SHOT_EXAMPLES}"


VARIATION_SPECS: tuple[VariationSpec, ...] = (
    VariationSpec(
        tone=Tone.professional,
        persona=(
            "You are an MLS compliance editor at a top luxury brokerage. You write "
            "descriptions that read like polished investment briefs: precise specs, "
            "understated confidence, zero fluff. You never paint lifestyle scenes. "
            "You let the property's features speak for themselves through specific "
            "details and exact numbers."
        ),
        style_rules=(
            "Professional and understated. Emphasize investment value, quality of "
            "finishes, and location advantages. Use precise, elevated language. No "
            "storytelling, just confident, specific copy that appeals to discerning buyers."
        ),
        temperature=0.5,
    ),
    VariationSpec(
        tone=Tone.fun,
        persona=(
            "You are a lifestyle magazine writer for Dwell and Architectural Digest. "
            "You write descriptions that make readers feel one specific moment in the "
            "home, like morning light on the kitchen counter or the sound of the "
            "backyard on a summer evening. You use sensory details and warmth, never "
            "generic superlatives."
        ),
        style_rules=(
            "Warm, sensory, and inviting. Paint one vivid scene the buyer can picture "
            "themselves in. Use specific sensory details from the property data. Make "
            "readers feel what it's like to live here, not just what the house looks like."
        ),
        temperature=0.9,
    ),
    VariationSpec(
        tone=Tone.balanced,
        persona=(
            "You are a top-producing listing agent with 20 years of experience and over "
            "1,000 transactions. You write descriptions that lead with the single "
            "strongest selling point, weave in key specs naturally, and close with one "
            "moment of lifestyle appeal. You know what buyers actually care about and "
            "what makes them book a showing."
        ),
        style_rules=(
            "Confident and approachable. Lead with the strongest feature. Mix practical "
            "details with one lifestyle moment. Professional enough for MLS, warm enough "
            "to connect emotionally. The sweet spot that appeals to the broadest range of buyers."
        ),
        temperature=0.7,
    ),
)

_ENRICHMENT_LABELS: dict[EnrichmentKind, str] = {
    EnrichmentKind.property_facts: "Property",
    EnrichmentKind.neighborhood_info: "Neighborhood",
    EnrichmentKind.comparable_insights: "Comparable listings",
}


def get_variation_spec(tone: Tone) -> VariationSpec:
    for spec in VARIATION_SPECS:
        if spec.tone == tone:
            return spec
    raise KeyError(tone)


def build_user_message(context: ListingContext) -> str:
    """Listing facts + original text + research notes. Shared by all tones."""
    facts = context.facts
    notes = "\n".join(
        f"{label}: {context.enrichment(kind)}" for kind, label in _ENRICHMENT_LABELS.items()
    )
    return (
        "PROPERTY DATA:\n"
        f"Address: {facts.address}\n"
        f"Price: {facts.price or 'Contact for price'} | Beds: {facts.beds or 'N/A'} | "
        f"Baths: {facts.baths or 'N/A'} | Sq Ft: {facts.sqft or 'N/A'}\n\n"
        f"ORIGINAL DESCRIPTION:\n{facts.description}\n\n"
        f"RESEARCH NOTES:\n{notes}\n\n"
        "Rewrite this listing description following the rules in your instructions. "
        "Output only the description text, nothing else."
    )


def build_variation_request(
    spec: VariationSpec, context: ListingContext, *, max_output_tokens: int = 600
) -> GenerationRequest:
    return GenerationRequest.from_prompts(
        spec.system_prompt(),
        build_user_message(context),
        temperature=spec.temperature,
        max_output_tokens=max_output_tokens,
        label=f"variation:{spec.tone}",
    )


def build_length_correction_request(
    draft: str,
    tone: Tone,
    *,
    min_chars: int = 850,
    max_output_tokens: int = 600,
) -> GenerationRequest:
    """Copy-editor pass that expands a short draft or tightens a long one."""
    if len(draft) < min_chars:
        verb, target = "Expand", "at least 900"
    else:
        verb, target = "Tighten", "no more than 1000"
    system = (
        f"You are a copy editor. {verb} the following listing description to {target} "
        "characters. Keep the same tone and style. Do not add any facts not already "
        "present. Output only the revised description."
    )
    return GenerationRequest.from_prompts(
        system,
        draft,
        temperature=0.3,
        max_output_tokens=max_output_tokens,
        label=f"length_correction:{tone}",
    )
