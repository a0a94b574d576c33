# ─────────────────────────────────────────────────────────────────────────────
# Listing Values — per-request facts, enrichments, and tone results
# ─────────────────────────────────────────────────────────────────────────────
# Created fresh per request and discarded after the response. All frozen:
# concurrent fan-out branches only read them.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

ENRICHMENT_FALLBACK_TEXT = "No data available"


class EnrichmentKind(StrEnum):
    """Enrichment categories, in payload order."""

    property_facts = "property_facts"
    neighborhood_info = "neighborhood_info"
    comparable_insights = "comparable_insights"


class Tone(StrEnum):
    """Variation tones, in payload order."""

    professional = "professional"
    fun = "fun"
    balanced = "balanced"


@dataclass(frozen=True)
class ListingFacts:
    """What the caller told us about the property."""

    address: str
    description: str
    price: str | None = None
    beds: str | None = None
    baths: str | None = None
    sqft: str | None = None

    @staticmethod
    def full_address(address: str, unit: str | None) -> str:
        address = address.strip()
        if unit and unit.strip():
            return f"{address}, Unit {unit.strip()}"
        return address

    def missing_required(self) -> list[str]:
        missing = []
        if not self.address.strip():
            missing.append("address")
        if not self.description.strip():
            missing.append("description")
        return missing


@dataclass(frozen=True)
class EnrichmentResult:
    kind: EnrichmentKind
    text: str
    degraded: bool = False

    @classmethod
    def fallback(cls, kind: EnrichmentKind) -> EnrichmentResult:
        return cls(kind=kind, text=ENRICHMENT_FALLBACK_TEXT, degraded=True)


@dataclass(frozen=True)
class ListingContext:
    """Facts plus the three enrichments; read-only input to variation prompts."""

    facts: ListingFacts
    enrichments: tuple[EnrichmentResult, ...]

    def enrichment(self, kind: EnrichmentKind) -> str:
        """Enrichment text for ``kind``; the fallback sentence if absent."""
        for result in self.enrichments:
            if result.kind == kind:
                return result.text
        return ENRICHMENT_FALLBACK_TEXT


@dataclass(frozen=True)
class VariationResult:
    tone: Tone
    text: str

    @property
    def char_count(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class PipelineOutcome:
    """Assembled result of one successful rewrite. Never partial."""

    address: str
    variations: tuple[VariationResult, ...]
    credits_remaining: int | None = None

    def text_for(self, tone: Tone) -> str:
        for variation in self.variations:
            if variation.tone == tone:
                return variation.text
        raise KeyError(tone)

    @property
    def char_counts(self) -> dict[str, int]:
        return {v.tone.value: v.char_count for v in self.variations}
