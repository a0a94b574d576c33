# ─────────────────────────────────────────────────────────────────────────────
# Generation Protocols — runtime_checkable interfaces for backends
# ─────────────────────────────────────────────────────────────────────────────
# The retry controller wraps any GenerationBackend: the HTTP client in
# production, scripted stubs in tests.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Protocol, runtime_checkable

from app.generation.types import GenerationOutcome, GenerationRequest


@runtime_checkable
class GenerationBackend(Protocol):
    """Issues one generation attempt and classifies the result."""

    async def generate(self, request: GenerationRequest) -> GenerationOutcome: ...
