# ─────────────────────────────────────────────────────────────────────────────
# Schema Factory Tests — polyfactory
# ─────────────────────────────────────────────────────────────────────────────
# polyfactory builds valid Pydantic instances from the field constraints;
# dirty-equals keeps the shape assertions declarative.
# ─────────────────────────────────────────────────────────────────────────────

from dirty_equals import IsInstance, IsNonNegative, IsStr
from polyfactory.factories.pydantic_factory import ModelFactory

from app.pipeline.listing import PipelineOutcome, Tone, VariationResult
from app.schemas import ReadinessResponse, RewriteRequest, RewriteResponse

# ─── Factories ───────────────────────────────────────────────────────────────


class RewriteRequestFactory(ModelFactory):
    __model__ = RewriteRequest


class RewriteResponseFactory(ModelFactory):
    __model__ = RewriteResponse


class ReadinessFactory(ModelFactory):
    __model__ = ReadinessResponse


# ─── Tests ───────────────────────────────────────────────────────────────────


class TestRewriteRequestFactory:
    def test_batch_respects_length_limits(self):
        for request in RewriteRequestFactory.batch(50):
            assert len(request.address) <= 300
            assert len(request.description) <= 10_000

    def test_to_facts_always_builds(self):
        for request in RewriteRequestFactory.batch(30):
            facts = request.to_facts()
            assert facts.description == request.description.strip()

    def test_overrides(self):
        request = RewriteRequestFactory.build(address="9 Pine Rd", unit=" 12 ", description="Cabin.")
        assert request.unit == "12"
        assert request.to_facts().address == "9 Pine Rd, Unit 12"

    def test_blank_optionals_become_none(self):
        request = RewriteRequest(address="1 Elm", description="x", price="", beds=3, email="  ")
        assert request.price is None
        assert request.beds == "3"
        assert request.email is None


class TestRewriteResponseFactory:
    def test_response_shape_with_dirty_equals(self):
        data = RewriteResponseFactory.build().model_dump()
        assert data == {
            "success": IsInstance(bool),
            "message": IsStr,
            "variations": {"professional": IsStr, "fun": IsStr, "balanced": IsStr},
            "char_counts": IsInstance(dict),
            "description": IsStr,
            "character_count": IsNonNegative,
            "address": IsStr,
            "credits_remaining": IsInstance((int, type(None))),
        }

    def test_from_outcome(self):
        outcome = PipelineOutcome(
            address="1 Elm St",
            variations=(
                VariationResult(Tone.professional, "Pro."),
                VariationResult(Tone.fun, "Fun!"),
                VariationResult(Tone.balanced, "Balanced copy."),
            ),
            credits_remaining=4,
        )
        response = RewriteResponse.from_outcome(outcome)
        assert response.description == "Balanced copy."
        assert response.character_count == 14
        assert response.char_counts == {"professional": 4, "fun": 4, "balanced": 14}
        assert response.credits_remaining == 4


class TestReadinessFactory:
    def test_batch(self):
        for readiness in ReadinessFactory.batch(10):
            assert readiness.model_dump() == {
                "status": IsStr,
                "generation_configured": IsInstance(bool),
                "notifications_configured": IsInstance(bool),
                "credit_backend": IsStr,
            }
