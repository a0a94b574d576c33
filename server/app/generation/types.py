# ─────────────────────────────────────────────────────────────────────────────
# Generation Types — request and outcome values for one upstream attempt
# ─────────────────────────────────────────────────────────────────────────────
# A GenerationRequest maps to exactly one upstream call per attempt.
# A GenerationOutcome is exactly one of four variants; the retry controller
# switches on the variant, never on exceptions.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    """Role tag of one instruction block."""

    system = "system"
    user = "user"
    assistant = "assistant"


@dataclass(frozen=True)
class Instruction:
    """One role-tagged text block."""

    role: Role
    text: str


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable instruction set plus sampling parameters.

    Raises ValueError on malformed construction. That is a programmer
    error, so it is never classified or retried.
    """

    instructions: tuple[Instruction, ...]
    temperature: float
    max_output_tokens: int
    label: str = "generation"

    def __post_init__(self) -> None:
        if not self.instructions:
            raise ValueError("GenerationRequest needs at least one instruction")
        if any(not block.text.strip() for block in self.instructions):
            raise ValueError(f"Empty instruction text in request '{self.label}'")
        if not any(block.role != Role.system for block in self.instructions):
            raise ValueError(f"Request '{self.label}' has no user turn")
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(f"temperature must be in [0, 1], got {self.temperature}")
        if self.max_output_tokens < 1:
            raise ValueError(f"max_output_tokens must be >= 1, got {self.max_output_tokens}")

    @classmethod
    def from_prompts(
        cls,
        system: str,
        user: str,
        *,
        temperature: float,
        max_output_tokens: int,
        label: str = "generation",
    ) -> GenerationRequest:
        """Build the common system + single user turn request."""
        return cls(
            instructions=(
                Instruction(Role.system, system),
                Instruction(Role.user, user),
            ),
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            label=label,
        )

    @property
    def system_text(self) -> str:
        return "\n\n".join(b.text for b in self.instructions if b.role == Role.system)

    @property
    def turns(self) -> list[Instruction]:
        return [b for b in self.instructions if b.role != Role.system]


# ── Outcomes ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Success:
    text: str

    def __post_init__(self) -> None:
        # Empty completions are classified as TransientError by the client
        if not self.text.strip():
            raise ValueError("Success requires non-empty text")


@dataclass(frozen=True)
class RateLimited:
    retry_after: float | None = None  # server hint in seconds, None when absent


@dataclass(frozen=True)
class TransientError:
    cause: str


@dataclass(frozen=True)
class FatalError:
    cause: str


GenerationOutcome = Success | RateLimited | TransientError | FatalError


def outcome_kind(outcome: GenerationOutcome) -> str:
    """snake_case variant name, used as a log field and metrics label."""
    return {
        Success: "success",
        RateLimited: "rate_limited",
        TransientError: "transient_error",
        FatalError: "fatal_error",
    }[type(outcome)]


def describe_failure(outcome: GenerationOutcome) -> str:
    """Human-readable reason for a non-success outcome (logs only)."""
    if isinstance(outcome, RateLimited):
        if outcome.retry_after is None:
            return "rate limited"
        return f"rate limited (retry after {outcome.retry_after:.1f}s)"
    if isinstance(outcome, TransientError | FatalError):
        return outcome.cause
    return "success"
