"""Generation service access — request/outcome types, HTTP client, retry policy."""

from app.generation.client import GenerationClient
from app.generation.protocol import GenerationBackend
from app.generation.retry import RetryController
from app.generation.types import (
    FatalError,
    GenerationOutcome,
    GenerationRequest,
    Instruction,
    RateLimited,
    Role,
    Success,
    TransientError,
)

__all__ = [
    "FatalError",
    "GenerationBackend",
    "GenerationClient",
    "GenerationOutcome",
    "GenerationRequest",
    "Instruction",
    "RateLimited",
    "RetryController",
    "Role",
    "Success",
    "TransientError",
]
