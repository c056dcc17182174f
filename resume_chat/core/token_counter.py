"""
Token counting for upstream completions.

Carries the token counts reported by the upstream API.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TokenUsage:
    """Token usage reported for a single completion.

    Contains exact token counts without estimation or model-specific logic.
    """
    prompt_tokens: int
    completion_tokens: int
    reported_total: Optional[int] = None

    @property
    def total_tokens(self) -> int:
        """Total tokens billed, preferring the upstream's own total."""
        if self.reported_total is not None:
            return self.reported_total
        return self.prompt_tokens + self.completion_tokens
