"""
Upstream OpenAI client for resume questions.

Sends the visitor's question with a fixed system context and reports the
completion text together with its token usage.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from ..core.knowledge import KnowledgeBase
from ..core.token_counter import TokenUsage


class UpstreamError(Exception):
    """Raised when the upstream model could not produce an answer.

    Covers missing credentials, transport failures, timeouts, API errors and
    malformed responses alike; callers treat them all as "use the fallback".
    """


@dataclass(frozen=True)
class UpstreamReply:
    """Completion text and the tokens it cost."""
    text: str
    usage: TokenUsage


def build_system_prompt(knowledge: KnowledgeBase) -> str:
    """Render the fixed system context for the upstream model."""
    return (
        f"You are a friendly assistant on {knowledge.owner}'s portfolio website. "
        f"Answer visitors' questions about {knowledge.owner}'s professional background "
        f"using only the facts below.\n\n"
        f"{knowledge.as_context()}\n\n"
        f"Rules:\n"
        f"1. Never invent employers, dates, projects, skills or contact details that "
        f"are not listed above. If the answer is not in these facts, say so and suggest "
        f"contacting {knowledge.owner} directly.\n"
        f"2. Only discuss {knowledge.owner}'s professional background.\n"
        f"3. Be concise and conversational."
    )


class ResumeAssistantClient:
    """OpenAI chat completion client bound to one knowledge base.

    Every failure surfaces as UpstreamError so the caller has exactly one
    thing to handle.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        max_tokens: int,
        system_prompt: str,
        timeout: float = 30.0,
        temperature: float = 0.7
    ):
        """Initialize the upstream client.

        Args:
            api_key: OpenAI API key; None leaves the client unconfigured
            model: OpenAI model name (required)
            max_tokens: Completion length bound (required)
            system_prompt: Fixed system context sent with every question
            timeout: Request timeout in seconds
            temperature: Sampling temperature

        Raises:
            ValueError: If model is missing or max_tokens is not positive
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")
        if max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")

        self.model = model
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.client = OpenAI(api_key=api_key, timeout=timeout) if api_key else None

    @property
    def configured(self) -> bool:
        return self.client is not None

    def build_messages(self, question: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": question},
        ]

    def complete(self, question: str) -> UpstreamReply:
        """Ask the upstream model one question.

        Args:
            question: The visitor's raw question

        Returns:
            Completion text and token usage

        Raises:
            UpstreamError: On any failure, with the cause chained
        """
        if self.client is None:
            raise UpstreamError("OPENAI_API_KEY is not configured")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(question),
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except OpenAIError as e:
            raise UpstreamError(f"OpenAI request failed: {e}") from e

        return UpstreamReply(
            text=self._extract_text(response),
            usage=self._extract_usage(response),
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise UpstreamError("OpenAI response missing completion choices") from e
        if not isinstance(content, str) or not content.strip():
            raise UpstreamError("OpenAI response has empty completion text")
        return content

    @staticmethod
    def _extract_usage(response: Any) -> TokenUsage:
        usage = getattr(response, "usage", None)
        if not usage:
            raise UpstreamError("OpenAI response missing usage information")
        try:
            return TokenUsage(
                prompt_tokens=int(usage.prompt_tokens or 0),
                completion_tokens=int(usage.completion_tokens or 0),
                reported_total=(
                    int(usage.total_tokens) if usage.total_tokens is not None else None
                ),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise UpstreamError("OpenAI response has malformed usage information") from e
