"""
Response routing between the static knowledge base and the upstream model.

Routing Order:
1. No trigger phrase - canned category answer with an invitation to dig deeper
2. Governor denial - canned answer prefixed with the limit explanation
3. Bare negative acknowledgement - clarification prompt, no upstream call
4. Upstream call - verbatim completion, or canned answer with an apology

Trigger phrases are plain substrings. Broad entries such as "ai" and "no"
also match inside unrelated words, which sends many ordinary questions down
the upstream path.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from .knowledge import KnowledgeBase
from .usage import UsageDecision, UsageGovernor
from ..sdk.openai_client import ResumeAssistantClient, UpstreamError

logger = logging.getLogger(__name__)


TRIGGER_PHRASES = (
    "more detail", "in detail", "detailed", "elaborate", "tell me more",
    "more about", "more info", "specific", "in depth", "in-depth", "deeper",
    "dig into", "dive into", "deep dive", "expand on", "explain",
    "walk me through", "break down", "breakdown", "for example", "examples",
    "such as", "go on", "keep going", "continue", "what else",
    "anything else", "full picture", "thorough", "comprehensive", "clarify",
    "what do you mean", "is that all", "that's all", "ai", "gpt",
    # negative acknowledgements
    "no", "nah", "didn't help", "did not help", "doesn't help",
    "does not help", "not helpful", "unhelpful", "not what i", "wrong",
)

NEGATIVE_ACKNOWLEDGEMENTS = frozenset({
    "no", "nope", "nah", "no thanks", "not really", "wrong",
    "that didn't help", "that did not help", "didn't help", "did not help",
    "that doesn't help", "that does not help", "not helpful",
    "that's not helpful", "that wasn't helpful", "unhelpful",
    "not what i asked", "not what i meant", "that's not what i asked",
})

ESCALATION_INVITATION = (
    "Want more detail? Ask me to elaborate or tell you more about any of these points."
)
LIFETIME_LIMIT_MESSAGE = (
    "I've reached my limit for detailed AI answers, so I can only share the "
    "essentials from now on."
)
USAGE_LIMIT_MESSAGE = (
    "I'm currently at my usage limit for detailed AI answers. Please try again "
    "later; in the meantime, here is what I can tell you."
)
UPSTREAM_APOLOGY = (
    "Sorry, I couldn't reach my AI assistant just now, so that's the short version."
)

_TRAILING_PUNCTUATION = re.compile(r"[\s.!?,;:]+$")


class AnswerPath(Enum):
    """Which path produced an answer, with its human-readable note."""
    STATIC = "static knowledge base answer"
    LIFETIME_LIMIT = "fallback: lifetime usage limit reached"
    USAGE_LIMIT = "fallback: usage limit reached"
    CLARIFICATION = "asking for clarification"
    UPSTREAM = "upstream AI response"
    UPSTREAM_FAILED = "fallback: upstream request failed"
    INTERNAL_ERROR = "fallback: internal error"

    @property
    def note(self) -> str:
        return self.value


@dataclass(frozen=True)
class RoutedAnswer:
    """Final answer text and the path that produced it."""
    text: str
    path: AnswerPath

    @property
    def note(self) -> str:
        return self.path.note


def normalize(question: str) -> str:
    """Case-fold and trim a question, unifying typographic apostrophes."""
    return question.casefold().replace("’", "'").strip()


def wants_elaboration(normalized_question: str) -> bool:
    """True when any trigger phrase occurs anywhere in the question."""
    return any(phrase in normalized_question for phrase in TRIGGER_PHRASES)


def is_bare_negative(normalized_question: str) -> bool:
    """True when the whole question is just a negative acknowledgement."""
    stripped = _TRAILING_PUNCTUATION.sub("", normalized_question)
    return stripped in NEGATIVE_ACKNOWLEDGEMENTS


class ResponseRouter:
    """Chooses an answer source for each inbound question."""

    def __init__(
        self,
        governor: UsageGovernor,
        knowledge: KnowledgeBase,
        upstream: ResumeAssistantClient
    ):
        self.governor = governor
        self.knowledge = knowledge
        self.upstream = upstream

    def route(self, question: str) -> RoutedAnswer:
        """Answer one question.

        Args:
            question: Validated, non-empty visitor question

        Returns:
            The answer text and the path that produced it
        """
        normalized = normalize(question)

        if not wants_elaboration(normalized):
            answer = self.knowledge.select_answer(normalized)
            return RoutedAnswer(f"{answer}\n\n{ESCALATION_INVITATION}", AnswerPath.STATIC)

        decision = self.governor.evaluate()
        if decision is not UsageDecision.ALLOWED:
            return self._denied(decision)

        if is_bare_negative(normalized):
            return RoutedAnswer(self.clarification_prompt(), AnswerPath.CLARIFICATION)

        return self._ask_upstream(question)

    def fallback(self, path: AnswerPath) -> RoutedAnswer:
        """Build the default canned answer annotated for a fallback path."""
        default = self.knowledge.default_answer
        if path is AnswerPath.LIFETIME_LIMIT:
            return RoutedAnswer(f"{LIFETIME_LIMIT_MESSAGE}\n\n{default}", path)
        if path is AnswerPath.USAGE_LIMIT:
            return RoutedAnswer(f"{USAGE_LIMIT_MESSAGE}\n\n{default}", path)
        return RoutedAnswer(f"{default}\n\n{UPSTREAM_APOLOGY}", path)

    def clarification_prompt(self) -> str:
        owner = self.knowledge.owner
        examples = "\n".join(f"- {owner}'s {topic}" for topic in self.knowledge.topics())
        return (
            "Sorry that wasn't what you were looking for! Could you tell me more "
            "specifically what you'd like to know? For example:\n\n"
            f"{examples}"
        )

    def _denied(self, decision: UsageDecision) -> RoutedAnswer:
        if decision is UsageDecision.LIFETIME_LIMIT:
            return self.fallback(AnswerPath.LIFETIME_LIMIT)
        logger.info("Upstream call denied: %s", decision.name)
        return self.fallback(AnswerPath.USAGE_LIMIT)

    def _ask_upstream(self, question: str) -> RoutedAnswer:
        # Re-checked under the governor's lock; another request may have
        # taken the last slot since evaluate().
        decision = self.governor.reserve()
        if decision is not UsageDecision.ALLOWED:
            return self._denied(decision)

        try:
            reply = self.upstream.complete(question)
        except UpstreamError as e:
            self.governor.release()
            logger.warning("Upstream call failed, using fallback: %s", e)
            return self.fallback(AnswerPath.UPSTREAM_FAILED)
        except Exception:
            self.governor.release()
            raise

        self.governor.record_usage(reply.usage.total_tokens)
        return RoutedAnswer(reply.text, AnswerPath.UPSTREAM)
