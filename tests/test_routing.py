"""
Tests for the response routing policy.
"""

from datetime import datetime
from unittest.mock import Mock

import pytest

from resume_chat.config.loader import UsageLimits
from resume_chat.core.knowledge import DEFAULT_KNOWLEDGE_BASE
from resume_chat.core.routing import (
    ESCALATION_INVITATION,
    LIFETIME_LIMIT_MESSAGE,
    UPSTREAM_APOLOGY,
    USAGE_LIMIT_MESSAGE,
    AnswerPath,
    ResponseRouter,
    is_bare_negative,
    normalize,
    wants_elaboration,
)
from resume_chat.core.token_counter import TokenUsage
from resume_chat.core.usage import UsageGovernor
from resume_chat.sdk.openai_client import UpstreamError, UpstreamReply

KB = DEFAULT_KNOWLEDGE_BASE


def make_router(upstream_text="Mocked upstream answer.", **limit_overrides):
    limits = UsageLimits(**{
        "cost_per_1k_tokens": 0.002,
        **limit_overrides,
    })
    governor = UsageGovernor(limits, clock=lambda: datetime(2024, 5, 15, 12, 0))
    upstream = Mock()
    upstream.complete.return_value = UpstreamReply(
        text=upstream_text,
        usage=TokenUsage(prompt_tokens=100, completion_tokens=50, reported_total=150),
    )
    return ResponseRouter(governor, KB, upstream), governor, upstream


class TestIntentTables:
    """Test trigger phrase and negative acknowledgement detection."""

    @pytest.mark.parametrize("question", [
        "Can you elaborate on your skills?",
        "tell me more about his projects",
        "What specific frameworks?",
        "Explain the Lighthouse work in depth",
        "no",
        "That didn't help",
    ])
    def test_trigger_phrases_match(self, question):
        assert wants_elaboration(normalize(question))

    @pytest.mark.parametrize("question", [
        "Tell me about your experience",
        "What are your technical skills?",
        "What projects have you worked on?",
        "How can I contact you?",
        "Hello",
    ])
    def test_plain_questions_do_not_trigger(self, question):
        assert not wants_elaboration(normalize(question))

    def test_broad_substrings_match_inside_words(self):
        """The substrings ai and no count even inside email and know."""
        assert wants_elaboration(normalize("What is his email?"))
        assert wants_elaboration(normalize("I want to know his background"))

    @pytest.mark.parametrize("question", [
        "no", "No.", "  NO!  ", "nope", "That didn't help", "that didn’t help.", "Not helpful",
    ])
    def test_bare_negatives(self, question):
        assert is_bare_negative(normalize(question))

    @pytest.mark.parametrize("question", [
        "no, tell me about his React projects in depth",
        "Do you know Ruby?",
        "That didn't help, explain his accessibility work",
    ])
    def test_substantive_follow_ups_are_not_bare(self, question):
        assert not is_bare_negative(normalize(question))


class TestStaticPath:
    """Test questions answered without the upstream model."""

    def test_experience_question(self):
        router, governor, upstream = make_router()

        answer = router.route("Tell me about your experience")

        assert KB.answer_for("experience") in answer.text
        assert answer.text.endswith(ESCALATION_INVITATION)
        assert answer.path is AnswerPath.STATIC
        assert answer.note == "static knowledge base answer"
        upstream.complete.assert_not_called()
        assert governor.snapshot().daily_request_count == 0

    @pytest.mark.parametrize("question,category", [
        ("What are your technical skills?", "skills"),
        # "worked" hits the experience keyword "work" first
        ("What projects have you worked on?", "experience"),
        ("Tell me about your projects", "projects"),
        ("Show me your portfolio", "projects"),
        ("How can I contact you?", "contact"),
        ("Hello", "default"),
    ])
    def test_category_selection(self, question, category):
        router, _, _ = make_router()

        answer = router.route(question)

        assert answer.text.startswith(KB.answer_for(category))
        assert answer.path is AnswerPath.STATIC

    def test_category_priority(self):
        """Experience is tested before contact."""
        router, _, _ = make_router()

        answer = router.route("Your experience and contact")

        assert answer.text.startswith(KB.answer_for("experience"))


class TestUpstreamPath:
    """Test trigger-phrase questions that may reach the upstream model."""

    def test_upstream_success_returned_verbatim(self):
        router, governor, upstream = make_router(upstream_text="  Lance knows React well.\n")

        answer = router.route("Can you elaborate on your skills?")

        assert answer.text == "  Lance knows React well.\n"
        assert answer.path is AnswerPath.UPSTREAM
        upstream.complete.assert_called_once_with("Can you elaborate on your skills?")
        record = governor.snapshot()
        assert record.daily_request_count == 1
        assert record.lifetime_cost_estimate == pytest.approx(150 / 1000 * 0.002)

    def test_daily_limit_falls_back(self):
        router, governor, upstream = make_router(daily_request_limit=1)
        governor.record_usage(100)

        answer = router.route("Can you elaborate on your skills?")

        assert answer.text.startswith(USAGE_LIMIT_MESSAGE)
        assert KB.default_answer in answer.text
        assert answer.path is AnswerPath.USAGE_LIMIT
        assert "usage limit" in answer.note
        upstream.complete.assert_not_called()

    def test_lifetime_limit_falls_back(self):
        router, governor, upstream = make_router(
            cost_per_1k_tokens=1.0, monthly_cost_limit=1.0, lifetime_cost_limit=1.0
        )
        governor.record_usage(1000)

        answer = router.route("tell me more about his projects")

        assert answer.text.startswith(LIFETIME_LIMIT_MESSAGE)
        assert KB.default_answer in answer.text
        assert answer.path is AnswerPath.LIFETIME_LIMIT
        upstream.complete.assert_not_called()

    def test_limit_denial_checked_before_clarification(self):
        router, governor, _ = make_router(daily_request_limit=1)
        governor.record_usage(100)

        answer = router.route("no")

        assert answer.path is AnswerPath.USAGE_LIMIT

    @pytest.mark.parametrize("question", ["no", "That didn't help!"])
    def test_bare_negative_asks_for_clarification(self, question):
        router, governor, upstream = make_router()

        answer = router.route(question)

        assert answer.path is AnswerPath.CLARIFICATION
        assert answer.note == "asking for clarification"
        for topic in KB.topics():
            assert topic in answer.text
        upstream.complete.assert_not_called()
        record = governor.snapshot()
        assert record.daily_request_count == 0
        assert record.lifetime_cost_estimate == 0.0

    def test_negative_with_follow_up_goes_upstream(self):
        router, _, upstream = make_router()

        answer = router.route("No, tell me about his React projects in depth")

        assert answer.path is AnswerPath.UPSTREAM
        upstream.complete.assert_called_once()

    def test_email_question_attempts_upstream(self):
        """The ai inside email routes a contact question upstream."""
        router, _, upstream = make_router()

        answer = router.route("What is his email?")

        assert answer.path is AnswerPath.UPSTREAM
        upstream.complete.assert_called_once()

    def test_upstream_failure_falls_back_with_apology(self):
        router, governor, upstream = make_router(daily_request_limit=1)
        upstream.complete.side_effect = UpstreamError("timeout")

        answer = router.route("Can you elaborate on your skills?")

        assert answer.text.startswith(KB.default_answer)
        assert answer.text.endswith(UPSTREAM_APOLOGY)
        assert answer.path is AnswerPath.UPSTREAM_FAILED
        assert "fallback" in answer.note
        assert governor.snapshot().daily_request_count == 0
        # reservation released
        assert governor.can_make_upstream_request() is True

    def test_unexpected_error_propagates_and_releases(self):
        router, governor, upstream = make_router(daily_request_limit=1)
        upstream.complete.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError, match="bug"):
            router.route("Can you elaborate on your skills?")

        assert governor.can_make_upstream_request() is True

    def test_internal_error_fallback(self):
        router, _, _ = make_router()

        answer = router.fallback(AnswerPath.INTERNAL_ERROR)

        assert answer.text.startswith(KB.default_answer)
        assert answer.note == "fallback: internal error"
