"""
Unit tests for SDK layer.

Tests upstream client behavior and failure normalization.
"""

from unittest.mock import Mock, patch

import pytest
from openai import OpenAIError

from resume_chat.core.knowledge import DEFAULT_KNOWLEDGE_BASE
from resume_chat.core.token_counter import TokenUsage
from resume_chat.sdk.openai_client import (
    ResumeAssistantClient,
    UpstreamError,
    build_system_prompt,
)


def make_response(text="Lance has 3+ years of Rails.", prompt=100, completion=50, total=150):
    response = Mock()
    response.choices = [Mock(message=Mock(content=text))]
    response.usage.prompt_tokens = prompt
    response.usage.completion_tokens = completion
    response.usage.total_tokens = total
    return response


class TestTokenUsage:
    """Test token totals."""

    def test_reported_total_preferred(self):
        assert TokenUsage(prompt_tokens=10, completion_tokens=5, reported_total=20).total_tokens == 20

    def test_total_falls_back_to_sum(self):
        assert TokenUsage(prompt_tokens=10, completion_tokens=5).total_tokens == 15


class TestSystemPrompt:
    """Test the fixed upstream context."""

    def test_contains_facts_and_rules(self):
        prompt = build_system_prompt(DEFAULT_KNOWLEDGE_BASE)

        assert "Lance Hebert" in prompt
        assert DEFAULT_KNOWLEDGE_BASE.answer_for("skills") in prompt
        assert "Never invent" in prompt


class TestResumeAssistantClient:
    """Test ResumeAssistantClient wrapper."""

    def make_client(self, api_key="sk-test", **kwargs):
        return ResumeAssistantClient(
            api_key=api_key,
            model=kwargs.pop("model", "gpt-3.5-turbo"),
            max_tokens=kwargs.pop("max_tokens", 500),
            system_prompt="You answer resume questions.",
            **kwargs
        )

    @patch('resume_chat.sdk.openai_client.OpenAI')
    def test_init_success(self, mock_openai_class):
        """Test successful initialization."""
        mock_openai_class.return_value = Mock()

        client = self.make_client(timeout=12.0)

        assert client.configured is True
        assert client.model == "gpt-3.5-turbo"
        mock_openai_class.assert_called_once_with(api_key="sk-test", timeout=12.0)

    @patch('resume_chat.sdk.openai_client.OpenAI')
    def test_missing_key_is_unconfigured(self, mock_openai_class):
        """Without a key no client is built and every call fails."""
        client = self.make_client(api_key=None)

        assert client.configured is False
        mock_openai_class.assert_not_called()
        with pytest.raises(UpstreamError, match="OPENAI_API_KEY"):
            client.complete("Tell me more")

    def test_init_missing_model(self):
        with pytest.raises(ValueError, match="model is required"):
            self.make_client(model="")

    def test_init_invalid_max_tokens(self):
        with pytest.raises(ValueError, match="max_tokens"):
            self.make_client(max_tokens=0)

    @patch('resume_chat.sdk.openai_client.OpenAI')
    def test_complete_success(self, mock_openai_class):
        """Test request shape and reply extraction."""
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = make_response(
            text="Lance led WCAG audits.\n"
        )
        mock_openai_class.return_value = mock_client

        client = self.make_client()
        reply = client.complete("Can you elaborate on accessibility?")

        mock_client.chat.completions.create.assert_called_once_with(
            model="gpt-3.5-turbo",
            messages=[
                {"role": "system", "content": "You answer resume questions."},
                {"role": "user", "content": "Can you elaborate on accessibility?"},
            ],
            max_tokens=500,
            temperature=0.7,
        )
        assert reply.text == "Lance led WCAG audits.\n"
        assert reply.usage.total_tokens == 150

    @patch('resume_chat.sdk.openai_client.OpenAI')
    def test_api_error_becomes_upstream_error(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = OpenAIError("rate limited")
        mock_openai_class.return_value = mock_client

        client = self.make_client()

        with pytest.raises(UpstreamError, match="rate limited") as excinfo:
            client.complete("Tell me more")
        assert isinstance(excinfo.value.__cause__, OpenAIError)

    @patch('resume_chat.sdk.openai_client.OpenAI')
    def test_missing_usage_raises_error(self, mock_openai_class):
        response = make_response()
        response.usage = None
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = response
        mock_openai_class.return_value = mock_client

        with pytest.raises(UpstreamError, match="usage information"):
            self.make_client().complete("Tell me more")

    @patch('resume_chat.sdk.openai_client.OpenAI')
    def test_missing_total_uses_sum(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = make_response(
            prompt=40, completion=2, total=None
        )
        mock_openai_class.return_value = mock_client

        reply = self.make_client().complete("Tell me more")

        assert reply.usage.total_tokens == 42

    @pytest.mark.parametrize("choices", [[], None])
    @patch('resume_chat.sdk.openai_client.OpenAI')
    def test_missing_choices_raises_error(self, mock_openai_class, choices):
        response = make_response()
        response.choices = choices
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = response
        mock_openai_class.return_value = mock_client

        with pytest.raises(UpstreamError, match="choices"):
            self.make_client().complete("Tell me more")

    @pytest.mark.parametrize("content", ["", "   ", None])
    @patch('resume_chat.sdk.openai_client.OpenAI')
    def test_empty_text_raises_error(self, mock_openai_class, content):
        mock_client = Mock()
        mock_client.chat.completions.create.return_value = make_response(text=content)
        mock_openai_class.return_value = mock_client

        with pytest.raises(UpstreamError, match="empty completion"):
            self.make_client().complete("Tell me more")
