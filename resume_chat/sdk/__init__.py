"""
SDK for Resume Chat.

Provides the upstream model client used for escalated questions.
"""

from .openai_client import ResumeAssistantClient, UpstreamError, UpstreamReply

__all__ = ["ResumeAssistantClient", "UpstreamError", "UpstreamReply"]
