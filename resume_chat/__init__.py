"""
Resume Chat.

Answers visitor questions about a resume from a static knowledge base,
escalating to an upstream LLM under a usage governor.
"""

__version__ = "0.1.0"
