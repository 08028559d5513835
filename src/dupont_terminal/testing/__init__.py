"""Public testing utilities for the DuPont terminal.

Provides a mock chat model and a scripted fact provider for writing
self-contained tests and offline demos without API keys.
"""

from dupont_terminal.testing.factories import (
    ScriptedFactProvider,
    sample_analysis,
    sample_payload,
)
from dupont_terminal.testing.mock_llm import MockStructuredChatModel

__all__ = [
    "MockStructuredChatModel",
    "ScriptedFactProvider",
    "sample_analysis",
    "sample_payload",
]
