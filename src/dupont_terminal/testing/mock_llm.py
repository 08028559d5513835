"""Mock chat model for tests and offline demos.

Provides a ``MockStructuredChatModel`` whose ``with_structured_output``
returns a runnable that replays scripted responses.  A scripted response
may be a Pydantic instance, a plain dict, or an exception instance, which is
raised instead of returned.  This makes rate limits, malformed payloads and
outages reproducible without an API key.
"""

from __future__ import annotations

from typing import Any

from langchain_core.callbacks import CallbackManagerForLLMRun
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from langchain_core.runnables import RunnableSerializable
from pydantic import BaseModel, ConfigDict


class MockStructuredChatModel(BaseChatModel):
    """A mock chat model that supports ``with_structured_output``.

    Usage::

        model = MockStructuredChatModel(
            structured_responses=[payload, RateLimitError("429"), payload],
        )
        provider = LLMFactProvider(model)

    Each structured call consumes the next scripted response.  After the
    list is exhausted it cycles back to the start.  Rendered prompts are
    recorded in :attr:`prompts`.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    structured_responses: list[Any] = []
    prompts: list[str] = []
    _call_index: int = 0

    @property
    def _llm_type(self) -> str:
        return "mock-structured"

    @property
    def call_count(self) -> int:
        return self._call_index

    def _next_response(self) -> Any:
        if not self.structured_responses:
            raise RuntimeError("MockStructuredChatModel has no scripted responses")
        resp = self.structured_responses[self._call_index % len(self.structured_responses)]
        self._call_index += 1
        if isinstance(resp, BaseException):
            raise resp
        return resp

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: CallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> ChatResult:
        resp = self._next_response()
        text = resp.model_dump_json(by_alias=True) if isinstance(resp, BaseModel) else str(resp)
        return ChatResult(
            generations=[ChatGeneration(message=AIMessage(content=text))]
        )

    def with_structured_output(self, schema: Any, **kwargs: Any) -> Any:
        """Return a runnable that yields the scripted responses in order."""
        model_ref = self

        class _ScriptedStructuredRunnable(RunnableSerializable):
            model_config = ConfigDict(arbitrary_types_allowed=True)

            def invoke(self, input: Any, config: Any = None, **kwargs: Any) -> Any:
                model_ref.prompts.append(
                    input.to_string() if hasattr(input, "to_string") else str(input)
                )
                return model_ref._next_response()

            async def ainvoke(self, input: Any, config: Any = None, **kwargs: Any) -> Any:
                return self.invoke(input, config, **kwargs)

        return _ScriptedStructuredRunnable()
