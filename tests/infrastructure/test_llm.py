"""Tests for chat model construction."""

from __future__ import annotations

import importlib
import sys
import types

import pytest

from dupont_terminal.infrastructure import llm
from dupont_terminal.infrastructure.config import ProviderConfig


class _FakeChatModel:
    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs


@pytest.fixture
def fake_openai(monkeypatch):
    module = types.ModuleType("langchain_openai")
    module.ChatOpenAI = _FakeChatModel  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "langchain_openai", module)
    return module


class TestCreateChatModel:

    def test_builds_configured_model(self, fake_openai, monkeypatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        model = llm.create_chat_model(
            ProviderConfig(provider="openai", model="gpt-4o", temperature=0.0, extra={"timeout": 30})
        )
        assert isinstance(model, _FakeChatModel)
        assert model.kwargs == {
            "model": "gpt-4o",
            "temperature": 0.0,
            "api_key": "sk-test",
            "timeout": 30,
        }

    def test_custom_key_variable(self, fake_openai, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("MY_KEY", "sk-custom")
        model = llm.create_chat_model(
            ProviderConfig(provider="openai", model="gpt-4o", api_key_env="MY_KEY")
        )
        assert model.kwargs["api_key"] == "sk-custom"

    def test_missing_package_names_the_extra(self, monkeypatch) -> None:
        def _missing(name: str):
            raise ImportError(f"No module named {name!r}")

        monkeypatch.setattr(importlib, "import_module", _missing)
        with pytest.raises(ImportError, match="langchain-anthropic"):
            llm.create_chat_model(ProviderConfig(provider="anthropic", model="claude"))

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError):
            llm.create_chat_model(ProviderConfig(provider="mystery"))
