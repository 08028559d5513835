"""Construction of LangChain chat models from a :class:`ProviderConfig`.

Each provider lives in its own optional distribution.  The integration
package is imported only when a model for that provider is requested; a
missing package raises :class:`ImportError` naming the extra to install::

    pip install "dupont-terminal[google]"     # langchain-google-genai
    pip install "dupont-terminal[anthropic]"  # langchain-anthropic
    pip install "dupont-terminal[openai]"     # langchain-openai
"""

from __future__ import annotations

import importlib
import logging
import os
from typing import Any

from langchain_core.language_models import BaseChatModel

from dupont_terminal.infrastructure.config import ProviderConfig

logger = logging.getLogger(__name__)

# provider -> (module, class, distribution, model keyword, api key keyword, default env var)
_PROVIDERS: dict[str, tuple[str, str, str, str, str, str]] = {
    "google": (
        "langchain_google_genai",
        "ChatGoogleGenerativeAI",
        "langchain-google-genai",
        "model",
        "google_api_key",
        "GOOGLE_API_KEY",
    ),
    "anthropic": (
        "langchain_anthropic",
        "ChatAnthropic",
        "langchain-anthropic",
        "model",
        "api_key",
        "ANTHROPIC_API_KEY",
    ),
    "openai": (
        "langchain_openai",
        "ChatOpenAI",
        "langchain-openai",
        "model",
        "api_key",
        "OPENAI_API_KEY",
    ),
}


def create_chat_model(config: ProviderConfig) -> BaseChatModel:
    """Instantiate the chat model described by *config*.

    Parameters
    ----------
    config:
        Provider name, model id, temperature and optional extra keyword
        arguments forwarded to the model class.

    Returns
    -------
    BaseChatModel
        A ready-to-use LangChain chat model.

    Raises
    ------
    ValueError
        If the provider is unknown.
    ImportError
        If the provider's integration package is not installed.
    """
    config.validate()
    module_name, class_name, dist, model_kw, key_kw, default_env = _PROVIDERS[config.provider]

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ImportError(
            f"The '{dist}' package is required for the {config.provider!r} provider. "
            f"Install it with: pip install {dist}"
        ) from exc

    kwargs: dict[str, Any] = {model_kw: config.model, "temperature": config.temperature}
    api_key = os.environ.get(config.api_key_env or default_env)
    if api_key:
        kwargs[key_kw] = api_key
    kwargs.update(config.extra)

    logger.info("create_chat_model: %s %s", class_name, config.model)
    return getattr(module, class_name)(**kwargs)
