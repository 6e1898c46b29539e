"""
Text generation collaborator.

All generative calls in the pipeline go through the TextGenerator interface so
components can run without one (deterministic fallbacks) and tests can swap
in a scripted fake.

Usage:
    from leadgen.services.text_generation import create_text_generator

    generator = create_text_generator(temperature=0.7)
    if generator is not None:
        reply = generator.complete(prompt, system=SYSTEM_PROMPT)
"""

import logging
from typing import Any, Optional, Protocol

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from leadgen.common.config import Config

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Interface of the text-generation collaborator."""

    def complete(self, prompt: str, system: Optional[str] = None) -> str:
        ...


class LangChainTextGenerator:
    """TextGenerator backed by a LangChain chat model."""

    def __init__(self, llm: Any):
        self.llm = llm

    def complete(self, prompt: str, system: Optional[str] = None) -> str:
        messages = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        response = self.llm.invoke(messages)
        content = getattr(response, "content", response)
        if isinstance(content, list):
            # Some providers return content blocks
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return str(content or "")


def create_chat_llm(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    api_key: Optional[str] = None,
    **kwargs: Any,
) -> ChatOpenAI:
    """
    Create a ChatOpenAI instance.

    Args:
        model: Model name (defaults to Config.DEFAULT_MODEL)
        temperature: Temperature (defaults to Config.ANALYSIS_TEMPERATURE)
        api_key: API key (defaults to Config.OPENAI_API_KEY)
        **kwargs: Additional ChatOpenAI parameters
    """
    return ChatOpenAI(
        model=model or Config.DEFAULT_MODEL,
        temperature=temperature if temperature is not None else Config.ANALYSIS_TEMPERATURE,
        api_key=api_key or Config.OPENAI_API_KEY,
        **kwargs,
    )


def create_text_generator(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    api_key: Optional[str] = None,
) -> Optional[TextGenerator]:
    """
    Build the default text generator, or None when no credential is configured.

    Returning None (rather than raising) lets every dependent component fall
    back to its deterministic path.
    """
    key = api_key or Config.OPENAI_API_KEY
    if not key:
        logger.info("No text-generation credential configured, using deterministic fallbacks")
        return None
    return LangChainTextGenerator(create_chat_llm(model=model, temperature=temperature, api_key=key))
