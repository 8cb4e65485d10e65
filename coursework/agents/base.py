"""
Shared helpers for the Claude-backed agents.
"""

import json
from typing import Any, Optional

from langchain_anthropic import ChatAnthropic

from coursework.config import config


LANGUAGE_NAMES = {
    "uzbek": "Uzbek (Latin script)",
    "english": "English",
    "russian": "Russian",
}


def language_name(language: str) -> str:
    return LANGUAGE_NAMES.get(language, language)


def build_llm(
    model_name: str,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    timeout: Optional[float] = None
) -> ChatAnthropic:
    kwargs = {}
    # Without a key, langchain falls back to the ANTHROPIC_API_KEY env var
    if config.ANTHROPIC_API_KEY:
        kwargs["anthropic_api_key"] = config.ANTHROPIC_API_KEY

    return ChatAnthropic(
        model=model_name,
        temperature=config.TEMPERATURE if temperature is None else temperature,
        max_tokens=max_tokens or config.MAX_TOKENS,
        timeout=timeout or config.LLM_TIMEOUT_SECONDS,
        **kwargs
    )


def response_text(response: Any) -> str:
    """Plain text from an AIMessage, whose content may be a list of blocks."""
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict):
                parts.append(block.get("text", ""))
            else:
                parts.append(str(block))
        content = "".join(parts)
    return str(content).strip()


def extract_json(text: str) -> Any:
    """
    Parse JSON out of an LLM reply.

    Handles ```json fenced blocks and prose around a bare object.
    Raises json.JSONDecodeError when nothing parses.
    """
    text = text.strip()

    # Handle markdown code blocks
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(text[start:end + 1])
