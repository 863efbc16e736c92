# core/reasoning.py

"""
Reasoning capabilities used for delegated scoring.

Each capability exposes `model` and `complete(system_role, user_prompt)`,
returning the raw text of a single JSON object. Errors propagate; the
delegated scorer turns them into a heuristic fallback.
"""

import logging
from typing import Optional

from anthropic import Anthropic
from openai import OpenAI

from study_engine import config

logger = logging.getLogger(__name__)


class OpenAICapability:
    """Chat-completions grader with JSON-object output."""

    def __init__(self, api_key: str, model: str = config.AI_MODEL,
                 timeout: float = config.SCORING_TIMEOUT_SEC,
                 temperature: float = config.SCORING_TEMPERATURE,
                 client=None):
        self.model = model
        self.temperature = temperature
        self.client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def complete(self, system_role: str, user_prompt: str) -> str:
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_role},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
        )
        if not resp.choices:
            return ""
        return (resp.choices[0].message.content or "").strip()


class AnthropicCapability:
    """Messages-API grader; the JSON object comes back as plain text."""

    def __init__(self, api_key: str, model: str = config.CLAUDE_MODEL,
                 timeout: float = config.SCORING_TIMEOUT_SEC,
                 temperature: float = config.SCORING_TEMPERATURE,
                 max_tokens: int = config.SCORING_MAX_TOKENS,
                 client=None):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or Anthropic(api_key=api_key, timeout=timeout, max_retries=0)

    def complete(self, system_role: str, user_prompt: str) -> str:
        resp = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system_role,
            messages=[{"role": "user", "content": user_prompt}],
        )
        texts = []
        for block in resp.content:
            if block.type == "text":
                texts.append(block.text)
        return "\n".join(texts).strip()


def build_capability(openai_key: Optional[str] = None,
                     anthropic_key: Optional[str] = None):
    """
    Pick a capability from configured keys: OpenAI first, then Anthropic.
    Returns None when neither is set, which keeps scoring fully local.
    """
    openai_key = config.OPENAI_API_KEY if openai_key is None else openai_key
    anthropic_key = config.ANTHROPIC_API_KEY if anthropic_key is None else anthropic_key

    if openai_key:
        logger.info("Delegated scoring via OpenAI model %s", config.AI_MODEL)
        return OpenAICapability(api_key=openai_key)
    if anthropic_key:
        logger.info("Delegated scoring via Anthropic model %s", config.CLAUDE_MODEL)
        return AnthropicCapability(api_key=anthropic_key)

    logger.info("No reasoning provider configured; scoring is heuristic only")
    return None
