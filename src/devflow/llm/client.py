"""OpenAI-compatible chat-completions client."""

from __future__ import annotations

import logging
import os
import time
from typing import TYPE_CHECKING, Optional

import requests

if TYPE_CHECKING:
    from ..config import LLMConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert AI development assistant. Provide helpful, actionable "
    "suggestions for web development projects."
)


class LLMError(RuntimeError):
    """The text-generation endpoint could not produce a response."""


class TextGenerationClient:
    """
    Client for any service that implements OpenAI's Chat Completions API
    (OpenAI, DeepSeek, OpenRouter, or a self-hosted endpoint).
    """

    def __init__(self, config: "LLMConfig", session: Optional[requests.Session] = None):
        """
        Args:
            config: LLM configuration; endpoint and api_key must be set
            session: optional requests session, mainly for tests
        """
        if not config.endpoint:
            raise LLMError(f"No endpoint configured for LLM provider '{config.provider}'")
        if not config.api_key:
            raise LLMError(f"API key not configured for {config.provider}")

        self.config = config
        self.session = session or requests.Session()

        proxy = config.proxy or os.environ.get("HTTPS_PROXY") or os.environ.get("HTTP_PROXY")
        if proxy:
            self.session.proxies = {"http": proxy, "https": proxy}
            logger.info("LLM client using proxy: %s", proxy)

        self.base_url = config.endpoint.rstrip("/")
        self.model = config.model or "default"
        self.temperature = config.temperature

    def generate(
        self,
        prompt: str,
        context: str = "",
        timeout: int = 60,
        max_retries: int = 3,
        retry_wait: float = 30.0,
    ) -> str:
        """
        Ask the endpoint for a completion.

        Raises:
            LLMError: the request failed, was rate limited past `max_retries`,
                or returned no content.
        """
        url = f"{self.base_url}/chat/completions"
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"Context: {context}\n\nRequest: {prompt}"},
            ],
            "max_tokens": 2000,
            "temperature": self.temperature,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

        for attempt in range(max_retries):
            try:
                response = self.session.post(url, json=body, headers=headers, timeout=timeout)
            except requests.exceptions.RequestException as exc:
                raise LLMError(f"AI service error: {exc}") from exc

            # Handle rate limiting
            if response.status_code == 429:
                wait_time = retry_wait * (attempt + 1)
                logger.warning(f"Rate limited. Waiting {wait_time}s before retry...")
                time.sleep(wait_time)
                continue

            try:
                response.raise_for_status()
                data = response.json()
            except requests.exceptions.HTTPError as exc:
                logger.error(f"Response text: {response.text[:500]}")
                raise LLMError(f"AI service error: {exc}") from exc
            except ValueError as exc:
                raise LLMError(f"AI service returned invalid JSON: {exc}") from exc

            choices = data.get("choices") or []
            content = choices[0].get("message", {}).get("content") if choices else None
            if not content:
                raise LLMError("AI service returned no content")
            return content

        raise LLMError("Rate limited after max retries")
