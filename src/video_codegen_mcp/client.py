"""Chat-completion client for composition code generation.

Two providers share one call shape (system + user message, fixed model,
low temperature, generous token ceiling):

- ``openrouter`` — OpenAI-compatible ``/chat/completions`` over httpx.
- ``gemini`` — google-genai ``generate_content`` with a system instruction.

Transient transport failures are retried via :func:`~.retry.with_retry`;
everything else propagates to the caller, which counts it as a failed
generation attempt.
"""

from __future__ import annotations

import logging

import httpx
from google import genai
from google.genai import types

from .config import ServerConfig, get_config
from .errors import MissingCredentialError
from .retry import with_retry

logger = logging.getLogger(__name__)


def require_credential(cfg: ServerConfig | None = None) -> str:
    """Return the active provider's API key or raise ``MissingCredentialError``."""
    cfg = cfg or get_config()
    key = cfg.active_api_key
    if not key:
        env_var = "GEMINI_API_KEY" if cfg.provider == "gemini" else "OPENROUTER_API_KEY"
        raise MissingCredentialError(
            f"{env_var} not configured — set it in the environment or "
            "~/.config/video-codegen-mcp/.env"
        )
    return key


class CodegenClient:
    """Process-wide LLM access for the code-generation pipeline."""

    _gemini_clients: dict[str, genai.Client] = {}
    # Injected by tests; None means the default httpx transport.
    _transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def gemini(cls, api_key: str) -> genai.Client:
        """Return (or create) the shared Gemini client for *api_key*."""
        if api_key not in cls._gemini_clients:
            cls._gemini_clients[api_key] = genai.Client(api_key=api_key)
            logger.info("Created Gemini client (key …%s)", api_key[-4:])
        return cls._gemini_clients[api_key]

    @classmethod
    async def complete(
        cls,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Send one system/user exchange and return the raw response text.

        Args:
            system_prompt: Ruleset, API contract and examples.
            user_prompt: Script-specific request (plus any fix/iteration sections).
            model: Override the configured model id.
            temperature: Override the configured temperature.
            max_tokens: Override the configured output ceiling.

        Returns:
            The first choice's message content, unmodified.

        Raises:
            MissingCredentialError: If the provider has no API key.
            httpx.HTTPStatusError: If OpenRouter answers with a non-2xx status.
            ValueError: If the response carries no content.
        """
        cfg = get_config()
        api_key = require_credential(cfg)
        resolved_model = model or cfg.active_model
        resolved_temperature = temperature if temperature is not None else cfg.temperature
        resolved_max_tokens = max_tokens or cfg.max_tokens

        if cfg.provider == "gemini":
            return await cls._complete_gemini(
                api_key, system_prompt, user_prompt,
                model=resolved_model,
                temperature=resolved_temperature,
                max_tokens=resolved_max_tokens,
            )
        return await cls._complete_openrouter(
            cfg, api_key, system_prompt, user_prompt,
            model=resolved_model,
            temperature=resolved_temperature,
            max_tokens=resolved_max_tokens,
        )

    @classmethod
    async def _complete_openrouter(
        cls,
        cfg: ServerConfig,
        api_key: str,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": cfg.http_referer,
            "X-Title": cfg.app_title,
        }
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        timeout = httpx.Timeout(cfg.http_timeout or None)
        url = f"{cfg.openrouter_base_url}/chat/completions"

        async def _post() -> dict:
            async with httpx.AsyncClient(timeout=timeout, transport=cls._transport) as client:
                resp = await client.post(url, headers=headers, json=payload)
                if resp.is_error:
                    raise httpx.HTTPStatusError(
                        f"OpenRouter API error ({resp.status_code}): {resp.text}",
                        request=resp.request,
                        response=resp,
                    )
                return resp.json()

        data = await with_retry(_post)
        choices = data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if not content:
            raise ValueError("No content in OpenRouter response")
        return content

    @classmethod
    async def _complete_gemini(
        cls,
        api_key: str,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        client = cls.gemini(api_key)
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        response = await with_retry(
            lambda: client.aio.models.generate_content(
                model=model,
                contents=user_prompt,
                config=config,
            )
        )
        parts = response.candidates[0].content.parts if response.candidates else []
        text_parts = [p.text for p in parts if p.text and not getattr(p, "thought", False)]
        text = "\n".join(text_parts) if text_parts else (response.text or "")
        if not text:
            raise ValueError("No content in Gemini response")
        return text

    @classmethod
    async def close_all(cls) -> int:
        """Shut down shared Gemini clients. Returns count closed."""
        count = 0
        for client in list(cls._gemini_clients.values()):
            try:
                await client.aio.aclose()
            except Exception:
                logger.debug("Gemini async client close failed", exc_info=True)
            count += 1
        cls._gemini_clients.clear()
        logger.info("Closed %d Gemini client(s)", count)
        return count
