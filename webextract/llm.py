import asyncio
import os
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from .config import PROVIDER_KEY_ENV, AIConfig, Provider
from .exceptions import AIProviderError

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant specialized in web content extraction."

DEFAULT_MODELS: Dict[Provider, str] = {
    Provider.GROQ: "llama-3.3-70b-versatile",
    Provider.OPENAI: "gpt-4o-mini",
    Provider.TOGETHER: "meta-llama/Llama-3-70b-chat-hf",
    Provider.GEMINI: "gemini-1.5-flash",
    Provider.COHERE: "command",
    Provider.HUGGINGFACE: "mistralai/Mistral-7B-Instruct-v0.2",
    Provider.OLLAMA: "llama3",
}

DEFAULT_BASE_URLS: Dict[Provider, str] = {
    Provider.GROQ: "https://api.groq.com/openai/v1",
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.TOGETHER: "https://api.together.xyz/v1",
    Provider.GEMINI: "https://generativelanguage.googleapis.com/v1beta",
    Provider.COHERE: "https://api.cohere.ai/v1",
    Provider.HUGGINGFACE: "https://api-inference.huggingface.co/models",
    Provider.OLLAMA: "http://localhost:11434",
}


class Completion(BaseModel):
    """Text returned by an AI backend."""
    content: str
    provider: str
    model: str
    usage: Dict[str, Any] = Field(default_factory=dict)


class _Request(NamedTuple):
    url: str
    headers: Dict[str, str]
    payload: Dict[str, Any]
    params: Dict[str, str]


class AICompletionClient:
    """Sends single-turn prompts to the configured provider over HTTP."""

    def __init__(self, config: AIConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        if config.provider is None:
            raise AIProviderError("No AI provider configured")

        self.config = config
        self.provider = config.provider
        self.api_key = config.resolve_api_key()

        key_env = PROVIDER_KEY_ENV[self.provider]
        if key_env and not self.api_key:
            raise AIProviderError(
                f"API key not found for {self.provider.value}. Set {key_env} or AI_API_KEY.",
                provider=self.provider.value,
            )

        if self.provider is Provider.OLLAMA:
            self.model = config.model or os.getenv("OLLAMA_MODEL") or DEFAULT_MODELS[self.provider]
            self.base_url = config.base_url or os.getenv("OLLAMA_URL") or DEFAULT_BASE_URLS[self.provider]
        else:
            self.model = config.model or DEFAULT_MODELS[self.provider]
            self.base_url = config.base_url or DEFAULT_BASE_URLS[self.provider]
        self.base_url = self.base_url.rstrip("/")

        self._transport = transport
        self._handlers: Dict[Provider, Tuple[Callable[..., _Request], Callable[[Any], Tuple[str, Dict]]]] = {
            Provider.GROQ: (self._chat_request, self._parse_chat),
            Provider.OPENAI: (self._chat_request, self._parse_chat),
            Provider.TOGETHER: (self._chat_request, self._parse_chat),
            Provider.GEMINI: (self._gemini_request, self._parse_gemini),
            Provider.COHERE: (self._cohere_request, self._parse_cohere),
            Provider.HUGGINGFACE: (self._huggingface_request, self._parse_huggingface),
            Provider.OLLAMA: (self._ollama_request, self._parse_ollama),
        }

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> Completion:
        """Run one completion, retrying rate-limited requests with backoff."""
        build, parse = self._handlers[self.provider]
        request = build(prompt, max_tokens, temperature, system_prompt)
        name = self.provider.value

        logger.info(f"Calling {name} ({self.model})")

        async with httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport) as client:
            for attempt in range(self.config.max_retries):
                try:
                    response = await client.post(
                        request.url,
                        headers=request.headers,
                        params=request.params or None,
                        json=request.payload,
                    )
                    response.raise_for_status()
                    break

                except httpx.HTTPStatusError as e:
                    status = e.response.status_code
                    if status == 429 and attempt < self.config.max_retries - 1:
                        delay = self.config.retry_base_delay * (2 ** attempt)
                        logger.warning(
                            f"Rate limited by {name}. Retrying in {delay}s "
                            f"(attempt {attempt + 1}/{self.config.max_retries})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise AIProviderError(
                        f"{name} API error: {status} - {e.response.text[:500]}",
                        provider=name,
                        status_code=status,
                    ) from e

                except httpx.ConnectError as e:
                    if self.provider is Provider.OLLAMA:
                        raise AIProviderError("Ollama not running. Start it with: ollama serve", provider=name) from e
                    raise AIProviderError(f"{name} connection failed: {e}", provider=name) from e

                except httpx.HTTPError as e:
                    raise AIProviderError(f"{name} request failed: {e}", provider=name) from e

        try:
            content, usage = parse(response.json())
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise AIProviderError(f"Unexpected {name} response payload: {e}", provider=name) from e

        if not isinstance(content, str):
            raise AIProviderError(f"{name} returned no text content", provider=name)

        return Completion(content=content, provider=name, model=self.model, usage=usage)

    def _bearer(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    def _chat_request(self, prompt, max_tokens, temperature, system_prompt) -> _Request:
        return _Request(
            url=f"{self.base_url}/chat/completions",
            headers=self._bearer(),
            payload={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
            params={},
        )

    @staticmethod
    def _parse_chat(data):
        usage = data.get("usage") or {}
        return data["choices"][0]["message"]["content"], {
            "promptTokens": usage.get("prompt_tokens"),
            "completionTokens": usage.get("completion_tokens"),
            "totalTokens": usage.get("total_tokens"),
        }

    def _gemini_request(self, prompt, max_tokens, temperature, system_prompt) -> _Request:
        return _Request(
            url=f"{self.base_url}/models/{self.model}:generateContent",
            headers={"Content-Type": "application/json"},
            payload={
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
            },
            params={"key": self.api_key},
        )

    @staticmethod
    def _parse_gemini(data):
        usage = data.get("usageMetadata") or {}
        return data["candidates"][0]["content"]["parts"][0]["text"], {
            "promptTokens": usage.get("promptTokenCount"),
            "completionTokens": usage.get("candidatesTokenCount"),
        }

    def _cohere_request(self, prompt, max_tokens, temperature, system_prompt) -> _Request:
        return _Request(
            url=f"{self.base_url}/generate",
            headers=self._bearer(),
            payload={
                "model": self.model,
                "prompt": f"{system_prompt}\n\n{prompt}",
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
            params={},
        )

    @staticmethod
    def _parse_cohere(data):
        return data["generations"][0]["text"], {}

    def _huggingface_request(self, prompt, max_tokens, temperature, system_prompt) -> _Request:
        return _Request(
            url=f"{self.base_url}/{self.model}",
            headers=self._bearer(),
            payload={
                "inputs": prompt,
                "parameters": {"max_new_tokens": max_tokens, "return_full_text": False},
            },
            params={},
        )

    @staticmethod
    def _parse_huggingface(data):
        if isinstance(data, list):
            data = data[0]
        return data["generated_text"], {}

    def _ollama_request(self, prompt, max_tokens, temperature, system_prompt) -> _Request:
        return _Request(
            url=f"{self.base_url}/api/chat",
            headers={"Content-Type": "application/json"},
            payload={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                "stream": False,
                "options": {"num_predict": max_tokens, "temperature": temperature},
            },
            params={},
        )

    @staticmethod
    def _parse_ollama(data):
        return data["message"]["content"], {
            "promptTokens": data.get("prompt_eval_count"),
            "completionTokens": data.get("eval_count"),
        }


def available_providers() -> List[Dict[str, Any]]:
    """Every provider with its default model and whether a key is configured."""
    providers = []
    for provider in Provider:
        key_env = PROVIDER_KEY_ENV[provider]
        providers.append({
            "id": provider.value,
            "keyEnv": key_env,
            "available": key_env is None or bool(os.getenv(key_env)),
            "defaultModel": DEFAULT_MODELS[provider],
        })
    return providers


async def check_provider(config: AIConfig) -> Dict[str, Any]:
    """Send a fixed prompt and report whether the provider answered."""
    name = config.provider.value if config.provider else None
    try:
        client = AICompletionClient(config)
        result = await client.complete('Say "Hello, I am working!" in exactly those words.', max_tokens=50)
        return {"provider": name, "success": True, "response": result.content[:100]}
    except AIProviderError as e:
        return {"provider": name, "success": False, "error": str(e)}
