"""LLM provider clients - the concrete transports behind the oracle."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Literal
import os

from .styles import GenerationStyle


class LLMClient(ABC):
    """Base class for LLM providers."""

    model: str

    @abstractmethod
    def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        **kwargs,
    ) -> str:
        """Generate a response. Returns just the text for simplicity."""
        pass

    def sampling_kwargs(self, style: GenerationStyle) -> Dict[str, Any]:
        """Provider-specific sampling parameters for a style (temperature excluded)."""
        return {}


class OpenAIClient(LLMClient):
    """OpenAI (and OpenAI-compatible, e.g. OpenRouter) implementation."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        try:
            from openai import OpenAI
        except ImportError:
            raise ImportError("Install with: pip install openai")

        self.model = model
        self.client = OpenAI(
            api_key=api_key or os.getenv("OPENAI_API_KEY"),
            base_url=base_url or os.getenv("OPENAI_BASE_URL"),
        )

    def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        **kwargs,
    ) -> str:
        """Call OpenAI API."""
        response = self.client.chat.completions.create(
            model=model or self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=temperature,
            max_tokens=max_tokens or 4096,
            **kwargs,
        )
        return response.choices[0].message.content or ""

    def sampling_kwargs(self, style: GenerationStyle) -> Dict[str, Any]:
        return {
            "top_p": style.top_p,
            "frequency_penalty": style.frequency_penalty,
            "presence_penalty": style.presence_penalty,
        }


class AnthropicClient(LLMClient):
    """Claude API implementation."""

    def __init__(self, model: str = "claude-3-5-sonnet-20241022", api_key: Optional[str] = None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError("Install with: pip install anthropic")

        self.model = model
        self.client = Anthropic(api_key=api_key or os.getenv("ANTHROPIC_API_KEY"))

    def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        **kwargs,
    ) -> str:
        """Call Anthropic API."""
        response = self.client.messages.create(
            model=model or self.model,
            system=system,
            messages=[{"role": "user", "content": user}],
            temperature=min(temperature, 1.0),
            max_tokens=max_tokens or 4096,
            **kwargs,
        )
        return "".join(block.text for block in response.content if hasattr(block, "text"))

    def sampling_kwargs(self, style: GenerationStyle) -> Dict[str, Any]:
        return {"top_k": style.top_k}


class OllamaClient(LLMClient):
    """Local Ollama LLM implementation (for running locally)."""

    def __init__(self, model: str = "mistral:7b", base_url: Optional[str] = None):
        try:
            from ollama import Client
        except ImportError:
            raise ImportError("Install with: pip install ollama")

        self.model = model
        self.client = Client(host=base_url or os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"))

    def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        **kwargs,
    ) -> str:
        """Call local Ollama."""
        # Ollama uses 'options' dict for parameters
        options = {"temperature": temperature}
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        if "options" in kwargs:
            options.update(kwargs.pop("options"))

        response = self.client.generate(
            model=model or self.model,
            system=system,
            prompt=user,
            options=options,
            stream=False,
            **kwargs,
        )
        return response["response"]

    def sampling_kwargs(self, style: GenerationStyle) -> Dict[str, Any]:
        options = {
            "top_p": style.top_p,
            "top_k": style.top_k,
            "repeat_penalty": style.repetition_penalty,
        }
        if style.min_p is not None:
            options["min_p"] = style.min_p
        return {"options": options}


# ============================================================
# Factory Function
# ============================================================


def create_llm_client(
    provider: Literal["openai", "anthropic", "ollama"] = "openai",
    model: Optional[str] = None,
    **kwargs,
) -> LLMClient:
    """Factory function to create the right LLM client.

    Usage:
        llm = create_llm_client(provider="openai", model="gpt-4o")
        oracle = LLMClientOracle(llm)
    """
    provider = provider.lower()

    if provider == "openai":
        return OpenAIClient(model=model or "gpt-4o", **kwargs)
    elif provider == "anthropic":
        return AnthropicClient(model=model or "claude-3-5-sonnet-20241022", **kwargs)
    elif provider == "ollama":
        return OllamaClient(model=model or "mistral:7b", **kwargs)
    else:
        raise ValueError(f"Unknown provider: {provider}")
