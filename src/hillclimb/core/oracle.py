"""
Oracle Adapters

Wrap concrete LLM implementations (provider clients, LangChain chat models)
behind the IOracle interface. Every failure is reported as ``ok=False``;
nothing raises into the refinement loop.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from langchain_core.messages import HumanMessage

from .abstractions import IOracle, OracleResponse
from .llm_client import LLMClient
from .styles import get_style

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant that follows instructions exactly."


def _normalize(text: Optional[str]) -> OracleResponse:
    """Trim the response; empty text counts as a failed call."""
    text = (text or "").strip()
    if not text:
        return OracleResponse.failure()
    return OracleResponse(text=text, ok=True)


class LLMClientOracle(IOracle):
    """
    Oracle over a synchronous LLMClient (OpenAI / Anthropic / Ollama).

    The blocking SDK call runs in the default executor so concurrent judge
    calls do not serialize on the event loop.
    """

    def __init__(
        self,
        client: LLMClient,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: Optional[int] = None,
    ):
        self.client = client
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens

    async def generate(
        self,
        prompt: str,
        style_hint: Optional[str] = None,
        model_hint: Optional[str] = None,
    ) -> OracleResponse:
        if not prompt:
            logger.warning("[Oracle] Called with an empty prompt")
            return OracleResponse.failure()

        style = get_style(style_hint)
        kwargs = self.client.sampling_kwargs(style)

        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(
                None,
                lambda: self.client.generate(
                    system=self.system_prompt,
                    user=prompt,
                    temperature=style.temperature,
                    max_tokens=self.max_tokens,
                    model=model_hint,
                    **kwargs,
                ),
            )
        except Exception as e:
            logger.warning(f"[Oracle] {type(self.client).__name__} call failed: {e}")
            return OracleResponse.failure()

        return _normalize(text)


class LangChainOracle(IOracle):
    """
    Oracle over a LangChain ChatModel.

    Style and model hints are applied by copying the model with the
    sampling fields it actually declares.
    """

    SAMPLING_FIELDS = ("temperature", "top_p", "top_k", "frequency_penalty", "presence_penalty")
    MODEL_FIELDS = ("model", "model_name")

    def __init__(self, llm: Any):
        """
        Args:
            llm: LangChain ChatModel instance
        """
        self.llm = llm

    def _configured(self, style_hint: Optional[str], model_hint: Optional[str]) -> Any:
        fields = getattr(type(self.llm), "model_fields", None)
        if not fields or not hasattr(self.llm, "model_copy"):
            return self.llm

        style = get_style(style_hint).model_dump()
        update: Dict[str, Any] = {
            name: style[name] for name in self.SAMPLING_FIELDS if name in fields
        }
        if model_hint:
            for name in self.MODEL_FIELDS:
                if name in fields:
                    update[name] = model_hint
                    break
        return self.llm.model_copy(update=update) if update else self.llm

    async def generate(
        self,
        prompt: str,
        style_hint: Optional[str] = None,
        model_hint: Optional[str] = None,
    ) -> OracleResponse:
        if not prompt:
            logger.warning("[Oracle] Called with an empty prompt")
            return OracleResponse.failure()

        llm = self._configured(style_hint, model_hint)
        try:
            response = await llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            logger.warning(f"[Oracle] LangChain call failed: {e}")
            return OracleResponse.failure()

        content = response.content if hasattr(response, "content") else str(response)
        if not isinstance(content, str):
            content = str(content)
        return _normalize(content)
