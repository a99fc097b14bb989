#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
import re
from typing import Any, Dict, List, Optional

from llama_index.core.llms import (
    CompletionResponse,
    CompletionResponseGen,
    CustomLLM,
    LLMMetadata,
)
from openai import OpenAI

from .config import LLMConfig

logger = logging.getLogger(__name__)


class OpenAIChatLLM(CustomLLM):
    """Адаптер LlamaIndex CustomLLM для OpenAI-совместимого Chat Completions API.

    Оборачивает клиента OpenAI, чтобы использовать его внутри LlamaIndex
    как обычную LLM: поддерживает complete и stream_complete.
    """
    def __init__(
        self,
        base_url: Optional[str],
        api_key: str,
        model_name: str,
        temperature: float = 0.7,
        top_p: float = 0.9,
        max_tokens: int = 500,
        system_prompt: str = LLMConfig.system_prompt,
        enable_thinking: bool = False,
    ) -> None:
        super().__init__()
        self._client = OpenAI(base_url=base_url, api_key=api_key)
        self._model = model_name
        self._temperature = float(temperature)
        self._top_p = float(top_p)
        self._max_tokens = int(max_tokens)
        self._system_prompt = system_prompt
        self._enable_thinking = bool(enable_thinking)

    @property
    def metadata(self) -> LLMMetadata:
        return LLMMetadata(
            model_name=f"openai-compat::{self._model}",
            temperature=self._temperature,
            num_output=self._max_tokens,
        )

    def _make_messages(self, user_prompt: str) -> List[Dict[str, str]]:
        """Формирует список сообщений (system + user) для Chat API."""
        return [
            {"role": "system", "content": self._system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    def _request_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self._model,
            "temperature": self._temperature,
            "top_p": self._top_p,
            "max_tokens": self._max_tokens,
        }
        if self._enable_thinking:
            kwargs["extra_body"] = {"enable_thinking": True}
        return kwargs

    def complete(self, prompt: str, **kwargs: Any) -> CompletionResponse:
        """Синхронное получение единого текста ответа для переданного промпта."""
        resp = self._client.chat.completions.create(
            messages=self._make_messages(prompt),
            **self._request_kwargs(),
        )
        text = (resp.choices[0].message.content or "").strip()
        return CompletionResponse(text=text)

    def stream_complete(self, prompt: str, **kwargs: Any) -> CompletionResponseGen:
        """Потоковая генерация: возвращает нарастающий ответ частями."""
        stream = self._client.chat.completions.create(
            messages=self._make_messages(prompt),
            stream=True,
            **self._request_kwargs(),
        )

        buffer = []
        for event in stream:
            delta = event.choices[0].delta.content if event.choices else None
            if delta:
                buffer.append(delta)
                yield CompletionResponse(text="".join(buffer), delta=delta)


_QUESTION_RE = re.compile(r"Question:\s*(.+?)(?:\n|$)")


class TemplateAnswerLLM(CustomLLM):
    """Mock-LLM: детерминированный шаблонный ответ без обращения к сети.

    Вопрос извлекается из строки `Question: ...` промпта.
    """

    @property
    def metadata(self) -> LLMMetadata:
        return LLMMetadata(model_name="template-mock")

    def _answer(self, prompt: str) -> str:
        match = _QUESTION_RE.search(prompt)
        question = match.group(1).strip() if match else "Unknown question"
        return (
            f'Based on the provided contexts, I can answer your question about "{question}". '
            "[MOCK ANSWER] This is a demonstration response. In production, this would be "
            "generated by the configured LLM. The system has successfully retrieved relevant "
            "context from the vector index and would use it to generate an accurate answer."
        )

    def complete(self, prompt: str, **kwargs: Any) -> CompletionResponse:
        return CompletionResponse(text=self._answer(prompt))

    def stream_complete(self, prompt: str, **kwargs: Any) -> CompletionResponseGen:
        yield self.complete(prompt)


class GenerationProvider:
    """Генерирует ответ по готовому промпту.

    При ошибке основной LLM и наличии `fallback` отдаёт ответ запасной
    модели (обычно TemplateAnswerLLM), иначе пробрасывает исключение.
    """

    def __init__(self, llm: CustomLLM, fallback: Optional[CustomLLM] = None) -> None:
        self._llm = llm
        self._fallback = fallback

    @property
    def llm(self) -> CustomLLM:
        return self._llm

    def generate(self, prompt: str) -> str:
        try:
            return self._llm.complete(prompt).text
        except Exception as exc:
            if self._fallback is None:
                raise
            logger.warning("Answer generation error (%s), falling back to mock answer", exc)
            return self._fallback.complete(prompt).text


def make_generation_provider(cfg: LLMConfig) -> GenerationProvider:
    """Создаёт провайдера генерации: OpenAI-совместимый API или mock."""
    provider = cfg.provider.lower()
    if provider == "mock":
        return GenerationProvider(TemplateAnswerLLM())
    if provider != "openai":
        raise ValueError(f"Unknown LLM provider: {cfg.provider}")
    if not cfg.api_key:
        logger.warning("OPENAI_API_KEY not set, using mock answers")
        return GenerationProvider(TemplateAnswerLLM())

    llm = OpenAIChatLLM(
        base_url=cfg.base_url,
        api_key=cfg.api_key,
        model_name=cfg.model_name,
        temperature=cfg.temperature,
        top_p=cfg.top_p,
        max_tokens=cfg.max_tokens,
        system_prompt=cfg.system_prompt,
        enable_thinking=cfg.enable_thinking,
    )
    fallback = TemplateAnswerLLM() if cfg.fallback_to_mock else None
    return GenerationProvider(llm, fallback=fallback)
