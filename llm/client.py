"""
llm/client.py — The ONLY file that imports the OpenAI SDK.

Every model call in homework-watch is one stateless chat completion:
a fixed system instruction plus a user payload holding two versions of
the page. No tool calling, no conversation chaining, no embeddings.
Chat Completions is the one API surface every OpenAI-compatible provider
implements, so it is the only one used here.

WHY base_url:
  The default provider is DeepSeek, which speaks the OpenAI wire format at
  https://api.deepseek.com. Pointing llm_base_url at any other compatible
  endpoint (OpenAI itself, a local vLLM, an Azure deployment proxy) needs
  no code change.

TIMEOUTS AND RETRIES:
  The SDK client is built with timeout=llm_timeout_seconds and
  max_retries=llm_max_retries. A completion that exceeds the timeout raises
  openai.APITimeoutError — the caller treats it like any other transport
  failure. The poll loop's next tick is the real retry, so SDK retries
  default to 0.

JSON MODE:
  With llm_json_mode on, the request carries
  response_format={"type": "json_object"}. Providers that honour it return a
  bare JSON object. The caller still extracts JSON tolerantly, because
  not every compatible provider honours the flag.

USAGE:
  from llm.client import LLMClient
  client = LLMClient()
  text = client.complete(system="You summarize...", user="PREVIOUS VERSION: ...")
"""

from openai import OpenAI

from config import settings


class LLMClient:
    """
    Thin wrapper around one OpenAI-compatible Chat Completions endpoint.

    Raises the SDK's own exceptions (openai.APIError and subclasses) on
    transport, auth, rate-limit and timeout failures — the caller decides
    what a failure means.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
    ) -> None:
        self._client = OpenAI(
            api_key=api_key if api_key is not None else settings.llm_api_key,
            base_url=base_url or settings.llm_base_url,
            timeout=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
        )
        self._model = model or settings.llm_model

    @property
    def model(self) -> str:
        return self._model

    def complete(
        self,
        system: str,
        user: str,
        *,
        temperature: float | None = None,
        json_mode: bool | None = None,
    ) -> str:
        """
        Run one chat completion and return the assistant text.

        Args:
            system:      Fixed instruction (role=system).
            user:        Payload (role=user).
            temperature: Defaults to settings.llm_temperature.
            json_mode:   Defaults to settings.llm_json_mode.

        Returns: the model's text, or "" if the provider sent no content.
        Raises on API error — caller should handle with try/except.
        """
        kwargs: dict = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": settings.llm_temperature if temperature is None else temperature,
        }

        if json_mode is None:
            json_mode = settings.llm_json_mode
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = self._client.chat.completions.create(**kwargs)
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
