import asyncio
import os
import time
from typing import Any, Dict, List, Optional, Protocol

from huggingface_hub import InferenceClient

from .metrics import calculate_cost
from .schemas import ModelResponse

DEFAULT_MODEL = "openai/gpt-oss-20b"


class LLMClientError(RuntimeError):
    pass


class LLMCollaborator(Protocol):
    async def ask(self, prompt: str, system_prompt: Optional[str] = None) -> ModelResponse: ...


def _extract_content(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = [c.get("text", "") for c in content if isinstance(c, dict)]
        return "\n".join(p for p in parts if p).strip()
    return ""


def build_messages(prompt: str, system_prompt: Optional[str] = None) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


class LLMClient:
    """Async wrapper around a chat backend that returns timed ``ModelResponse`` records.

    The backend is either a ``huggingface_hub.InferenceClient`` or a
    ``LocalPipelineClient``; both are blocking, so each call runs in a worker
    thread.
    """

    def __init__(
        self,
        backend: Any,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 512,
        temperature: float = 0.2,
        top_p: float = 0.9,
    ) -> None:
        self.backend = backend
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p

    def _complete(self, messages: List[Dict[str, str]]) -> ModelResponse:
        if not hasattr(self.backend, "chat_completion"):
            out = self.backend.generate(messages, self.max_tokens, self.temperature, self.top_p)
            return ModelResponse(model=self.model, **out)

        t0 = time.perf_counter()
        resp = self.backend.chat_completion(
            messages=messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        latency_ms = (time.perf_counter() - t0) * 1000

        content = _extract_content(resp.choices[0].message.content) if resp.choices else ""
        usage = getattr(resp, "usage", None)
        return ModelResponse(
            content=content,
            model=getattr(resp, "model", None) or self.model,
            tokens_used=getattr(usage, "total_tokens", 0) or 0,
            latency_ms=latency_ms,
        )

    async def ask(self, prompt: str, system_prompt: Optional[str] = None) -> ModelResponse:
        messages = build_messages(prompt, system_prompt)
        try:
            return await asyncio.to_thread(self._complete, messages)
        except Exception as e:
            raise LLMClientError(f"LLM API Error: {e}") from e

    async def ask_multiple(
        self, prompt: str, count: int, system_prompt: Optional[str] = None
    ) -> List[ModelResponse]:
        """Ask the same prompt ``count`` times concurrently; results keep request order."""
        return list(await asyncio.gather(*(self.ask(prompt, system_prompt) for _ in range(count))))

    @staticmethod
    def calculate_cost(tokens_used: int) -> float:
        return calculate_cost(tokens_used)


def build_client() -> LLMClient:
    backend = os.getenv("INFERENCE_BACKEND", "hf_api")
    model = os.getenv("MODEL_NAME", DEFAULT_MODEL)
    settings = dict(
        max_tokens=int(os.getenv("MAX_TOKENS", "512")),
        temperature=float(os.getenv("TEMPERATURE", "0.2")),
        top_p=float(os.getenv("TOP_P", "0.9")),
    )

    if backend == "local":
        # torch and transformers are only needed here (the "local" extra).
        from .local_backend import LocalPipelineClient

        model_path = os.path.expanduser(os.getenv("LOCAL_MODEL_PATH", "").strip())
        model_or_path = model_path or model
        device = os.getenv("DEVICE", "cpu")
        return LLMClient(LocalPipelineClient(model=model_or_path, device=device), model=model_or_path, **settings)

    token = os.getenv("HF_TOKEN") or os.getenv("HUGGINGFACEHUB_API_TOKEN")
    if not token:
        print("[client] HF_TOKEN not set. API calls may fail for gated models.")
    return LLMClient(InferenceClient(model=model, token=token), model=model, **settings)
