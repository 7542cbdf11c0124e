from typing import Dict, List, Optional

import pytest

from llm_eval.schemas import ModelResponse


class FakeClient:
    """Replays canned answers keyed by prompt; prompts mapped to an exception raise it."""

    def __init__(self, answers: Dict[str, object], tokens: int = 10, latency_ms: float = 100.0):
        self.answers = answers
        self.tokens = tokens
        self.latency_ms = latency_ms
        self.calls: List[str] = []

    async def ask(self, prompt: str, system_prompt: Optional[str] = None) -> ModelResponse:
        self.calls.append(prompt)
        answer = self.answers[prompt]
        if isinstance(answer, Exception):
            raise answer
        return ModelResponse(
            content=answer, model="fake-model", tokens_used=self.tokens, latency_ms=self.latency_ms
        )

    async def ask_multiple(self, prompt: str, count: int, system_prompt: Optional[str] = None):
        return [await self.ask(prompt, system_prompt) for _ in range(count)]


@pytest.fixture
def fake_client_factory():
    return FakeClient
