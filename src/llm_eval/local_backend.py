import time
from typing import Dict, List

import torch
from transformers import AutoModelForCausalLM, AutoTokenizer

ROLE_TOKENS = {
    "system": "<|system|>",
    "user": "<|user|>",
    "assistant": "<|assistant|>",
}


class LocalPipelineClient:
    def __init__(self, model: str, device: str = "cpu") -> None:
        self.model_name = model
        self.device = self._normalize_device(device)

        self.tokenizer = AutoTokenizer.from_pretrained(model)
        self.model = AutoModelForCausalLM.from_pretrained(model, torch_dtype="auto")
        self.model.to(self.device)
        self.model.eval()

    @staticmethod
    def _normalize_device(device: str) -> str:
        if device.startswith("cuda") and torch.cuda.is_available():
            return device
        if device == "mps" and torch.backends.mps.is_available():
            return "mps"
        if device == "cpu":
            return "cpu"

        if torch.cuda.is_available():
            return "cuda:0"
        if torch.backends.mps.is_available():
            return "mps"
        return "cpu"

    @staticmethod
    def build_prompt(messages: List[Dict[str, str]]) -> str:
        chunks: List[str] = []
        for m in messages:
            token = ROLE_TOKENS.get(m.get("role", "user"), "<|user|>")
            chunks.append(f"{token}\n{m.get('content', '')}")

        chunks.append("<|assistant|>\n")
        return "\n".join(chunks)

    def generate(
        self, messages: List[Dict[str, str]], max_tokens: int, temperature: float, top_p: float
    ) -> Dict[str, object]:
        """Generate a reply; returns text, total token count and elapsed ms."""
        t0 = time.perf_counter()
        prompt = self.build_prompt(messages)
        inputs = self.tokenizer(prompt, return_tensors="pt").to(self.device)

        with torch.no_grad():
            output_ids = self.model.generate(
                **inputs,
                max_new_tokens=max_tokens,
                temperature=temperature,
                top_p=top_p,
                do_sample=temperature > 0,
            )

        generated = output_ids[0][inputs["input_ids"].shape[-1] :]
        return {
            "content": self.tokenizer.decode(generated, skip_special_tokens=True).strip(),
            "tokens_used": int(output_ids.shape[-1]),
            "latency_ms": (time.perf_counter() - t0) * 1000,
        }
