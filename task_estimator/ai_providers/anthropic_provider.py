"""Anthropic messages API for task analysis."""

from typing import Any

from .base import AIProvider, AIResponse

# Prefilled start of the assistant turn when a JSON object is requested
JSON_PREFILL = "{"


class AnthropicProvider(AIProvider):
    """Anthropic API provider for Claude models.

    The messages API has no JSON mode. JSON output is requested by
    prefilling the assistant turn with an opening brace, which is put back
    in front of the returned text.
    """

    ENV_API_KEY = "ANTHROPIC_API_KEY"
    DISPLAY_NAME = "Anthropic"
    RETRYABLE_MARKERS = ("rate", "timeout", "overloaded")

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-3-5-haiku-latest"

    def _create_client(self) -> Any:
        from anthropic import Anthropic
        return Anthropic(api_key=self.api_key)

    def _complete(
        self, client: Any, prompt: str, system_prompt: str | None, json_output: bool
    ) -> AIResponse:
        messages = [{"role": "user", "content": prompt}]
        if json_output:
            messages.append({"role": "assistant", "content": JSON_PREFILL})

        request: dict[str, Any] = {
            "model": self.get_model(),
            "max_tokens": self.max_tokens,
            "messages": messages,
            # Anthropic's temperature must be between 0 and 1
            "temperature": min(1.0, max(0.0, self.temperature)),
        }
        if system_prompt:
            request["system"] = system_prompt

        response = client.messages.create(**request)

        content = "".join(block.text for block in response.content if hasattr(block, "text"))
        if json_output:
            content = JSON_PREFILL + content

        input_tokens = response.usage.input_tokens if response.usage else 0
        output_tokens = response.usage.output_tokens if response.usage else 0
        return AIResponse(
            content=content,
            model=response.model,
            provider=self.provider_name,
            usage={
                "prompt_tokens": input_tokens,
                "completion_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
            raw_response=response,
        )
