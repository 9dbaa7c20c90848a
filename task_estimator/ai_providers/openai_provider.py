"""OpenAI chat completions for task analysis."""

from typing import Any

from .base import AIProvider, AIResponse


class OpenAIProvider(AIProvider):
    """OpenAI API provider for GPT models.

    JSON output uses the API's JSON mode, which guarantees a syntactically
    valid object.
    """

    ENV_API_KEY = "OPENAI_API_KEY"
    DISPLAY_NAME = "OpenAI"

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    def _create_client(self) -> Any:
        from openai import OpenAI
        return OpenAI(api_key=self.api_key)

    def _complete(
        self, client: Any, prompt: str, system_prompt: str | None, json_output: bool
    ) -> AIResponse:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        request: dict[str, Any] = {
            "model": self.get_model(),
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if json_output:
            request["response_format"] = {"type": "json_object"}

        response = client.chat.completions.create(**request)

        usage = response.usage
        return AIResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            provider=self.provider_name,
            usage={
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
                "total_tokens": usage.total_tokens if usage else 0,
            },
            raw_response=response,
        )
