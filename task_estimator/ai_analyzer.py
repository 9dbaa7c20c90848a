"""AI-backed task analysis.

Builds an analysis prompt for a task (with historical context when a
historical store is available), sends it to an LLM provider and parses
the JSON answer into a TaskAnalysis.
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable

from .ai_providers import AIProvider, AIProviderError
from .exceptions import AnalysisError
from .interfaces import AIBackendInterface, HistoricalStoreInterface
from .models import SimilarTaskMatch, Task, TaskAnalysis, TaskSuggestion
from .utils import utc_now

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a task management expert helping to optimize a personal task list. "
    "Always answer with a single JSON object and nothing else."
)

RESPONSE_SCHEMA = """{
  "summary": "Brief 1-2 sentence analysis",
  "suggestions": [
    {
      "type": "due_date|priority|estimate|tag|project",
      "current": "current value",
      "suggested": "suggested value",
      "reason": "explanation",
      "confidence": 0.8
    }
  ],
  "time_estimate": {
    "hours": 2.5,
    "reason": "Based on similar tasks"
  }
}"""

SIMILAR_TASK_LIMIT = 3


def _value_or_none(value: str | None) -> str:
    return value if value else "(none)"


def _to_float(value: Any) -> float:
    try:
        return float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _format_hours(hours: float) -> str:
    if hours < 1:
        return f"{hours * 60:.0f} min"
    return f"{hours:.1f} hours"


class AIAnalyzer(AIBackendInterface):
    """Analyze tasks with an LLM provider."""

    def __init__(
        self,
        provider: AIProvider,
        historical_store: HistoricalStoreInterface | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize analyzer.

        Args:
            provider: LLM provider used for completions
            historical_store: Optional source of historical context for prompts
            clock: Returns the current time (used for date context)
        """
        self.provider = provider
        self.historical_store = historical_store
        self.clock = clock

    def is_available(self) -> bool:
        """Whether the provider has credentials configured."""
        return self.provider.has_credentials()

    def analyze(self, task: Task) -> TaskAnalysis:
        """Analyze a task.

        Args:
            task: Task to analyze

        Returns:
            Parsed TaskAnalysis

        Raises:
            AIProviderError: If credentials are missing or the API call fails
            AnalysisError: If the response cannot be parsed
        """
        if not self.is_available():
            raise AIProviderError(
                f"AI provider '{self.provider.provider_name}' has no credentials configured",
                provider=self.provider.provider_name,
            )

        prompt = self.build_prompt(task)
        response = self.provider.generate(prompt, system_prompt=SYSTEM_PROMPT, json_output=True)
        logger.debug(
            f"AI analysis for {task.uuid} used {response.total_tokens} tokens ({response.model})"
        )
        return self.parse_response(task.uuid, response.content)

    def build_prompt(self, task: Task) -> str:
        """Create a structured prompt for task analysis."""
        estimate, estimate_reason, similar = self._historical_context(task)

        lines = [
            "# Task Analysis Request",
            "",
            "Analyze the following task and provide specific, actionable suggestions.",
            "",
            "## Current Task",
            f"- **Description**: {task.description}",
            f"- **Project**: {_value_or_none(task.project)}",
            f"- **Priority**: {_value_or_none(task.priority)}",
            f"- **Due Date**: {_value_or_none(task.due)}",
            f"- **Status**: {task.status}",
        ]

        if estimate > 0:
            lines += [
                "",
                "## Time Estimate",
                f"Historical estimate: {estimate:.1f} hours ({estimate_reason})",
            ]

        if similar:
            lines += ["", "## Similar Completed Tasks"]
            for i, match in enumerate(similar, start=1):
                entry = match.entry
                completed = entry.completed_at.strftime("%Y-%m-%d") if entry.completed_at else "unknown"
                lines.append(
                    f'{i}. "{entry.description}" - {_format_hours(entry.actual_hours)} ({completed})'
                )

        lines += [
            "",
            "## Context",
            f"Today is {self.clock().strftime('%A, %B %d, %Y')}",
            "",
            "## Response Format",
            "Please respond with a JSON object containing:",
            "```json",
            RESPONSE_SCHEMA,
            "```",
            "",
            "Only suggest changes that would meaningfully improve task management. "
            "If the task looks well-organized, say so in the summary and provide minimal suggestions.",
        ]
        return "\n".join(lines)

    def _historical_context(self, task: Task) -> tuple[float, str, list[SimilarTaskMatch]]:
        """Historical estimate and similar tasks; empty when unavailable."""
        if self.historical_store is None:
            return 0.0, "", []

        estimate, reason = 0.0, ""
        similar: list[SimilarTaskMatch] = []
        try:
            estimate, reason, _ = self.historical_store.estimate_by_similarity(task)
        except Exception as e:
            logger.debug(f"No historical estimate for prompt: {e}")
        try:
            similar = self.historical_store.similar_tasks(task, SIMILAR_TASK_LIMIT)
        except Exception as e:
            logger.debug(f"No similar tasks for prompt: {e}")
        return estimate, reason, similar

    @staticmethod
    def parse_response(task_uuid: str, response: str) -> TaskAnalysis:
        """Parse the model's answer into a TaskAnalysis.

        The JSON object may be wrapped in markdown or prose; the outermost
        braces are extracted.

        Raises:
            AnalysisError: If no JSON object is found or it cannot be decoded
        """
        start = response.find("{")
        end = response.rfind("}")
        if start == -1 or end == -1 or end < start:
            raise AnalysisError("No valid JSON found in AI response", details=response)

        try:
            data: dict[str, Any] = json.loads(response[start:end + 1])
        except json.JSONDecodeError as e:
            raise AnalysisError(f"Failed to parse AI response: {e}", details=response) from e

        if not isinstance(data, dict):
            raise AnalysisError("AI response is not a JSON object", details=response)

        time_estimate = data.get("time_estimate") or {}
        if not isinstance(time_estimate, dict):
            time_estimate = {}
        hours = _to_float(time_estimate.get("hours"))

        suggestions = []
        for item in data.get("suggestions") or []:
            if not isinstance(item, dict):
                continue
            suggestions.append(
                TaskSuggestion(
                    type=str(item.get("type", "")),
                    current=str(item.get("current") or ""),
                    suggested=str(item.get("suggested") or ""),
                    reason=str(item.get("reason") or ""),
                    confidence=_to_float(item.get("confidence")),
                )
            )

        return TaskAnalysis(
            task_uuid=task_uuid,
            summary=str(data.get("summary") or ""),
            suggestions=suggestions,
            time_estimate_hours=hours,
            time_estimate_reason=str(time_estimate.get("reason") or ""),
        )
