"""OpenAI API integration for TonyOS.

This module provides the two language-model features:
- brain dump: free text -> candidate task field-sets (JSON mode)
- chat: prioritization guidance over the current task list
"""

import os
import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from openai import OpenAI, APIError
from dotenv import load_dotenv

from tonyos.models.task import TaskBucket
from tonyos.models.constants import DEFAULT_AREA

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# OpenAI model used for both features (overridable via OPENAI_MODEL)
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"

BRAIN_DUMP_PROMPT_TEMPLATE = """You are TonyOS, an AI that converts a messy brain dump into clear tasks.

Return STRICT JSON with this exact shape:

{{
  "tasks": [
    {{
      "title": "string, required",
      "description": "string, optional",
      "bucket": "{buckets}, optional",
      "priority": "1-5, integer, optional (1 highest)",
      "area": "string, optional",
      "due_date": "YYYY-MM-DD or null, optional"
    }}
  ]
}}

Rules:
- Only include tasks that are concrete actions (not vague reflections).
- If bucket is missing, use "{default_bucket}".
- If area is missing, use "{default_area}".
- If you are unsure about dates, set due_date to null."""

CHAT_SYSTEM_PROMPT = """You are TonyOS, an AI priority engine.
You see the user's current task list and must give concise, actionable guidance.

Each task carries leverage, urgency, risk and friction sub-scores and a composite
"score" (leverage + urgency + risk - friction; higher means do it sooner).

Rules:
- Speak clearly and directly.
- Focus on leverage, urgency, and risk.
- Return a short answer (1-3 tight paragraphs or bullet lists)."""


class AIError(Exception):
    """Base class for language-model integration failures."""


class AINotConfiguredError(AIError):
    """Raised when no API key is configured."""


class AIRequestError(AIError):
    """Raised when the API call itself fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AIResponseParseError(AIError):
    """Raised when the model's response is not the JSON we asked for."""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


def _strip_code_fences(content: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


class OpenAIClient:
    """Client for OpenAI API integration."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY environment variable.
            model: Model name. If None, reads from OPENAI_MODEL (default gpt-4.1-mini).

        Note:
            If no API key is available the client still initializes; AI calls
            then raise AINotConfiguredError. The rest of the API keeps working.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL)
        self.client = None

        if self.api_key:
            self.client = OpenAI(api_key=self.api_key)
        else:
            logger.warning("OPENAI_API_KEY not found in environment. /chat and /brain-dump will not be available.")

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def _require_client(self) -> OpenAI:
        if not self.client:
            raise AINotConfiguredError("OPENAI_API_KEY not configured")
        return self.client

    def _complete(self, messages: List[Dict[str, str]], **kwargs: Any) -> str:
        """Run a chat completion and return the message content ('' if empty)."""
        client = self._require_client()
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                **kwargs,
            )
        except APIError as e:
            error_code = getattr(e, 'code', None)
            status_code = getattr(e, 'status_code', None)

            if error_code == 'insufficient_quota':
                logger.warning("OpenAI API quota insufficient. Please check billing/payment method in OpenAI dashboard.")
            elif status_code == 429:
                logger.warning("OpenAI API rate limit exceeded. Please wait before retrying.")
            else:
                logger.error(f"OpenAI API error: {status_code or 'unknown'} ({error_code or 'unknown'})")

            # Don't propagate the full error message as it might contain sensitive info
            raise AIRequestError(
                f"OpenAI request failed ({status_code or error_code or 'unknown'})",
                status_code=status_code,
            ) from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    def extract_tasks(
        self,
        text: str,
        default_bucket: TaskBucket,
        default_area: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Turn a free-text brain dump into candidate task field-sets.

        Args:
            text: The brain dump
            default_bucket: Bucket the model should use when none is implied
            default_area: Area the model should use when none is implied

        Returns:
            List of candidate dicts (possibly empty). Candidates are not
            validated here; see task_factory.task_from_candidate.

        Raises:
            AINotConfiguredError: No API key configured
            AIRequestError: The API call failed
            AIResponseParseError: The response was not a JSON object
        """
        prompt = BRAIN_DUMP_PROMPT_TEMPLATE.format(
            buckets=" | ".join(bucket.value for bucket in TaskBucket),
            default_bucket=getattr(default_bucket, "value", default_bucket),
            default_area=default_area or DEFAULT_AREA,
        )
        raw = self._complete(
            [
                {"role": "system", "content": prompt},
                {"role": "user", "content": text},
            ],
            response_format={"type": "json_object"},
        ) or "{}"

        try:
            parsed = json.loads(_strip_code_fences(raw))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse OpenAI JSON response: {e}")
            raise AIResponseParseError("Failed to parse AI response", raw=raw) from e

        if not isinstance(parsed, dict):
            raise AIResponseParseError("AI response is not a JSON object", raw=raw)

        tasks = parsed.get("tasks")
        if not isinstance(tasks, list):
            logger.debug("OpenAI response has no tasks array; treating as empty")
            return []

        logger.debug(f"OpenAI extracted {len(tasks)} candidate tasks")
        return tasks

    def prioritization_advice(self, prompt: str, tasks: Sequence[Dict[str, Any]]) -> str:
        """Ask the model for guidance on what to do next.

        Args:
            prompt: The user's question
            tasks: JSON-serializable task dicts (already annotated with scores)

        Returns:
            The model's answer ('' if it returned nothing)
        """
        return self._complete(
            [
                {"role": "system", "content": CHAT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": json.dumps({"prompt": prompt, "tasks": list(tasks)}, default=str),
                },
            ]
        )
