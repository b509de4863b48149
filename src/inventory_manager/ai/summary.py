from __future__ import annotations

from typing import Any, Dict, List, Optional

from openai import APIConnectionError, APIStatusError, AuthenticationError, OpenAI, OpenAIError, RateLimitError

from ..config import DEFAULT_OPENAI_MODEL
from ..errors import (
    AIConfigurationError,
    AIFailureError,
    AIRateLimitError,
    AIUnavailableError,
    ValidationError,
)
from ..logging import get_logger

LOG = get_logger("ai-summary")

MAX_OUTPUT_TOKENS = 500
TEMPERATURE = 0.7
MISSING_KEY_HINT = "OpenAI API key is not configured. Set OPENAI_API_KEY in the environment or .env file."


def _system_prompt() -> str:
    return (
        "You are an inventory management assistant. Analyze the inventory notes and provide: "
        "1. A concise summary, 2. Key insights, 3. Actionable recommendations. "
        "Format the response clearly with bullet points."
    )


def _user_prompt(notes: str) -> str:
    return f"Please analyze these inventory notes and provide insights:\n\n{notes}"


def build_messages(notes: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": _system_prompt()},
        {"role": "user", "content": _user_prompt(notes)},
    ]


class SummaryService:
    """Single-attempt bridge to the OpenAI chat-completions API.

    Without an API key the service is disabled and `summarize` raises
    `AIUnavailableError` before any network activity. A prebuilt `client`
    (anything exposing `chat.completions.create`) may be injected instead.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: str = DEFAULT_OPENAI_MODEL,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        if client is None and api_key:
            # max_retries=0: each call is one attempt; callers decide on retries.
            client = OpenAI(api_key=api_key, max_retries=0)
        self._client = client
        if self._client is None:
            LOG.info("AI summaries disabled (no OpenAI API key configured)")
        else:
            LOG.info("AI summaries enabled with model '%s'", self.model)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def summarize(self, notes: Any) -> str:
        if not isinstance(notes, str) or not notes.strip():
            raise ValidationError("Notes are required for AI analysis")
        if self._client is None:
            raise AIUnavailableError(hint=MISSING_KEY_HINT)

        LOG.info("Requesting AI summary model='%s' notes_chars=%d", self.model, len(notes))
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                messages=build_messages(notes),
                temperature=TEMPERATURE,
                max_tokens=MAX_OUTPUT_TOKENS,
            )
        except RateLimitError as e:
            LOG.warning("OpenAI rate limit hit: %s", e)
            raise AIRateLimitError() from e
        except AuthenticationError as e:
            LOG.error("OpenAI rejected the API key (status %s)", getattr(e, "status_code", "?"))
            raise AIConfigurationError() from e
        except APIConnectionError as e:
            LOG.error("Network/timeout while calling OpenAI: %s", e)
            raise AIFailureError() from e
        except APIStatusError as e:
            body = getattr(getattr(e, "response", None), "text", None)
            LOG.error("OpenAI API returned %s. Body preview: %r", getattr(e, "status_code", "?"), (body[:300] if body else None))
            raise AIFailureError() from e
        except OpenAIError as e:
            LOG.error("OpenAI summary failed: %s", e)
            raise AIFailureError() from e

        choice = completion.choices[0] if getattr(completion, "choices", None) else None
        text = choice.message.content if choice is not None and getattr(choice, "message", None) else None
        if not text:
            LOG.error("OpenAI returned an empty completion (id=%s)", getattr(completion, "id", None))
            raise AIFailureError()

        usage = getattr(completion, "usage", None)
        LOG.info(
            "AI summary finished id=%s total_tokens=%s",
            getattr(completion, "id", None),
            getattr(usage, "total_tokens", None) if usage else None,
        )
        return text
