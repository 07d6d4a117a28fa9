from __future__ import annotations

import logging
from typing import Optional

from openai import APIStatusError, OpenAI

from .config import Settings, api_key
from .prompt_templates import OPTIMIZE_PROMPT

logger = logging.getLogger("uvicorn.error")


# -------- Errors --------
class OptimizeError(Exception):
    """Failure the relay reports to its caller as a 500."""

    default_message = "Failed to optimize job description"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class UpstreamError(OptimizeError):
    default_message = "Groq API request failed"


# -------- Completion call --------
def build_prompt(job_description: str) -> str:
    return OPTIMIZE_PROMPT.format(job_description=job_description)


def _upstream_message(exc: APIStatusError) -> Optional[str]:
    # the SDK usually unwraps {"error": {...}} already, but not for every provider
    body = exc.body
    if isinstance(body, dict):
        err = body.get("error", body)
        if isinstance(err, dict) and isinstance(err.get("message"), str):
            return err["message"]
    return None


def optimize_job_description(job_description: str, settings: Settings) -> str:
    """
    Rewrite a job description with the completion API.

    One outbound request per call; SDK retries are off so a failure is final.
    Raises UpstreamError when the API answers with a non-success status,
    including the authorization error it returns when no key is set.
    Anything else propagates.
    """
    key = api_key()
    if not key:
        logger.warning("GROQ_API_KEY is not set; the completion API will reject the request")

    # an empty key makes the SDK send no Authorization header at all
    with OpenAI(
        api_key=key or "",
        base_url=settings.base_url,
        timeout=settings.request_timeout,
        max_retries=0,
    ) as client:
        try:
            resp = client.chat.completions.create(
                model=settings.model,
                messages=[{"role": "user", "content": build_prompt(job_description)}],
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
            )
        except APIStatusError as e:
            logger.warning("Completion API returned status %s", e.status_code)
            raise UpstreamError(_upstream_message(e)) from e

    return resp.choices[0].message.content or ""
