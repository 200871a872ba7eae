"""
Completion client using LiteLLM for multi-provider support.

Bethany needs exactly one call pattern: a system prompt plus one user input,
returning text. Failures are classified so callers can react:

    CompletionQuotaError    credit/quota exhausted (never retried)
    CompletionTimeoutError  deadline exceeded (never retried)
    CompletionServiceError  anything else (retried a bounded number of times)
"""

import asyncio
from typing import Optional

import litellm
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from config.settings import settings
from core import (
    get_logger,
    CompletionServiceError,
    CompletionQuotaError,
    CompletionTimeoutError,
)

logger = get_logger(__name__)

# Configure LiteLLM
litellm.set_verbose = False  # Set True for debugging

# Substrings providers use when the account is out of credit or quota
QUOTA_MARKERS = (
    "credit balance is too low",
    "insufficient_quota",
    "exceeded your current quota",
)


def is_quota_error(details: str) -> bool:
    """True when an error body carries a quota-exhaustion marker."""
    lowered = (details or "").lower()
    return any(marker in lowered for marker in QUOTA_MARKERS)


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, CompletionServiceError) and not isinstance(
        error, (CompletionQuotaError, CompletionTimeoutError)
    )


class LLMClient:
    """
    Completion client supporting multiple providers via LiteLLM.

    Usage:
        client = LLMClient()
        text = await client.complete(system_prompt, "hey")

        # Switch provider by model string:
        text = await client.complete(system_prompt, "hey", model="gpt-4o")
    """

    def __init__(
        self,
        model: str = settings.MODEL_CONVERSATION,
        timeout: float = settings.LLM_TIMEOUT_SECONDS,
        max_attempts: int = settings.LLM_MAX_ATTEMPTS,
        retry_wait: Optional[wait_base] = None,
    ):
        """
        Initialize completion client.

        Args:
            model: Default model identifier
            timeout: Per-attempt deadline in seconds
            max_attempts: Attempts for retryable failures
            retry_wait: Tenacity wait strategy between attempts
        """
        # LiteLLM picks up ANTHROPIC_API_KEY / OPENAI_API_KEY from the environment
        self.model = model
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        logger.info("LLM client initialized", model=model)

    async def complete(
        self,
        system_prompt: str,
        user_input: str,
        model: Optional[str] = None,
        max_tokens: int = settings.LLM_MAX_TOKENS,
        temperature: float = 0.7,
    ) -> str:
        """
        Generate a completion for one user input under a system prompt.

        Args:
            system_prompt: Full system prompt (personality + context)
            user_input: The user's message or the rhythm instruction
            model: Model override
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature

        Returns:
            Generated response text, stripped

        Raises:
            CompletionQuotaError: Provider reports exhausted credit/quota
            CompletionTimeoutError: The call exceeded the deadline
            CompletionServiceError: Any other failure, after retries
        """
        model = model or self.model
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._complete_once(
                    model, system_prompt, user_input, max_tokens, temperature
                )

    async def _complete_once(
        self,
        model: str,
        system_prompt: str,
        user_input: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_input},
        ]

        logger.debug(
            "LLM request",
            model=model,
            system_length=len(system_prompt),
            input_length=len(user_input),
        )

        try:
            response = await asyncio.wait_for(
                litellm.acompletion(
                    model=model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("LLM request timed out", model=model, timeout=self.timeout)
            raise CompletionTimeoutError(self.timeout)
        except Exception as e:
            details = str(e)
            status_code = getattr(e, "status_code", None)
            if is_quota_error(details):
                logger.error("LLM quota exhausted", model=model, status_code=status_code)
                raise CompletionQuotaError(status_code=status_code, details=details)
            logger.error("LLM request failed", model=model, status_code=status_code, error=details)
            raise CompletionServiceError(status_code=status_code, details=details)

        content = response.choices[0].message.content or ""
        finish_reason = response.choices[0].finish_reason

        logger.debug(
            "LLM response",
            model=model,
            tokens_used=response.usage.total_tokens if getattr(response, "usage", None) else None,
            response_length=len(content),
            finish_reason=finish_reason,
        )

        if not content.strip():
            raise CompletionServiceError(details="empty completion")
        return content.strip()


# Singleton instance
llm_client = LLMClient()
