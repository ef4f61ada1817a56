from anthropic import AsyncAnthropic, APIStatusError, APIError, APIConnectionError, APITimeoutError
from typing import Optional, Dict, List, Any
import asyncio
import random
import httpx
from codeheal.core.config import settings
from codeheal.core.exceptions import AIClientError, AIProviderNotConfiguredError
from codeheal.core.logging_config import logger

# Retry configuration - loaded from settings
MAX_RETRIES = settings.CLAUDE_MAX_RETRIES
BASE_DELAY = settings.CLAUDE_RETRY_BASE_DELAY
MAX_DELAY = settings.CLAUDE_RETRY_MAX_DELAY
REQUEST_TIMEOUT = float(settings.CLAUDE_REQUEST_TIMEOUT)
CONNECT_TIMEOUT = float(settings.CLAUDE_CONNECT_TIMEOUT)
RETRYABLE_ERRORS = ['overloaded_error', 'rate_limit_error', 'server_error']
RETRYABLE_STATUS_CODES = [429, 500, 502, 503, 529]


class ClaudeClient:
    """
    Anthropic adapter for the remediation AI strategies.

    Implements the engine's client contract:
        await client.generate(prompt=..., system_instruction=..., response_format="text")
        -> {"text": ..., "model": ..., "total_tokens": ..., ...}
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        async_client: Optional[AsyncAnthropic] = None
    ):
        api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self.model = model or settings.CLAUDE_FIX_MODEL

        if async_client is not None:
            self.async_client = async_client
            return

        if not api_key:
            raise AIProviderNotConfiguredError("anthropic")

        client_kwargs = {"api_key": api_key}

        # Only set base_url if it's a non-empty string with actual content
        if settings.ANTHROPIC_BASE_URL and settings.ANTHROPIC_BASE_URL.strip():
            client_kwargs["base_url"] = settings.ANTHROPIC_BASE_URL.strip()
            logger.info(f"Using custom Claude API base URL: {settings.ANTHROPIC_BASE_URL}")

        # Configure timeouts; the engine's strategy budgets sit on top of these
        client_kwargs["timeout"] = httpx.Timeout(
            connect=CONNECT_TIMEOUT,
            read=REQUEST_TIMEOUT,
            write=REQUEST_TIMEOUT,
            pool=REQUEST_TIMEOUT
        )

        self.async_client = AsyncAnthropic(**client_kwargs)
        logger.info(f"Claude client initialized: timeout={REQUEST_TIMEOUT}s, model={self.model}")

    def _is_retryable_error(self, error: Exception) -> bool:
        """Check if an error is retryable (overload, rate limit, network issues, etc.)"""
        error_str = str(error).lower()

        # Network/connection errors are always retryable
        if isinstance(error, (APIConnectionError, APITimeoutError)):
            logger.warning(f"Network error detected (retryable): {type(error).__name__}")
            return True

        # httpx network errors
        if isinstance(error, (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError)):
            logger.warning(f"HTTPX network error detected (retryable): {type(error).__name__}")
            return True

        if isinstance(error, (APIStatusError, APIError)):
            # Check error type from API response
            if hasattr(error, 'body') and isinstance(error.body, dict):
                error_type = error.body.get('error', {}).get('type', '')
                if error_type:
                    return error_type in RETRYABLE_ERRORS
            # Check status code for server errors
            if hasattr(error, 'status_code'):
                return error.status_code in RETRYABLE_STATUS_CODES

        # Fallback: check error message for network-related issues
        network_errors = ['overload', 'rate_limit', '529', '503', 'capacity',
                          'connection', 'timeout', 'network', 'dns', 'socket']
        return any(err in error_str for err in network_errors)

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay with exponential backoff and jitter"""
        delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)
        # Add jitter (0-25% of delay)
        jitter = delay * random.uniform(0, 0.25)
        return delay + jitter

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        response_format: str = "text",
        max_tokens: int = None,
        temperature: float = None,
        messages: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        """
        Generate a (non-streaming) completion

        Args:
            prompt: User prompt
            system_instruction: System prompt
            response_format: Only "text" is supported
            max_tokens: Maximum tokens to generate
            temperature: Temperature for generation
            messages: Optional list of previous messages for conversation

        Returns:
            Dict with "text" and usage metadata

        Raises:
            AIClientError: Anthropic API error, or retries exhausted (original error as __cause__)
        """
        if response_format != "text":
            raise ValueError(f"Unsupported response format: {response_format}")

        messages = list(messages or [])
        messages.append({
            "role": "user",
            "content": prompt
        })

        # Set defaults
        if max_tokens is None:
            max_tokens = settings.CLAUDE_MAX_TOKENS
        if temperature is None:
            temperature = settings.CLAUDE_TEMPERATURE

        prompt_preview = prompt[:100] + "..." if len(prompt) > 100 else prompt
        logger.info(f"Claude API: model={self.model}, max_tokens={max_tokens}, prompt_len={len(prompt)}")
        logger.debug(f"Claude request prompt: {prompt_preview}")

        last_error = None
        for attempt in range(MAX_RETRIES + 1):
            try:
                response = await self.async_client.messages.create(
                    model=self.model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system_instruction if system_instruction else "",
                    messages=messages
                )

                # Concatenate text blocks
                text = "".join(
                    block.text for block in (response.content or [])
                    if getattr(block, "type", "text") == "text"
                )

                result = {
                    "text": text,
                    "model": self.model,
                    "input_tokens": response.usage.input_tokens,
                    "output_tokens": response.usage.output_tokens,
                    "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
                    "stop_reason": response.stop_reason,
                    "id": response.id
                }

                logger.info(f"Claude API response: id={response.id}, tokens={result['total_tokens']}, stop={response.stop_reason}")
                logger.debug(f"Claude response preview: {text[:200]}..." if len(text) > 200 else text)

                return result

            except Exception as e:
                last_error = e
                error_type = type(e).__name__
                if self._is_retryable_error(e) and attempt < MAX_RETRIES:
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning(
                        f"Claude API error [{error_type}] (attempt {attempt + 1}/{MAX_RETRIES + 1}), retrying in {delay:.1f}s...",
                        extra={
                            "event_type": "claude_api_retry",
                            "error_type": error_type,
                            "attempt": attempt + 1,
                            "max_retries": MAX_RETRIES + 1,
                            "retry_delay": delay
                        }
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"Claude API error (non-retryable or max retries exceeded): {error_type}: {e}",
                        extra={
                            "event_type": "claude_api_error",
                            "error_type": error_type,
                            "error_message": str(e),
                            "attempt": attempt + 1
                        }
                    )
                    if isinstance(e, APIError) or self._is_retryable_error(e):
                        raise AIClientError(
                            f"Claude API request failed after {attempt + 1} attempt(s): {error_type}: {e}",
                            details={"error_type": error_type, "attempts": attempt + 1, "model": self.model}
                        ) from e
                    raise

        # Should not reach here, but just in case
        raise AIClientError(f"Claude API request failed: {last_error}") from last_error
