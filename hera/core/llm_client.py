from typing import Any, Dict, List, Optional, Union

import httpx

from hera.core.exceptions import APIClientError, APITimeoutError
from hera.pipeline.retry import RetryPolicy, retry_async
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseLLMClient:
    """Base client for completion API interactions.

    Handles HTTP requests, retries with exponential backoff, timeout
    management and error logging.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            api_key: API key for authentication
            base_url: Endpoint URL
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Base delay for exponential backoff
            http_client: Shared client; a short-lived one is opened per call if omitted
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.http_client = http_client
        self.retry_policy = RetryPolicy(
            max_attempts=max(1, max_retries),
            initial_interval=retry_delay,
            backoff_coefficient=2.0,
            maximum_interval=retry_delay * 2 ** max(0, max_retries - 1),
        )
        self.logger = LOGGER

    async def call_api(
        self,
        endpoint: str = "",
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST ``payload`` with retry logic.

        Args:
            endpoint: Path appended to base_url
            payload: JSON payload
            headers: Additional headers

        Returns:
            Parsed JSON response

        Raises:
            APIClientError: If the call fails after retries or with a 4xx other than 429
            APITimeoutError: If every attempt timed out
        """
        url = f"{self.base_url}{endpoint}" if endpoint else self.base_url

        request_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if headers:
            request_headers.update(headers)

        self.logger.debug(f"Calling completion API: {url}", extra={"timeout": self.timeout})

        async def _post(client: httpx.AsyncClient) -> Dict[str, Any]:
            response = await client.post(url, headers=request_headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        async def _attempts(client: httpx.AsyncClient) -> Dict[str, Any]:
            return await retry_async(lambda: _post(client), self.retry_policy, description=f"POST {url}")

        try:
            if self.http_client is not None:
                return await _attempts(self.http_client)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await _attempts(client)

        except httpx.TimeoutException as e:
            self.logger.warning("Completion API timeout", extra={"url": url})
            raise APITimeoutError(f"API Timeout after {self.max_retries} attempts", original_error=e) from e

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            self.logger.warning(
                f"Completion API HTTP error {status_code}",
                extra={"url": url, "status_code": status_code, "error_body": e.response.text[:500]},
            )
            raise APIClientError(f"API HTTP Error {status_code}", original_error=e) from e

        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("Completion API error", extra={"url": url, "error": str(e)})
            raise APIClientError(f"API Error: {e}", original_error=e) from e


class CompletionClient:
    """Chat-completions client for OpenRouter and other OpenAI-compatible endpoints."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the completion client.

        Args:
            api_key: API key
            model: Model name (e.g., "openai/gpt-4o")
            base_url: Chat completions endpoint URL
            timeout: Request timeout in seconds
            max_retries: Maximum attempts per request
            retry_delay: Base backoff delay in seconds
            http_client: Optional shared HTTP client
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.client = BaseLLMClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
            http_client=http_client,
        )

        LOGGER.info(f"Initialized completion client with model {self.model}")

    async def generate_content(
        self,
        contents: Union[str, List[Union[str, Dict[str, Any]]]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate text for ``contents``.

        Args:
            contents: Prompt text, or a list of text parts
            system_instruction: Optional system message
            generation_config: Optional ``temperature``, ``max_output_tokens``
                and ``response_mime_type`` ("application/json" requests a JSON object)

        Returns:
            The generated text, or "" when the model returned nothing

        Raises:
            APIClientError: If the request fails or the response has no choices
        """
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})

        if isinstance(contents, str):
            user_content = contents
        else:
            user_content = "".join(
                part if isinstance(part, str) else part.get("text", "")
                for part in contents
            )
        messages.append({"role": "user", "content": user_content})

        payload: Dict[str, Any] = {"model": self.model, "messages": messages}

        generation_config = generation_config or {"temperature": 0.0}
        if "temperature" in generation_config:
            payload["temperature"] = generation_config["temperature"]
        if "max_output_tokens" in generation_config:
            payload["max_tokens"] = generation_config["max_output_tokens"]
        if generation_config.get("response_mime_type") == "application/json":
            payload["response_format"] = {"type": "json_object"}

        response = await self.client.call_api(payload=payload)

        choices = response.get("choices") if isinstance(response, dict) else None
        if not isinstance(choices, list) or not choices:
            LOGGER.error(f"Unexpected completion response format: {str(response)[:500]}")
            raise APIClientError("Invalid response format from completion API")

        choice = choices[0]
        message = (choice.get("message") or {}) if isinstance(choice, dict) else None
        if not isinstance(message, dict):
            LOGGER.error(f"Unexpected completion choice format: {str(choice)[:500]}")
            raise APIClientError("Invalid choice format from completion API")

        content = message.get("content") or ""
        if not isinstance(content, str):
            raise APIClientError("Completion content is not text")
        if not content:
            LOGGER.warning("Empty response from completion API")
        return content
