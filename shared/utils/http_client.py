"""
HTTP Client Utilities with Retry Logic and Timeout Handling

Provides resilient HTTP requests for upstream providers with:
- Automatic retries with exponential backoff on transient transport failures
- Configurable timeouts
- Mapping of failures onto the provider error taxonomy
"""

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (  # type: ignore[import-untyped]
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.utils.provider_errors import (
    AuthError,
    RateLimitError,
    TransportError,
    provider_unavailable_message,
)

logger = logging.getLogger(__name__)

# Configure default timeout (connect, read, write, pool)
DEFAULT_TIMEOUT = httpx.Timeout(
    connect=10.0,  # Time to establish connection
    read=30.0,  # Time to read response
    write=10.0,  # Time to write request
    pool=5.0,  # Time to get connection from pool
)

RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.PoolTimeout,
)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def _send_get(
    client: httpx.AsyncClient,
    url: str,
    headers: Optional[Dict[str, str]],
    params: Optional[Dict[str, Any]],
) -> httpx.Response:
    response = await client.get(url, headers=headers, params=params)
    response.raise_for_status()
    return response


async def resilient_get(
    url: str,
    provider: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[httpx.Timeout] = None,
    retries: int = 3,
    client: Optional[httpx.AsyncClient] = None,
) -> httpx.Response:
    """
    Perform a GET request with automatic retry logic.

    Args:
        url: Target URL
        provider: Provider key used in raised errors (e.g. "openweather")
        headers: Request headers
        params: Query parameters
        timeout: Custom timeout configuration
        retries: Total attempts for transient transport failures
        client: Optional shared client; a short-lived one is created otherwise

    Returns:
        httpx.Response object

    Raises:
        AuthError: Provider rejected the credential (401/403)
        RateLimitError: Provider rate limited the request (429)
        TransportError: Timeouts, network failures, other non-success statuses
    """
    send = _send_get.retry_with(stop=stop_after_attempt(max(1, retries)))
    public_message = provider_unavailable_message(provider)

    try:
        if client is not None:
            return await send(client, url, headers, params)
        async with httpx.AsyncClient(timeout=timeout or DEFAULT_TIMEOUT) as owned:
            return await send(owned, url, headers, params)

    except httpx.TimeoutException as e:
        logger.error(f"Request timeout for {provider}: {e}")
        raise TransportError(
            provider=provider,
            public_message=public_message,
            internal_message=f"timeout: {e}",
        ) from e

    except (httpx.ConnectError, httpx.ReadError, httpx.WriteError) as e:
        logger.error(f"Network error for {provider}: {e}")
        raise TransportError(
            provider=provider,
            public_message=public_message,
            internal_message=f"network: {e}",
        ) from e

    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        internal = f"status={status} body={e.response.text[:200]}"
        if status == 429:
            logger.warning(f"Rate limited by {provider}")
            raise RateLimitError(
                provider=provider,
                public_message=public_message,
                internal_message=internal,
                http_status=status,
            ) from e
        if status in (401, 403):
            logger.error(f"Credential rejected by {provider}: {status}")
            raise AuthError(
                provider=provider,
                public_message=public_message,
                internal_message=internal,
                http_status=status,
            ) from e
        logger.error(f"HTTP error for {provider}: {status}")
        raise TransportError(
            provider=provider,
            public_message=public_message,
            internal_message=internal,
            http_status=status,
        ) from e

    except httpx.HTTPError as e:
        logger.error(f"Unexpected transport error for {provider}: {e}")
        raise TransportError(
            provider=provider,
            public_message=public_message,
            internal_message=str(e),
        ) from e


def create_client(timeout: Optional[httpx.Timeout] = None) -> httpx.AsyncClient:
    """
    Create a configured async HTTP client with connection pooling.

    Args:
        timeout: Custom timeout configuration

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        timeout=timeout or DEFAULT_TIMEOUT,
        limits=httpx.Limits(
            max_connections=100, max_keepalive_connections=20, keepalive_expiry=30.0
        ),
        follow_redirects=True,
    )
