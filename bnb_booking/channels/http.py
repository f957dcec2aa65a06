"""
Shared HTTP plumbing for channel manager clients: metrics, retries on
rate limiting and transient server errors.
"""

import time
from typing import Any, Optional

import requests
import structlog

from bnb_booking.metrics import api_latency, api_requests

logger = structlog.get_logger(__name__)

REQUEST_TIMEOUT = 10
RETRY_DELAY = 1.5
MAX_RETRIES = 2


def should_retry(res: Optional[requests.Response], err: Optional[Exception]) -> bool:
    """
    Determine whether the request should be retried based on response or error.

    Args:
        res (Optional[requests.Response]): Response object if available.
        err (Optional[Exception]): Exception raised by the request, if any.

    Returns:
        bool: True if the request should be retried, False otherwise.
    """
    if res is not None and res.status_code == 429:
        return True
    if isinstance(err, (requests.Timeout, requests.ConnectionError)):
        return True
    if res is not None and 500 <= res.status_code < 600:
        return True
    return False


def send(
    channel: str,
    method: str,
    url: str,
    endpoint: str,
    headers: dict[str, str],
    params: Optional[dict[str, Any]] = None,
    json: Any = None,
) -> requests.Response:
    """
    Send one request to a channel manager API.

    Only GET requests are retried; writes (block/unblock) are sent once so a
    timed-out POST never creates a second block.

    Args:
        channel: Channel manager name, used as metrics label
        method: HTTP method
        url: Full request URL
        endpoint: Endpoint name for metrics (e.g. 'bookings')
        headers: Request headers including authentication
        params: Query parameters
        json: JSON body

    Returns:
        requests.Response: The final response. 401 responses are returned,
        not raised, so callers can refresh credentials and resend.

    Raises:
        requests.RequestException: If the request fails after all retries.
    """
    retries = 0
    max_retries = MAX_RETRIES if method == "GET" else 0

    while True:
        res: Optional[requests.Response] = None
        try:
            logger.debug("Requesting %s %s", method, url)

            start_time = time.time()
            res = requests.request(
                method, url, headers=headers, params=params, json=json, timeout=REQUEST_TIMEOUT
            )
            latency = time.time() - start_time

            api_requests.labels(
                channel=channel, endpoint=endpoint, status_code=str(res.status_code)
            ).inc()
            api_latency.labels(channel=channel).observe(latency)

            if res.status_code == 401:
                return res

            res.raise_for_status()
            return res

        except requests.RequestException as err:
            logger.warning(
                "channel_request_failed",
                channel=channel,
                method=method,
                endpoint=endpoint,
                error=str(err),
            )
            retries += 1
            if retries > max_retries or not should_retry(res, err):
                raise
            time.sleep(RETRY_DELAY * retries)
