"""Restricted Data Token (RDT) acquisition for PII order fields."""

import logging

import httpx

from .config import ORDER_DATA_ELEMENTS, ORDERS_PATH, RESTRICTED_DATA_TOKEN_PATH, USER_AGENT

logger = logging.getLogger(__name__)


def order_list_resources() -> list[dict]:
    """Restricted resources covering buyer info and shipping address on the order list."""
    return [
        {
            "method": "GET",
            "path": ORDERS_PATH,
            "dataElements": list(ORDER_DATA_ELEMENTS),
        }
    ]


def acquire_restricted_token(
    client: httpx.Client,
    base_url: str,
    access_token: str,
    resources: list[dict],
) -> str | None:
    """Request an RDT for ``resources``.

    Best effort with no retry: any failure is logged and yields None so the
    caller can continue with its regular access token.
    """
    try:
        response = client.post(
            f"{base_url}{RESTRICTED_DATA_TOKEN_PATH}",
            headers={
                "Authorization": f"Bearer {access_token}",
                "x-amz-access-token": access_token,
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            },
            json={"restrictedResources": resources},
        )
    except httpx.HTTPError as e:
        logger.warning("Restricted data token request failed: %s", e)
        return None

    if response.status_code >= 400:
        logger.warning("Restricted data token denied (HTTP %s); using access token", response.status_code)
        return None

    try:
        body = response.json()
    except ValueError:
        body = None
    token = body.get("restrictedDataToken") if isinstance(body, dict) else None
    if not token:
        logger.warning("Restricted data token response had no token; using access token")
        return None

    logger.debug("Restricted data token acquired")
    return token
