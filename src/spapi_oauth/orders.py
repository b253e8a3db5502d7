"""Paginated order retrieval from the SP-API Orders v0 endpoint."""

import logging
import threading
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, TYPE_CHECKING

import httpx

from .config import DEFAULT_PAGE_SIZE, DEFAULT_TIMEOUT_SECONDS, DEFAULT_TOTAL_CAP, DEFAULT_WINDOW_DAYS
from .config import ORDERS_PATH, PAGE_DELAY_SECONDS, PARTICIPATIONS_PATH, USER_AGENT, RegionConfig
from .demo_orders import DEMO_MESSAGE, generate_demo_orders
from .errors import AccessDeniedError, ApiError, AuthenticationError, NetworkError, RateLimitedError
from .errors import RetrievalCancelledError
from .models import NOT_AVAILABLE, OrderRecord, OrderResult
from .regions import marketplace_currency, resolve_base_url, resolve_marketplace_id
from .restricted_data import acquire_restricted_token, order_list_resources

if TYPE_CHECKING:
    from .auth import LwaOAuthClient

logger = logging.getLogger(__name__)

STATUS_MAP = {
    "Shipped": "Shipped",
    "PartiallyShipped": "Shipped",
    "Pending": "Pending",
    "Unshipped": "Pending",
    "PendingAvailability": "Pending",
    "InvoiceUnconfirmed": "Pending",
    "Delivered": "Delivered",
    "Canceled": "Cancelled",
    "Cancelled": "Cancelled",
    "Unfulfillable": "Cancelled",
}

# CreatedBefore must be at least two minutes in the past.
CREATED_BEFORE_LAG = timedelta(minutes=2)


class _AccessDenied(Exception):
    """Internal signal: the orders endpoint answered 403."""


def _iso(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_order_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def format_amount(order_total: dict[str, Any] | None) -> str:
    """Render an OrderTotal as "INR 450.00", or the N/A marker when absent."""
    if not order_total:
        return NOT_AVAILABLE
    currency = order_total.get("CurrencyCode")
    amount = order_total.get("Amount")
    if not currency or amount in (None, ""):
        return NOT_AVAILABLE
    return f"{currency} {amount}"


def to_order_record(order: dict[str, Any]) -> OrderRecord:
    return OrderRecord(
        order_id=order.get("AmazonOrderId", ""),
        order_date=_parse_order_date(order.get("PurchaseDate")),
        status=STATUS_MAP.get(order.get("OrderStatus", ""), "Unknown"),
        amount=format_amount(order.get("OrderTotal")),
    )


def _api_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "x-amz-access-token": token,
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value else None
    except ValueError:
        return None


class OrdersClient:
    """Retrieves recent orders for one seller, falling back to demo data on 403.

    Usage:
        orders = OrdersClient(RegionConfig.from_env())
        result = orders.fetch_orders(access_token)
        if not result.is_real_data:
            print(result.message)
    """

    def __init__(
        self,
        config: RegionConfig,
        demo_fallback: bool = True,
        use_restricted_token: bool = True,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        page_delay: float = PAGE_DELAY_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config
        self.demo_fallback = demo_fallback
        self.use_restricted_token = use_restricted_token
        self.timeout = timeout
        self.page_delay = page_delay
        self._transport = transport

        self.base_url = resolve_base_url(config.region, config.sandbox)
        self.marketplace_id = resolve_marketplace_id(config.region, config.marketplace_id)

    def fetch_orders(
        self,
        access_token: str,
        window_days: int = DEFAULT_WINDOW_DAYS,
        page_size_cap: int = DEFAULT_PAGE_SIZE,
        total_cap: int = DEFAULT_TOTAL_CAP,
        cancel_event: threading.Event | None = None,
    ) -> OrderResult:
        """Fetch orders created in the last ``window_days`` days.

        At most ``total_cap`` orders are returned, in the order the API pages
        them. A 403 yields demo data when the account can still list its
        marketplace participations.

        Raises:
            AuthenticationError: The access token was rejected (401).
            AccessDeniedError: 403 and no demo fallback is possible.
            RateLimitedError: The API throttled the request (429).
            NetworkError: Transport failure or timeout.
            RetrievalCancelledError: ``cancel_event`` was set between pages.
        """
        now = datetime.now(timezone.utc)
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            token = access_token
            if self.use_restricted_token:
                rdt = acquire_restricted_token(client, self.base_url, access_token, order_list_resources())
                token = rdt or access_token

            try:
                raw_orders = self._fetch_pages(
                    client, token, now, window_days, page_size_cap, total_cap, cancel_event
                )
            except _AccessDenied:
                return self._on_access_denied(client, access_token, now, window_days)

        logger.info("Fetched %d orders from the last %d days", len(raw_orders), window_days)
        return OrderResult(orders=[to_order_record(o) for o in raw_orders])

    def get_order_count(self, access_token: str, window_days: int = DEFAULT_WINDOW_DAYS, **kwargs: Any) -> int:
        """Number of orders ``fetch_orders`` returns for the same window."""
        return len(self.fetch_orders(access_token, window_days=window_days, **kwargs))

    def _fetch_pages(
        self,
        client: httpx.Client,
        token: str,
        now: datetime,
        window_days: int,
        page_size_cap: int,
        total_cap: int,
        cancel_event: threading.Event | None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "MarketplaceIds": self.marketplace_id,
            "CreatedAfter": _iso(now - timedelta(days=window_days)),
            "CreatedBefore": _iso(now - CREATED_BEFORE_LAG),
            "MaxResultsPerPage": page_size_cap,
        }
        all_orders: list[dict[str, Any]] = []
        page = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise RetrievalCancelledError(f"Order retrieval cancelled after {page} pages")

            payload = self._get(client, ORDERS_PATH, token, params).get("payload") or {}
            page += 1
            if not isinstance(payload, dict):
                raise ApiError(f"GET {ORDERS_PATH} returned a malformed payload", status_code=200)
            orders = payload.get("Orders") or []
            if not orders:
                break

            all_orders.extend(orders)
            if len(all_orders) >= total_cap:
                logger.debug("Order cap %d reached after %d pages", total_cap, page)
                return all_orders[:total_cap]

            next_token = payload.get("NextToken")
            if not next_token:
                break
            params["NextToken"] = next_token
            time.sleep(self.page_delay)

        return all_orders

    def _get(self, client: httpx.Client, path: str, token: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = client.get(f"{self.base_url}{path}", headers=_api_headers(token), params=params)
        except httpx.TransportError as e:
            raise NetworkError(f"GET {path} failed: {e}") from e

        status = response.status_code
        if status == 401:
            raise AuthenticationError("Access token rejected; reconnect the Amazon account")
        if status == 403:
            raise _AccessDenied()
        if status == 429:
            raise RateLimitedError("SP-API rate limit exceeded; retry later", retry_after=_retry_after(response))
        if status >= 400:
            logger.warning("GET %s returned HTTP %s: %s", path, status, response.text[:200])
            raise ApiError(f"GET {path} returned HTTP {status}", status_code=status)
        try:
            body = response.json()
        except ValueError as e:
            raise ApiError(f"GET {path} returned a non-JSON body", status_code=status) from e
        if not isinstance(body, dict):
            raise ApiError(f"GET {path} returned a non-object body", status_code=status)
        return body

    def has_marketplace_participation(self, client: httpx.Client, access_token: str) -> bool:
        """Probe whether the token can see any marketplace. Never raises."""
        try:
            response = client.get(f"{self.base_url}{PARTICIPATIONS_PATH}", headers=_api_headers(access_token))
        except httpx.HTTPError as e:
            logger.warning("Marketplace participation probe failed: %s", e)
            return False
        if response.status_code >= 400:
            logger.info("Marketplace participation probe denied (HTTP %s)", response.status_code)
            return False
        return True

    def _on_access_denied(
        self, client: httpx.Client, access_token: str, now: datetime, window_days: int
    ) -> OrderResult:
        if self.demo_fallback and self.has_marketplace_participation(client, access_token):
            logger.warning("Orders API denied but seller access confirmed; returning demo data")
            orders = generate_demo_orders(
                currency=marketplace_currency(self.marketplace_id),
                window_days=window_days,
                today=now.date(),
            )
            return OrderResult(orders=orders, is_real_data=False, message=DEMO_MESSAGE)
        raise AccessDeniedError(
            "Orders API access denied: the application needs the Orders role for this seller",
            scope="Orders",
        )


def retrieve_orders(
    oauth: "LwaOAuthClient",
    orders_client: OrdersClient,
    account_id: str,
    **kwargs: Any,
) -> OrderResult:
    """Ensure a fresh token for ``account_id`` and fetch its orders."""
    return orders_client.fetch_orders(oauth.ensure_fresh_token(account_id), **kwargs)
