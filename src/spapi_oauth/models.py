"""Credential and order data structures."""

from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, Iterator

from .config import DEFAULT_EXPIRES_IN

NOT_AVAILABLE = "N/A"

ORDER_STATUSES = ("Shipped", "Pending", "Delivered", "Cancelled", "Unknown")


@dataclass(frozen=True)
class TokenBundle:
    """A successful response from the LWA token endpoint."""

    access_token: str
    expires_in: int
    received_at: float
    refresh_token: str | None = field(default=None, repr=False)
    seller_id: str | None = None

    @property
    def expires_at(self) -> float:
        return self.received_at + self.expires_in

    @classmethod
    def from_response(cls, data: dict[str, Any], received_at: float) -> "TokenBundle":
        return cls(
            access_token=data["access_token"],
            expires_in=int(data.get("expires_in") or DEFAULT_EXPIRES_IN),
            received_at=received_at,
            refresh_token=data.get("refresh_token") or None,
            seller_id=data.get("seller_id") or data.get("selling_partner_id") or None,
        )


@dataclass(frozen=True)
class ExternalCredential:
    """The stored link between a local account and an Amazon seller account."""

    access_token: str = field(repr=False)
    token_expires_at: float
    refresh_token: str | None = field(default=None, repr=False)
    seller_id: str | None = None
    connected_at: float | None = None

    @classmethod
    def from_bundle(
        cls, bundle: TokenBundle, seller_id: str | None = None, connected_at: float | None = None
    ) -> "ExternalCredential":
        return cls(
            access_token=bundle.access_token,
            token_expires_at=bundle.expires_at,
            refresh_token=bundle.refresh_token,
            seller_id=bundle.seller_id or seller_id,
            connected_at=connected_at if connected_at is not None else bundle.received_at,
        )

    def with_refresh(self, bundle: TokenBundle) -> "ExternalCredential":
        """Apply a refresh response. The refresh token only changes if a new one was issued."""
        return replace(
            self,
            access_token=bundle.access_token,
            token_expires_at=bundle.expires_at,
            refresh_token=bundle.refresh_token or self.refresh_token,
        )

    def needs_refresh(self, now: float, buffer_seconds: float) -> bool:
        return now >= self.token_expires_at - buffer_seconds

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExternalCredential":
        return cls(
            access_token=data["access_token"],
            token_expires_at=float(data["token_expires_at"]),
            refresh_token=data.get("refresh_token"),
            seller_id=data.get("seller_id"),
            connected_at=data.get("connected_at"),
        )


@dataclass(frozen=True)
class OrderRecord:
    order_id: str
    order_date: date | None
    status: str
    amount: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "orderId": self.order_id,
            "orderDate": self.order_date.isoformat() if self.order_date else None,
            "status": self.status,
            "amount": self.amount,
        }


@dataclass
class OrderResult:
    """Orders returned by one retrieval, and whether they came from the live API."""

    orders: list[OrderRecord]
    is_real_data: bool = True
    message: str | None = None

    def __len__(self) -> int:
        return len(self.orders)

    def __iter__(self) -> Iterator[OrderRecord]:
        return iter(self.orders)
