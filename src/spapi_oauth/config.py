"""Amazon SP-API OAuth configuration: URLs, regions, marketplaces, and defaults."""

import os
from dataclasses import dataclass

from .errors import ConfigurationError

# Login with Amazon token endpoint; the same for every region.
LWA_TOKEN_URL = "https://api.amazon.com/auth/o2/token"

DEFAULT_CONSENT_URL = "https://sellercentral.amazon.in/apps/authorize/consent"
CONSENT_VERSION = "beta"

REGIONS = {
    "na": {
        "production": "https://sellingpartnerapi-na.amazon.com",
        "sandbox": "https://sandbox.sellingpartnerapi-na.amazon.com",
    },
    "eu": {
        "production": "https://sellingpartnerapi-eu.amazon.com",
        "sandbox": "https://sandbox.sellingpartnerapi-eu.amazon.com",
    },
    "fe": {
        "production": "https://sellingpartnerapi-fe.amazon.com",
        "sandbox": "https://sandbox.sellingpartnerapi-fe.amazon.com",
    },
}

MARKETPLACE_IDS = {
    "IN": "A21TJRUUN4KGV",
    "US": "ATVPDKIKX0DER",
    "CA": "A2EUQ1WTGCTBG2",
    "UK": "A1F83G8C2ARO7P",
    "DE": "A1PA6795UKMFR9",
    "FR": "A13V1IB3VIYZZH",
    "IT": "APJ6JRA9NG5V4",
    "ES": "A1RKKUPIHCS9HS",
    "JP": "A1VC38T7YXB528",
    "AU": "A39IBJ37TRP1C6",
}

MARKETPLACE_CURRENCIES = {
    MARKETPLACE_IDS["IN"]: "INR",
    MARKETPLACE_IDS["US"]: "USD",
    MARKETPLACE_IDS["CA"]: "CAD",
    MARKETPLACE_IDS["UK"]: "GBP",
    MARKETPLACE_IDS["DE"]: "EUR",
    MARKETPLACE_IDS["FR"]: "EUR",
    MARKETPLACE_IDS["IT"]: "EUR",
    MARKETPLACE_IDS["ES"]: "EUR",
    MARKETPLACE_IDS["JP"]: "JPY",
    MARKETPLACE_IDS["AU"]: "AUD",
}

# The "eu" default points at Amazon.in: this deployment sells in India, which
# SP-API serves from the EU endpoint. Set AMAZON_MARKETPLACE_ID to override.
DEFAULT_MARKETPLACES = {
    "na": MARKETPLACE_IDS["US"],
    "eu": MARKETPLACE_IDS["IN"],
    "fe": MARKETPLACE_IDS["JP"],
}

ORDERS_PATH = "/orders/v0/orders"
PARTICIPATIONS_PATH = "/sellers/v1/marketplaceParticipations"
RESTRICTED_DATA_TOKEN_PATH = "/tokens/2021-03-01/restrictedDataToken"
ORDER_DATA_ELEMENTS = ["buyerInfo", "shippingAddress"]

USER_AGENT = "spapi-oauth/0.1.0 (Language=Python)"

DEFAULT_TIMEOUT_SECONDS = 30.0
REFRESH_BUFFER_SECONDS = 5 * 60
DEFAULT_EXPIRES_IN = 3600

DEFAULT_WINDOW_DAYS = 30
DEFAULT_PAGE_SIZE = 50
DEFAULT_TOTAL_CAP = 200
PAGE_DELAY_SECONDS = 1.0

DEFAULT_CALLBACK_PORT = 8881
CALLBACK_TIMEOUT_SECONDS = 300  # 5 minutes
STATE_MAX_AGE_SECONDS = 600

KEYRING_SERVICE = "spapi-oauth"
DEFAULT_ACCOUNT = "default"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RegionConfig:
    """Deployment-wide SP-API settings, validated once at construction."""

    region: str
    sandbox: bool
    application_id: str
    client_id: str
    client_secret: str
    redirect_uri: str
    marketplace_id: str | None = None
    consent_url: str = DEFAULT_CONSENT_URL

    def __post_init__(self) -> None:
        missing = [
            name
            for name in ("region", "application_id", "client_id", "client_secret", "redirect_uri")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(f"Missing SP-API configuration: {', '.join(missing)}")
        region = self.region.lower()
        if region not in REGIONS:
            raise ConfigurationError(f"Unknown region: {self.region}. Use one of: {', '.join(REGIONS)}.")
        object.__setattr__(self, "region", region)

    @classmethod
    def from_env(cls, environ: dict | None = None) -> "RegionConfig":
        """Build the configuration from AMAZON_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            region=env.get("AMAZON_REGION", "eu"),
            sandbox=env.get("AMAZON_SANDBOX", "").strip().lower() in _TRUTHY,
            application_id=env.get("AMAZON_APP_ID", ""),
            client_id=env.get("AMAZON_CLIENT_ID", ""),
            client_secret=env.get("AMAZON_CLIENT_SECRET", ""),
            redirect_uri=env.get("AMAZON_REDIRECT_URI", ""),
            marketplace_id=env.get("AMAZON_MARKETPLACE_ID") or None,
            consent_url=env.get("AMAZON_CONSENT_URL") or DEFAULT_CONSENT_URL,
        )
