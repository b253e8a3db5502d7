"""Region and marketplace resolution."""

from .config import DEFAULT_MARKETPLACES, MARKETPLACE_CURRENCIES, REGIONS
from .errors import ConfigurationError


def _region_key(region: str) -> str:
    key = (region or "").lower()
    if key not in REGIONS:
        raise ConfigurationError(f"Unknown region: {region}. Use one of: {', '.join(REGIONS)}.")
    return key


def resolve_base_url(region: str, sandbox: bool = False) -> str:
    """Return the SP-API host for a region, e.g. https://sellingpartnerapi-eu.amazon.com."""
    environment = "sandbox" if sandbox else "production"
    return REGIONS[_region_key(region)][environment]


def resolve_marketplace_id(region: str, override: str | None = None) -> str:
    """Return the marketplace to query: the configured override, else the region default."""
    key = _region_key(region)
    return override or DEFAULT_MARKETPLACES[key]


def marketplace_currency(marketplace_id: str) -> str:
    return MARKETPLACE_CURRENCIES.get(marketplace_id, "USD")
