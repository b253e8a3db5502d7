"""CLI for linking an Amazon seller account and viewing recent orders."""

import logging
import sys
import time
import webbrowser

import click

from .auth import ConnectionState, LwaOAuthClient
from .config import DEFAULT_ACCOUNT, DEFAULT_PAGE_SIZE, DEFAULT_TOTAL_CAP, DEFAULT_WINDOW_DAYS, RegionConfig
from .errors import ConfigurationError, SpApiError
from .orders import OrdersClient, retrieve_orders
from .server import parse_callback_url, start_callback_server, wait_for_callback
from .token_storage import KeyringCredentialStore

logger = logging.getLogger(__name__)


def _load_config() -> RegionConfig:
    try:
        return RegionConfig.from_env()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Set AMAZON_APP_ID, AMAZON_CLIENT_ID, AMAZON_CLIENT_SECRET and AMAZON_REDIRECT_URI.", err=True)
        sys.exit(1)


def _oauth_client() -> LwaOAuthClient:
    return LwaOAuthClient(_load_config(), KeyringCredentialStore())


def _fail(error: SpApiError) -> None:
    click.echo(f"Error: {error}", err=True)
    if error.reconnect_required:
        click.echo("Run 'spapi-oauth connect' to authorize the seller account again.", err=True)
    elif error.retryable:
        click.echo("This is usually temporary; try again shortly.", err=True)
    sys.exit(1)


@click.group()
@click.option("--account", "-a", envvar="SPAPI_ACCOUNT", default=DEFAULT_ACCOUNT, show_default=True,
              help="Local account name the seller credential is stored under.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, account: str, verbose: bool) -> None:
    """Amazon SP-API OAuth CLI: link a seller account and view orders."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = {"account": account}


@cli.command()
@click.option("--manual", is_flag=True, help="Paste the redirect URL instead of running a local callback server.")
@click.pass_context
def connect(ctx: click.Context, manual: bool) -> None:
    """Run the consent flow and store the seller's tokens."""
    account = ctx.obj["account"]
    client = _oauth_client()
    auth_url, state = client.authorization_url(account)

    server = None
    if not manual:
        try:
            server = start_callback_server(client.config.redirect_uri, state)
        except OSError as e:
            click.echo(f"Cannot listen on {client.config.redirect_uri} ({e}); switching to manual mode.", err=True)

    click.echo("Opening browser for Seller Central authorization...")
    click.echo(f"If the browser doesn't open, visit:\n{auth_url}\n")
    webbrowser.open(auth_url)

    try:
        if server is None:
            click.echo("After you approve access, copy the FULL URL from your browser's address bar.\n")
            result = parse_callback_url(click.prompt("Paste the redirect URL"), expected_state=state)
        else:
            click.echo("Waiting for the authorization redirect...")
            result = wait_for_callback(server)
        client.verify_state(account, result.state)

        click.echo("\nExchanging authorization code for tokens...")
        credential = client.connect(account, result.code, seller_id=result.seller_id)
    except TimeoutError as e:
        click.echo(f"\n{e}", err=True)
        sys.exit(1)
    except SpApiError as e:
        _fail(e)
        return

    click.echo(f"\nSeller account connected for '{account}'.")
    if credential.seller_id:
        click.echo(f"Seller ID: {credential.seller_id}")


@cli.command()
@click.option("--orders", "with_orders", is_flag=True,
              help=f"Also show the order count for the last {DEFAULT_WINDOW_DAYS} days (best effort).")
@click.pass_context
def status(ctx: click.Context, with_orders: bool) -> None:
    """Show whether the seller account is connected and the token is fresh."""
    account = ctx.obj["account"]
    client = _oauth_client()
    try:
        state = client.connection_state(account)
        credential = client.store.load(account)
    except SpApiError as e:
        _fail(e)
        return

    if state is ConnectionState.UNLINKED or credential is None:
        click.echo(f"Account '{account}' is not connected.")
        click.echo("Run 'spapi-oauth connect' to authorize.")
        sys.exit(1)

    click.echo(f"Account: {account}")
    click.echo(f"Region: {client.config.region}{' (sandbox)' if client.config.sandbox else ''}")
    click.echo(f"Seller ID: {credential.seller_id or 'unknown'}")
    click.echo(f"Refresh token: {'present' if credential.refresh_token else 'missing'}")
    expires = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(credential.token_expires_at))
    click.echo(f"Access token: {state.value} (expires {expires})")

    if with_orders:
        try:
            result = retrieve_orders(client, OrdersClient(client.config), account)
        except SpApiError as e:
            logger.warning("Order count unavailable for %s: %s", account, e)
            click.echo("Orders: unavailable")
            return
        label = "" if result.is_real_data else " (demo)"
        click.echo(f"Orders (last {DEFAULT_WINDOW_DAYS} days): {len(result)}{label}")


@cli.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Force-refresh the access token."""
    client = _oauth_client()
    try:
        token = client.force_refresh(ctx.obj["account"])
    except SpApiError as e:
        _fail(e)
        return
    click.echo("Access token refreshed successfully.")
    click.echo(f"Token: {token[:20]}...")


@cli.command()
@click.option("--days", default=DEFAULT_WINDOW_DAYS, show_default=True, help="How many days back to look.")
@click.option("--page-size", default=DEFAULT_PAGE_SIZE, show_default=True, help="Orders per API page.")
@click.option("--limit", default=DEFAULT_TOTAL_CAP, show_default=True, help="Maximum orders to fetch.")
@click.option("--count", "count_only", is_flag=True, help="Only print the number of orders.")
@click.option("--demo-fallback/--no-demo-fallback", default=True, show_default=True,
              help="Show demo data when the Orders role is missing but the seller is connected.")
@click.option("--restricted-token/--no-restricted-token", default=True, show_default=True,
              help="Request a restricted data token for buyer and address fields.")
@click.pass_context
def orders(ctx: click.Context, days: int, page_size: int, limit: int, count_only: bool,
           demo_fallback: bool, restricted_token: bool) -> None:
    """List recent orders for the connected seller."""
    client = _oauth_client()
    orders_client = OrdersClient(
        client.config,
        demo_fallback=demo_fallback,
        use_restricted_token=restricted_token,
    )
    try:
        result = retrieve_orders(
            client, orders_client, ctx.obj["account"],
            window_days=days, page_size_cap=page_size, total_cap=limit,
        )
    except SpApiError as e:
        _fail(e)
        return

    if not result.is_real_data:
        click.echo(f"[DEMO] {result.message}")
    if count_only:
        click.echo(str(len(result)))
        return

    click.echo(f"{len(result)} orders in the last {days} days")
    for order in result:
        order_date = order.order_date.isoformat() if order.order_date else "-"
        click.echo(f"{order.order_id:<22} {order_date:<10}  {order.status:<9}  {order.amount}")


@cli.command()
@click.pass_context
def disconnect(ctx: click.Context) -> None:
    """Delete the stored seller credential."""
    client = _oauth_client()
    try:
        removed = client.disconnect(ctx.obj["account"])
    except SpApiError as e:
        _fail(e)
        return
    if removed:
        click.echo("Seller credential deleted from keychain.")
    else:
        click.echo("No credentials found to delete.")
