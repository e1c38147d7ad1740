"""CLI command for managing and testing webhooks."""

import hashlib
import hmac
import json
import sys
import time
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlparse

import click
import questionary

from ..platform.client import PlatformAPIError, PlatformClient
from ..platform.types import App, Webhook, WebhookList
from ..session import requires_auth
from ..utils import (
    PROMPT_STYLE,
    Spinner,
    field,
    format_timestamp,
    heading,
    is_interactive,
    rule,
)

STORE_EVENTS = [
    "inventory.updated",
    "order.created",
    "order.updated",
    "order.shipped",
    "order.delivered",
    "order.cancelled",
    "payment.succeeded",
    "payment.failed",
    "product.created",
    "product.updated",
    "customer.created",
    "customer.updated",
]

DEVELOPER_EVENTS = [
    "developer.app.installed",
    "developer.app.uninstalled",
    "developer.app.updated",
    "order.created",
    "order.updated",
    "payment.succeeded",
    "payment.failed",
    "inventory.updated",
    "product.created",
    "product.updated",
    "customer.created",
    "customer.updated",
]

DEFAULT_STORE_EVENTS = ["order.created", "inventory.updated"]
DEFAULT_DEVELOPER_EVENTS = ["developer.app.installed", "order.created"]

# Used when the app has no webhook secret of its own
TEST_SECRET = "test_secret"
TEST_API_KEY = "test_key"

SIGNATURE_HEADER = "x-developer-signature"

DEFAULT_DEV_HOOK_NAME = "Developer Webhook"
DEFAULT_DEV_HOOK_DESCRIPTION = "Webhook for developer app"

STATUS_COLORS = {"active": "green", "failed": "red"}


# ==================== PAYLOADS ====================


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _millis() -> int:
    return int(time.time() * 1000)


def store_event_data(event: str) -> dict[str, Any]:
    """Sample `data` block for a store event."""
    tracking = f"TRACK-{_millis()}"
    fixtures: dict[str, dict[str, Any]] = {
        "inventory.updated": {
            "sku": "TEST-SKU-001",
            "quantity": 100,
            "location": "Warehouse A",
            "status": "in_stock",
        },
        "order.created": {
            "orderId": f"TEST-ORDER-{_millis()}",
            "status": "pending",
            "totalAmount": 99.99,
            "currency": "USD",
            "items": [
                {
                    "productId": "prod_123",
                    "name": "Test Product",
                    "sku": "TEST-SKU-001",
                    "price": 49.99,
                    "quantity": 2,
                    "currency": "USD",
                }
            ],
            "shippingAddress": {
                "street": "123 Test St",
                "city": "Test City",
                "country": "US",
                "postalCode": "12345",
            },
            "customer": {"name": "Test Customer", "email": "test@example.com"},
        },
        "order.updated": {
            "orderId": "TEST-ORDER-001",
            "status": "processing",
            "trackingNumber": tracking,
            "trackingUrl": "https://tracking.example.com/TRACK-001",
        },
        "order.shipped": {
            "orderId": "TEST-ORDER-001",
            "trackingNumber": tracking,
            "trackingUrl": "https://tracking.example.com/TRACK-001",
            "carrier": "Test Carrier",
            "estimatedDelivery": (datetime.now(UTC) + timedelta(days=7)).isoformat(),
        },
        "order.delivered": {"orderId": "TEST-ORDER-001", "deliveredAt": _now()},
        "order.cancelled": {
            "orderId": "TEST-ORDER-001",
            "reason": "Customer request",
            "cancelledAt": _now(),
        },
    }
    return fixtures.get(event, {"message": "Test webhook event"})


def developer_event_data(event: str, app_id: str) -> dict[str, Any]:
    """Sample `data` block for a developer app event."""
    base = {"appId": app_id, "userId": "test_user_123", "timestamp": _now()}
    metadata: dict[str, dict[str, Any]] = {
        "developer.app.installed": {
            "installationId": f"install_{_millis()}",
            "platform": "web",
            "userAgent": "Test Browser",
            "ip": "127.0.0.1",
        },
        "developer.app.uninstalled": {
            "reason": "user_request",
            "uninstalledAt": _now(),
        },
        "developer.app.updated": {
            "version": "2.0.0",
            "previousVersion": "1.0.0",
            "updateType": "major",
            "changelog": ["Added new features", "Fixed bugs"],
        },
    }
    if event not in metadata:
        return {
            "message": "Test developer webhook event",
            "appId": app_id,
            "timestamp": _now(),
        }
    return {**base, "metadata": metadata[event]}


def build_payload(provider: str, event: str, data: dict[str, Any]) -> dict[str, Any]:
    return {"provider": provider, "event": event, "data": data, "timestamp": _now()}


def encode_payload(payload: dict[str, Any]) -> bytes:
    """Compact JSON encoding; the exact bytes sent and signed."""
    return json.dumps(payload, separators=(",", ":")).encode()


def sign_payload(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of body keyed with secret."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# ==================== COMMAND ====================


@click.command()
@click.option("--list", "-l", "list_hooks", is_flag=True, help="List webhooks")
@click.option("--create", "-c", is_flag=True, help="Create a store webhook")
@click.option("--create-dev", is_flag=True, help="Create a developer app webhook")
@click.option("--delete", "-d", metavar="ID", help="Delete a webhook")
@click.option("--simulate", "-s", metavar="EVENT", help="Send a sample event")
@click.option("--test-dev", is_flag=True, help="Send a signed developer event")
@click.option("--url", "-u", help="Webhook URL (create, simulate)")
@click.option("--events", "-e", help="Comma-separated events for --create")
@click.option("--event", help="Event for --test-dev")
@click.option("--provider", help="Provider name (create, simulate, list filter)")
@click.option("--status", help="Filter by status")
@click.option(
    "--type",
    "hook_type",
    type=click.Choice(["system", "developer"]),
    help="Filter by webhook type",
)
@click.option("--app-id", help="Developer app ID")
@click.option("--limit", default=50, show_default=True, help="Page size for --list")
@click.option("--skip", default=0, show_default=True, help="Offset for --list")
@requires_auth
def webhook(
    list_hooks: bool,
    create: bool,
    create_dev: bool,
    delete: str | None,
    simulate: str | None,
    test_dev: bool,
    url: str | None,
    events: str | None,
    event: str | None,
    provider: str | None,
    status: str | None,
    hook_type: str | None,
    app_id: str | None,
    limit: int,
    skip: int,
):
    """Manage and test webhooks.

    \b
    Examples:
        mz webhook --list --type developer
        mz webhook --create --url https://example.com/hook -e order.created
        mz webhook --simulate order.created --url https://abc.ngrok.io/hook
        mz webhook --test-dev --event developer.app.installed --app-id 65f1...
    """
    client = PlatformClient()
    spinner = Spinner()

    if list_hooks:
        _list(
            client,
            spinner,
            limit=limit,
            skip=skip,
            provider=provider,
            status=status,
            type=hook_type,
            appId=app_id,
        )
    elif create_dev:
        _create_dev(client, spinner, url, events, app_id)
    elif test_dev:
        _test_dev(client, spinner, event or DEFAULT_DEVELOPER_EVENTS[0], app_id, url)
    elif create:
        _create(client, spinner, url, events, provider)
    elif simulate:
        _simulate(client, spinner, simulate, provider or "custom", url)
    elif delete:
        spinner.start(f"Deleting webhook {delete}...")
        try:
            client.delete_webhook(delete)
        except PlatformAPIError:
            spinner.fail()
            raise
        spinner.done("Webhook deleted")
        field("ID", delete)
    else:
        click.echo(click.get_current_context().get_help())


def _list(client: PlatformClient, spinner: Spinner, **filters: Any) -> None:
    spinner.start("Fetching webhooks...")
    try:
        listing = client.list_webhooks(**filters)
    except PlatformAPIError:
        spinner.fail()
        raise
    hooks = listing.webhooks
    spinner.done(f"Found {len(hooks)} webhook(s)")

    if not hooks:
        click.echo("No webhooks found.")
        click.echo("  Store webhooks:     mz webhook --create")
        click.echo("  Developer webhooks: mz webhook --create-dev")
        return

    system = [h for h in hooks if h.type in (None, "system")]
    developer = [h for h in hooks if h.type == "developer"]
    if system:
        heading("System Webhooks")
        for i, hook in enumerate(system, 1):
            _print_hook(i, hook, hook.url)
    if developer:
        heading("Developer Webhooks")
        for i, hook in enumerate(developer, 1):
            _print_hook(i, hook, hook.name or "Developer Webhook")

    _print_stats(listing)


def _print_hook(index: int, hook: Webhook, title: str) -> None:
    click.echo()
    click.echo(click.style(f"{index}. {title}", bold=True))
    field("ID", hook.id)
    if hook.type == "developer":
        field("URL", hook.url)
        field("App ID", hook.app_id or "N/A")
    else:
        field("Provider", hook.provider)
    field("Status", click.style(hook.status, fg=STATUS_COLORS.get(hook.status, "yellow")))
    field("Events", ", ".join(hook.events) or "-")
    if hook.created_at:
        field("Created", format_timestamp(hook.created_at, short=True))
    if hook.last_triggered:
        field("Last fired", format_timestamp(hook.last_triggered))
    if hook.retry_count:
        field("Retries", hook.retry_count, fg="yellow")
    if hook.description:
        field("Description", hook.description[:100])


def _print_stats(listing: WebhookList) -> None:
    stats = listing.stats
    if stats:
        heading("Webhook Statistics")
        field("Total", stats.get("totalWebhooks", 0))
        field("Successful", stats.get("successfulWebhooks", 0))
        field("Failed", stats.get("failedWebhooks", 0))
        field("Last 24h", stats.get("last24Hours", 0))
    pagination = listing.pagination
    if pagination.get("hasMore"):
        click.echo()
        click.echo(
            f"Showing {len(listing.webhooks)} of {pagination.get('total')} webhooks. "
            "Use --skip and --limit to page."
        )


def _parse_events(events: str | None) -> list[str]:
    if not events:
        return []
    return [e.strip() for e in events.split(",") if e.strip()]


def _ask_url(url: str | None) -> str:
    if url:
        if not is_valid_url(url):
            click.echo(f"Error: Invalid URL: {url}", err=True)
            sys.exit(1)
        return url.strip()
    if not is_interactive():
        click.echo("Error: --url is required", err=True)
        sys.exit(1)
    answer = questionary.text(
        "Webhook URL:",
        validate=lambda v: is_valid_url(v) or "Please enter a valid URL",
        style=PROMPT_STYLE,
    ).ask()
    if not answer:
        raise click.Abort()
    return answer.strip()


def _ask_events(events: str | None, choices: list[str], default: list[str]) -> list[str]:
    selected = _parse_events(events)
    if selected:
        return selected
    if not is_interactive():
        return list(default)
    answer = questionary.checkbox(
        "Select events to listen to:",
        choices=[questionary.Choice(e, checked=e in default) for e in choices],
        style=PROMPT_STYLE,
    ).ask()
    if answer is None:
        raise click.Abort()
    if not answer:
        click.echo("Error: Select at least one event", err=True)
        sys.exit(1)
    return answer


def _create(
    client: PlatformClient,
    spinner: Spinner,
    url: str | None,
    events: str | None,
    provider: str | None,
) -> None:
    target = _ask_url(url)
    selected = _ask_events(events, STORE_EVENTS, DEFAULT_STORE_EVENTS)
    if provider is None and is_interactive():
        provider = questionary.text(
            "Provider (optional):", default="custom", style=PROMPT_STYLE
        ).ask()

    spinner.start("Creating webhook...")
    try:
        hook = client.create_webhook(
            {"url": target, "events": selected, "provider": provider or "custom"}
        )
    except PlatformAPIError:
        spinner.fail()
        raise
    spinner.done("Webhook created")

    heading("Webhook Details")
    field("ID", hook.id)
    field("URL", hook.url or target)
    field("Status", hook.status)
    field("Provider", hook.provider)
    field("Events", ", ".join(hook.events or selected))
    click.echo()
    first = (hook.events or selected)[0]
    click.echo("Send a sample event with:")
    click.echo(f"  mz webhook --simulate {first} --url {hook.url or target}")


def _select_developer_app(client: PlatformClient, spinner: Spinner) -> str | None:
    """Pick one of the user's developer apps. None when there are none."""
    spinner.start("Fetching your apps...")
    try:
        listing = client.list_apps()
    except PlatformAPIError:
        spinner.fail()
        raise
    spinner.stop()

    dev_apps = [
        a
        for a in listing.apps
        if a.target_audience == "DEVELOPER" or a.is_marketplace_app
    ]
    if not dev_apps:
        click.echo(
            click.style("No developer apps found. Create one first:", fg="yellow")
        )
        click.echo("  mz apps --create <app-name>")
        return None

    app_id = questionary.select(
        "Select developer app:",
        choices=[
            questionary.Choice(f"{a.name} ({a.slug})", value=a.id) for a in dev_apps
        ],
        style=PROMPT_STYLE,
    ).ask()
    if not app_id:
        raise click.Abort()
    return app_id


def _create_dev(
    client: PlatformClient,
    spinner: Spinner,
    url: str | None,
    events: str | None,
    app_id: str | None,
) -> None:
    interactive = is_interactive()
    if not app_id:
        if not interactive:
            click.echo(
                "Error: --app-id is required when not running in a terminal", err=True
            )
            sys.exit(1)
        app_id = _select_developer_app(client, spinner)
        if not app_id:
            return

    target = _ask_url(url)
    name, description = DEFAULT_DEV_HOOK_NAME, DEFAULT_DEV_HOOK_DESCRIPTION
    if interactive:
        name = questionary.text(
            "Webhook name:", default=name, style=PROMPT_STYLE
        ).ask()
        description = questionary.text(
            "Webhook description:", default=description, style=PROMPT_STYLE
        ).ask()
        if name is None or description is None:
            raise click.Abort()
    selected = _ask_events(events, DEVELOPER_EVENTS, DEFAULT_DEVELOPER_EVENTS)

    spinner.start("Creating developer webhook...")
    try:
        result = client.register_developer_webhook(
            {
                "url": target,
                "events": selected,
                "name": name,
                "description": description,
                "appId": app_id,
            }
        )
    except PlatformAPIError:
        spinner.fail()
        raise
    spinner.done("Developer webhook created")

    heading("Developer Webhook Details")
    field("ID", result.get("id") or result.get("_id") or "-")
    field("Name", name)
    field("URL", target)
    field("App ID", app_id)
    field("Events", ", ".join(selected))
    click.echo()
    click.echo(click.style("IMPORTANT:", fg="red", bold=True))
    click.echo(f"  Webhook secret: {result.get('secret') or 'Not shown'}")
    click.echo(
        click.style("  Save this secret now. It will not be shown again.", fg="red")
    )
    click.echo()
    click.echo("Test it with:")
    click.echo(
        f"  mz webhook --test-dev --event developer.app.installed --app-id {app_id}"
    )


def _deliver(
    client: PlatformClient,
    spinner: Spinner,
    target: str,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> None:
    body = encode_payload(payload)
    spinner.start(f"Sending {payload['event']} to {target}...")
    try:
        resp = client.send_webhook(target, body, headers)
    except PlatformAPIError as e:
        spinner.fail(f"Webhook delivery to {target} failed")
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    if resp.ok:
        spinner.done(f"Webhook delivered to {target}")
    else:
        spinner.fail(f"Receiver at {target} answered {resp.status_code}")

    heading("Webhook Test Results")
    field("Status", resp.status_code, fg="green" if resp.ok else "red")
    field("Event", payload["event"])
    field("Time", _now())
    click.echo()
    click.echo(click.style("Sent payload:", bold=True))
    click.echo(json.dumps(payload, indent=2))
    click.echo()
    click.echo(click.style("Response:", bold=True))
    try:
        click.echo(json.dumps(resp.json(), indent=2))
    except ValueError:
        click.echo(resp.text or "(empty)")
    if not resp.ok:
        sys.exit(1)


def _simulate(
    client: PlatformClient,
    spinner: Spinner,
    event: str,
    provider: str,
    url: str | None,
) -> None:
    payload = build_payload(provider, event, store_event_data(event))
    if url:
        _deliver(client, spinner, url, payload)
        return

    heading("Webhook Test Example")
    field("Event", event)
    field("Time", payload["timestamp"])
    click.echo()
    click.echo(click.style("Example payload:", bold=True))
    click.echo(json.dumps(payload, indent=2))
    click.echo()
    click.echo("To deliver it, pass a receiver URL:")
    click.echo(f"  mz webhook --simulate {event} --url https://your-webhook-url.com")
    click.echo("For a local server, expose it first with `ngrok http 3000`.")


def _test_dev(
    client: PlatformClient,
    spinner: Spinner,
    event: str,
    app_id: str | None,
    url: str | None,
) -> None:
    if not app_id:
        click.echo("Error: --app-id is required for --test-dev", err=True)
        click.echo("  mz webhook --test-dev --event <event> --app-id <app-id>", err=True)
        sys.exit(1)

    spinner.start("Fetching app...")
    try:
        app: App = client.get_app(app_id)
    except PlatformAPIError:
        spinner.fail()
        raise
    spinner.stop()

    payload = build_payload("developer", event, developer_event_data(event, app_id))
    target = (app.webhook.url if app.webhook else None) or url
    if not target:
        click.echo(
            click.style(f"No webhook URL configured for app: {app.name}", fg="yellow")
        )
        click.echo()
        click.echo(click.style("Example payload:", bold=True))
        click.echo(json.dumps(payload, indent=2))
        click.echo()
        click.echo("To set up a webhook:")
        click.echo(f"  1. mz webhook --create-dev --app-id {app_id}")
        click.echo("  2. Configure your server to listen at the webhook URL")
        click.echo("  3. Run this command again")
        return

    secret = (app.webhook.secret if app.webhook else None) or TEST_SECRET
    headers = {
        SIGNATURE_HEADER: sign_payload(encode_payload(payload), secret),
        "x-developer-app-id": app_id,
        "x-developer-api-key": TEST_API_KEY,
    }
    click.echo(f"App: {app.name}")
    rule()
    _deliver(client, spinner, target, payload, headers)
