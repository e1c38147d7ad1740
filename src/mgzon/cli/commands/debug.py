"""Diagnostics for the CLI, its configuration and the API connection."""

import gc
import platform
import socket
import sys
import time
from pathlib import Path

import click
import requests

from ..platform.auth import api_key_from_env, get_api_key, get_api_url, load_config
from ..platform.client import PlatformClient
from ..platform.config import CLI_VERSION, CONFIG_FILE, HEALTH_TIMEOUT, USER_AGENT
from ..utils import configure_logging, field, format_size, heading, rule

# (label, method, endpoint) probed for reachability
API_ENDPOINTS = [
    ("Auth Verify", "POST", "/auth/verify"),
    ("Health Check", "GET", "/health"),
    ("Apps List", "GET", "/apps"),
    ("Keys List", "GET", "/keys"),
]

EXTERNAL_ENDPOINTS = [
    ("DNS Resolution", "https://www.google.com"),
    ("PyPI", "https://pypi.org/simple/"),
    ("NPM Registry", "https://registry.npmjs.org"),
]

# Status codes that prove an endpoint is served, authenticated or not
REACHABLE_STATUSES = {200, 401}

# (upper bound in ms, rating, colour)
LATENCY_RATINGS = [
    (500, "Excellent", "green"),
    (1000, "Good", "cyan"),
    (2000, "Fair", "yellow"),
]


def rate_latency(ms: float) -> tuple[str, str]:
    """Rating and colour for a round-trip time in milliseconds."""
    for bound, rating, color in LATENCY_RATINGS:
        if ms < bound:
            return rating, color
    return "Slow", "red"


def describe_status(status: int) -> tuple[str, str]:
    """Reachability label and colour for a probe status (0 = no response)."""
    if status == 0:
        return "Unreachable", "red"
    if status in REACHABLE_STATUSES:
        return f"Reachable ({status})", "green"
    return f"Responded ({status})", "yellow"


def _timed_get(url: str) -> tuple[int, float]:
    """GET url; returns (status, elapsed ms). Status 0 on transport failure."""
    start = time.monotonic()
    try:
        resp = requests.get(
            url, headers={"User-Agent": USER_AGENT}, timeout=HEALTH_TIMEOUT
        )
    except requests.exceptions.RequestException:
        return 0, (time.monotonic() - start) * 1000
    return resp.status_code, (time.monotonic() - start) * 1000


def _max_rss() -> int | None:
    """Peak resident set size in bytes, where the platform reports it."""
    try:
        import resource
    except ImportError:
        return None
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports kilobytes, macOS bytes
    return rss if sys.platform == "darwin" else rss * 1024


def _probe_endpoints(client: PlatformClient) -> None:
    heading("Endpoint Reachability")
    for label, method, endpoint in API_ENDPOINTS:
        status = client.probe(method, endpoint)
        text, color = describe_status(status)
        click.echo(f"  {label:<15} {click.style(text, fg=color)}")


def _general() -> None:
    config = load_config()
    api_key = get_api_key()

    heading("System Information")
    field("Platform", f"{platform.system()} {platform.release()}")
    field("Architecture", platform.machine())
    field("Python", platform.python_version())
    field("Executable", sys.executable)

    heading("CLI Information")
    field("Version", CLI_VERSION)
    field("Config path", CONFIG_FILE)
    field("Working dir", Path.cwd())

    heading("Authentication")
    field("API key", "Set" if api_key else "Not set", fg="green" if api_key else "red")
    field("Key source", "environment" if api_key_from_env() else "config")
    field("Logged in as", config.email or "-")
    field("API URL", get_api_url())
    field("Environment", config.default_environment)

    client = PlatformClient()
    heading("Connection")
    status, ms = _timed_get(f"{client.base_url}/health")
    text, color = describe_status(status)
    field("MGZON API", click.style(text, fg=color))
    if status:
        field("Response time", f"{ms:.0f} ms")

    _probe_endpoints(client)
    rule()
    click.echo("\nMore diagnostics:")
    click.echo("  mz debug --network       # Network diagnostics")
    click.echo("  mz debug --performance   # Latency measurements")
    click.echo("  mz debug --memory        # Memory usage")
    click.echo("  mz --debug <command>     # Log HTTP requests")
    click.echo("\nQuick fixes:")
    click.echo("  mz config --get apiUrl")
    click.echo("  mz config --reset")
    click.echo('  export MGZON_API_KEY="your_api_key"')


def _network() -> None:
    api_url = get_api_url()
    heading("Network Diagnostics")
    targets = [
        *EXTERNAL_ENDPOINTS,
        ("MGZON API", f"{api_url}/health"),
        ("CLI Login", f"{api_url}/cli/auth/login"),
        ("Auth Verify", f"{api_url}/auth/verify"),
    ]
    for label, url in targets:
        status, ms = _timed_get(url)
        text, color = describe_status(status)
        timing = f"{ms:.0f} ms" if status else "-"
        click.echo(f"  {label:<15} {click.style(f'{text:<20}', fg=color)} {timing}")

    heading("Host")
    hostname = socket.gethostname()
    field("Hostname", hostname)
    try:
        field("Address", socket.gethostbyname(hostname))
    except OSError:
        field("Address", "unresolved", fg="yellow")
    rule()


def _performance() -> None:
    client = PlatformClient()
    heading("Performance Metrics")
    field("API URL", client.base_url)
    samples = []
    for _ in range(3):
        status, ms = _timed_get(f"{client.base_url}/health")
        if status == 0:
            break
        samples.append(ms)

    if not samples:
        field("API response", "Unavailable", fg="red")
    else:
        average = sum(samples) / len(samples)
        rating, color = rate_latency(average)
        field("Samples", len(samples))
        field("Fastest", f"{min(samples):.0f} ms")
        field("Average", click.style(f"{average:.0f} ms ({rating})", fg=color))
    rule()
    click.echo("\nGuide:")
    click.echo("  < 500 ms     Excellent")
    click.echo("  < 1000 ms    Good")
    click.echo("  < 2000 ms    Fair")
    click.echo("  >= 2000 ms   Slow")


def _memory() -> None:
    heading("Memory Analysis")
    rss = _max_rss()
    field("Peak RSS", format_size(rss) if rss is not None else "N/A")
    field("GC objects", f"{len(gc.get_objects()):,}")
    field("GC counts", " / ".join(str(c) for c in gc.get_count()))

    heading("CLI Configuration")
    config = load_config()
    size = len(config.model_dump_json(by_alias=True, exclude_none=True))
    field("Config size", format_size(size))
    field("API key", "Set" if config.api_key else "Not set")
    field("API URL", config.api_url)
    rule()
    click.echo("\nTo clear stored state:")
    click.echo("  mz config --reset")
    click.echo("  mz logout")


@click.command()
@click.option("--network", is_flag=True, help="Run network diagnostics")
@click.option("--performance", is_flag=True, help="Measure API latency")
@click.option("--memory", is_flag=True, help="Show memory usage")
@click.option("--trace", is_flag=True, help="Log every HTTP request and response")
def debug(network: bool, performance: bool, memory: bool, trace: bool):
    """Show diagnostic information for troubleshooting."""
    if trace:
        configure_logging(True, "urllib3")

    if network:
        _network()
    elif performance:
        _performance()
    elif memory:
        _memory()
    else:
        _general()
