"""
CLI entry point for ovhctl.

Provides argument parsing, logging setup and the commands driving the
authentication handshake (connect, then confirm) and signed calls.
"""

import argparse
import json
import logging
import sys
from typing import Any, Optional

import coloredlogs
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ovhctl import __version__
from ovhctl.auth import AccessRule, confirm_consumer_key, default_access_rules, request_consumer_key
from ovhctl.client import OvhClient
from ovhctl.config import Configuration, load_configuration, persist_consumer_key
from ovhctl.constants import ENV_FILE
from ovhctl.exceptions import (
    ApiError,
    AuthenticationHandshakeError,
    ConfigurationError,
    NetworkError,
    OvhctlError,
)
from ovhctl.validation import mask_key, parse_access_rule

logger = logging.getLogger(__name__)

console = Console()

LOGIN_HINT = "Please login to the ovh api by using 'ovhctl connect' before beginning"


def setup_logging(verbosity: int = 0) -> None:
    """
    Configure logging with coloredlogs.

    Parameters:
        verbosity: 0 for WARNING, 1 for INFO, 2 or more for DEBUG
    """
    level = {0: "WARNING", 1: "INFO"}.get(verbosity, "DEBUG")
    coloredlogs.install(
        level=level,
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        logger=logging.getLogger(),
    )
    logger.debug("Logging configured at %s level", level)


def _access_rule(value: str) -> AccessRule:
    try:
        return AccessRule(*parse_access_rule(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _json_body(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON body, {e}") from e


def _query_param(value: str) -> tuple[str, str]:
    key, sep, val = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"query parameter must be 'key=value', got '{value}'")
    return key, val


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Parameters:
        argv: Arguments to parse, sys.argv by default

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="ovhctl",
        description="ovhctl - A command line interface to interact with the OVHcloud API",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "-t", "--check",
        action="store_true",
        help="Validate the configuration and exit",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to the credential file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    connect_parser = subparsers.add_parser(
        "connect",
        help="Request a consumer key to login to the OVHcloud API",
    )
    connect_parser.add_argument(
        "-r", "--rule",
        dest="rules",
        action="append",
        type=_access_rule,
        default=[],
        metavar="METHOD:/path",
        help="Access rule to request, repeatable (default: full access)",
    )
    connect_parser.add_argument(
        "--redirection",
        help="URL to redirect to once the consumer key is validated",
    )

    confirm_parser = subparsers.add_parser(
        "confirm",
        help="Confirm a validated consumer key and save it",
    )
    confirm_parser.add_argument("consumer_key", help="Consumer key returned by 'connect'")

    call_parser = subparsers.add_parser(
        "call",
        help="Issue a signed request and print the JSON response",
    )
    call_parser.add_argument("method", type=str.upper, choices=["GET", "POST", "PUT", "DELETE"])
    call_parser.add_argument("path", help="API path, e.g. /me")
    call_parser.add_argument(
        "-d", "--data",
        type=_json_body,
        help="JSON request body",
    )
    call_parser.add_argument(
        "-p", "--param",
        dest="params",
        action="append",
        type=_query_param,
        default=[],
        metavar="key=value",
        help="Query parameter, repeatable",
    )

    args = parser.parse_args(argv)
    if not args.command and not args.check:
        parser.print_help()
        sys.exit(0)
    return args


def _fail(step: str, error: Exception) -> None:
    """
    Report a failed step and exit non-zero.

    Parameters:
        step: What was being done
        error: The error raised
    """
    console.print(f"[bold red]✗[/bold red] {step}: {error}")
    logger.critical("%s: %s", step, error)
    sys.exit(1)


def check_configuration(config: Configuration) -> None:
    """
    Display the loaded configuration with secrets masked.

    Parameters:
        config: Loaded configuration
    """
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("File", str(config.path))
    table.add_row("Endpoint", config.endpoint)
    table.add_row("Application key", mask_key(config.credentials.application_key))
    table.add_row("Application secret", mask_key(config.credentials.application_secret))
    table.add_row(
        "Consumer key",
        mask_key(config.credentials.consumer_key) if config.credentials.consumer_key else "<none>",
    )

    console.print(table)
    if not config.credentials.consumer_key:
        console.print(f"[yellow]⚠[/yellow] {LOGIN_HINT}")
    console.print("[bold green]✓[/bold green] Configuration is healthy!")


def connect(config: Configuration, rules: list[AccessRule], redirection: Optional[str]) -> None:
    """
    Request a consumer key and tell the user how to validate it.

    Nothing is written locally: the key is saved by 'confirm' once the
    user has validated it.

    Parameters:
        config: Loaded configuration
        rules: Access rules to request, full access if empty
        redirection: URL to redirect to after validation
    """
    client = OvhClient(config)

    with client, Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console
    ) as progress:
        progress.add_task(description="Requesting consumer key...", total=None)
        response = request_consumer_key(client, rules or default_access_rules(), redirection)

    console.print(Panel.fit(
        f"Please login on this url before going further:\n"
        f"[bold cyan]{response.validation_url}[/bold cyan]\n\n"
        f"Then confirm the consumer key with:\n"
        f"[bold]ovhctl{_config_flag(config)} confirm {response.consumer_key}[/bold]",
        title="Consumer key requested",
        border_style="cyan",
    ))


def _config_flag(config: Configuration) -> str:
    if config.path == ENV_FILE:
        return ""
    return f" -c {config.path}"


def confirm(config: Configuration, consumer_key: str) -> Configuration:
    """
    Confirm a validated consumer key and persist it.

    Parameters:
        config: Loaded configuration
        consumer_key: Consumer key returned by 'connect'

    Returns:
        The configuration updated with the consumer key
    """
    client = OvhClient(config)

    with client, Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console
    ) as progress:
        progress.add_task(description="Confirming consumer key...", total=None)
        confirm_consumer_key(client, consumer_key)

    config = persist_consumer_key(config, consumer_key)
    console.print(
        f"[bold green]✓[/bold green] Consumer key {mask_key(consumer_key)} "
        f"saved to [cyan]{config.path}[/cyan]"
    )
    return config


def call(
    config: Configuration,
    method: str,
    path: str,
    data: Any = None,
    params: Optional[list[tuple[str, str]]] = None,
) -> Any:
    """
    Issue a signed request and print its JSON response.

    Parameters:
        config: Loaded configuration
        method: HTTP verb
        path: API path
        data: JSON body
        params: Query parameters

    Returns:
        Decoded response
    """
    client = OvhClient(config)
    with client:
        result = client.call(method, path, data=data, params=dict(params or []) or None)
    if result is not None:
        console.print_json(data=result)
    return result


def main(argv: Optional[list[str]] = None) -> None:
    """Main application entry point."""
    args = parse_args(argv)
    setup_logging(verbosity=args.verbose)

    logger.debug("Arguments: %s", args)

    try:
        config = load_configuration(args.config)
    except ConfigurationError as e:
        _fail("could not load configuration", e)

    if args.check:
        check_configuration(config)
        sys.exit(0)

    try:
        if args.command == "connect":
            connect(config, args.rules, args.redirection)
        elif args.command == "confirm":
            confirm(config, args.consumer_key)
        elif args.command == "call":
            if not config.credentials.consumer_key:
                console.print(f"[yellow]⚠[/yellow] {LOGIN_HINT}")
                logger.warning(LOGIN_HINT)
                sys.exit(1)
            call(config, args.method, args.path, args.data, args.params)

    except KeyboardInterrupt:
        console.print("\n[yellow]⚠[/yellow] Operation cancelled by user")
        logger.info("User exited via keyboard interrupt")
        sys.exit(130)
    except AuthenticationHandshakeError as e:
        _fail("authentication handshake failed", e)
    except ConfigurationError as e:
        _fail("invalid configuration", e)
    except ApiError as e:
        _fail("OVHcloud API error", e)
    except NetworkError as e:
        _fail("network error", e)
    except OvhctlError as e:
        _fail("could not execute command", e)
