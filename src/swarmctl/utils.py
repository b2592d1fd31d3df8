"""Utility functions for the CLI"""

import json
import logging
from functools import wraps
from typing import Sequence

import click

from .errors import ConfigError, SwarmctlError

logger = logging.getLogger(__name__)


def error_handler(func):
    """Decorator reporting swarmctl errors as a single line on stderr"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SwarmctlError as e:
            logger.debug("Command failed", exc_info=True)
            click.echo(f"Error: {e}", err=True)
            ctx = click.get_current_context()
            ctx.exit(1)

    return wrapper


def get_client(ctx: click.Context):
    """Return the API client for this invocation"""
    client = ctx.obj.get('client')
    if client is None:
        raise ConfigError("no API endpoint configured, use --host or 'swarmctl context add' first")
    return client


def command_path(ctx: click.Context) -> str:
    return f'"{ctx.command_path}"'


def exactly_args(ctx: click.Context, args: Sequence[str], count: int):
    if len(args) != count:
        noun = 'argument' if count == 1 else 'arguments'
        raise click.UsageError(f"{command_path(ctx)} requires exactly {count} {noun}.", ctx=ctx)


def no_args(ctx: click.Context, args: Sequence[str]):
    if args:
        raise click.UsageError(f"{command_path(ctx)} accepts no arguments.", ctx=ctx)


def min_args(ctx: click.Context, args: Sequence[str], count: int):
    if len(args) < count:
        noun = 'argument' if count == 1 else 'arguments'
        raise click.UsageError(f"{command_path(ctx)} requires at least {count} {noun}.", ctx=ctx)


def quote(value: str) -> str:
    """Double-quote a value for error messages"""
    return json.dumps(value, ensure_ascii=False)
