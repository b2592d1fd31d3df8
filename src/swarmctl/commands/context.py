"""Context commands for the local CLI configuration"""

import click
from tabulate import tabulate

from ..config import DEFAULT_TIMEOUT
from ..errors import ValidationError
from ..utils import error_handler


@click.group()
def context():
    """Manage API endpoints in the CLI configuration"""
    pass


@context.command(name='ls')
@click.pass_context
def list_contexts(ctx):
    """List configured contexts"""
    config = ctx.obj['config']

    if not config.contexts:
        click.echo("No contexts configured")
        return

    table_data = []
    for name, context_cfg in config.contexts.items():
        current = '*' if name == config.current_context else ''
        table_data.append([
            current,
            name,
            context_cfg.api_url,
            'Yes' if context_cfg.token else 'No',
            'Yes' if context_cfg.verify_ssl else 'No'
        ])

    headers = ['CURRENT', 'NAME', 'API URL', 'TOKEN', 'VERIFY SSL']
    click.echo(tabulate(table_data, headers=headers, tablefmt='simple'))


@context.command()
@click.argument('name')
@click.option('--api-url', required=True, help='Docker Engine API URL for the context')
@click.option('--token', help='Bearer token sent with every request')
@click.option('--verify-ssl/--no-verify-ssl', default=True, help='Verify SSL certificates')
@click.option('--timeout', type=click.IntRange(min=1), default=DEFAULT_TIMEOUT,
              show_default=True, help='Request timeout in seconds')
@click.pass_context
@error_handler
def add(ctx, name: str, api_url: str, token: str, verify_ssl: bool, timeout: int):
    """Add or update a context"""
    if not api_url.startswith(('http://', 'https://')):
        raise ValidationError(f"invalid API URL {api_url!r}: expected http:// or https://")

    config_manager = ctx.obj['config_manager']
    config = config_manager.add_context(
        name=name,
        api_url=api_url,
        token=token,
        verify_ssl=verify_ssl,
        timeout=timeout
    )

    click.echo(f"Context '{name}' added successfully")
    if config.current_context == name:
        click.echo(f"Switched to context '{name}'")


@context.command()
@click.argument('name')
@click.pass_context
@error_handler
def rm(ctx, name: str):
    """Remove a context"""
    config_manager = ctx.obj['config_manager']

    if not config_manager.remove_context(name):
        click.echo(f"Context '{name}' not found", err=True)
        ctx.exit(1)

    click.echo(f"Context '{name}' removed")


@context.command()
@click.argument('name')
@click.pass_context
@error_handler
def use(ctx, name: str):
    """Switch to a different context"""
    config_manager = ctx.obj['config_manager']

    if not config_manager.use_context(name):
        click.echo(f"Context '{name}' not found", err=True)
        ctx.exit(1)

    click.echo(f"Switched to context '{name}'")


@context.command()
@click.pass_context
def current(ctx):
    """Display the current context"""
    config = ctx.obj['config']

    context_cfg = config.active_context()
    if context_cfg is None:
        click.echo("No current context set")
        return

    click.echo(f"Current context: {config.current_context}")
    click.echo(f"API URL: {context_cfg.api_url}")
    click.echo(f"Token: {'set' if context_cfg.token else 'not set'}")
    click.echo(f"Verify SSL: {context_cfg.verify_ssl}")
    click.echo(f"Timeout: {context_cfg.timeout}s")
