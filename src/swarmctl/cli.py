"""Main CLI entry point"""

import logging

import click

from .config import ConfigManager, DEFAULT_CONFIG_PATH, DEFAULT_TIMEOUT
from .client import APIClient
from .commands import configs, context as context_cmd, stack
from .errors import ConfigError
from .logging_config import LEVELS, setup_logging

logger = logging.getLogger(__name__)


def build_client(cfg, host=None):
    """Create an API client from --host or the selected context"""
    if host:
        return APIClient(base_url=host, timeout=DEFAULT_TIMEOUT)

    context_cfg = cfg.active_context()
    if context_cfg is None:
        return None
    return APIClient(
        base_url=context_cfg.api_url,
        token=context_cfg.token,
        verify_ssl=context_cfg.verify_ssl,
        timeout=context_cfg.timeout
    )


@click.group(name='swarmctl')
@click.option('--config', '-c', 'config_path', type=click.Path(dir_okay=False),
              default=str(DEFAULT_CONFIG_PATH), envvar='SWARMCTL_CONFIG',
              show_default=True, help='Config file location')
@click.option('--context', help='Override current context')
@click.option('--host', '-H', envvar='SWARMCTL_HOST',
              help='Docker Engine API URL, bypassing contexts')
@click.option('--log-level', type=click.Choice(LEVELS, case_sensitive=False),
              default='WARNING', envvar='SWARMCTL_LOG_LEVEL', help='Diagnostic log level')
@click.version_option(package_name='swarmctl')
@click.pass_context
def cli(ctx, config_path, context, host, log_level):
    """swarmctl - list and inspect Docker Swarm resources"""
    setup_logging(log_level)

    # Callers (tests, embedding code) may pre-seed config and client
    ctx.ensure_object(dict)
    ctx.obj.setdefault('config_manager', ConfigManager(config_path))

    if 'config' not in ctx.obj:
        try:
            ctx.obj['config'] = ctx.obj['config_manager'].load()
        except ConfigError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    cfg = ctx.obj['config']
    if context:
        if context not in cfg.contexts:
            click.echo(f"Error: context '{context}' not found", err=True)
            ctx.exit(1)
        cfg.current_context = context

    if 'client' not in ctx.obj:
        ctx.obj['client'] = build_client(cfg, host)
    logger.debug("Using context %s", cfg.current_context)


cli.add_command(stack.stack)
cli.add_command(configs.config)
cli.add_command(context_cmd.context)


if __name__ == '__main__':
    cli()
