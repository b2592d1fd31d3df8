"""Config commands"""

import logging

import click

from ..errors import ValidationError
from ..filters import CONFIG_FILTER_KEYS, parse_filters
from ..formatter import (CONFIG_HEADERS, CONFIG_TABLE_FORMAT, ConfigContext, InspectFormatter,
                         ListFormatter, select_format, sort_by_name)
from ..models import ConfigSummary
from ..utils import error_handler, get_client, min_args, no_args

logger = logging.getLogger(__name__)


@click.group()
def config():
    """Manage Docker configs"""
    pass


@config.command(name='ls')
@click.argument('args', nargs=-1)
@click.option('--quiet', '-q', is_flag=True, help='Only display IDs')
@click.option('--format', 'format_', help='Format output using a Go-style template')
@click.option('--filter', '-f', 'filters', multiple=True, metavar='KEY=VALUE',
              help='Filter output based on conditions provided')
@click.pass_context
@error_handler
def list_configs(ctx, args, quiet: bool, format_, filters):
    """List configs"""
    no_args(ctx, args)

    cfg = ctx.obj['config']
    source = select_format(format_, cfg.configs_format, CONFIG_TABLE_FORMAT, quiet)
    formatter = ListFormatter(source, CONFIG_HEADERS, CONFIG_TABLE_FORMAT, quiet=quiet)
    config_filters = parse_filters(filters, CONFIG_FILTER_KEYS)

    client = get_client(ctx)
    logger.debug("Listing configs with filters %r", config_filters)
    summaries = sort_by_name(
        [ConfigSummary.from_api(c) for c in client.list_configs(config_filters)]
    )

    output = formatter.render(ConfigContext(c) for c in summaries)
    click.echo(output, nl=False)


config.add_command(list_configs, name='list')


@config.command()
@click.argument('names', nargs=-1, metavar='CONFIG [CONFIG...]')
@click.option('--format', '-f', 'format_', help='Format output using a Go-style template')
@click.option('--pretty', is_flag=True, help='Print the information in a human friendly format')
@click.pass_context
@error_handler
def inspect(ctx, names, format_, pretty: bool):
    """Display detailed information on one or more configs"""
    min_args(ctx, names, 1)
    if pretty and format_:
        raise ValidationError("--format is incompatible with human friendly format")
    formatter = InspectFormatter(format_, pretty=pretty)

    client = get_client(ctx)
    results = []
    for name in names:
        logger.debug("Inspecting config %s", name)
        # First failure aborts before anything is written
        results.append(client.inspect_config(name))

    click.echo(formatter.render(results), nl=False)
