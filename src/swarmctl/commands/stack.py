"""Stack commands"""

import logging

import click

from ..filters import SERVICE_FILTER_KEYS, parse_filters, stack_filter
from ..formatter import (ListFormatter, SERVICE_HEADERS, SERVICE_TABLE_FORMAT, ServiceContext,
                         select_format, sort_by_name)
from ..errors import ValidationError
from ..models import NodeSummary, ServiceSummary, TaskSummary, services_status
from ..utils import error_handler, exactly_args, get_client, quote

logger = logging.getLogger(__name__)

_QUOTES = '"\''


def validate_stack_name(namespace: str):
    """Reject names that are empty once whitespace and quotes are removed"""
    # Any Unicode whitespace counts, not only ASCII
    if all(ch.isspace() or ch in _QUOTES for ch in namespace):
        raise ValidationError(f"invalid stack name: {quote(namespace)}")


@click.group()
def stack():
    """Inspect stacks"""
    pass


@stack.command()
@click.argument('args', nargs=-1, metavar='STACK')
@click.option('--quiet', '-q', is_flag=True, help='Only display IDs')
@click.option('--format', 'format_', help='Format output using a Go-style template')
@click.option('--filter', '-f', 'filters', multiple=True, metavar='KEY=VALUE',
              help='Filter output based on conditions provided')
@click.pass_context
@error_handler
def services(ctx, args, quiet: bool, format_, filters):
    """List the services in the stack"""
    exactly_args(ctx, args, 1)
    namespace = args[0]
    validate_stack_name(namespace)

    cfg = ctx.obj['config']
    source = select_format(format_, cfg.services_format, SERVICE_TABLE_FORMAT, quiet)
    formatter = ListFormatter(source, SERVICE_HEADERS, SERVICE_TABLE_FORMAT, quiet=quiet)
    service_filters = stack_filter(namespace).merge(parse_filters(filters, SERVICE_FILTER_KEYS))

    client = get_client(ctx)
    logger.debug("Listing services with filters %r", service_filters)
    summaries = sort_by_name(
        [ServiceSummary.from_api(s) for s in client.list_services(service_filters)]
    )

    if not summaries:
        click.echo(f"Nothing found in stack: {namespace}", err=True)
        return

    status = {}
    if not formatter.quiet:
        nodes = [NodeSummary.from_api(n) for n in client.list_nodes()]
        task_filters = parse_filters(f"service={s.id}" for s in summaries)
        tasks = [TaskSummary.from_api(t) for t in client.list_tasks(task_filters)]
        status = services_status(summaries, nodes, tasks)

    output = formatter.render(ServiceContext(s, status.get(s.id)) for s in summaries)
    click.echo(output, nl=False)
