"""Rendering of list and inspect results"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from tabulate import tabulate

from .errors import RenderError, TemplateError
from .models import ConfigSummary, Global, PortConfig, Replicated, ServiceStatus, ServiceSummary
from .templates import Template, format_time, parse

logger = logging.getLogger(__name__)

TABLE_PREFIX = 'table'
JSON_FORMAT = 'json'

SERVICE_TABLE_FORMAT = 'table {{.ID}}\t{{.Name}}\t{{.Mode}}\t{{.Replicas}}\t{{.Image}}\t{{.Ports}}'
CONFIG_TABLE_FORMAT = 'table {{.ID}}\t{{.Name}}\t{{.CreatedAt}}\t{{.UpdatedAt}}'

SERVICE_HEADERS = {
    'ID': 'ID',
    'Name': 'NAME',
    'Mode': 'MODE',
    'Replicas': 'REPLICAS',
    'Image': 'IMAGE',
    'Ports': 'PORTS',
}

CONFIG_HEADERS = {
    'ID': 'ID',
    'Name': 'NAME',
    'CreatedAt': 'CREATED',
    'UpdatedAt': 'UPDATED',
    'Labels': 'LABELS',
    'Label': 'LABEL',
}


def truncate_id(id_str: str, length: int = 12) -> str:
    """Truncate ID to specified length"""
    if not id_str:
        return ''
    return id_str[:length]


def human_duration(timestamp: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Describe how long ago ``timestamp`` was, e.g. ``2 hours ago``"""
    if timestamp is None:
        return ''
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = int((now - timestamp).total_seconds())

    if seconds < 1:
        text = 'Less than a second'
    elif seconds == 1:
        text = '1 second'
    elif seconds < 60:
        text = f'{seconds} seconds'
    else:
        minutes = seconds // 60
        hours = int(seconds / 3600 + 0.5)
        if minutes == 1:
            text = 'About a minute'
        elif minutes < 60:
            text = f'{minutes} minutes'
        elif hours == 1:
            text = 'About an hour'
        elif hours < 48:
            text = f'{hours} hours'
        elif hours < 24 * 7 * 2:
            text = f'{hours // 24} days'
        elif hours < 24 * 30 * 2:
            text = f'{hours // 24 // 7} weeks'
        elif hours < 24 * 365 * 2:
            text = f'{hours // 24 // 30} months'
        else:
            text = f'{hours // 24 // 365} years'
    return f'{text} ago'


def format_ports(ports: Iterable[PortConfig]) -> str:
    """Render ingress-published ports, compacting consecutive ranges"""
    ingress = sorted(
        (p for p in ports if p.publish_mode == 'ingress'),
        key=lambda p: (p.protocol, p.published_port, p.target_port)
    )
    groups: List[List[PortConfig]] = []
    for port in ingress:
        if groups:
            last = groups[-1][-1]
            if (last.protocol == port.protocol and last.published_port != 0
                    and port.published_port == last.published_port + 1
                    and port.target_port == last.target_port + 1):
                groups[-1].append(port)
                continue
        groups.append([port])

    rendered = []
    for group in groups:
        first, last = group[0], group[-1]
        if len(group) == 1:
            rendered.append(f'*:{first.published_port}->{first.target_port}/{first.protocol}')
        else:
            rendered.append(
                f'*:{first.published_port}-{last.published_port}'
                f'->{first.target_port}-{last.target_port}/{first.protocol}'
            )
    return ', '.join(rendered)


def strip_digest(image: str) -> str:
    return image.split('@', 1)[0] if image else ''


def sort_by_name(items: Sequence[Any]) -> List[Any]:
    """Case-sensitive ascending by name; equal names keep API order"""
    return sorted(items, key=lambda item: item.name)


class ServiceContext:
    """Fields available to service list templates"""

    template_fields = frozenset(SERVICE_HEADERS)

    def __init__(self, service: ServiceSummary, status: Optional[ServiceStatus] = None):
        self.service = service
        self.status = status or ServiceStatus()

    @property
    def raw_id(self) -> str:
        return self.service.id

    @property
    def ID(self) -> str:
        return truncate_id(self.service.id)

    @property
    def Name(self) -> str:
        return self.service.name

    @property
    def Mode(self) -> str:
        return self.service.mode.name if self.service.mode else ''

    @property
    def Replicas(self) -> str:
        if isinstance(self.service.mode, (Replicated, Global)):
            return f'{self.status.running}/{self.status.desired}'
        return ''

    @property
    def Image(self) -> str:
        return strip_digest(self.service.image)

    @property
    def Ports(self) -> str:
        return format_ports(self.service.ports)


class ConfigContext:
    """Fields available to config list templates"""

    template_fields = frozenset(CONFIG_HEADERS)

    def __init__(self, config: ConfigSummary, now: Optional[datetime] = None):
        self.config = config
        self.now = now

    @property
    def raw_id(self) -> str:
        return self.config.id

    @property
    def ID(self) -> str:
        return self.config.id

    @property
    def Name(self) -> str:
        return self.config.name

    @property
    def CreatedAt(self) -> str:
        return human_duration(self.config.created_at, self.now)

    @property
    def UpdatedAt(self) -> str:
        return human_duration(self.config.updated_at, self.now)

    @property
    def Labels(self) -> str:
        return ','.join(f'{k}={v}' for k, v in sorted(self.config.labels.items()))

    def Label(self, name: str) -> str:
        return self.config.labels.get(name, '')


class HeaderValue(str):
    """Header text that also accepts method-style arguments"""

    def __call__(self, *args):
        return self


class HeaderContext:
    """Stands in for a row when rendering table headers"""

    def __init__(self, headers: Dict[str, str]):
        self.template_fields = frozenset(headers)
        self._headers = headers

    def __getattr__(self, name):
        try:
            return HeaderValue(self._headers[name])
        except KeyError:
            raise AttributeError(name) from None


def select_format(cli_format: Optional[str], config_format: Optional[str], default: str,
                  quiet: bool = False) -> str:
    """CLI flag wins over the config file default, which wins over the built-in one.

    The config file default is ignored in quiet mode.
    """
    if cli_format:
        return cli_format
    if config_format and not quiet:
        return config_format
    return default


def unescape_format(source: str) -> str:
    # Shells pass \t and \n literally
    return source.replace('\\t', '\t').replace('\\n', '\n')


class ListFormatter:
    """Renders rows in quiet, table or plain template mode.

    The template is parsed and validated against the row schema on
    construction, so a bad format fails before anything is fetched.
    """

    def __init__(self, source: str, headers: Dict[str, str], default_table: str, quiet: bool = False):
        self.headers = headers
        self.table = False
        self.template: Optional[Template] = None

        source = unescape_format(source)
        # Quiet only replaces the default table; a custom template still applies
        self.quiet = quiet and source.strip() in (TABLE_PREFIX, default_table)

        # Parsed even in quiet mode so a bad --format is always reported
        if source.startswith(TABLE_PREFIX):
            self.table = True
            source = source[len(TABLE_PREFIX):].lstrip()
            if not source:
                source = default_table[len(TABLE_PREFIX):].lstrip()
        self.source = source
        self.template = parse(source, schema=headers)

    def render(self, rows: Iterable[Any]) -> str:
        rows = list(rows)
        if self.quiet:
            return ''.join(f'{row.raw_id}\n' for row in rows)

        rendered = [self.template.execute(row) for row in rows]
        if not self.table:
            return ''.join(f'{line}\n' for line in rendered)

        table = tabulate(
            [line.split('\t') for line in rendered],
            headers=self._header_row(),
            tablefmt='plain',
            disable_numparse=True
        )
        return ''.join(f'{line.rstrip()}\n' for line in table.splitlines())

    def _header_row(self) -> List[str]:
        context = HeaderContext(self.headers)
        cells = []
        for column in self.source.split('\t'):
            try:
                cells.append(Template(column).execute(context))
            except (TemplateError, RenderError):
                cells.append('')
        return cells


class InspectFormatter:
    """Renders inspected objects as JSON, a template, or the pretty layout"""

    def __init__(self, source: Optional[str] = None, pretty: bool = False):
        self.pretty = pretty
        self.template: Optional[Template] = None
        if source and source != JSON_FORMAT:
            self.template = parse(unescape_format(source))

    def render(self, results: List[Tuple[Dict[str, Any], bytes]]) -> str:
        if self.pretty:
            blocks = [pretty_config(ConfigSummary.from_api(obj)) for obj, _ in results]
            return '\n'.join(blocks)
        if self.template is not None:
            return ''.join(f'{self.template.execute(obj)}\n' for obj, _ in results)
        return render_json(results)


def render_json(results: List[Tuple[Dict[str, Any], bytes]]) -> str:
    elements = []
    for obj, raw in results:
        if raw:
            try:
                elements.append(json.loads(raw))
                continue
            except ValueError:
                logger.debug("Inspect body is not valid JSON, using decoded object")
        elements.append(obj)
    return json.dumps(elements, indent=4, ensure_ascii=False) + '\n'


def pretty_config(config: ConfigSummary) -> str:
    lines = [
        f'ID:              {config.id}',
        f'Name:            {config.name}',
    ]
    if config.labels:
        lines.append('Labels:')
        for key, value in sorted(config.labels.items()):
            lines.append(f' - {key}={value}' if value else f' - {key}')
    lines.append(f'Created at:      {format_time(config.created_at) if config.created_at else ""}')
    lines.append(f'Updated at:      {format_time(config.updated_at) if config.updated_at else ""}')
    lines.append('Data:')
    lines.append(config.data.decode('utf-8', 'replace') if config.data else '')
    return '\n'.join(lines) + '\n'
