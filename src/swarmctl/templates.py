"""Restricted Go-template engine used by --format.

Supports the subset of ``text/template`` that output formats rely on:
actions with ``{{-``/``-}}`` trimming, field chains (``.Spec.Name``),
string and integer literals, parenthesised sub-pipelines, pipes and a fixed
set of functions. Control structures (``if``, ``range``, variables) are not
supported and fail at parse time.
"""

import json
import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from .errors import RenderError, TemplateError

LEFT_DELIM = '{{'
RIGHT_DELIM = '}}'

_KEYWORDS = frozenset({'if', 'else', 'end', 'range', 'with', 'define', 'template', 'block', 'break', 'continue'})

_TOKEN_RE = re.compile(r'''
    (?P<space>\s+)
  | (?P<field>(?:\.[A-Za-z_][A-Za-z0-9_]*)+)
  | (?P<dot>\.)
  | (?P<string>"(?:\\.|[^"\\])*")
  | (?P<raw>`[^`]*`)
  | (?P<number>-?\d+)
  | (?P<bool>true|false)(?![A-Za-z0-9_])
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<pipe>\|)
  | (?P<lparen>\()
  | (?P<rparen>\))
''', re.VERBOSE)


def _to_list(value) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    raise RenderError(f"expected a list, got {type(value).__name__}")


def _json(value) -> str:
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False, default=_json_default)


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode('utf-8', 'replace')
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def _join(values, sep) -> str:
    return str(sep).join(to_text(v) for v in _to_list(values))


def _split(value, sep) -> List[str]:
    return to_text(value).split(str(sep))


def _pad(value, prefix: int, suffix: int) -> str:
    return ' ' * int(prefix) + to_text(value) + ' ' * int(suffix)


def _truncate(value, length: int) -> str:
    text = to_text(value)
    return text[:int(length)] if len(text) > int(length) else text


def _index(value, *keys):
    for key in keys:
        if value is None:
            return None
        try:
            value = value[key]
        except (KeyError, IndexError):
            return None
        except TypeError as e:
            raise RenderError(f"can't index item of type {type(value).__name__}") from e
    return value


BASIC_FUNCTIONS: Dict[str, Callable] = {
    'json': _json,
    'join': _join,
    'split': _split,
    'lower': lambda v: to_text(v).lower(),
    'upper': lambda v: to_text(v).upper(),
    'title': lambda v: re.sub(r'\b\w', lambda m: m.group().upper(), to_text(v)),
    'pad': _pad,
    'truncate': _truncate,
    'index': _index,
}


def to_text(value: Any) -> str:
    """Render a value the way the template prints it"""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode('utf-8', 'replace')
    if isinstance(value, datetime):
        return format_time(value)
    if isinstance(value, Mapping):
        items = ' '.join(f"{k}:{to_text(value[k])}" for k in sorted(value, key=str))
        return f"map[{items}]"
    if isinstance(value, (list, tuple)):
        return '[' + ' '.join(to_text(v) for v in value) + ']'
    return str(value)


def format_time(value: datetime) -> str:
    # strftime does not zero pad years before 1000
    delta = value.utcoffset() or timedelta(0)
    total = int(delta.total_seconds())
    sign = '-' if total < 0 else '+'
    total = abs(total)
    offset = f"{sign}{total // 3600:02d}{total % 3600 // 60:02d}"
    zone = value.tzname() or 'UTC'
    return (f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
            f"{value.hour:02d}:{value.minute:02d}:{value.second:02d} {offset} {zone}")


# AST

class Field:
    def __init__(self, path):
        self.path = tuple(path)


class Dot:
    pass


class Literal:
    def __init__(self, value):
        self.value = value


class Identifier:
    def __init__(self, name):
        self.name = name


class Pipeline:
    def __init__(self, commands):
        self.commands = commands


class Text:
    def __init__(self, text):
        self.text = text


class Action:
    def __init__(self, pipeline, source):
        self.pipeline = pipeline
        self.source = source


class Template:
    """A parsed template, validated against the available functions"""

    def __init__(self, source: str, functions: Optional[Dict[str, Callable]] = None):
        self.source = source
        self.functions = dict(BASIC_FUNCTIONS if functions is None else functions)
        self.nodes = self._parse(source)

    # Parsing

    def _parse(self, source: str) -> List[Any]:
        nodes: List[Any] = []
        pos = 0
        trim_next = False
        while True:
            start = source.find(LEFT_DELIM, pos)
            text = source[pos:] if start < 0 else source[pos:start]
            if trim_next:
                text = text.lstrip()
            if start < 0:
                if text:
                    nodes.append(Text(text))
                return nodes

            inner_start = start + len(LEFT_DELIM)
            if source.startswith('- ', inner_start) or source.startswith('-\t', inner_start) \
                    or source.startswith('-\n', inner_start):
                text = text.rstrip()
                inner_start += 1
            if text:
                nodes.append(Text(text))

            end = self._find_close(source, inner_start)
            inner = source[inner_start:end]
            trim_next = False
            if re.search(r'\s-$', inner):
                inner = inner[:-1]
                trim_next = True
            nodes.append(Action(self._parse_action(inner, start), inner.strip()))
            pos = end + len(RIGHT_DELIM)

    def _find_close(self, source: str, pos: int) -> int:
        quote = None
        i = pos
        while i < len(source):
            ch = source[i]
            if quote:
                if ch == '\\' and quote == '"':
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif ch in '"`':
                quote = ch
            elif source.startswith(RIGHT_DELIM, i):
                return i
            i += 1
        raise TemplateError(f"template: {self._location(pos)}: unclosed action")

    def _location(self, offset: int) -> str:
        return f":{self.source.count(chr(10), 0, offset) + 1}"

    def _tokenize(self, inner: str, offset: int) -> List[tuple]:
        tokens = []
        pos = 0
        while pos < len(inner):
            match = _TOKEN_RE.match(inner, pos)
            if not match:
                raise TemplateError(
                    f"template: {self._location(offset)}: unexpected {inner[pos]!r} in command")
            kind = match.lastgroup
            if kind != 'space':
                tokens.append((kind, match.group()))
            pos = match.end()
        return tokens

    def _parse_action(self, inner: str, offset: int) -> Pipeline:
        tokens = self._tokenize(inner, offset)
        if not tokens:
            raise TemplateError(f"template: {self._location(offset)}: missing value for command")
        pipeline, rest = self._parse_pipeline(tokens, offset)
        if rest:
            raise TemplateError(f"template: {self._location(offset)}: unexpected {rest[0][1]!r} in operand")
        return pipeline

    def _parse_pipeline(self, tokens, offset):
        commands = []
        command = []
        while tokens:
            kind, value = tokens[0]
            if kind == 'rparen':
                break
            tokens = tokens[1:]
            if kind == 'pipe':
                if not command:
                    raise TemplateError(f"template: {self._location(offset)}: missing command before '|'")
                commands.append(self._check_command(command, offset))
                command = []
            elif kind == 'lparen':
                sub, tokens = self._parse_pipeline(tokens, offset)
                if not tokens or tokens[0][0] != 'rparen':
                    raise TemplateError(f"template: {self._location(offset)}: unclosed left paren")
                tokens = tokens[1:]
                command.append(sub)
            else:
                command.append(self._operand(kind, value, offset))
        if not command:
            raise TemplateError(f"template: {self._location(offset)}: missing value for command")
        commands.append(self._check_command(command, offset))
        return Pipeline(commands), tokens

    def _operand(self, kind, value, offset):
        if kind == 'field':
            return Field(value[1:].split('.'))
        if kind == 'dot':
            return Dot()
        if kind == 'string':
            try:
                return Literal(json.loads(value))
            except ValueError as e:
                raise TemplateError(f"template: {self._location(offset)}: invalid string {value}") from e
        if kind == 'raw':
            return Literal(value[1:-1])
        if kind == 'number':
            return Literal(int(value))
        if kind == 'bool':
            return Literal(value == 'true')
        if value in _KEYWORDS:
            raise TemplateError(f"template: {self._location(offset)}: unsupported action {value!r}")
        if value not in self.functions:
            raise TemplateError(f"template: {self._location(offset)}: function {value!r} not defined")
        return Identifier(value)

    def _check_command(self, command, offset):
        head = command[0]
        if len(command) > 1 and not isinstance(head, (Identifier, Field)):
            raise TemplateError(f"template: {self._location(offset)}: can't give argument to non-function")
        return command

    # Validation

    def fields(self) -> List[str]:
        """Top-level field names referenced by the template, in order"""
        found: List[str] = []

        def visit(node):
            if isinstance(node, Field):
                if node.path[0] not in found:
                    found.append(node.path[0])
            elif isinstance(node, Pipeline):
                for command in node.commands:
                    for operand in command:
                        visit(operand)

        for node in self.nodes:
            if isinstance(node, Action):
                visit(node.pipeline)
        return found

    def validate(self, schema: Iterable[str]):
        """Reject templates referencing fields the context does not provide"""
        allowed = set(schema)
        for name in self.fields():
            if name not in allowed:
                raise TemplateError(f"template: :1: can't evaluate field {name}")

    # Execution

    def execute(self, data: Any) -> str:
        out = []
        for node in self.nodes:
            if isinstance(node, Text):
                out.append(node.text)
            else:
                try:
                    out.append(to_text(self._eval_pipeline(node.pipeline, data)))
                except RenderError as e:
                    raise RenderError(f"template: executing {node.source!r}: {e}") from e
        return ''.join(out)

    def _eval_pipeline(self, pipeline: Pipeline, dot: Any) -> Any:
        value = _NO_VALUE
        for command in pipeline.commands:
            value = self._eval_command(command, dot, value)
        return value

    def _eval_command(self, command, dot, piped):
        head, rest = command[0], command[1:]
        args = [self._eval_arg(arg, dot) for arg in rest]
        if piped is not _NO_VALUE:
            args.append(piped)
        if isinstance(head, Identifier):
            return self._call(head.name, self.functions[head.name], args)
        if isinstance(head, Field):
            return self._eval_field(head, dot, args)
        if args:
            raise RenderError("can't give argument to non-function")
        return self._eval_arg(head, dot)

    def _eval_arg(self, node, dot):
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Dot):
            return dot
        if isinstance(node, Field):
            return self._eval_field(node, dot, [])
        if isinstance(node, Pipeline):
            return self._eval_pipeline(node, dot)
        if isinstance(node, Identifier):
            return self._call(node.name, self.functions[node.name], [])
        raise RenderError(f"unexpected operand {node!r}")

    @staticmethod
    def _call(name, func, args):
        try:
            return func(*args)
        except (TypeError, ValueError) as e:
            raise RenderError(f"error calling {name}: {e}") from e

    def _eval_field(self, node: Field, dot, args):
        value = dot
        for i, name in enumerate(node.path):
            value = lookup(value, name)
            last = i == len(node.path) - 1
            if callable(value):
                value = self._call(name, value, args if last else [])
            elif last and args:
                raise RenderError(f"{name} is not a method but has arguments")
        return value


_NO_VALUE = object()


def lookup(obj: Any, name: str) -> Any:
    """Resolve one field step on a mapping or a template context"""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    fields = getattr(obj, 'template_fields', None)
    if fields is not None and name in fields:
        return getattr(obj, name)
    raise RenderError(f"can't evaluate field {name} in type {type(obj).__name__}")


def parse(source: str, schema: Optional[Iterable[str]] = None) -> Template:
    """Parse ``source`` and, when a schema is given, validate its fields"""
    template = Template(source)
    if schema is not None:
        template.validate(schema)
    return template
