"""
Tests for `swarmctl config ls` and `swarmctl config inspect`
"""

import json
from datetime import datetime, timedelta, timezone

from swarmctl.client import APIError
from swarmctl.config import Config

from builders import config, timestamp
from conftest import FakeClient


def fail(message):
    def raise_error(_):
        raise APIError(message)
    return raise_error


def foo_and_bar(_):
    return [
        config(id='ID-foo', name='foo'),
        config(id='ID-bar', name='bar', labels={'label': 'label-bar'}),
    ]


class TestConfigListErrors:

    def test_accepts_no_arguments(self, run_cli):
        client = FakeClient()
        result = run_cli(['config', 'ls', 'foo'], client)

        assert result.exit_code == 2
        assert "accepts no argument" in result.stderr
        assert client.calls == []

    def test_list_error(self, run_cli):
        client = FakeClient(config_list=fail("error listing configs"))
        result = run_cli(['config', 'ls'], client)

        assert result.exit_code == 1
        assert "error listing configs" in result.stderr

    def test_invalid_format(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls', '--format', '{{invalid format}}'], client)

        assert result.exit_code == 1
        assert "template parsing error" in result.stderr
        assert client.calls == []

    def test_filter_without_value(self, run_cli):
        client = FakeClient()
        result = run_cli(['config', 'ls', '--filter', 'name'], client)

        assert result.exit_code == 1
        assert "bad format of filter" in result.stderr
        assert client.calls == []


class TestConfigList:

    def test_sorted_by_name(self, run_cli):
        now = datetime.now(timezone.utc)
        created = timestamp(now - timedelta(hours=2))
        updated = timestamp(now - timedelta(hours=1))
        client = FakeClient(config_list=lambda _: [
            config(id='ID-2-foo', name='2-foo', version=11, created_at=created, updated_at=updated),
            config(id='ID-1-foo', name='1-foo', version=10, created_at=created, updated_at=updated),
            config(id='ID-10-foo', name='10-foo', version=11, created_at=created, updated_at=updated),
        ])
        result = run_cli(['config', 'ls'], client)

        assert result.exit_code == 0
        header, *rows = result.stdout.splitlines()
        assert header.split() == ['ID', 'NAME', 'CREATED', 'UPDATED']
        assert [row.split()[:2] for row in rows] == [
            ['ID-1-foo', '1-foo'],
            ['ID-10-foo', '10-foo'],
            ['ID-2-foo', '2-foo'],
        ]
        assert '2 hours ago' in rows[0]
        assert 'About an hour ago' in rows[0]

    def test_equal_names_keep_api_order(self, run_cli):
        client = FakeClient(config_list=lambda _: [
            config(id='ID-b', name='same'),
            config(id='ID-a', name='same'),
            config(id='ID-c', name='first'),
        ])
        result = run_cli(['config', 'list', '-q'], client)

        assert result.stdout == "ID-c\nID-b\nID-a\n"

    def test_quiet_option(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls', '--quiet'], client)

        assert result.exit_code == 0
        assert result.stdout == "ID-bar\nID-foo\n"

    def test_quiet_ignores_config_file_format(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls', '-q'], client, Config(configs_format='{{ .Name }}'))

        assert result.stdout == "ID-bar\nID-foo\n"

    def test_format_beats_quiet(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls', '-q', '--format', '{{ .Name }}'], client)

        assert result.stdout == "bar\nfoo\n"

    def test_config_file_format(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls'], client, Config(configs_format='{{ .Name }} {{ .Labels }}'))

        assert result.exit_code == 0
        assert result.stdout == "bar label=label-bar\nfoo \n"

    def test_format(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls', '--format', '{{ .Name }} {{ .Labels }}'], client)

        assert result.stdout == "bar label=label-bar\nfoo \n"

    def test_cli_format_beats_config_file_format(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls', '--format', '{{.ID}}'], client,
                         Config(configs_format='{{ .Name }} {{ .Labels }}'))

        assert result.stdout == "ID-bar\nID-foo\n"

    def test_label_accessor(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls', '--format', '{{.Name}}={{.Label "label"}}'], client)

        assert result.stdout == "bar=label-bar\nfoo=\n"

    def test_filters_passed_unmodified(self, run_cli):
        client = FakeClient(config_list=foo_and_bar)
        result = run_cli(['config', 'ls', '--filter', 'name=foo', '--filter', 'label=lbl1=Label-bar'],
                         client)

        assert result.exit_code == 0
        filters = client.calls[0][1]
        assert filters.get('name') == ['foo']
        assert filters.get('label') == ['lbl1=Label-bar']
        assert filters.keys() == ['label', 'name']

    def test_empty_list_prints_header(self, run_cli):
        client = FakeClient()
        result = run_cli(['config', 'ls'], client)

        assert result.exit_code == 0
        assert result.stdout.split() == ['ID', 'NAME', 'CREATED', 'UPDATED']


class TestConfigInspectErrors:

    def test_requires_an_argument(self, run_cli):
        client = FakeClient()
        result = run_cli(['config', 'inspect'], client)

        assert result.exit_code == 2
        assert "requires at least 1 argument" in result.stderr

    def test_inspect_error(self, run_cli):
        client = FakeClient(config_inspect=fail("error while inspecting the config"))
        result = run_cli(['config', 'inspect', 'foo'], client)

        assert result.exit_code == 1
        assert "error while inspecting the config" in result.stderr

    def test_invalid_format(self, run_cli):
        client = FakeClient()
        result = run_cli(['config', 'inspect', 'foo', '--format', '{{invalid format}}'], client)

        assert result.exit_code == 1
        assert "template parsing error" in result.stderr
        assert client.calls == []

    def test_second_config_fails(self, run_cli):
        def inspect(name):
            if name == 'foo':
                return config(name='foo'), b''
            raise APIError("error while inspecting the config")

        client = FakeClient(config_inspect=inspect)
        result = run_cli(['config', 'inspect', 'foo', 'bar'], client)

        assert result.exit_code == 1
        assert "error while inspecting the config" in result.stderr
        assert result.stdout == ''
        assert client.calls == [('inspect_config', 'foo'), ('inspect_config', 'bar')]

    def test_stops_at_first_failure(self, run_cli):
        client = FakeClient(config_inspect=fail("no such config"))
        run_cli(['config', 'inspect', 'foo', 'bar'], client)

        assert client.called() == ['inspect_config']

    def test_bad_function_argument(self, run_cli):
        client = FakeClient(config_inspect=lambda name: (config(name='foo'), b''))
        result = run_cli(['config', 'inspect', 'foo', '--format', '{{truncate .Spec.Name "x"}}'], client)

        assert result.exit_code == 1
        assert "error calling truncate" in result.stderr
        assert result.stdout == ''

    def test_pretty_and_format_are_exclusive(self, run_cli):
        client = FakeClient()
        result = run_cli(['config', 'inspect', 'foo', '--pretty', '--format', '{{.ID}}'], client)

        assert result.exit_code == 1
        assert "incompatible" in result.stderr
        assert client.calls == []


class TestConfigInspect:

    def test_single_config_as_json(self, run_cli):
        obj = config(id='ID-foo', name='foo')
        client = FakeClient(config_inspect=lambda name: (obj, b''))
        result = run_cli(['config', 'inspect', 'foo'], client)

        assert result.exit_code == 0
        assert result.stdout.startswith('[\n    {\n        "ID": "ID-foo"')
        assert json.loads(result.stdout) == [obj]

    def test_multiple_configs_with_labels(self, run_cli):
        client = FakeClient(config_inspect=lambda name: (
            config(id='ID-' + name, name=name, labels={'label1': 'label-foo'}), b''
        ))
        result = run_cli(['config', 'inspect', 'foo', 'bar'], client)

        decoded = json.loads(result.stdout)
        assert [c['Spec']['Name'] for c in decoded] == ['foo', 'bar']
        assert decoded[1]['Spec']['Labels'] == {'label1': 'label-foo'}

    def test_raw_body_preferred(self, run_cli):
        raw = b'{"ID": "from-raw", "Spec": {"Name": "foo"}}'
        client = FakeClient(config_inspect=lambda name: (config(id='decoded'), raw))
        result = run_cli(['config', 'inspect', 'foo'], client)

        assert json.loads(result.stdout) == [{'ID': 'from-raw', 'Spec': {'Name': 'foo'}}]

    def test_simple_template(self, run_cli):
        client = FakeClient(config_inspect=lambda name: (
            config(name='foo', labels={'label1': 'label-foo'}), b''
        ))
        result = run_cli(['config', 'inspect', 'foo', '--format', '{{.Spec.Name}}'], client)

        assert result.stdout == "foo\n"

    def test_json_template(self, run_cli):
        client = FakeClient(config_inspect=lambda name: (
            config(name='foo', labels={'label1': 'label-foo'}), b''
        ))
        result = run_cli(['config', 'inspect', 'foo', '--format', '{{json .Spec.Labels}}'], client)

        assert result.stdout == '{"label1":"label-foo"}\n'

    def test_pretty(self, run_cli):
        client = FakeClient(config_inspect=lambda name: (
            config(
                id='configID',
                name='configName',
                labels={'lbl1': 'value1'},
                data=b'payload here',
            ),
            b''
        ))
        result = run_cli(['config', 'inspect', 'configID', '--pretty'], client)

        assert result.exit_code == 0
        assert result.stdout == (
            "ID:              configID\n"
            "Name:            configName\n"
            "Labels:\n"
            " - lbl1=value1\n"
            "Created at:      0001-01-01 00:00:00 +0000 UTC\n"
            "Updated at:      0001-01-01 00:00:00 +0000 UTC\n"
            "Data:\n"
            "payload here\n"
        )

    def test_pretty_multiple_separated_by_blank_line(self, run_cli):
        client = FakeClient(config_inspect=lambda name: (
            config(id=name, name=name, data=name.encode()), b''
        ))
        result = run_cli(['config', 'inspect', 'a', 'b', '--pretty'], client)

        blocks = result.stdout.split('\n\n')
        assert len(blocks) == 2
        assert blocks[0].startswith('ID:              a\n')
        assert blocks[1].startswith('ID:              b\n')
        assert 'Labels:' not in result.stdout
