"""
Pytest configuration and fixtures
"""

import pytest
from click.testing import CliRunner

from swarmctl.cli import cli
from swarmctl.config import Config, ConfigManager


class FakeClient:
    """In-memory stand-in for APIClient that records every lookup"""

    def __init__(self, service_list=None, node_list=None, task_list=None,
                 config_list=None, config_inspect=None):
        self.service_list = service_list
        self.node_list = node_list
        self.task_list = task_list
        self.config_list = config_list
        self.config_inspect = config_inspect
        self.calls = []

    def _call(self, name, func, arg, default):
        self.calls.append((name, arg))
        if func is None:
            return default
        return func(arg)

    def list_services(self, filters=None):
        return self._call('list_services', self.service_list, filters, [])

    def list_nodes(self, filters=None):
        return self._call('list_nodes', self.node_list, filters, [])

    def list_tasks(self, filters=None):
        return self._call('list_tasks', self.task_list, filters, [])

    def list_configs(self, filters=None):
        return self._call('list_configs', self.config_list, filters, [])

    def inspect_config(self, config_id):
        return self._call('inspect_config', self.config_inspect, config_id, ({}, b''))

    def called(self):
        return [name for name, _ in self.calls]


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / 'config.yaml'


@pytest.fixture
def run_cli(config_path):
    """Invoke the CLI with an injected client and configuration"""
    def run(args, client=None, config=None):
        runner = CliRunner()
        obj = {
            'client': client,
            'config': config if config is not None else Config(),
            'config_manager': ConfigManager(config_path),
        }
        return runner.invoke(cli, args, obj=obj)

    return run
