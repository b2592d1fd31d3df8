"""API client for the Docker Engine swarm endpoints"""

import logging
import requests
from typing import Dict, Any, Optional, List, Tuple
from urllib.parse import urljoin, quote

from .errors import SwarmctlError
from .filters import FilterSet

logger = logging.getLogger(__name__)


class APIError(SwarmctlError):
    """API error exception"""
    def __init__(self, message: str, status_code: int = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class APIClient:
    """Read-only client for the Docker Engine API.

    Only the lookups the CLI needs are exposed: service, node, task and
    config listings plus config inspection.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, verify_ssl: bool = True,
                 timeout: Optional[float] = 30):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.session = requests.Session()

        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make an HTTP request to the API"""
        url = urljoin(self.base_url + '/', endpoint.lstrip('/'))

        params = kwargs.pop('params', {})
        # Remove None values from params
        params = {k: v for k, v in params.items() if v is not None}

        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                verify=self.verify_ssl,
                timeout=self.timeout,
                **kwargs
            )
            response.raise_for_status()
            return response
        except requests.exceptions.HTTPError as e:
            # Engine errors carry {"message": "..."}
            try:
                error_data = e.response.json()
                message = error_data.get('message', str(e))
            except ValueError:
                message = str(e)

            raise APIError(message, e.response.status_code, e.response.text) from e
        except requests.exceptions.RequestException as e:
            raise APIError(f"Request failed: {str(e)}") from e

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"invalid response from {response.url}: {e}", response.status_code) from e

    def get(self, endpoint: str, **params) -> Any:
        """Make a GET request"""
        response = self._make_request('GET', endpoint, params=params)
        return self._decode(response) if response.text else None

    @staticmethod
    def _filter_param(filters: Optional[FilterSet]) -> Optional[str]:
        if not filters:
            return None
        return filters.to_json()

    def list_services(self, filters: Optional[FilterSet] = None) -> List[Dict[str, Any]]:
        """List swarm services"""
        return self.get('services', filters=self._filter_param(filters)) or []

    def list_nodes(self, filters: Optional[FilterSet] = None) -> List[Dict[str, Any]]:
        """List swarm nodes"""
        return self.get('nodes', filters=self._filter_param(filters)) or []

    def list_tasks(self, filters: Optional[FilterSet] = None) -> List[Dict[str, Any]]:
        """List swarm tasks"""
        return self.get('tasks', filters=self._filter_param(filters)) or []

    def list_configs(self, filters: Optional[FilterSet] = None) -> List[Dict[str, Any]]:
        """List configs"""
        return self.get('configs', filters=self._filter_param(filters)) or []

    def inspect_config(self, config_id: str) -> Tuple[Dict[str, Any], bytes]:
        """Inspect a config by name or ID, returning the decoded object and raw body"""
        if not config_id:
            raise APIError("config not found: empty name or ID", 404)
        response = self._make_request('GET', f'configs/{quote(config_id, safe="")}')
        return self._decode(response), response.content
