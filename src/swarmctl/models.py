"""Read-only snapshots of swarm objects returned by the API"""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from dateutil.parser import isoparse

TASK_STATE_RUNNING = 'running'
TASK_STATE_SHUTDOWN = 'shutdown'
NODE_STATE_DOWN = 'down'


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as returned by the engine"""
    if not value:
        return None
    try:
        return isoparse(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class Replicated:
    """Replicated mode: a fixed number of tasks"""
    replicas: int

    name = 'replicated'


@dataclass(frozen=True)
class Global:
    """Global mode: one task per eligible node"""

    name = 'global'


ServiceMode = Union[Replicated, Global]


def parse_mode(spec_mode: Optional[Dict[str, Any]]) -> Optional[ServiceMode]:
    spec_mode = spec_mode or {}
    if 'Replicated' in spec_mode:
        return Replicated((spec_mode['Replicated'] or {}).get('Replicas', 0) or 0)
    if 'Global' in spec_mode:
        return Global()
    return None


@dataclass(frozen=True)
class PortConfig:
    target_port: int
    published_port: int = 0
    protocol: str = 'tcp'
    publish_mode: str = 'ingress'

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'PortConfig':
        return cls(
            target_port=data.get('TargetPort', 0) or 0,
            published_port=data.get('PublishedPort', 0) or 0,
            protocol=data.get('Protocol') or 'tcp',
            publish_mode=data.get('PublishMode') or 'ingress'
        )


@dataclass(frozen=True)
class ServiceSummary:
    id: str
    name: str
    mode: Optional[ServiceMode]
    image: str = ''
    ports: Tuple[PortConfig, ...] = ()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ServiceSummary':
        spec = data.get('Spec') or {}
        container_spec = (spec.get('TaskTemplate') or {}).get('ContainerSpec') or {}
        # Endpoint reflects the allocated ports; fall back to what was requested
        ports = (data.get('Endpoint') or {}).get('Ports')
        if ports is None:
            ports = (spec.get('EndpointSpec') or {}).get('Ports') or []
        return cls(
            id=data.get('ID', ''),
            name=spec.get('Name', ''),
            mode=parse_mode(spec.get('Mode')),
            image=container_spec.get('Image', ''),
            ports=tuple(PortConfig.from_api(p) for p in ports)
        )


@dataclass(frozen=True)
class ConfigSummary:
    id: str
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    labels: Dict[str, str] = field(default_factory=dict)
    data: Optional[bytes] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ConfigSummary':
        spec = data.get('Spec') or {}
        payload = spec.get('Data')
        if payload is not None:
            try:
                payload = base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError):
                payload = payload.encode('utf-8')
        return cls(
            id=data.get('ID', ''),
            name=spec.get('Name', ''),
            created_at=parse_timestamp(data.get('CreatedAt')),
            updated_at=parse_timestamp(data.get('UpdatedAt')),
            labels=dict(spec.get('Labels') or {}),
            data=payload
        )


@dataclass(frozen=True)
class TaskSummary:
    id: str
    service_id: str
    node_id: str
    state: str
    desired_state: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'TaskSummary':
        return cls(
            id=data.get('ID', ''),
            service_id=data.get('ServiceID', ''),
            node_id=data.get('NodeID', ''),
            state=(data.get('Status') or {}).get('State', ''),
            desired_state=data.get('DesiredState', '')
        )


@dataclass(frozen=True)
class NodeSummary:
    id: str
    state: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'NodeSummary':
        return cls(
            id=data.get('ID', ''),
            state=(data.get('Status') or {}).get('State', '')
        )

    @property
    def active(self) -> bool:
        return self.state != NODE_STATE_DOWN


@dataclass(frozen=True)
class ServiceStatus:
    """Running and desired task counts for one service"""
    running: int = 0
    desired: int = 0


def services_status(services: List[ServiceSummary], nodes: List[NodeSummary],
                    tasks: List[TaskSummary]) -> Dict[str, ServiceStatus]:
    """Count running and desired tasks per service.

    Tasks on nodes that are down are ignored. Replicated services use the
    replica count from their spec as the desired count; global services
    count tasks whose desired state is not shutdown.
    """
    active_nodes = {node.id for node in nodes if node.active}
    running: Dict[str, int] = {}
    desired_global: Dict[str, int] = {}
    for task in tasks:
        if task.node_id not in active_nodes:
            continue
        if task.state == TASK_STATE_RUNNING:
            running[task.service_id] = running.get(task.service_id, 0) + 1
        if task.desired_state != TASK_STATE_SHUTDOWN:
            desired_global[task.service_id] = desired_global.get(task.service_id, 0) + 1

    status = {}
    for service in services:
        if isinstance(service.mode, Replicated):
            desired = service.mode.replicas
        elif isinstance(service.mode, Global):
            desired = desired_global.get(service.id, 0)
        else:
            desired = 0
        status[service.id] = ServiceStatus(running.get(service.id, 0), desired)
    return status
