"""
Topology model and filter engine.

Immutable snapshots of systems and directed connections, the pure edit
operations that produce them, the connection filter, and text serializers
(JSON, Mermaid, DOT).
"""

from intmap.topology.demo import example_topology
from intmap.topology.editing import (
    add_connection,
    add_system,
    remove_connection,
    remove_system,
    rename_system,
)
from intmap.topology.filters import ConnectionFilter, filter_topology
from intmap.topology.loader import load_topology, topology_from_dict
from intmap.topology.models import (
    DEFAULT_VOLUME,
    Connection,
    Direction,
    Quality,
    System,
    Topology,
)
from intmap.topology.serializers import (
    serialize_dot,
    serialize_json,
    serialize_mermaid,
)

__all__ = [
    # Models
    "DEFAULT_VOLUME",
    "Quality",
    "Direction",
    "System",
    "Connection",
    "Topology",
    # Editing
    "add_system",
    "rename_system",
    "remove_system",
    "add_connection",
    "remove_connection",
    # Filtering
    "ConnectionFilter",
    "filter_topology",
    # Loading
    "load_topology",
    "topology_from_dict",
    "example_topology",
    # Serializers
    "serialize_json",
    "serialize_mermaid",
    "serialize_dot",
]
