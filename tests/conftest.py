"""Root test configuration."""

import logging
from datetime import datetime

import pytest
import structlog

from intmap.config.settings import Settings
from intmap.topology.editing import add_connection, add_system
from intmap.topology.models import Topology


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


FIXED_NOW = datetime(2026, 3, 14, 9, 30)


@pytest.fixture
def settings() -> Settings:
    """Defaults with a small iteration budget so network renders stay fast."""
    return Settings(_env_file=None, force_max_iterations=120)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


def build_topology(names, connections) -> Topology:
    """
    Snapshot from system names and ``(source, target, direction, quality, volume)``.

    Systems get ids "1", "2", ... in order; connections refer to names.
    """
    topology = Topology()
    ids = {}
    for name in names:
        topology, system = add_system(topology, name)
        ids[name] = system.id
    for source, target, direction, quality, volume in connections:
        topology, _ = add_connection(topology, ids[source], ids[target], direction, quality, volume)
    return topology


@pytest.fixture
def make_topology():
    return build_topology


@pytest.fixture
def pair_topology() -> Topology:
    """A and B with one bidirectional automated connection, volume 20."""
    return build_topology(["A", "B"], [("A", "B", "bidirectional", "automated", 20)])


@pytest.fixture
def fan_topology() -> Topology:
    """A sends 30 to B and 10 to C."""
    return build_topology(
        ["A", "B", "C"],
        [
            ("A", "B", "one-way", "automated", 30),
            ("A", "C", "one-way", "semi-automated", 10),
        ],
    )
