"""Demonstration topology: a small hospital integration landscape."""

from __future__ import annotations

from intmap.topology.models import Connection, Direction, Quality, System, Topology

_SYSTEMS = [
    ("1", "Electronic Health Record (EHR)"),
    ("2", "Patient Administration System (PAS)"),
    ("3", "Laboratory Information System (LIS)"),
    ("4", "Radiology Information System (RIS)"),
    ("5", "Pharmacy Management System"),
    ("6", "Billing System"),
]

# (source, target, direction, quality, volume)
_CONNECTIONS = [
    ("1", "2", Direction.BIDIRECTIONAL, Quality.AUTOMATED, 100),
    ("2", "1", Direction.BIDIRECTIONAL, Quality.AUTOMATED, 100),
    ("1", "3", Direction.ONE_WAY, Quality.AUTOMATED, 50),
    ("3", "1", Direction.ONE_WAY, Quality.AUTOMATED, 80),
    ("1", "4", Direction.ONE_WAY, Quality.SEMI_AUTOMATED, 40),
    ("4", "1", Direction.ONE_WAY, Quality.SEMI_AUTOMATED, 30),
    ("1", "5", Direction.ONE_WAY, Quality.AUTOMATED, 60),
    ("5", "1", Direction.ONE_WAY, Quality.SEMI_AUTOMATED, 20),
    ("1", "6", Direction.ONE_WAY, Quality.SEMI_AUTOMATED, 45),
    ("2", "6", Direction.ONE_WAY, Quality.MANUAL, 15),
]


def example_topology() -> Topology:
    """Six systems and ten directed connections (one bidirectional pair)."""
    return Topology(
        systems=tuple(System(id=i, name=n) for i, n in _SYSTEMS),
        connections=tuple(
            Connection(source=s, target=t, direction=d, quality=q, volume=v)
            for s, t, d, q, v in _CONNECTIONS
        ),
        metadata={"title": "Example Hospital Integration Map"},
    )
