"""
CLI commands for intmap.
"""

from intmap.cli.render import render_command
from intmap.cli.summary import summary_command
from intmap.cli.topology import topology_export_command

__all__ = [
    "render_command",
    "summary_command",
    "topology_export_command",
]
