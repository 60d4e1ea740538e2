"""Reporters for analysis results.

StructureWriter persists the JSON layout read by the viewer (stdlib json).
ConsoleReporter renders the run summary with rich.
"""

from cratescope.application.reporters.console import ConsoleConfig, ConsoleReporter
from cratescope.application.reporters.structure_writer import StructureWriter, WriteSummary

__all__ = [
    "ConsoleConfig",
    "ConsoleReporter",
    "StructureWriter",
    "WriteSummary",
]
