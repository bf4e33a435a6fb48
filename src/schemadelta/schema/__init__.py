"""
Statement generation for ordered schema change actions.
"""

from .generator import GeneratedScript, MigrationGenerator, Statement, TableStates

__all__ = ["GeneratedScript", "MigrationGenerator", "Statement", "TableStates"]
