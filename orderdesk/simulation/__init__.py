"""
Simulation order store for development mode.
"""

from orderdesk.simulation.app import create_app
from orderdesk.simulation.store import InMemoryOrderStore

__all__ = ["create_app", "InMemoryOrderStore"]
