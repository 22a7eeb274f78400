"""Init file for AI services."""

from .agents import VehicleAgentAdapter, create_vehicle_agent


__all__ = [
    "create_vehicle_agent",
    "VehicleAgentAdapter",
]
