"""Service modules"""
from .bootstrap import ProtocolStack, build_protocol
from .scenario import Scenario, ScenarioReport, load_scenario, run_scenario

__all__ = [
    "ProtocolStack",
    "Scenario",
    "ScenarioReport",
    "build_protocol",
    "load_scenario",
    "run_scenario",
]
