from domain.steps.base import Step, Operation
from domain.steps.action import ActionStep
from domain.steps.condition import ConditionStep, EventuallyStep, Probe
from domain.steps.resource_state import ResourceStateStep, StateFetch

__all__ = [
    "Step",
    "Operation",
    "ActionStep",
    "ConditionStep",
    "EventuallyStep",
    "Probe",
    "ResourceStateStep",
    "StateFetch",
]
