"""Estimation failure modes.

Neither error is retried automatically; the analyst re-invokes the
estimator with different iteration or thinning parameters.
"""

from typing import Any


class EstimationError(Exception):
    """Base class for ERGM estimation failures."""


class NonConvergenceError(EstimationError):
    """Parameter updates did not stabilize within the iteration budget.

    Carries the partial trace so the run can be inspected and retried.
    """

    def __init__(self, message: str, trace: list[dict[str, Any]], last_sample: Any = None):
        super().__init__(message)
        self.trace = trace
        self.last_sample = last_sample


class DegenerateModelError(EstimationError):
    """Chain statistics diverge: the model is unstable for this graph."""

    def __init__(self, message: str, trace: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.trace = trace or []
