"""Safety policy for destructive runs."""

from .gate import BELOW_MIN_CONFIDENCE, LIMIT_EXCEEDED, GateResult, SafetyGate

__all__ = ["BELOW_MIN_CONFIDENCE", "LIMIT_EXCEEDED", "GateResult", "SafetyGate"]
