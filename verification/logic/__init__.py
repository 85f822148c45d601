from verification.logic.seal_inspector import PatternSealInspector, PyHankoSealInspector
from verification.logic.verification_engine import VerificationEngine

__all__ = ["PatternSealInspector", "PyHankoSealInspector", "VerificationEngine"]
