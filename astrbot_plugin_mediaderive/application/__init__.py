"""
应用层
"""
from .derivative_orchestrator import DerivativeOrchestrator

__all__ = ["DerivativeOrchestrator"]
