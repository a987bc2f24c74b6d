"""
Analysis passes.

LintPass and FlowAnalysisPass live in their own modules and are imported
from there; they depend on circflow.analysis, which itself uses the
constant handler defined here.
"""

from .base import AnalysisCtxt, BasePass, PassManager
from .constants import ConstantHandlerPass, handle_template_constants

__all__ = ['AnalysisCtxt', 'BasePass', 'PassManager', 'ConstantHandlerPass', 'handle_template_constants']
