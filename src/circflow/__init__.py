"""
circflow: flow-sensitive analysis for arithmetic-circuit templates.
"""

from .compiler.driver import AnalysisDriver, AnalysisResult
from .frontend.parser import Parser, ParseError

__version__ = "0.1.0"

__all__ = ['AnalysisDriver', 'AnalysisResult', 'Parser', 'ParseError', '__version__']
