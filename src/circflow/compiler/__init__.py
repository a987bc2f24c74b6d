"""
Analysis driver.
"""

from .driver import AnalysisDriver, AnalysisResult

__all__ = ['AnalysisDriver', 'AnalysisResult']
