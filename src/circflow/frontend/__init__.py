"""
Circuit frontend: lark grammar, parse-tree transformer and parser.
"""

from .parser import Parser, ParseError
from .transformer import CircuitTransformer

__all__ = ['Parser', 'ParseError', 'CircuitTransformer']
