"""
Shared components for architecture.

Rust Pattern: Shared foundational types and utilities
"""

from .source_location import SourceLocation, FileLocation, generate_file_location
from .errors import (
    Error, ErrorReporter, Severity,
    CircflowError, CircflowSourceError, CircflowImplementationError,
    FlowGraphLookupError, UndeclaredAssignmentError,
)
from .nodes import (
    ASTNode, Expression, Statement, NodeType, Meta,
    VariableType, VariableKind, SignalType, AssignOp,
    ExpressionInfixOpcode, ExpressionPrefixOpcode,
    Declaration, Substitution, MultSubstitution, UnderscoreSubstitution,
    ConstraintEquality, LogCall, Assert, Return, Block, InitializationBlock,
    IfThenElse, While,
    Number, Variable, InfixOp, PrefixOp, InlineSwitchOp, Call, AnonymousComp,
    ArrayInLine, TupleExpr, ArrayAccess, ComponentAccess, Access,
)
from .ast_visitor import StatementVisitor, ExpressionVisitor
from .program import FileLibrary, TemplateData, FunctionData, ProgramArchive
