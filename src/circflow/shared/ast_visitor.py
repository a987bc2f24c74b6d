"""
AST Visitor Pattern

This module provides:
1. StatementVisitor (abstract visitor over statement trees)
2. ExpressionVisitor (abstract visitor over expressions, default traversal)

Design:
- Abstract base class with visit_* methods for each AST node type
- Leaf nodes that carry analysis meaning (declarations, substitutions,
  numbers, variables) MUST be implemented by subclasses
- Compound nodes have a default traversal; override to add custom behavior
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional

from .nodes import (
    Declaration, Substitution, MultSubstitution, UnderscoreSubstitution,
    ConstraintEquality, LogCall, Assert, Return, Block, InitializationBlock,
    IfThenElse, While, Statement,
    Number, Variable, InfixOp, PrefixOp, InlineSwitchOp, Call, AnonymousComp,
    ArrayInLine, TupleExpr, ArrayAccess,
)

T = TypeVar('T')


class StatementVisitor(ABC, Generic[T]):
    """
    Base statement visitor.

    Leaf nodes that MUST be implemented:
    - visit_declaration, visit_substitution

    Statements that are irrelevant to control flow (log, assert, return,
    constraint equality, multi/underscore substitution) are routed through
    visit_leaf(), which does nothing by default.

    Usage:
        class MyAnalyzer(StatementVisitor[None]):
            def visit_declaration(self, node) -> None:
                self.names.append(node.name)

            def visit_substitution(self, node) -> None:
                self.assigned.add(node.var)
    """

    @abstractmethod
    def visit_declaration(self, node: Declaration) -> T:
        raise NotImplementedError(f"{self.__class__.__name__} must implement visit_declaration()")

    @abstractmethod
    def visit_substitution(self, node: Substitution) -> T:
        raise NotImplementedError(f"{self.__class__.__name__} must implement visit_substitution()")

    def visit_leaf(self, node: Statement) -> Optional[T]:
        return None

    def visit_mult_substitution(self, node: MultSubstitution) -> T:
        return self.visit_leaf(node)

    def visit_underscore_substitution(self, node: UnderscoreSubstitution) -> T:
        return self.visit_leaf(node)

    def visit_constraint_equality(self, node: ConstraintEquality) -> T:
        return self.visit_leaf(node)

    def visit_log_call(self, node: LogCall) -> T:
        return self.visit_leaf(node)

    def visit_assert(self, node: Assert) -> T:
        return self.visit_leaf(node)

    def visit_return(self, node: Return) -> T:
        return self.visit_leaf(node)

    def visit_block(self, node: Block) -> Optional[T]:
        for stmt in node.stmts:
            stmt.accept(self)
        return None

    def visit_initialization_block(self, node: InitializationBlock) -> Optional[T]:
        for stmt in node.initializations:
            stmt.accept(self)
        return None

    def visit_if_then_else(self, node: IfThenElse) -> Optional[T]:
        node.if_case.accept(self)
        if node.else_case is not None:
            node.else_case.accept(self)
        return None

    def visit_while(self, node: While) -> Optional[T]:
        node.stmt.accept(self)
        return None


class ExpressionVisitor(ABC, Generic[T]):
    """
    Base expression visitor with default traversal for non-leaf nodes.

    Leaf nodes that MUST be implemented:
    - visit_number, visit_variable
    """

    @abstractmethod
    def visit_number(self, node: Number) -> T:
        raise NotImplementedError(f"{self.__class__.__name__} must implement visit_number()")

    @abstractmethod
    def visit_variable(self, node: Variable) -> T:
        raise NotImplementedError(f"{self.__class__.__name__} must implement visit_variable()")

    def visit_infix_op(self, node: InfixOp) -> Optional[T]:
        node.lhe.accept(self)
        node.rhe.accept(self)
        return None

    def visit_prefix_op(self, node: PrefixOp) -> Optional[T]:
        node.rhe.accept(self)
        return None

    def visit_inline_switch_op(self, node: InlineSwitchOp) -> Optional[T]:
        node.cond.accept(self)
        node.if_true.accept(self)
        node.if_false.accept(self)
        return None

    def visit_call(self, node: Call) -> Optional[T]:
        for arg in node.args:
            arg.accept(self)
        return None

    def visit_anonymous_comp(self, node: AnonymousComp) -> Optional[T]:
        for arg in node.params + node.signals:
            arg.accept(self)
        return None

    def visit_array_inline(self, node: ArrayInLine) -> Optional[T]:
        for value in node.values:
            value.accept(self)
        return None

    def visit_tuple(self, node: TupleExpr) -> Optional[T]:
        for value in node.values:
            value.accept(self)
        return None

    def visit_access_indices(self, node: Variable) -> None:
        """Visit index expressions of an access path (helper for visit_variable)"""
        for access in node.access:
            if isinstance(access, ArrayAccess):
                access.index.accept(self)
