"""
Circuit AST (Abstract Syntax Tree) Definitions

Statement and expression nodes of a type-checked circuit program, as seen by
the flow analyses. Nodes are produced by the frontend and consumed read-only.

Visitor Pattern Support:
- All AST nodes have accept() methods for polymorphic dispatch
- Statement nodes dispatch to StatementVisitor, expressions to ExpressionVisitor
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union, TypeVar, TYPE_CHECKING

from .source_location import FileLocation

if TYPE_CHECKING:
    from .ast_visitor import StatementVisitor, ExpressionVisitor

T = TypeVar('T')


class NodeType(Enum):
    """AST node types"""
    DECLARATION = "declaration"
    SUBSTITUTION = "substitution"
    MULT_SUBSTITUTION = "mult_substitution"
    UNDERSCORE_SUBSTITUTION = "underscore_substitution"
    CONSTRAINT_EQUALITY = "constraint_equality"
    LOG_CALL = "log_call"
    ASSERT = "assert"
    RETURN = "return"
    BLOCK = "block"
    INITIALIZATION_BLOCK = "initialization_block"
    IF_THEN_ELSE = "if_then_else"
    WHILE = "while"
    NUMBER = "number"
    VARIABLE = "variable"
    INFIX_OP = "infix_op"
    PREFIX_OP = "prefix_op"
    INLINE_SWITCH_OP = "inline_switch_op"
    CALL = "call"
    ANONYMOUS_COMP = "anonymous_comp"
    ARRAY_INLINE = "array_inline"
    TUPLE = "tuple"


class SignalType(Enum):
    INPUT = "input"
    OUTPUT = "output"
    INTERMEDIATE = "intermediate"


class VariableKind(Enum):
    VAR = "var"
    SIGNAL = "signal"
    COMPONENT = "component"


@dataclass(frozen=True)
class VariableType:
    """Declared kind of a name: var, component, or signal with its direction"""
    kind: VariableKind
    signal_type: Optional[SignalType] = None

    @classmethod
    def var(cls) -> 'VariableType':
        return cls(VariableKind.VAR)

    @classmethod
    def component(cls) -> 'VariableType':
        return cls(VariableKind.COMPONENT)

    @classmethod
    def signal(cls, signal_type: SignalType = SignalType.INTERMEDIATE) -> 'VariableType':
        return cls(VariableKind.SIGNAL, signal_type)

    @property
    def is_var(self) -> bool:
        return self.kind == VariableKind.VAR

    @property
    def is_component(self) -> bool:
        return self.kind == VariableKind.COMPONENT

    @property
    def is_signal(self) -> bool:
        return self.kind == VariableKind.SIGNAL

    @property
    def is_input_signal(self) -> bool:
        return self.is_signal and self.signal_type == SignalType.INPUT

    def __str__(self) -> str:
        if self.is_signal and self.signal_type != SignalType.INTERMEDIATE:
            return f"signal {self.signal_type.value}"
        return self.kind.value


class AssignOp(Enum):
    ASSIGN_VAR = "="
    ASSIGN_SIGNAL = "<--"
    ASSIGN_CONSTRAINT_SIGNAL = "<=="


class ExpressionInfixOpcode(Enum):
    MUL = "*"
    DIV = "/"
    ADD = "+"
    SUB = "-"
    POW = "**"
    INT_DIV = "\\"
    MOD = "%"
    SHIFT_L = "<<"
    SHIFT_R = ">>"
    LESSER_EQ = "<="
    GREATER_EQ = ">="
    LESSER = "<"
    GREATER = ">"
    EQ = "=="
    NOT_EQ = "!="
    BOOL_OR = "||"
    BOOL_AND = "&&"
    BIT_OR = "|"
    BIT_AND = "&"
    BIT_XOR = "^"


class ExpressionPrefixOpcode(Enum):
    SUB = "-"
    BOOL_NOT = "!"
    COMPLEMENT = "~"


@dataclass
class Meta:
    """
    Span and identity of a node.

    elem_id is unique per node within a program and is the identity token used
    to match graph nodes. component_inference is the name-resolution annotation
    (template instantiated by a component declaration).
    """
    start: int
    end: int
    file_id: int = 0
    elem_id: int = 0
    component_inference: Optional[str] = None

    @property
    def location(self) -> FileLocation:
        return FileLocation(self.start, self.end, self.file_id)


class ASTNode:
    """
    Base class for all AST nodes

    Visitor Pattern Support (LLVM-style):
    - All nodes have accept() method for polymorphic dispatch
    """
    __slots__ = ('node_type', 'meta')

    def __init__(self, node_type: NodeType, meta: Meta):
        self.node_type = node_type
        self.meta = meta

    def accept(self, visitor):
        raise NotImplementedError(f"accept() not implemented for {self.__class__.__name__}")


class Statement(ASTNode):
    """Base class for statements"""
    __slots__ = ()


class Expression(ASTNode):
    """Base class for expressions"""
    __slots__ = ()


# ============================================
# ACCESS PATHS
# ============================================

@dataclass
class ArrayAccess:
    """x[index]"""
    index: Expression


@dataclass
class ComponentAccess:
    """c.name (sub-component signal)"""
    name: str


Access = Union[ArrayAccess, ComponentAccess]


# ============================================
# EXPRESSIONS
# ============================================

@dataclass
class Number(Expression):
    """Numeric literal (arbitrary precision)"""
    value: int

    def __init__(self, meta: Meta, value: int):
        super().__init__(NodeType.NUMBER, meta)
        self.value = value

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_number(self)


@dataclass
class Variable(Expression):
    """Named reference with an access path, e.g. `c.out[1]`"""
    name: str
    access: List[Access]

    def __init__(self, meta: Meta, name: str, access: Optional[List[Access]] = None):
        super().__init__(NodeType.VARIABLE, meta)
        self.name = name
        self.access = access or []

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_variable(self)


@dataclass
class InfixOp(Expression):
    lhe: Expression
    infix_op: ExpressionInfixOpcode
    rhe: Expression

    def __init__(self, meta: Meta, lhe: Expression, infix_op: ExpressionInfixOpcode, rhe: Expression):
        super().__init__(NodeType.INFIX_OP, meta)
        self.lhe = lhe
        self.infix_op = infix_op
        self.rhe = rhe

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_infix_op(self)


@dataclass
class PrefixOp(Expression):
    prefix_op: ExpressionPrefixOpcode
    rhe: Expression

    def __init__(self, meta: Meta, prefix_op: ExpressionPrefixOpcode, rhe: Expression):
        super().__init__(NodeType.PREFIX_OP, meta)
        self.prefix_op = prefix_op
        self.rhe = rhe

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_prefix_op(self)


@dataclass
class InlineSwitchOp(Expression):
    """cond ? if_true : if_false"""
    cond: Expression
    if_true: Expression
    if_false: Expression

    def __init__(self, meta: Meta, cond: Expression, if_true: Expression, if_false: Expression):
        super().__init__(NodeType.INLINE_SWITCH_OP, meta)
        self.cond = cond
        self.if_true = if_true
        self.if_false = if_false

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_inline_switch_op(self)


@dataclass
class Call(Expression):
    """Function call or template instantiation"""
    id: str
    args: List[Expression]

    def __init__(self, meta: Meta, id: str, args: List[Expression]):
        super().__init__(NodeType.CALL, meta)
        self.id = id
        self.args = args

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_call(self)


@dataclass
class AnonymousComp(Expression):
    """Anonymous component instantiation: T(params)(signals)"""
    id: str
    params: List[Expression]
    signals: List[Expression]

    def __init__(self, meta: Meta, id: str, params: List[Expression], signals: List[Expression]):
        super().__init__(NodeType.ANONYMOUS_COMP, meta)
        self.id = id
        self.params = params
        self.signals = signals

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_anonymous_comp(self)


@dataclass
class ArrayInLine(Expression):
    values: List[Expression]

    def __init__(self, meta: Meta, values: List[Expression]):
        super().__init__(NodeType.ARRAY_INLINE, meta)
        self.values = values

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_array_inline(self)


@dataclass
class TupleExpr(Expression):
    """Left-hand side of a multi-substitution: (a, _, b)"""
    values: List[Expression]

    def __init__(self, meta: Meta, values: List[Expression]):
        super().__init__(NodeType.TUPLE, meta)
        self.values = values

    def accept(self, visitor: 'ExpressionVisitor[T]') -> 'T':
        return visitor.visit_tuple(self)


# ============================================
# STATEMENTS
# ============================================

@dataclass
class Declaration(Statement):
    """
    Declaration of a var, signal or component.

    is_constant is filled in by the constant handler before linting.
    """
    xtype: VariableType
    name: str
    dimensions: List[Expression]
    is_constant: bool = False

    def __init__(self, meta: Meta, xtype: VariableType, name: str,
                 dimensions: Optional[List[Expression]] = None, is_constant: bool = False):
        super().__init__(NodeType.DECLARATION, meta)
        self.xtype = xtype
        self.name = name
        self.dimensions = dimensions or []
        self.is_constant = is_constant

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_declaration(self)


@dataclass
class Substitution(Statement):
    """var[access] op rhe"""
    var: str
    access: List[Access]
    op: AssignOp
    rhe: Expression

    def __init__(self, meta: Meta, var: str, access: List[Access], op: AssignOp, rhe: Expression):
        super().__init__(NodeType.SUBSTITUTION, meta)
        self.var = var
        self.access = access
        self.op = op
        self.rhe = rhe

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_substitution(self)


@dataclass
class MultSubstitution(Statement):
    """(a, b) <== T()(x, y)"""
    lhe: Expression
    op: AssignOp
    rhe: Expression

    def __init__(self, meta: Meta, lhe: Expression, op: AssignOp, rhe: Expression):
        super().__init__(NodeType.MULT_SUBSTITUTION, meta)
        self.lhe = lhe
        self.op = op
        self.rhe = rhe

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_mult_substitution(self)


@dataclass
class UnderscoreSubstitution(Statement):
    """_ <== expr"""
    op: AssignOp
    rhe: Expression

    def __init__(self, meta: Meta, op: AssignOp, rhe: Expression):
        super().__init__(NodeType.UNDERSCORE_SUBSTITUTION, meta)
        self.op = op
        self.rhe = rhe

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_underscore_substitution(self)


@dataclass
class ConstraintEquality(Statement):
    """lhe === rhe"""
    lhe: Expression
    rhe: Expression

    def __init__(self, meta: Meta, lhe: Expression, rhe: Expression):
        super().__init__(NodeType.CONSTRAINT_EQUALITY, meta)
        self.lhe = lhe
        self.rhe = rhe

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_constraint_equality(self)


@dataclass
class LogCall(Statement):
    """log("text", expr, ...); string arguments are kept as str"""
    args: List[Union[str, Expression]]

    def __init__(self, meta: Meta, args: List[Union[str, Expression]]):
        super().__init__(NodeType.LOG_CALL, meta)
        self.args = args

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_log_call(self)


@dataclass
class Assert(Statement):
    arg: Expression

    def __init__(self, meta: Meta, arg: Expression):
        super().__init__(NodeType.ASSERT, meta)
        self.arg = arg

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_assert(self)


@dataclass
class Return(Statement):
    value: Expression

    def __init__(self, meta: Meta, value: Expression):
        super().__init__(NodeType.RETURN, meta)
        self.value = value

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_return(self)


@dataclass
class Block(Statement):
    stmts: List[Statement]

    def __init__(self, meta: Meta, stmts: List[Statement]):
        super().__init__(NodeType.BLOCK, meta)
        self.stmts = stmts

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_block(self)


@dataclass
class InitializationBlock(Statement):
    """A declaration together with its initializer substitution(s)"""
    xtype: VariableType
    initializations: List[Statement]

    def __init__(self, meta: Meta, xtype: VariableType, initializations: List[Statement]):
        super().__init__(NodeType.INITIALIZATION_BLOCK, meta)
        self.xtype = xtype
        self.initializations = initializations

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_initialization_block(self)


@dataclass
class IfThenElse(Statement):
    cond: Expression
    if_case: Statement
    else_case: Optional[Statement]

    def __init__(self, meta: Meta, cond: Expression, if_case: Statement, else_case: Optional[Statement] = None):
        super().__init__(NodeType.IF_THEN_ELSE, meta)
        self.cond = cond
        self.if_case = if_case
        self.else_case = else_case

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_if_then_else(self)


@dataclass
class While(Statement):
    cond: Expression
    stmt: Statement

    def __init__(self, meta: Meta, cond: Expression, stmt: Statement):
        super().__init__(NodeType.WHILE, meta)
        self.cond = cond
        self.stmt = stmt

    def accept(self, visitor: 'StatementVisitor[T]') -> 'T':
        return visitor.visit_while(self)
