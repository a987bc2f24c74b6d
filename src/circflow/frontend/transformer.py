"""
Circuit AST Transformer

Converts the Lark parse tree into circflow statement and expression nodes.

Rust Pattern: rustc_ast lowering from the token tree

Sugar is removed here so the analyses only see the core statement forms:
- `for (init; cond; step) body` becomes `Block[init, While(cond, Block[body, step])]`
- `x++`, `x--` and `x op= e` become `x = x op e`
- `e ==> x` / `e --> x` become `x <== e` / `x <-- e`
- every declaration statement becomes an InitializationBlock holding its
  Declarations and initializer Substitutions
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union, Dict

from lark import Transformer, v_args
from lark.lexer import Token
from typing_extensions import TypeAlias

from ..shared.ast_visitor import StatementVisitor
from ..shared.errors import CircflowImplementationError
from ..shared.nodes import (
    Meta, VariableType, SignalType, AssignOp, ExpressionInfixOpcode, ExpressionPrefixOpcode,
    Statement, Expression, Declaration, Substitution, MultSubstitution, UnderscoreSubstitution,
    ConstraintEquality, LogCall, Assert, Return, Block, InitializationBlock, IfThenElse, While,
    Number, Variable, InfixOp, PrefixOp, InlineSwitchOp, Call, AnonymousComp, ArrayInLine,
    TupleExpr, ArrayAccess, ComponentAccess,
)
from ..shared.program import FileLibrary, TemplateData, FunctionData, ProgramArchive

# Lark Meta object (start_pos/end_pos when not empty)
LarkMeta: TypeAlias = object
DeclarationPart: TypeAlias = Union[SignalType, List[str], "DeclItem"]

logger = logging.getLogger("circflow.frontend.transformer")


_ASSIGN_OPS: Dict[str, AssignOp] = {op.value: op for op in AssignOp}
_INFIX_OPS: Dict[str, ExpressionInfixOpcode] = {op.value: op for op in ExpressionInfixOpcode}
_PREFIX_OPS: Dict[str, ExpressionPrefixOpcode] = {op.value: op for op in ExpressionPrefixOpcode}
# `x op= e` -> `x = x op e`
_COMPOUND_OPS: Dict[str, ExpressionInfixOpcode] = {
    f"{op.value}=": op for op in (
        ExpressionInfixOpcode.ADD, ExpressionInfixOpcode.SUB, ExpressionInfixOpcode.MUL,
        ExpressionInfixOpcode.DIV, ExpressionInfixOpcode.INT_DIV, ExpressionInfixOpcode.MOD,
        ExpressionInfixOpcode.POW, ExpressionInfixOpcode.SHIFT_L, ExpressionInfixOpcode.SHIFT_R,
        ExpressionInfixOpcode.BIT_AND, ExpressionInfixOpcode.BIT_OR, ExpressionInfixOpcode.BIT_XOR,
    )
}


@dataclass
class Dim:
    """Internal: one `[expr]` of a declaration"""
    expr: Expression
    end: int


@dataclass
class DeclInit:
    """Internal: initializer of a declaration"""
    op: AssignOp
    expr: Expression
    end: int


@dataclass
class DeclItem:
    """Internal: `name[dims] (op expr)?` inside a declaration statement"""
    name: str
    start: int
    end: int
    dims: List[Dim]
    init: Optional[DeclInit]


@dataclass
class MainComponent:
    """Internal: `component main {public [..]} = T(..);`"""
    expr: Expression
    public: List[str]


@v_args(inline=True, meta=True)
class CircuitTransformer(Transformer):
    """
    Circuit AST Transformer.

    One instance is reused across parses; the parser calls reset() with the
    file library and file id before every transform. elem ids are allocated
    from a counter, so they are unique within one program.
    """

    def __init__(self) -> None:
        super().__init__()
        self.file_library: FileLibrary = FileLibrary()
        self.file_id: int = 0
        self._next_elem_id: int = 0

    def _reset(self, file_library: FileLibrary, file_id: int) -> None:
        self.file_library = file_library
        self.file_id = file_id
        self._next_elem_id = 0

    def _call_userfunc(self, tree, new_children=None):
        """Report grammar rules the transformer does not handle as internal errors"""
        if not hasattr(self, tree.data):
            raise CircflowImplementationError(
                f"Missing transformer method for grammar rule '{tree.data}'"
            )
        return super()._call_userfunc(tree, new_children)

    # =========================================================================
    # META
    # =========================================================================

    def _span(self, start: int, end: int) -> Meta:
        self._next_elem_id += 1
        return Meta(start=start, end=end, file_id=self.file_id, elem_id=self._next_elem_id)

    def _meta(self, meta: LarkMeta) -> Meta:
        if getattr(meta, "empty", True):
            raise CircflowImplementationError("Parser produced a node without position information")
        return self._span(meta.start_pos, meta.end_pos)

    def _token_meta(self, token: Token) -> Meta:
        return self._span(token.start_pos, token.end_pos)

    # =========================================================================
    # PROGRAM STRUCTURE
    # =========================================================================

    def program(self, meta: LarkMeta, *items) -> ProgramArchive:
        templates: Dict[str, TemplateData] = {}
        functions: Dict[str, FunctionData] = {}
        main: Optional[MainComponent] = None
        for item in items:
            if isinstance(item, TemplateData):
                templates[item.name] = item
            elif isinstance(item, FunctionData):
                functions[item.name] = item
            elif isinstance(item, MainComponent):
                main = item

        inference = _ComponentInference(templates)
        for template in templates.values():
            inference.run(template.body)
        logger.debug(f"Parsed {len(templates)} templates, {len(functions)} functions")

        return ProgramArchive(
            self.file_library,
            templates=templates,
            functions=functions,
            main_file_id=self.file_id,
            main_component=main.expr if main else None,
            public_inputs=main.public if main else None,
        )

    def pragma(self, meta: LarkMeta, body: Token) -> None:
        logger.debug(f"pragma {str(body).strip()}")
        return None

    def include(self, meta: LarkMeta, path: Token) -> None:
        # Includes are not resolved; the analyses work one file at a time.
        logger.debug(f"include {path} skipped")
        return None

    def template_modifier(self, meta: LarkMeta) -> None:
        return None

    def template_def(self, meta: LarkMeta, *args) -> TemplateData:
        """Grammar: "template" template_modifier* NAME "(" [params] ")" block"""
        parts = [a for a in args if a is not None]
        name = str(parts[0])
        params = parts[1] if len(parts) == 3 else []
        body = parts[-1]
        return TemplateData(name, params, body, self._meta(meta))

    def function_def(self, meta: LarkMeta, name: Token, *args) -> FunctionData:
        params = args[0] if len(args) == 2 else []
        return FunctionData(str(name), params, args[-1], self._meta(meta))

    def params(self, meta: LarkMeta, *names: Token) -> List[str]:
        return [str(n) for n in names]

    def main_component(self, meta: LarkMeta, *args) -> MainComponent:
        """Grammar: "component" "main" [public_list] ASSIGN_VAR expr ";" """
        public = args[0] if len(args) == 3 else []
        return MainComponent(expr=args[-1], public=public)

    def public_list(self, meta: LarkMeta, *names: Token) -> List[str]:
        return [str(n) for n in names]

    # =========================================================================
    # DECLARATIONS
    # =========================================================================

    def var_decl(self, meta: LarkMeta, *items: DeclItem) -> InitializationBlock:
        return self._declaration_block(meta, VariableType.var(), list(items))

    def component_decl(self, meta: LarkMeta, *items: DeclItem) -> InitializationBlock:
        return self._declaration_block(meta, VariableType.component(), list(items))

    def signal_decl(self, meta: LarkMeta, *parts: DeclarationPart) -> InitializationBlock:
        """Grammar: "signal" [signal_kind] [tag_list] decl_item ("," decl_item)*"""
        signal_type = SignalType.INTERMEDIATE
        items: List[DeclItem] = []
        for part in parts:
            if isinstance(part, SignalType):
                signal_type = part
            elif isinstance(part, DeclItem):
                items.append(part)
            # tag lists carry no flow information
        return self._declaration_block(meta, VariableType.signal(signal_type), items)

    def input_signal(self, meta: LarkMeta) -> SignalType:
        return SignalType.INPUT

    def output_signal(self, meta: LarkMeta) -> SignalType:
        return SignalType.OUTPUT

    def tag_list(self, meta: LarkMeta, *names: Token) -> List[str]:
        return [str(n) for n in names]

    def decl_item(self, meta: LarkMeta, name: Token, *rest: Union[Dim, DeclInit]) -> DeclItem:
        dims = [r for r in rest if isinstance(r, Dim)]
        init = next((r for r in rest if isinstance(r, DeclInit)), None)
        end = dims[-1].end if dims else name.end_pos
        return DeclItem(name=str(name), start=name.start_pos, end=end, dims=dims, init=init)

    def dim(self, meta: LarkMeta, expr: Expression) -> Dim:
        return Dim(expr=expr, end=meta.end_pos)

    def decl_init(self, meta: LarkMeta, op: AssignOp, expr: Expression) -> DeclInit:
        return DeclInit(op=op, expr=expr, end=meta.end_pos)

    def assign_op(self, meta: LarkMeta, token: Token) -> AssignOp:
        return _ASSIGN_OPS[str(token)]

    def _declaration_block(self, meta: LarkMeta, xtype: VariableType,
                           items: List[DeclItem]) -> InitializationBlock:
        """
        Lower one declaration statement.

        The first Declaration spans from the keyword, later ones from their
        name; both end after the dimensions. An initializer Substitution
        spans the declaration plus its right-hand side.
        """
        block_meta = self._meta(meta)
        initializations: List[Statement] = []
        for idx, item in enumerate(items):
            start = block_meta.start if idx == 0 else item.start
            decl = Declaration(self._span(start, item.end), xtype, item.name,
                               [d.expr for d in item.dims])
            initializations.append(decl)
            if item.init is None:
                continue
            initializations.append(Substitution(
                self._span(start, item.init.end), item.name, [], item.init.op, item.init.expr
            ))
        return InitializationBlock(block_meta, xtype, initializations)

    # =========================================================================
    # SUBSTITUTIONS
    # =========================================================================

    def substitution(self, meta: LarkMeta, var: Variable, op: AssignOp, rhe: Expression) -> Substitution:
        return Substitution(self._meta(meta), var.name, var.access, op, rhe)

    def reverse_substitution(self, meta: LarkMeta, rhe: Expression, token: Token, var: Variable) -> Substitution:
        """Grammar: expr ("==>" | "-->") var_ref"""
        op = AssignOp.ASSIGN_CONSTRAINT_SIGNAL if token.type == "RCONSTRAINT" else AssignOp.ASSIGN_SIGNAL
        return Substitution(self._meta(meta), var.name, var.access, op, rhe)

    def compound_op(self, meta: LarkMeta, token: Token) -> ExpressionInfixOpcode:
        return _COMPOUND_OPS[str(token)]

    def compound_substitution(self, meta: LarkMeta, var: Variable,
                              opcode: ExpressionInfixOpcode, rhe: Expression) -> Substitution:
        return self._desugar_update(meta, var, opcode, rhe)

    def increment(self, meta: LarkMeta, var: Variable, token: Token) -> Substitution:
        return self._desugar_update(meta, var, ExpressionInfixOpcode.ADD, Number(self._token_meta(token), 1))

    def decrement(self, meta: LarkMeta, var: Variable, token: Token) -> Substitution:
        return self._desugar_update(meta, var, ExpressionInfixOpcode.SUB, Number(self._token_meta(token), 1))

    def _desugar_update(self, meta: LarkMeta, var: Variable,
                        opcode: ExpressionInfixOpcode, rhe: Expression) -> Substitution:
        stmt_meta = self._meta(meta)
        current = Variable(self._span(var.meta.start, var.meta.end), var.name, list(var.access))
        value = InfixOp(self._span(stmt_meta.start, stmt_meta.end), current, opcode, rhe)
        return Substitution(stmt_meta, var.name, var.access, AssignOp.ASSIGN_VAR, value)

    def mult_substitution(self, meta: LarkMeta, *args) -> MultSubstitution:
        """Grammar: "(" tuple_item ("," tuple_item)+ ")" assign_op expr"""
        items: List[Expression] = list(args[:-2])
        op, rhe = args[-2], args[-1]
        lhe = TupleExpr(self._span(items[0].meta.start, items[-1].meta.end), items)
        return MultSubstitution(self._meta(meta), lhe, op, rhe)

    def tuple_item(self, meta: LarkMeta, expr: Expression) -> Expression:
        return expr

    def tuple_underscore(self, meta: LarkMeta) -> Variable:
        return Variable(self._meta(meta), "_")

    def underscore_substitution(self, meta: LarkMeta, op: AssignOp, rhe: Expression) -> UnderscoreSubstitution:
        return UnderscoreSubstitution(self._meta(meta), op, rhe)

    def constraint_eq(self, meta: LarkMeta, lhe: Expression, token: Token, rhe: Expression) -> ConstraintEquality:
        return ConstraintEquality(self._meta(meta), lhe, rhe)

    # =========================================================================
    # CONTROL FLOW
    # =========================================================================

    def block(self, meta: LarkMeta, *stmts: Statement) -> Block:
        return Block(self._meta(meta), list(stmts))

    def if_stmt(self, meta: LarkMeta, cond: Expression, if_case: Statement,
                else_case: Optional[Statement] = None) -> IfThenElse:
        return IfThenElse(self._meta(meta), cond, if_case, else_case)

    def while_stmt(self, meta: LarkMeta, cond: Expression, stmt: Statement) -> While:
        return While(self._meta(meta), cond, stmt)

    def for_stmt(self, meta: LarkMeta, init: Statement, cond: Expression,
                 step: Statement, body: Statement) -> Block:
        """Grammar: "for" "(" for_init ";" expr ";" substitution ")" statement"""
        loop_body = Block(self._meta(meta), [body, step])
        loop = While(self._meta(meta), cond, loop_body)
        return Block(self._meta(meta), [init, loop])

    def log_stmt(self, meta: LarkMeta, *args: Union[str, Expression]) -> LogCall:
        return LogCall(self._meta(meta), list(args))

    def log_string(self, meta: LarkMeta, token: Token) -> str:
        return str(token)[1:-1]

    def assert_stmt(self, meta: LarkMeta, arg: Expression) -> Assert:
        return Assert(self._meta(meta), arg)

    def return_stmt(self, meta: LarkMeta, value: Expression) -> Return:
        return Return(self._meta(meta), value)

    # =========================================================================
    # EXPRESSIONS
    # =========================================================================

    def inline_switch(self, meta: LarkMeta, cond: Expression, if_true: Expression,
                      if_false: Expression) -> InlineSwitchOp:
        return InlineSwitchOp(self._meta(meta), cond, if_true, if_false)

    def infix(self, meta: LarkMeta, lhe: Expression, token: Token, rhe: Expression) -> InfixOp:
        return InfixOp(self._meta(meta), lhe, _INFIX_OPS[str(token)], rhe)

    def prefix(self, meta: LarkMeta, token: Token, rhe: Expression) -> PrefixOp:
        return PrefixOp(self._meta(meta), _PREFIX_OPS[str(token)], rhe)

    def parens(self, meta: LarkMeta, expr: Expression) -> Expression:
        # Keeps its own span; the parse tree node only widens enclosing spans
        return expr

    def number(self, meta: LarkMeta, token: Token) -> Number:
        text = str(token)
        value = int(text, 16) if text.startswith("0x") else int(text)
        return Number(self._meta(meta), value)

    def call(self, meta: LarkMeta, name: Token, args: List[Expression]) -> Call:
        return Call(self._meta(meta), str(name), args)

    def anon_component(self, meta: LarkMeta, name: Token, params: List[Expression],
                       signals: List[Expression]) -> AnonymousComp:
        return AnonymousComp(self._meta(meta), str(name), params, signals)

    def arg_list(self, meta: LarkMeta, *args: Expression) -> List[Expression]:
        return list(args)

    def array_inline(self, meta: LarkMeta, *values: Expression) -> ArrayInLine:
        return ArrayInLine(self._meta(meta), list(values))

    def var_ref(self, meta: LarkMeta, name: Token, *access) -> Variable:
        return Variable(self._meta(meta), str(name), list(access))

    def array_access(self, meta: LarkMeta, index: Expression) -> ArrayAccess:
        return ArrayAccess(index)

    def component_access(self, meta: LarkMeta, name: Token) -> ComponentAccess:
        return ComponentAccess(str(name))


class _ComponentInference(StatementVisitor[None]):
    """
    Annotate component declarations with the template they instantiate.

    Runs once every template of the file is known, so `component c = T();`
    and the split form `component c[2]; c[i] = T();` are handled alike.
    Calls to templates outside the file (pulled in by `include`) leave the
    declaration unannotated. The first instantiation seen wins.
    """

    def __init__(self, templates: Dict[str, TemplateData]):
        self.templates = templates
        self.components: Dict[str, Declaration] = {}

    def run(self, body: Statement) -> None:
        self.components = {}
        body.accept(self)

    def visit_declaration(self, node: Declaration) -> None:
        if node.xtype.is_component:
            self.components[node.name] = node

    def visit_substitution(self, node: Substitution) -> None:
        decl = self.components.get(node.var)
        if decl is None or decl.meta.component_inference is not None:
            return
        if isinstance(node.rhe, Call) and node.rhe.id in self.templates:
            decl.meta.component_inference = node.rhe.id
