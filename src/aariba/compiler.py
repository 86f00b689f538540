"""Compiler: lowers parse trees into postfix programs and instruction trees.

Expressions become flat postfix member lists. A binary node lowers its left
operand, then its right operand, then the operator, so the evaluator pops
rhs before lhs. Calls lower their arguments left to right and then the
function's operator. Unary plus emits nothing.

Lowering never fails: argument counts are not checked here, a call with the
wrong number of arguments is reported as ``InvalidExpression`` when it runs.
"""

from . import ast
from .conditions import Comparison, CompOp, Condition, Exists, Logic, LogicOp
from .expressions import (
    BinaryOperator,
    CompiledExpression,
    Constant,
    ExpressionMember,
    OperatorMember,
    UnaryOperator,
    Variable,
    VariableRef,
)
from .rules import Assignment, IfBlock, Instruction, RulesEvaluator

BINARY_OPS = {
    "+": BinaryOperator.PLUS,
    "-": BinaryOperator.MINUS,
    "*": BinaryOperator.MULTIPLY,
    "/": BinaryOperator.DIVIDE,
    "^": BinaryOperator.POW,
}

FUNCTION_OPS = {
    "sin": UnaryOperator.SIN,
    "cos": UnaryOperator.COS,
    "min": BinaryOperator.MIN,
    "max": BinaryOperator.MAX,
    "rand": BinaryOperator.RAND,
}

LOGIC_OPS = {"and": LogicOp.AND, "or": LogicOp.OR}


def lower(expr: ast.Expr) -> list[ExpressionMember]:
    """Lower an expression tree to postfix members."""
    out: list[ExpressionMember] = []
    _lower(expr, out)
    return out


def _lower(expr: ast.Expr, out: list[ExpressionMember]) -> None:
    match expr:
        case ast.Number(value=v):
            out.append(Constant(value=v))

        case ast.Var(local=local, name=name):
            out.append(VariableRef(variable=Variable(is_local=local, name=name)))

        case ast.BinOp(op=op, left=left, right=right):
            _lower(left, out)
            _lower(right, out)
            out.append(OperatorMember(operator=BINARY_OPS[op]))

        case ast.UnaryOp(op=op, operand=operand):
            _lower(operand, out)
            if op == "-":
                out.append(OperatorMember(operator=UnaryOperator.NEG))

        case ast.Call(func=func, args=args):
            for arg in args:
                _lower(arg, out)
            out.append(OperatorMember(operator=FUNCTION_OPS[func]))


def compile_expression(expr: ast.Expr) -> CompiledExpression:
    return CompiledExpression(members=tuple(lower(expr)))


def compile_condition(cond: ast.Cond) -> Condition:
    match cond:
        case ast.Compare(op=op, left=left, right=right):
            return Comparison(
                left=compile_expression(left),
                op=CompOp(op),
                right=compile_expression(right),
            )
        case ast.BoolOp(op=op, left=left, right=right):
            return Logic(
                left=compile_condition(left),
                op=LOGIC_OPS[op],
                right=compile_condition(right),
            )
        case ast.Exists(name=name):
            return Exists(name=name)
    raise TypeError(f"unknown condition node: {type(cond).__name__}")


def compile_block(statements: list[ast.Stmt]) -> tuple[Instruction, ...]:
    return tuple(compile_statement(stmt) for stmt in statements)


def compile_statement(stmt: ast.Stmt) -> Instruction:
    match stmt:
        case ast.Assign(target=target, expr=expr):
            return Assignment(
                variable=Variable(is_local=target.local, name=target.name),
                expression=compile_expression(expr),
            )
        case ast.If(condition=condition, body=body, orelse=orelse):
            return IfBlock(
                condition=compile_condition(condition),
                then_block=compile_block(body),
                else_block=compile_block(orelse) if orelse is not None else None,
            )
    raise TypeError(f"unknown statement node: {type(stmt).__name__}")


def compile_rule(rule: ast.Rule) -> RulesEvaluator:
    """Compile a parsed rule into an evaluator."""
    return RulesEvaluator(instructions=compile_block(rule.statements))
