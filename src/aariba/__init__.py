"""aariba: a small rule language over numeric variables.

Pipeline: lex rule text -> parse into a tree -> lower to postfix programs ->
evaluate against a global store and a stack of local scopes.

Example:
    from aariba import parse_expression, parse_rule

    parse_expression("1 - 2 + 6 / 2 ^ 3").evaluate()   # -0.25

    globals_ = {"level": 3.0}
    rule = parse_rule('''
        bonus = 10 * $level;
        if bonus > 20 { $hp = 100 + bonus; } else { $hp = 100; }
    ''')
    rule.evaluate(globals_)                              # globals_["hp"] == 130.0
"""

__version__ = "0.3.0"

from . import ast
from .compiler import compile_condition, compile_expression, compile_rule, lower
from .conditions import Comparison, CompOp, Condition, Exists, Logic, LogicOp
from .expressions import (
    BinaryOperator,
    CompiledExpression,
    Constant,
    ExpressionError,
    ExpressionMember,
    InvalidExpression,
    OperatorMember,
    UnaryOperator,
    Variable,
    VariableNotFound,
    VariableRef,
)
from .parser import (
    LexError,
    Lexer,
    ParseError,
    Parser,
    Token,
    parse_expression_tree,
    parse_file,
    parse_rule_tree,
)
from .rules import (
    Assignment,
    CannotSetVariable,
    ExpressionFailed,
    IfBlock,
    Instruction,
    RulesError,
    RulesEvaluator,
    ScopeStack,
)
from .store import AttributeStore, MappingStore, NullStore, Store, StoreError, as_store


def parse_expression(source: str) -> CompiledExpression:
    """Parse and compile a single expression."""
    return compile_expression(parse_expression_tree(source))


def parse_rule(source: str) -> RulesEvaluator:
    """Parse and compile rule text."""
    return compile_rule(parse_rule_tree(source))


__all__ = [
    # Parse
    "parse_expression",
    "parse_rule",
    "parse_expression_tree",
    "parse_rule_tree",
    "parse_file",
    "ParseError",
    "LexError",
    "Lexer",
    "Parser",
    "Token",
    "ast",
    # Compile
    "lower",
    "compile_expression",
    "compile_condition",
    "compile_rule",
    # Expressions
    "CompiledExpression",
    "ExpressionMember",
    "Constant",
    "VariableRef",
    "OperatorMember",
    "UnaryOperator",
    "BinaryOperator",
    "Variable",
    "ExpressionError",
    "VariableNotFound",
    "InvalidExpression",
    # Conditions
    "Condition",
    "Comparison",
    "Logic",
    "Exists",
    "CompOp",
    "LogicOp",
    # Rules
    "RulesEvaluator",
    "Instruction",
    "Assignment",
    "IfBlock",
    "ScopeStack",
    "RulesError",
    "ExpressionFailed",
    "CannotSetVariable",
    # Stores
    "Store",
    "MappingStore",
    "NullStore",
    "AttributeStore",
    "StoreError",
    "as_store",
]
