"""Lexer and recursive descent parser for rule text.

Grammar:
    rule        = instruction*
    instruction = assignment | if_stmt
    assignment  = ["$"] NAME "=" expr ";"
    if_stmt     = "if" condition block ["else" block]
    block       = "{" instruction* "}"
    condition   = and_cond (("||" | "or") and_cond)*
    and_cond    = atom_cond (("&&" | "and") atom_cond)*
    atom_cond   = "exists" "(" GLOBAL ")" | cmp | "(" condition ")"
    cmp         = expr (">" | ">=" | "<" | "<=" | "==" | "!=") expr
    expr        = mul_expr (("+" | "-") mul_expr)*
    mul_expr    = unary (("*" | "/") unary)*
    unary       = ("-" | "+") unary | power
    power       = primary ["^" power]
    primary     = NUMBER | NAME | GLOBAL | call | "(" expr ")"
    call        = FUNCTION "(" [expr ("," expr)*] ")"

``^`` is right-associative and binds tighter than a unary sign, so ``-2^2``
is ``-(2^2)``. An exponent may not start with a sign: ``2^-2`` is rejected,
``2^(-2)`` is fine.
"""

import re
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from . import ast


@dataclass
class Token:
    type: str
    value: str
    line: int
    col: int


class ParseError(Exception):
    def __init__(self, msg: str, line: int, col: int):
        super().__init__(f"line {line}, col {col}: {msg}")
        self.msg = msg
        self.line = line
        self.col = col


class LexError(ParseError):
    pass


class Lexer:
    """One-shot token iterator over rule text.

    Tokens are produced on demand; the first unrecognised character raises
    ``LexError``. The last token is always ``EOF``.
    """

    KEYWORDS = {"if", "else", "and", "or"}

    TOKEN_PATTERNS = [
        (re.compile(r"(#|//)[^\n]*"), "COMMENT"),
        (re.compile(r"[ \t\r\n]+"), "WS"),
        (re.compile(r"[0-9]+(\.[0-9]+)?([eE][+-]?[0-9]+)?"), "NUMBER"),
        (re.compile(r"\$[a-zA-Z][a-zA-Z0-9_]*"), "GLOBAL"),
        (re.compile(r"[a-zA-Z][a-zA-Z0-9_]*"), "IDENT"),
        (re.compile(r"&&"), "AND"),
        (re.compile(r"\|\|"), "OR"),
        (re.compile(r"<="), "LE"),
        (re.compile(r">="), "GE"),
        (re.compile(r"=="), "EQ"),
        (re.compile(r"!="), "NE"),
        (re.compile(r"<"), "LT"),
        (re.compile(r">"), "GT"),
        (re.compile(r"="), "ASSIGN"),
        (re.compile(r"\+"), "PLUS"),
        (re.compile(r"-"), "MINUS"),
        (re.compile(r"\*"), "STAR"),
        (re.compile(r"/"), "SLASH"),
        (re.compile(r"\^"), "CARET"),
        (re.compile(r"\("), "LPAREN"),
        (re.compile(r"\)"), "RPAREN"),
        (re.compile(r"\{"), "LBRACE"),
        (re.compile(r"\}"), "RBRACE"),
        (re.compile(r";"), "SEMI"),
        (re.compile(r","), "COMMA"),
    ]

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.done = False

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        if self.done:
            raise StopIteration

        while self.pos < len(self.source):
            for pattern, ttype in self.TOKEN_PATTERNS:
                m = pattern.match(self.source, self.pos)
                if m:
                    break
            else:
                raise LexError(
                    f"unexpected char: {self.source[self.pos]!r}",
                    self.line,
                    self.col,
                )

            value = m.group(0)
            tok = Token(ttype, value, self.line, self.col)
            self._advance(value)
            if ttype in ("WS", "COMMENT"):
                continue
            if ttype == "IDENT" and value in self.KEYWORDS:
                tok.type = value.upper()
            return tok

        self.done = True
        return Token("EOF", "", self.line, self.col)

    def _advance(self, text: str) -> None:
        self.pos += len(text)
        for c in text:
            if c == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1


class Parser:
    """Recursive descent parser for rule text."""

    COMPARISONS = {
        "GT": ">",
        "GE": ">=",
        "LT": "<",
        "LE": "<=",
        "EQ": "==",
        "NE": "!=",
    }

    def __init__(self, tokens: Iterable[Token]):
        self._tokens = iter(tokens)
        self._buffer: list[Token] = []
        self.pos = 0

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        while idx >= len(self._buffer):
            if self._buffer and self._buffer[-1].type == "EOF":
                return self._buffer[-1]
            tok = next(self._tokens, None)
            if tok is None:
                last = self._buffer[-1] if self._buffer else Token("EOF", "", 1, 1)
                tok = Token("EOF", "", last.line, last.col)
            self._buffer.append(tok)
        return self._buffer[idx]

    def at(self, *types: str) -> bool:
        return self.peek().type in types

    def consume(self, ttype: str) -> Token:
        tok = self.peek()
        if tok.type != ttype:
            raise ParseError(f"expected {ttype}, got {tok.type}", tok.line, tok.col)
        self.pos += 1
        return tok

    def match(self, *types: str) -> Token | None:
        if self.at(*types):
            tok = self.peek()
            self.pos += 1
            return tok
        return None

    def error(self, msg: str) -> ParseError:
        tok = self.peek()
        return ParseError(msg, tok.line, tok.col)

    @contextmanager
    def nesting_guard(self) -> Iterator[None]:
        """Turn interpreter stack exhaustion into a ParseError."""
        try:
            yield
        except RecursionError:
            # report at the last token read, without lexing further
            if self._buffer:
                tok = self._buffer[min(self.pos, len(self._buffer) - 1)]
            else:
                tok = Token("EOF", "", 1, 1)
            raise ParseError("expression nested too deeply", tok.line, tok.col) from None

    # Instructions

    def parse_rule(self) -> ast.Rule:
        """Parse a complete rule."""
        rule = ast.Rule()
        while not self.at("EOF"):
            rule.statements.append(self.parse_statement())
        return rule

    def parse_statement(self) -> ast.Assign | ast.If:
        if self.at("IF"):
            return self.parse_if()
        if self.at("IDENT", "GLOBAL") and self.peek(1).type == "ASSIGN":
            return self.parse_assignment()
        raise self.error(f"unexpected token: {self.peek().type}")

    def parse_assignment(self) -> ast.Assign:
        tok = self.match("GLOBAL", "IDENT")
        if tok is None:
            raise self.error(f"expected variable name, got {self.peek().type}")
        target = self._var(tok)
        self.consume("ASSIGN")
        expr = self.parse_expr()
        self.consume("SEMI")
        return ast.Assign(target=target, expr=expr)

    def parse_if(self) -> ast.If:
        self.consume("IF")
        condition = self.parse_condition()
        body = self.parse_block()
        orelse = None
        if self.match("ELSE"):
            orelse = self.parse_block()
        return ast.If(condition=condition, body=body, orelse=orelse)

    def parse_block(self) -> list[ast.Stmt]:
        self.consume("LBRACE")
        statements = []
        while not self.at("RBRACE", "EOF"):
            statements.append(self.parse_statement())
        self.consume("RBRACE")
        return statements

    # Conditions

    def parse_condition(self) -> ast.Cond:
        left = self.parse_and_condition()
        while self.match("OR"):
            right = self.parse_and_condition()
            left = ast.BoolOp(op="or", left=left, right=right)
        return left

    def parse_and_condition(self) -> ast.Cond:
        left = self.parse_atom_condition()
        while self.match("AND"):
            right = self.parse_atom_condition()
            left = ast.BoolOp(op="and", left=left, right=right)
        return left

    def parse_atom_condition(self) -> ast.Cond:
        if self.at("IDENT") and self.peek().value == "exists" and self.peek(1).type == "LPAREN":
            return self.parse_exists()
        if not self.at("LPAREN"):
            return self.parse_comparison()

        # "(" opens either an arithmetic operand or a nested condition
        start = self.pos
        try:
            return self.parse_comparison()
        except LexError:
            raise
        except ParseError:
            self.pos = start
        self.consume("LPAREN")
        condition = self.parse_condition()
        self.consume("RPAREN")
        return condition

    def parse_comparison(self) -> ast.Compare:
        left = self.parse_expr()
        tok = self.match(*self.COMPARISONS)
        if tok is None:
            raise self.error(f"expected comparison operator, got {self.peek().type}")
        right = self.parse_expr()
        return ast.Compare(op=self.COMPARISONS[tok.type], left=left, right=right)

    def parse_exists(self) -> ast.Exists:
        self.consume("IDENT")
        self.consume("LPAREN")
        if not self.at("GLOBAL"):
            raise self.error("exists() takes a global variable ($name)")
        name = self.consume("GLOBAL").value[1:]
        self.consume("RPAREN")
        return ast.Exists(name=name)

    # Expressions

    def parse_expr(self) -> ast.Expr:
        left = self.parse_mul()
        op_map = {"PLUS": "+", "MINUS": "-"}
        while tok := self.match("PLUS", "MINUS"):
            right = self.parse_mul()
            left = ast.BinOp(op=op_map[tok.type], left=left, right=right)
        return left

    def parse_mul(self) -> ast.Expr:
        left = self.parse_unary()
        op_map = {"STAR": "*", "SLASH": "/"}
        while tok := self.match("STAR", "SLASH"):
            right = self.parse_unary()
            left = ast.BinOp(op=op_map[tok.type], left=left, right=right)
        return left

    def parse_unary(self) -> ast.Expr:
        if self.match("MINUS"):
            return ast.UnaryOp(op="-", operand=self.parse_unary())
        if self.match("PLUS"):
            return ast.UnaryOp(op="+", operand=self.parse_unary())
        return self.parse_power()

    def parse_power(self) -> ast.Expr:
        base = self.parse_primary()
        if self.match("CARET"):
            if self.at("MINUS", "PLUS"):
                raise self.error("exponent cannot start with a sign, parenthesize it")
            exponent = self.parse_power()
            return ast.BinOp(op="^", left=base, right=exponent)
        return base

    def parse_primary(self) -> ast.Expr:
        if tok := self.match("NUMBER"):
            return ast.Number(value=float(tok.value))
        if self.at("IDENT") and self.peek(1).type == "LPAREN":
            return self.parse_call()
        if tok := self.match("IDENT", "GLOBAL"):
            return self._var(tok)
        if self.match("LPAREN"):
            expr = self.parse_expr()
            self.consume("RPAREN")
            return expr

        raise self.error(f"unexpected token in expression: {self.peek().type}")

    def parse_call(self) -> ast.Call:
        tok = self.peek()
        if tok.value not in ast.FUNCTIONS:
            raise ParseError(f"unknown function: {tok.value}", tok.line, tok.col)
        self.consume("IDENT")
        self.consume("LPAREN")
        args = []
        if not self.at("RPAREN"):
            args.append(self.parse_expr())
            while self.match("COMMA"):
                args.append(self.parse_expr())
        self.consume("RPAREN")
        return ast.Call(func=tok.value, args=args)

    def _var(self, tok: Token) -> ast.Var:
        if tok.type == "GLOBAL":
            return ast.Var(local=False, name=tok.value[1:])
        return ast.Var(local=True, name=tok.value)


def parse_expression_tree(source: str) -> ast.Expr:
    """Parse a single arithmetic expression."""
    parser = Parser(Lexer(source))
    with parser.nesting_guard():
        expr = parser.parse_expr()
        parser.consume("EOF")
    return expr


def parse_rule_tree(source: str) -> ast.Rule:
    """Parse rule text into a parse tree."""
    parser = Parser(Lexer(source))
    with parser.nesting_guard():
        return parser.parse_rule()


def parse_file(filepath: str | Path) -> ast.Rule:
    """Parse a rule file."""
    return parse_rule_tree(Path(filepath).read_text())
