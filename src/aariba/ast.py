"""Parse-tree nodes for rule text."""

from typing import Annotated
from typing import Literal as TypingLiteral

from pydantic import BaseModel, Field

FUNCTIONS = {"sin", "cos", "min", "max", "rand"}


# Expressions - using discriminated union for type safety
class Number(BaseModel):
    type: TypingLiteral["number"] = "number"
    value: float

    def __str__(self) -> str:
        return repr(self.value)


class Var(BaseModel):
    """Variable reference (``x`` is local, ``$x`` global)."""

    type: TypingLiteral["var"] = "var"
    local: bool
    name: str

    def __str__(self) -> str:
        return self.name if self.local else f"${self.name}"


class BinOp(BaseModel):
    type: TypingLiteral["binop"] = "binop"
    op: str  # +, -, *, /, ^
    left: "Expr"
    right: "Expr"

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


class UnaryOp(BaseModel):
    type: TypingLiteral["unaryop"] = "unaryop"
    op: str  # -, +
    operand: "Expr"

    def __str__(self) -> str:
        return f"{self.op}{self.operand}"


class Call(BaseModel):
    """Builtin function call (e.g., max(0, x), rand(1, 6))."""

    type: TypingLiteral["call"] = "call"
    func: str
    args: list["Expr"]

    def __str__(self) -> str:
        return f"{self.func}({', '.join(str(a) for a in self.args)})"


Expr = Annotated[
    Number | Var | BinOp | UnaryOp | Call,
    Field(discriminator="type"),
]


# Conditions
class Compare(BaseModel):
    type: TypingLiteral["compare"] = "compare"
    op: str  # >, >=, <, <=, ==, !=
    left: Expr
    right: Expr

    def __str__(self) -> str:
        return f"{self.left} {self.op} {self.right}"


class BoolOp(BaseModel):
    type: TypingLiteral["boolop"] = "boolop"
    op: str  # and, or
    left: "Cond"
    right: "Cond"

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


class Exists(BaseModel):
    """Global existence check: exists($name)."""

    type: TypingLiteral["exists"] = "exists"
    name: str

    def __str__(self) -> str:
        return f"exists(${self.name})"


Cond = Annotated[
    Compare | BoolOp | Exists,
    Field(discriminator="type"),
]


# Statements
class Assign(BaseModel):
    type: TypingLiteral["assign"] = "assign"
    target: Var
    expr: Expr


class If(BaseModel):
    type: TypingLiteral["if"] = "if"
    condition: Cond
    body: list["Stmt"] = []
    orelse: list["Stmt"] | None = None  # None = no else branch


Stmt = Annotated[
    Assign | If,
    Field(discriminator="type"),
]


class Rule(BaseModel):
    """A parsed rule: top-level statements in source order."""

    statements: list[Stmt] = []


# Rebuild models for forward references
BinOp.model_rebuild()
UnaryOp.model_rebuild()
Call.model_rebuild()
BoolOp.model_rebuild()
If.model_rebuild()
Rule.model_rebuild()
