"""Compiled expressions: postfix programs evaluated on an operand stack.

A compiled expression is a flat sequence of members in postfix order:

    1 3 + 3 4 + *            =>  (1 + 3) * (3 + 4)
    1 2 3 4 5 6 + * + * +    =>  1 + (2 * (3 + (4 * (5 + 6))))

Constants and variables push a value; operators pop their operands and push
the result. A well-formed program leaves exactly one value on the stack.
"""

from enum import Enum
from typing import Annotated, Any
from typing import Literal as TypingLiteral

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .store import Store, as_store


class ExpressionError(Exception):
    pass


class VariableNotFound(ExpressionError):
    def __init__(self, name: str):
        super().__init__(f"variable not found: {name}")
        self.name = name


class InvalidExpression(ExpressionError):
    def __init__(self, reason: str):
        super().__init__(f"invalid expression: {reason}")
        self.reason = reason


class Variable(BaseModel):
    """A variable reference. ``$name`` is global, a bare name is local."""

    model_config = ConfigDict(frozen=True)

    is_local: bool
    name: str

    @classmethod
    def from_source(cls, text: str) -> "Variable":
        if text.startswith("$"):
            return cls(is_local=False, name=text[1:])
        return cls(is_local=True, name=text)

    def __str__(self) -> str:
        return self.name if self.is_local else f"${self.name}"


class UnaryOperator(Enum):
    SIN = "sin"
    COS = "cos"
    NEG = "neg"

    def apply(self, operand: float) -> float:
        x = np.float64(operand)
        with np.errstate(all="ignore"):
            match self:
                case UnaryOperator.SIN:
                    result = np.sin(x)
                case UnaryOperator.COS:
                    result = np.cos(x)
                case UnaryOperator.NEG:
                    result = -x
        return float(result)


class BinaryOperator(Enum):
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POW = "^"
    MIN = "min"
    MAX = "max"
    RAND = "rand"

    def apply(self, lhs: float, rhs: float, rng: np.random.Generator | None = None) -> float:
        a = np.float64(lhs)
        b = np.float64(rhs)
        with np.errstate(all="ignore"):
            match self:
                case BinaryOperator.PLUS:
                    result = a + b
                case BinaryOperator.MINUS:
                    result = a - b
                case BinaryOperator.MULTIPLY:
                    result = a * b
                case BinaryOperator.DIVIDE:
                    result = np.divide(a, b)
                case BinaryOperator.POW:
                    result = np.power(a, b)
                case BinaryOperator.MIN:
                    result = a if a < b else b
                case BinaryOperator.MAX:
                    result = a if a > b else b
                case BinaryOperator.RAND:
                    lo, hi = (a, b) if a < b else (b, a)
                    if rng is None:
                        rng = np.random.default_rng()
                    result = lo + rng.random() * (hi - lo)
        return float(result)


class Constant(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TypingLiteral["constant"] = "constant"
    value: float

    def __str__(self) -> str:
        return repr(self.value)


class VariableRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TypingLiteral["variable"] = "variable"
    variable: Variable

    def __str__(self) -> str:
        return str(self.variable)


class OperatorMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TypingLiteral["operator"] = "operator"
    operator: UnaryOperator | BinaryOperator

    @property
    def arity(self) -> int:
        return 1 if isinstance(self.operator, UnaryOperator) else 2

    def apply(self, stack: list[float], rng: np.random.Generator | None = None) -> float:
        if len(stack) < self.arity:
            raise InvalidExpression(f"missing operand for operator {self.operator.value!r}")
        if isinstance(self.operator, UnaryOperator):
            return self.operator.apply(stack.pop())
        # rhs was pushed last
        rhs = stack.pop()
        lhs = stack.pop()
        return self.operator.apply(lhs, rhs, rng)

    def __str__(self) -> str:
        return self.operator.value


ExpressionMember = Annotated[
    Constant | VariableRef | OperatorMember,
    Field(discriminator="type"),
]


class CompiledExpression(BaseModel):
    """An immutable postfix program."""

    model_config = ConfigDict(frozen=True)

    members: tuple[ExpressionMember, ...] = ()

    def evaluate(
        self,
        global_variables: Store | dict[str, float] | None = None,
        local_variables: Store | dict[str, float] | None = None,
        rng: np.random.Generator | None = None,
    ) -> float:
        """Run the program and return its single result.

        Local references resolve against ``local_variables``, global ones
        against ``global_variables``. Raises ``VariableNotFound`` for an
        unbound name and ``InvalidExpression`` when the program does not leave
        exactly one value on the stack.
        """
        global_store = as_store(global_variables)
        local_store = as_store(local_variables)

        stack: list[float] = []
        for member in self.members:
            match member:
                case Constant(value=value):
                    stack.append(value)
                case VariableRef(variable=var):
                    store = local_store if var.is_local else global_store
                    value = store.get(var.name)
                    if value is None:
                        raise VariableNotFound(var.name)
                    stack.append(float(value))
                case OperatorMember():
                    stack.append(member.apply(stack, rng))

        if not stack:
            raise InvalidExpression("no result at the end of the expression")
        if len(stack) > 1:
            raise InvalidExpression(
                f"{len(stack) - 1} unused value(s) left on the stack at the end of the expression"
            )
        return stack[0]

    def global_variables(self) -> list[str]:
        """Names of global variables referenced, in program order."""
        return [
            m.variable.name
            for m in self.members
            if isinstance(m, VariableRef) and not m.variable.is_local
        ]

    def local_variables(self) -> list[str]:
        """Names of local variables referenced, in program order."""
        return [
            m.variable.name
            for m in self.members
            if isinstance(m, VariableRef) and m.variable.is_local
        ]

    def __str__(self) -> str:
        return " ".join(str(m) for m in self.members)


def program(*members: Any) -> CompiledExpression:
    """Build a compiled expression from shorthand members.

    Numbers become constants, strings become variable references (``$`` for
    globals) and operator enums become operator members.
    """
    out: list[Constant | VariableRef | OperatorMember] = []
    for m in members:
        if isinstance(m, (Constant, VariableRef, OperatorMember)):
            out.append(m)
        elif isinstance(m, (UnaryOperator, BinaryOperator)):
            out.append(OperatorMember(operator=m))
        elif isinstance(m, str):
            out.append(VariableRef(variable=Variable.from_source(m)))
        elif isinstance(m, Variable):
            out.append(VariableRef(variable=m))
        else:
            out.append(Constant(value=float(m)))
    return CompiledExpression(members=tuple(out))
