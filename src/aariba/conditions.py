"""Boolean conditions guarding if/else blocks."""

import math
from enum import Enum
from typing import Annotated
from typing import Literal as TypingLiteral

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .expressions import CompiledExpression
from .store import Store, as_store


def total_order_key(value: float) -> tuple[bool, float]:
    """Sort key giving floats a total order.

    NaN equals NaN and sorts above every other value, +inf included.
    """
    if math.isnan(value):
        return (True, 0.0)
    return (False, value)


class CompOp(Enum):
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    EQ = "=="
    NE = "!="

    def compare(self, left: float, right: float) -> bool:
        lk = total_order_key(left)
        rk = total_order_key(right)
        match self:
            case CompOp.GT:
                return lk > rk
            case CompOp.GE:
                return lk >= rk
            case CompOp.LT:
                return lk < rk
            case CompOp.LE:
                return lk <= rk
            case CompOp.EQ:
                return lk == rk
            case CompOp.NE:
                return lk != rk


class LogicOp(Enum):
    AND = "&&"
    OR = "||"


class Comparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TypingLiteral["comparison"] = "comparison"
    left: CompiledExpression
    op: CompOp
    right: CompiledExpression

    def evaluate(
        self,
        global_variables: Store | dict | None = None,
        local_variables: Store | dict | None = None,
        rng: np.random.Generator | None = None,
    ) -> bool:
        left_val = self.left.evaluate(global_variables, local_variables, rng)
        right_val = self.right.evaluate(global_variables, local_variables, rng)
        return self.op.compare(left_val, right_val)


class Logic(BaseModel):
    """Short-circuiting AND/OR of two conditions."""

    model_config = ConfigDict(frozen=True)

    type: TypingLiteral["logic"] = "logic"
    left: "Condition"
    op: LogicOp
    right: "Condition"

    def evaluate(
        self,
        global_variables: Store | dict | None = None,
        local_variables: Store | dict | None = None,
        rng: np.random.Generator | None = None,
    ) -> bool:
        result = self.left.evaluate(global_variables, local_variables, rng)
        if self.op is LogicOp.AND and not result:
            return False
        if self.op is LogicOp.OR and result:
            return True
        return self.right.evaluate(global_variables, local_variables, rng)


class Exists(BaseModel):
    """True iff the global store currently binds ``name``."""

    model_config = ConfigDict(frozen=True)

    type: TypingLiteral["exists"] = "exists"
    name: str

    def evaluate(
        self,
        global_variables: Store | dict | None = None,
        local_variables: Store | dict | None = None,
        rng: np.random.Generator | None = None,
    ) -> bool:
        return as_store(global_variables).get(self.name) is not None


Condition = Annotated[
    Comparison | Logic | Exists,
    Field(discriminator="type"),
]


Logic.model_rebuild()
