"""Rules evaluator: assignments and if/else blocks over scoped variables.

Every block (the rule itself and each taken branch) pushes a scope on entry
and pops it on exit. Reads walk the scopes innermost first. A write to a
local name updates the innermost scope that already binds it; only a name
bound nowhere gets a new binding in the innermost scope. So

    x = 1;
    if x > 0 { x = 2; y = 3; }

leaves ``x == 2`` in the outer scope, and ``y`` disappears with the branch.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated
from typing import Literal as TypingLiteral

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .conditions import Condition
from .expressions import CompiledExpression, ExpressionError, Variable
from .log import get_logger
from .store import Store, StoreError, as_store

logger = get_logger(__name__)


class RulesError(Exception):
    pass


class ExpressionFailed(RulesError):
    """An expression or condition failed inside a rule."""

    def __init__(self, error: ExpressionError):
        super().__init__(str(error))
        self.error = error


class CannotSetVariable(RulesError):
    def __init__(self, name: str):
        super().__init__(f"cannot set variable: {name}")
        self.name = name


class ScopeStack:
    """Stack of local-variable scopes. Implements the ``Store`` protocol."""

    def __init__(self):
        self._scopes: list[dict[str, float]] = []

    def push(self) -> None:
        self._scopes.append({})
        logger.debug("scope push", depth=self.depth)

    def pop(self) -> dict[str, float]:
        logger.debug("scope pop", depth=self.depth)
        return self._scopes.pop()

    @contextmanager
    def scope(self) -> Iterator[dict[str, float]]:
        self.push()
        try:
            yield self._scopes[-1]
        finally:
            self.pop()

    @property
    def depth(self) -> int:
        return len(self._scopes)

    def get(self, name: str) -> float | None:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    def set(self, name: str, value: float) -> float | None:
        for scope in reversed(self._scopes):
            if name in scope:
                old = scope[name]
                scope[name] = value
                return old
        if not self._scopes:
            raise StoreError(f"no active scope to bind {name}")
        self._scopes[-1][name] = value
        return None


class Assignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TypingLiteral["assignment"] = "assignment"
    variable: Variable
    expression: CompiledExpression

    def execute(self, global_store: Store, scopes: ScopeStack, rng: np.random.Generator | None) -> None:
        try:
            value = self.expression.evaluate(global_store, scopes, rng)
        except ExpressionError as e:
            raise ExpressionFailed(e) from e

        logger.debug("assign", variable=str(self.variable), value=value, depth=scopes.depth)
        if self.variable.is_local:
            scopes.set(self.variable.name, value)
            return
        try:
            global_store.set(self.variable.name, value)
        except StoreError as e:
            logger.warning("global write refused", variable=self.variable.name, reason=str(e))
            raise CannotSetVariable(self.variable.name) from e


class IfBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TypingLiteral["if"] = "if"
    condition: Condition
    then_block: tuple["Instruction", ...] = ()
    else_block: tuple["Instruction", ...] | None = None

    def execute(self, global_store: Store, scopes: ScopeStack, rng: np.random.Generator | None) -> None:
        try:
            taken = self.condition.evaluate(global_store, scopes, rng)
        except ExpressionError as e:
            raise ExpressionFailed(e) from e

        logger.debug("branch", taken=taken, has_else=self.else_block is not None, depth=scopes.depth)
        if taken:
            run_block(self.then_block, global_store, scopes, rng)
        elif self.else_block is not None:
            run_block(self.else_block, global_store, scopes, rng)


Instruction = Annotated[
    Assignment | IfBlock,
    Field(discriminator="type"),
]

IfBlock.model_rebuild()


def run_block(
    instructions: tuple[Instruction, ...],
    global_store: Store,
    scopes: ScopeStack,
    rng: np.random.Generator | None = None,
) -> None:
    """Execute instructions inside a fresh scope."""
    with scopes.scope():
        for instruction in instructions:
            instruction.execute(global_store, scopes, rng)


class RulesEvaluator(BaseModel):
    """A compiled rule: an immutable list of instructions."""

    model_config = ConfigDict(frozen=True)

    instructions: tuple[Instruction, ...] = ()

    def evaluate(
        self,
        global_variables: Store | dict[str, float] | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        """Run the rule against ``global_variables``, mutating it in place.

        Raises ``ExpressionFailed`` or ``CannotSetVariable`` on the first
        failure. Global writes made before the failure are kept.
        """
        global_store = as_store(global_variables)
        run_block(self.instructions, global_store, ScopeStack(), rng)
