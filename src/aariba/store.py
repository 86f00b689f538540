"""Variable stores: where global values are read from and written to.

The core only ever talks to a store through ``get`` and ``set``. A store
refuses a write by raising ``StoreError``.
"""

from typing import Any, Protocol, runtime_checkable


class StoreError(Exception):
    pass


@runtime_checkable
class Store(Protocol):
    def get(self, name: str) -> float | None:
        """Return the value bound to ``name``, or None."""
        ...

    def set(self, name: str, value: float) -> float | None:
        """Bind ``name`` to ``value`` and return the previous value, if any."""
        ...


class MappingStore:
    """Store backed by a caller-owned dict, mutated in place."""

    def __init__(self, values: dict[str, float] | None = None):
        self.values = values if values is not None else {}

    def get(self, name: str) -> float | None:
        return self.values.get(name)

    def set(self, name: str, value: float) -> float | None:
        old = self.values.get(name)
        self.values[name] = value
        return old

    def __repr__(self) -> str:
        return f"MappingStore({self.values!r})"


class NullStore:
    """No global context: nothing is bound and every write is refused."""

    def get(self, name: str) -> float | None:
        return None

    def set(self, name: str, value: float) -> float | None:
        raise StoreError(f"read-only store: cannot set {name}")


class AttributeStore:
    """Struct-of-fields store over an object's existing attributes.

    Only existing public numeric attributes are visible, and only those can
    be written; methods, strings and unknown names are refused. On a pydantic
    model only declared fields count. Works with plain objects, dataclasses
    and pydantic models alike.
    """

    def __init__(self, target: Any):
        self.target = target

    def _has_field(self, name: str) -> bool:
        if name.startswith("_"):
            return False
        fields = getattr(type(self.target), "model_fields", None)
        if fields is not None:
            return name in fields
        return hasattr(self.target, name)

    def get(self, name: str) -> float | None:
        if not self._has_field(name):
            return None
        value = getattr(self.target, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)

    def set(self, name: str, value: float) -> float | None:
        old = self.get(name)
        if old is None:
            raise StoreError(f"unknown field: {name}")
        try:
            setattr(self.target, name, value)
        except (AttributeError, TypeError, ValueError) as e:
            raise StoreError(f"cannot set field {name}: {e}") from e
        return old


def as_store(obj: Any) -> Store:
    """Adapt None, a dict, or an existing store to the ``Store`` protocol."""
    if obj is None:
        return NullStore()
    if isinstance(obj, dict):
        return MappingStore(obj)
    if isinstance(obj, Store):
        return obj
    raise TypeError(f"not a store: {type(obj).__name__}")
