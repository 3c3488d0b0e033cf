from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Tuple

from .diagnostics import InternalError

if TYPE_CHECKING:  # pragma: no cover
    from .ast import Function
    from .environment import Environment


@dataclass(frozen=True)
class Type:
    name: str
    args: Tuple["Type", ...] = ()

    def __str__(self) -> str:
        if self.name == "tuple":
            return "(" + ", ".join(str(a) for a in self.args) + ")"
        return self.name


NUMBER = Type("number")
TEXT = Type("text")
BOOL = Type("bool")
UNIT = Type("tuple")
DISPLAYABLE = Type("<displayable>")
# Parameter type of a function body checked without any call site.
UNKNOWN = Type("<unknown>")


def tuple_of(items: Iterable[Type]) -> Type:
    return Type("tuple", tuple(items))


@dataclass(frozen=True)
class FunctionSignature:
    name: str
    params: Tuple[Type, ...]
    return_type: Type


@dataclass(frozen=True)
class BuiltinType(Type):
    signature: Optional[FunctionSignature] = None

    def __str__(self) -> str:
        if self.signature is None:
            raise InternalError("builtin type without a signature")
        params = ", ".join(str(p) for p in self.signature.params)
        return f"fun({params}) -> {self.signature.return_type}"


def builtin_type(signature: FunctionSignature) -> BuiltinType:
    return BuiltinType(name="builtin", signature=signature)


@dataclass(frozen=True, eq=False)
class FunctionType(Type):
    """Type of a user function value.

    Parameters are untyped in source, so the type is the declaration plus the
    type scope it closed over; the checker instantiates the body once per
    distinct argument signature and caches the outcome in `instances`.
    """

    decl: Optional["Function"] = None
    closure: Optional["Environment[Type]"] = None
    instances: Dict[object, object] = field(default_factory=dict, repr=False)

    def __eq__(self, other: object) -> bool:
        return self is other

    __hash__ = object.__hash__

    @property
    def arity(self) -> int:
        if self.decl is None:
            raise InternalError(f"function type {self.name} without a declaration")
        return len(self.decl.params)

    def __str__(self) -> str:
        return f"fun {self.name}"


def function_type(decl: "Function", closure: "Environment[Type]") -> FunctionType:
    return FunctionType(name=decl.name.lexeme, decl=decl, closure=closure)


def is_callable(ty: Type) -> bool:
    return isinstance(ty, (FunctionType, BuiltinType))


def is_displayable(ty: Type) -> bool:
    if ty.name == "tuple":
        return all(is_displayable(a) for a in ty.args)
    return not is_callable(ty)


def accepts(expected: Type, actual: Type) -> bool:
    """Whether an argument of type `actual` may be passed where `expected` is declared."""
    if expected == DISPLAYABLE:
        return is_displayable(actual)
    return compatible(expected, actual)


def has_unknown(ty: Type) -> bool:
    if ty == UNKNOWN:
        return True
    return ty.name == "tuple" and any(has_unknown(a) for a in ty.args)


def compatible(expected: Type, actual: Type) -> bool:
    """Equality where UNKNOWN, anywhere inside either type, matches anything."""
    if expected == UNKNOWN or actual == UNKNOWN:
        return True
    if expected.name == "tuple" and actual.name == "tuple":
        return len(expected.args) == len(actual.args) and all(
            compatible(e, a) for e, a in zip(expected.args, actual.args)
        )
    return expected == actual
