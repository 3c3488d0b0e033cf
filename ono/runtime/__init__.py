from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterator, Mapping, Sequence, Tuple

from ..types import DISPLAYABLE, NUMBER, UNIT, FunctionSignature

if TYPE_CHECKING:  # pragma: no cover
    from .. import ast
    from ..environment import Environment


@dataclass(eq=False)
class Function:
    """A user function value: its declaration's pieces plus the frame it closed over."""

    name: str
    params: Tuple[str, ...]
    body: "ast.Block"
    closure: "Environment[object]"

    @property
    def arity(self) -> int:
        return len(self.params)


BuiltinImpl = Callable[["RuntimeContext", Sequence[object]], object]


@dataclass
class BuiltinFunction:
    signature: FunctionSignature
    impl: BuiltinImpl

    @property
    def name(self) -> str:
        return self.signature.name

    @property
    def arity(self) -> int:
        return len(self.signature.params)


@dataclass(frozen=True)
class RangeValue:
    start: float
    end: float
    step: float

    @classmethod
    def between(cls, start: float, end: float) -> "RangeValue":
        return cls(start=start, end=end, step=1.0 if start <= end else -1.0)

    def is_valid(self) -> bool:
        if self.step == 0:
            return False
        if self.start < self.end:
            return self.step > 0
        if self.start > self.end:
            return self.step < 0
        return True

    def __iter__(self) -> Iterator[float]:
        # Each value is start + k * step so rounding does not accumulate past `end`.
        k = 0
        value = self.start
        while (self.step > 0 and value < self.end) or (self.step < 0 and value > self.end):
            yield value
            k += 1
            value = self.start + k * self.step


class RuntimeContext:
    def __init__(self, stdout) -> None:
        self.stdout = stdout


def display(value: object) -> str:
    """Text form of a runtime value, as `print` writes it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, tuple):
        return "(" + ", ".join(display(item) for item in value) + ")"
    if isinstance(value, Function):
        return f"<fun {value.name}>"
    if isinstance(value, BuiltinFunction):
        return f"<builtin {value.name}>"
    if isinstance(value, RangeValue):
        return f"{display(value.start)}..{display(value.step)}..{display(value.end)}"
    raise TypeError(f"not an ono value: {value!r}")


def _builtin_print(ctx: RuntimeContext, args: Sequence[object]) -> object:
    ctx.stdout.write(display(args[0]) + "\n")
    ctx.stdout.flush()
    return ()


def _builtin_clock(ctx: RuntimeContext, args: Sequence[object]) -> object:
    return float(time.monotonic())


BUILTINS: Mapping[str, BuiltinFunction] = {
    "print": BuiltinFunction(
        signature=FunctionSignature("print", (DISPLAYABLE,), UNIT),
        impl=_builtin_print,
    ),
    "clock": BuiltinFunction(
        signature=FunctionSignature("clock", (), NUMBER),
        impl=_builtin_clock,
    ),
}


def builtin_signatures(builtins: Mapping[str, BuiltinFunction] = BUILTINS) -> Dict[str, FunctionSignature]:
    return {name: builtin.signature for name, builtin in builtins.items()}
