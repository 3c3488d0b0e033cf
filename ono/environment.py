from __future__ import annotations

from typing import Dict, Generic, Optional, TypeVar

V = TypeVar("V")


class UndefinedName(LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"'{name}' is not defined in any enclosing scope")
        self.name = name


class Environment(Generic[V]):
    """One frame of a lexical scope chain.

    The checker instantiates it over `Type` and the interpreter over runtime
    values. Frames are shared by reference: a closure holding a frame keeps it
    alive and sees later writes to it.
    """

    def __init__(self, parent: Optional["Environment[V]"] = None) -> None:
        self.parent = parent
        self.values: Dict[str, V] = {}

    def nest(self) -> "Environment[V]":
        return Environment(parent=self)

    def pop(self) -> "Environment[V]":
        if self.parent is None:
            raise RuntimeError("cannot pop the root scope")
        return self.parent

    def define(self, name: str, value: V) -> None:
        self.values[name] = value

    def get(self, name: str) -> Optional[V]:
        env: Optional[Environment[V]] = self
        while env is not None:
            if name in env.values:
                return env.values[name]
            env = env.parent
        return None

    def assign(self, name: str, value: V) -> None:
        env: Optional[Environment[V]] = self
        while env is not None:
            if name in env.values:
                env.values[name] = value
                return
            env = env.parent
        raise UndefinedName(name)

    def __contains__(self, name: str) -> bool:
        return name in self.values

    @property
    def depth(self) -> int:
        depth = 0
        env = self.parent
        while env is not None:
            depth += 1
            env = env.parent
        return depth

    def __repr__(self) -> str:
        return f"Environment(depth={self.depth}, names={sorted(self.values)})"
