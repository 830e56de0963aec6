"""A small syntax tree for Go source, with the type facts the checks rely on."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, fields
from typing import Any


class Node:
    """Base of all syntax tree nodes.

    Nodes compare by identity, so they can key the maps of :class:`TypeInfo`.
    """

    def children(self) -> Iterator[Node]:
        """The direct child nodes, in source order."""
        for spec in fields(self):  # type: ignore[arg-type]
            if spec.name == "pos":
                continue
            value = getattr(self, spec.name)
            if isinstance(value, Node):
                yield value
            elif isinstance(value, list):
                yield from (item for item in value if isinstance(item, Node))


@dataclass(eq=False)
class Ident(Node):
    """An identifier."""

    name: str
    pos: int = 0


@dataclass(eq=False)
class SelectorExpr(Node):
    """``x.sel``: a field access, method value or qualified name."""

    x: Node
    sel: Ident
    pos: int = 0


@dataclass(eq=False)
class CallExpr(Node):
    """``fun(args...)``."""

    fun: Node
    args: list[Node] = field(default_factory=list)
    pos: int = 0


@dataclass(eq=False)
class Field(Node):
    """A parameter, result or receiver declaration: names and their type."""

    names: list[Ident] = field(default_factory=list)
    type: Node | None = None
    pos: int = 0


@dataclass(eq=False)
class BlockStmt(Node):
    """A braced list of statements."""

    stmts: list[Node] = field(default_factory=list)
    pos: int = 0


@dataclass(eq=False)
class FuncLit(Node):
    """A function literal (closure)."""

    params: list[Field] | None = None
    results: list[Field] | None = None
    body: BlockStmt | None = None
    pos: int = 0


@dataclass(eq=False)
class ReturnStmt(Node):
    """``return results...``."""

    results: list[Node] = field(default_factory=list)
    pos: int = 0


@dataclass(eq=False)
class AssignStmt(Node):
    """``lhs... = rhs...`` or, when ``define`` is set, ``lhs... := rhs...``."""

    lhs: list[Node] = field(default_factory=list)
    rhs: list[Node] = field(default_factory=list)
    define: bool = False
    pos: int = 0


@dataclass(eq=False)
class ExprStmt(Node):
    """An expression used as a statement."""

    x: Node
    pos: int = 0


@dataclass(eq=False)
class DeferStmt(Node):
    """``defer call``."""

    call: CallExpr
    pos: int = 0


@dataclass(eq=False)
class FuncDecl(Node):
    """A function or method declaration."""

    name: Ident
    params: list[Field] | None = None
    results: list[Field] | None = None
    body: BlockStmt | None = None
    recv: Field | None = None
    pos: int = 0

    def children(self) -> Iterator[Node]:
        if self.recv is not None:
            yield self.recv
        yield self.name
        yield from self.params or ()
        yield from self.results or ()
        if self.body is not None:
            yield self.body


@dataclass(eq=False)
class File(Node):
    """A source file: package name, top-level declarations and imports.

    ``imports`` maps the local package name to the imported path.
    """

    name: Ident
    decls: list[Node] = field(default_factory=list)
    imports: dict[str, str] = field(default_factory=dict)
    pos: int = 0


@dataclass(eq=False)
class Var:
    """A declared variable; distinct declarations are distinct objects."""

    name: str
    pos: int = 0


@dataclass(frozen=True)
class PkgName:
    """An imported package as referred to by its local name."""

    name: str
    path: str


@dataclass
class TypeInfo:
    """Facts from type checking, keyed by syntax node.

    ``types`` gives the printed type of an expression, ``uses`` the object an
    identifier refers to and ``defs`` the object an identifier declares.
    """

    types: dict[Node, str] = field(default_factory=dict)
    uses: dict[Ident, Any] = field(default_factory=dict)
    defs: dict[Ident, Any] = field(default_factory=dict)


def walk(node: Node | None) -> Iterator[Node]:
    """Every node of the tree below ``node``, ``node`` first, depth first."""
    if node is None:
        return
    yield node
    for child in node.children():
        yield from walk(child)


def inspect(node: Node | None, visit: Callable[[Node], bool]) -> None:
    """Call ``visit`` on each node depth first; a false result skips its children."""
    if node is None:
        return
    if visit(node):
        for child in node.children():
            inspect(child, visit)