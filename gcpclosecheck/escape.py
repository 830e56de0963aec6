"""Detection of resources that leave their function or are managed by a closure."""

from __future__ import annotations

from .model import (
    READ_ONLY_TRANSACTION_TYPE,
    READ_WRITE_TRANSACTION_TYPE,
    EscapeInfo,
    ResourceInfo,
    SpannerEscapeInfo,
    spanner_escape,
)
from .syntax import (
    AssignStmt,
    CallExpr,
    FuncDecl,
    FuncLit,
    Ident,
    ReturnStmt,
    SelectorExpr,
    Var,
    walk,
)

RETURNED_REASON = "returned from function"
FIELD_ASSIGNED_REASON = "assigned to struct field"

_TRANSACTION_METHODS = {
    "ReadWriteTransaction": READ_WRITE_TRANSACTION_TYPE,
    "ReadOnlyTransaction": READ_ONLY_TRANSACTION_TYPE,
}

# Iterators and readers must be handled inside the function that creates them,
# even when they are returned.
_ITERATOR_FUNCTIONS = frozenset({"Query", "Read"})


def is_spanner_transaction_method(method_name: str) -> bool:
    """Whether the method opens a Spanner transaction."""
    return method_name in _TRANSACTION_METHODS


def transaction_type_for(method_name: str) -> str:
    """The transaction type opened by the method, or ``""`` for other methods."""
    return _TRANSACTION_METHODS.get(method_name, "")


def closure_has_param(func_lit: FuncLit | None, name: str) -> bool:
    """Whether the closure declares a parameter called ``name``."""
    if func_lit is None or not func_lit.params:
        return False
    return any(
        ident is not None and ident.name == name
        for param in func_lit.params
        if param is not None
        for ident in param.names
    )


def _is_named(node: object, name: str) -> bool:
    return isinstance(node, Ident) and node.name == name


class EscapeAnalyzer:
    """Finds resources returned from or stored by their function."""

    def __init__(self) -> None:
        self._escape_info: dict[Var, EscapeInfo] = {}

    def analyze_escape(self, variable: Var | None, fn: FuncDecl | None) -> EscapeInfo:
        """Work out how the variable escapes ``fn`` and remember the result."""
        if variable is None or fn is None:
            return EscapeInfo()

        info = EscapeInfo(
            is_returned=self.is_returned_value(variable, fn),
            is_field_assigned=self.is_field_assigned(variable, fn),
        )
        if info.is_returned:
            info.escape_reason = RETURNED_REASON
        elif info.is_field_assigned:
            info.escape_reason = FIELD_ASSIGNED_REASON

        self._escape_info[variable] = info
        return info

    def is_returned_value(self, variable: Var | None, fn: FuncDecl | None) -> bool:
        """Whether a return statement in ``fn`` returns the variable itself."""
        if variable is None or fn is None or fn.body is None:
            return False
        return any(
            _is_named(result, variable.name)
            for node in walk(fn.body)
            if isinstance(node, ReturnStmt)
            for result in node.results
        )

    def is_field_assigned(self, variable: Var | None, fn: FuncDecl | None) -> bool:
        """Whether ``fn`` assigns the variable in a statement with a field on the left."""
        if variable is None or fn is None or fn.body is None:
            return False
        for node in walk(fn.body):
            if not isinstance(node, AssignStmt):
                continue
            if any(_is_named(rhs, variable.name) for rhs in node.rhs) and any(
                isinstance(lhs, SelectorExpr) for lhs in node.lhs
            ):
                return True
        return False

    def should_skip_resource(
        self, resource: ResourceInfo, escape: EscapeInfo
    ) -> tuple[bool, str]:
        """Whether the resource need not be closed here, and why."""
        if resource.creation_function in _ITERATOR_FUNCTIONS:
            return False, ""
        if escape.is_returned or escape.is_field_assigned:
            return True, escape.escape_reason
        return False, ""

    def detect_spanner_auto_management(
        self, variable: Var | None, fn: FuncDecl | None
    ) -> SpannerEscapeInfo | None:
        """Escape info for a transaction handed to a closure, else ``None``."""
        if variable is None or fn is None:
            return None
        found, transaction_type = self.is_spanner_closure_pattern(variable, fn)
        if not found:
            return None
        return spanner_escape(
            transaction_type, True, transaction_type + "クロージャ内で自動管理"
        )

    def is_spanner_closure_pattern(
        self, variable: Var | None, fn: FuncDecl | None
    ) -> tuple[bool, str]:
        """Whether the variable is a parameter of a transaction closure, and its type."""
        if variable is None or fn is None or fn.body is None:
            return False, ""
        for node in walk(fn.body):
            if not isinstance(node, CallExpr) or not isinstance(node.fun, SelectorExpr):
                continue
            method = node.fun.sel.name
            if not is_spanner_transaction_method(method):
                continue
            for arg in node.args:
                if isinstance(arg, FuncLit) and closure_has_param(arg, variable.name):
                    return True, transaction_type_for(method)
        return False, ""

    def has_escape_info(self, variable: Var | None) -> bool:
        """Whether an escape result has been recorded for the variable."""
        return variable is not None and variable in self._escape_info