"""Tracking of cloud resources created in Go syntax trees."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from .config import ServiceRule
from .escape import EscapeAnalyzer
from .gcp import (
    infer_variable_name,
    package_path_from_type,
    package_service,
    resource_type_service,
)
from .model import (
    READ_ONLY_TRANSACTION_TYPE,
    READ_WRITE_TRANSACTION_TYPE,
    ResourceInfo,
    SpannerEscapeInfo,
)
from .rules import ServiceRuleEngine
from .syntax import (
    AssignStmt,
    CallExpr,
    File,
    FuncDecl,
    FuncLit,
    Ident,
    Node,
    PkgName,
    SelectorExpr,
    TypeInfo,
    Var,
    walk,
)

_TRANSACTION_FUNCTIONS = frozenset(
    {"ReadOnlyTransaction", "ReadWriteTransaction", "BatchReadOnlyTransaction"}
)
_ITERATOR_FUNCTIONS = frozenset({"Query", "Read"})
_WRAPPABLE_TRANSACTIONS = frozenset({"ReadWriteTransaction", "ReadOnlyTransaction"})


def _function_ident(call: CallExpr) -> Ident | None:
    fun = call.fun
    if isinstance(fun, Ident):
        return fun
    if isinstance(fun, SelectorExpr):
        return fun.sel
    return None


class ResourceTracker:
    """Records the cloud resources created by calls, keyed by variable."""

    def __init__(self, type_info: TypeInfo | None, rule_engine: ServiceRuleEngine | None) -> None:
        self.type_info = type_info
        self.rule_engine = rule_engine
        self._variables: dict[Var, ResourceInfo] = {}

    # Public API

    def track_call(self, call: CallExpr) -> None:
        """Record the resource created by ``call``, if it creates one."""
        if self.type_info is None or self.rule_engine is None:
            return
        found = self._creation_rule(call)
        if found is None:
            return
        service_name, rule = found
        resource = self._create_resource_info(call, service_name, rule)
        if resource is not None:
            self._track_variable_assignment(call, resource)

    def find_resource_creation(self, files: Iterable[File]) -> list[ResourceInfo]:
        """Scan the assignments in ``files`` and return every tracked resource."""
        files = list(files or ())
        if not files:
            return []
        for file in files:
            for node in walk(file):
                if isinstance(node, AssignStmt):
                    self._track_assignment(node)
        return self.tracked_resources()

    def is_resource_type(self, type_name: str | None) -> str | None:
        """The service of a printed resource type, or ``None``."""
        if type_name is None:
            return None
        return resource_type_service(type_name)

    def tracked_resources(self) -> list[ResourceInfo]:
        """Copies of the resources tracked so far."""
        return [replace(info) for info in self._variables.values()]

    def clear(self) -> None:
        """Forget every tracked resource."""
        self._variables = {}

    def integrate_spanner_escape(
        self,
        resource: ResourceInfo | None,
        escape_analyzer: EscapeAnalyzer | None,
        func_decl: FuncDecl | None,
    ) -> None:
        """Attach closure auto-management info to a Spanner resource."""
        if resource is None or escape_analyzer is None:
            return
        if resource.service_type != "spanner" or resource.variable is None:
            return
        info = escape_analyzer.detect_spanner_auto_management(resource.variable, func_decl)
        if info is not None:
            resource.spanner_escape = info

    def filter_auto_managed(
        self, resources: Iterable[ResourceInfo | None]
    ) -> list[ResourceInfo]:
        """The resources that are not managed automatically by the library."""
        return [
            resource
            for resource in resources or ()
            if resource is not None and not self._is_auto_managed(resource)
        ]

    # Resource creation

    def _creation_rule(self, call: CallExpr) -> tuple[str, ServiceRule] | None:
        ident = _function_ident(call)
        if ident is None or self.rule_engine is None:
            return None
        package_path = self._package_path(call)
        if not package_path:
            return None
        service_name = package_service(package_path)
        if service_name is None:
            return None
        rule = self.rule_engine.service_rule(service_name)
        if rule is None or not rule.has_creation_func(ident.name):
            return None
        return service_name, rule

    def _package_path(self, call: CallExpr) -> str | None:
        sel = call.fun
        if not isinstance(sel, SelectorExpr) or self.type_info is None:
            return None
        if isinstance(sel.x, Ident):
            obj = self.type_info.uses.get(sel.x)
            if isinstance(obj, PkgName):
                return obj.path
        type_name = self.type_info.types.get(sel.x)
        if type_name:
            return package_path_from_type(type_name)
        return None

    def _create_resource_info(
        self, call: CallExpr, service_name: str, rule: ServiceRule
    ) -> ResourceInfo | None:
        if not rule.cleanup_methods:
            return None
        ident = _function_ident(call)
        func_name = ident.name if ident is not None else ""

        if func_name in _TRANSACTION_FUNCTIONS:
            cleanup_method, is_required = "Close", True
        elif func_name in _ITERATOR_FUNCTIONS:
            cleanup_method, is_required = "Stop", True
        else:
            required = next((m for m in rule.cleanup_methods if m.required), None)
            if required is not None and required.method:
                cleanup_method, is_required = required.method, True
            else:
                first = rule.cleanup_methods[0]
                cleanup_method, is_required = first.method, first.required

        resource = ResourceInfo(
            creation_pos=call.pos,
            service_type=service_name,
            creation_function=func_name,
            cleanup_method=cleanup_method,
            is_required=is_required,
        )
        if service_name == "spanner":
            resource.spanner_escape = self._initial_spanner_escape(func_name)
        return resource

    @staticmethod
    def _initial_spanner_escape(func_name: str) -> SpannerEscapeInfo:
        normalized = {
            "ReadWriteTransaction": READ_WRITE_TRANSACTION_TYPE,
            "ReadOnlyTransaction": READ_ONLY_TRANSACTION_TYPE,
        }.get(func_name, func_name)
        return SpannerEscapeInfo(transaction_type=normalized)

    # Variable resolution

    def _record(self, resource: ResourceInfo, var_name: str) -> None:
        if var_name:
            resource.variable_name = var_name
            variable = self._defined_var(var_name)
            if variable is not None:
                resource.variable = variable
                self._variables[variable] = resource
                return
        placeholder = Var("")
        resource.variable = placeholder
        self._variables[placeholder] = resource

    def _defined_var(self, name: str) -> Var | None:
        if self.type_info is None:
            return None
        return next(
            (
                obj
                for ident, obj in self.type_info.defs.items()
                if isinstance(obj, Var) and ident.name == name
            ),
            None,
        )

    def _track_variable_assignment(self, call: CallExpr, resource: ResourceInfo) -> None:
        self._record(resource, self._variable_name_from_context(call))

    def _variable_name_from_context(self, call: CallExpr) -> str:
        name = self._closure_parameter_name(call)
        if name:
            return name
        if isinstance(call.fun, SelectorExpr):
            if call.fun.sel.name == "ReadOnlyTransaction":
                return "tx"
            return infer_variable_name(call.fun.sel.name) or ""
        return ""

    @staticmethod
    def _closure_parameter_name(call: CallExpr) -> str:
        if len(call.args) < 2:
            return ""
        closure = call.args[1]
        if not isinstance(closure, FuncLit) or not closure.params or len(closure.params) < 2:
            return ""
        names = closure.params[1].names
        if names and names[0] is not None:
            return names[0].name
        return ""

    # Assignment scanning

    def _track_assignment(self, assign: AssignStmt) -> None:
        for index, rhs in enumerate(assign.rhs):
            if not isinstance(rhs, CallExpr) or self._is_wrapped_transaction(rhs):
                continue
            found = self._creation_rule(rhs)
            if found is None:
                continue
            ident = _function_ident(rhs)
            if ident is not None and "ReadWriteTransaction" in ident.name:
                # It returns a commit timestamp and an error, not a resource.
                continue
            var_name = self._assigned_name(assign, index)
            if not var_name:
                continue
            service_name, rule = found
            resource = self._create_resource_info(rhs, service_name, rule)
            if resource is not None:
                self._record(resource, var_name)

    @staticmethod
    def _assigned_name(assign: AssignStmt, rhs_index: int) -> str:
        if rhs_index >= len(assign.lhs):
            target: Node | None = assign.lhs[0] if assign.lhs else None
        else:
            target = assign.lhs[rhs_index]
        if isinstance(target, Ident) and target.name != "_":
            return target.name
        return ""

    @staticmethod
    def _is_wrapped_transaction(call: CallExpr) -> bool:
        sel = call.fun
        if not isinstance(sel, SelectorExpr) or sel.sel.name not in _WRAPPABLE_TRANSACTIONS:
            return False
        if not any(isinstance(arg, FuncLit) for arg in call.args):
            return False
        receiver = sel.x
        return not (isinstance(receiver, SelectorExpr) and receiver.sel.name == "SpannerClient")

    @staticmethod
    def _is_auto_managed(resource: ResourceInfo) -> bool:
        return (
            resource.service_type == "spanner"
            and resource.spanner_escape is not None
            and resource.spanner_escape.is_auto_managed
        )