"""Records describing tracked resources, contexts and escape results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from .syntax import Var

READ_WRITE_TRANSACTION_TYPE = "ReadWriteTransaction"
READ_ONLY_TRANSACTION_TYPE = "ReadOnlyTransaction"

_TRANSACTION_TYPES = (READ_WRITE_TRANSACTION_TYPE, READ_ONLY_TRANSACTION_TYPE)


class ValidationError(ValueError):
    """Raised when a record holds inconsistent values."""


@dataclass
class SpannerEscapeInfo:
    """Whether a Spanner transaction is managed by the client library."""

    is_auto_managed: bool = False
    transaction_type: str = ""
    is_closure_managed: bool = False
    closure_detected: bool = False
    auto_management_reason: str = ""

    def validate(self) -> None:
        """Raise :class:`ValidationError` if the record is inconsistent."""
        if self.transaction_type not in _TRANSACTION_TYPES:
            raise ValidationError(
                "transaction type must be ReadWriteTransaction or ReadOnlyTransaction"
            )
        if self.is_auto_managed and not self.auto_management_reason:
            raise ValidationError("auto management reason is required when auto-managed")

    def should_skip_cleanup(self) -> bool:
        """Auto-managed transactions need no explicit cleanup."""
        return self.is_auto_managed


def spanner_escape(
    transaction_type: str, is_auto_managed: bool, reason: str
) -> SpannerEscapeInfo:
    """Build escape info; unknown transaction types become ReadWriteTransaction."""
    if transaction_type not in _TRANSACTION_TYPES:
        transaction_type = READ_WRITE_TRANSACTION_TYPE
    return SpannerEscapeInfo(
        is_auto_managed=is_auto_managed,
        transaction_type=transaction_type,
        is_closure_managed=is_auto_managed,
        closure_detected=is_auto_managed,
        auto_management_reason=reason,
    )


@dataclass
class ResourceInfo:
    """A created cloud resource and how it must be released."""

    variable: Var | None = None
    variable_name: str = ""
    creation_pos: int = 0
    service_type: str = ""
    creation_function: str = ""
    cleanup_method: str = ""
    is_required: bool = False
    scope: Any = None
    spanner_escape: SpannerEscapeInfo | None = None

    def __post_init__(self) -> None:
        if not self.variable_name and self.variable is not None:
            self.variable_name = self.variable.name

    def validate(self) -> None:
        """Raise :class:`ValidationError` if a mandatory value is missing."""
        if self.variable is None:
            raise ValidationError("variable must not be None")
        if not self.service_type:
            raise ValidationError("service type must not be empty")
        if not self.cleanup_method:
            raise ValidationError("cleanup method must not be empty")

    def has_spanner_escape(self) -> bool:
        """Whether Spanner escape info is attached."""
        return self.spanner_escape is not None

    def should_skip_spanner_cleanup(self) -> bool:
        """Whether attached Spanner escape info says cleanup is not needed."""
        return self.spanner_escape is not None and self.spanner_escape.should_skip_cleanup()


@dataclass
class DeferCancelInfo:
    """A ``defer cancel()`` statement."""

    cancel_var_name: str = ""
    defer_pos: int = 0
    scope_depth: int = 0
    is_valid: bool = False

    def validate(self) -> None:
        """Raise :class:`ValidationError` if the name or position is missing."""
        if not self.cancel_var_name:
            raise ValidationError("cancel variable name must not be empty")
        if self.defer_pos == 0:
            raise ValidationError("defer position is invalid")


@dataclass
class ContextInfo:
    """A context created with a cancel function, and its deferred cancels."""

    variable: Var | None = None
    cancel_func: Var | None = None
    creation_pos: int = 0
    is_deferred: bool = False
    defer_infos: list[DeferCancelInfo] = field(default_factory=list)

    def validate(self) -> None:
        """Raise :class:`ValidationError` if the context or cancel is missing."""
        if self.variable is None:
            raise ValidationError("variable must not be None")
        if self.cancel_func is None:
            raise ValidationError("cancel function must not be None")

    def set_defer_info(self, defer_info: DeferCancelInfo | None) -> None:
        """Replace all recorded defers with a copy of ``defer_info``."""
        if defer_info is not None:
            self.defer_infos = [replace(defer_info)]

    def add_defer_info(self, defer_info: DeferCancelInfo | None) -> None:
        """Record a copy of one more deferred cancel."""
        if defer_info is not None:
            self.defer_infos.append(replace(defer_info))

    def has_defer_info(self) -> bool:
        """Whether any deferred cancel is recorded."""
        return bool(self.defer_infos)

    def first_defer_info(self) -> DeferCancelInfo | None:
        """The first recorded deferred cancel, if any."""
        return self.defer_infos[0] if self.defer_infos else None


@dataclass
class EscapeInfo:
    """Whether a variable leaves its function by return or field assignment."""

    is_returned: bool = False
    is_field_assigned: bool = False
    escape_reason: str = ""

    def has_escaped(self) -> bool:
        """Whether the variable escapes in either way."""
        return self.is_returned or self.is_field_assigned