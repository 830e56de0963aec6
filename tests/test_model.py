import re

import pytest

from gcpclosecheck.model import (
    READ_ONLY_TRANSACTION_TYPE,
    READ_WRITE_TRANSACTION_TYPE,
    ContextInfo,
    DeferCancelInfo,
    EscapeInfo,
    ResourceInfo,
    SpannerEscapeInfo,
    ValidationError,
    spanner_escape,
)
from gcpclosecheck.syntax import Var

_JAPANESE = re.compile("[\u3040-\u309f\u30a0-\u30ff\u4e00-\u9faf]")


def test_resource_info_fields():
    variable = Var("client")
    resource = ResourceInfo(
        variable=variable,
        creation_pos=100,
        service_type="spanner",
        cleanup_method="Close",
        is_required=True,
    )
    assert resource.variable is variable
    assert resource.service_type == "spanner"
    assert resource.is_required is True


def test_resource_info_takes_name_from_variable():
    resource = ResourceInfo(Var("client"), creation_pos=100, service_type="storage",
                            creation_function="NewClient", cleanup_method="Close")
    assert resource.variable_name == "client"
    assert resource.service_type == "storage"
    assert resource.cleanup_method == "Close"
    assert resource.spanner_escape is None


def test_resource_info_validation():
    variable = Var("client")
    ResourceInfo(variable, creation_pos=100, service_type="spanner",
                 creation_function="NewClient", cleanup_method="Close").validate()
    with pytest.raises(ValidationError):
        ResourceInfo(None, service_type="spanner", cleanup_method="Close").validate()
    with pytest.raises(ValidationError):
        ResourceInfo(variable, service_type="", cleanup_method="Close").validate()
    with pytest.raises(ValidationError):
        ResourceInfo(variable, service_type="spanner", cleanup_method="").validate()


def test_context_info_fields():
    ctx, cancel = Var("ctx"), Var("cancel")
    info = ContextInfo(ctx, cancel, creation_pos=200, is_deferred=False)
    assert info.variable is ctx
    assert info.cancel_func is cancel
    assert info.is_deferred is False
    assert info.has_defer_info() is False
    assert info.first_defer_info() is None


def test_escape_info_fields():
    info = EscapeInfo(is_returned=True, is_field_assigned=False, escape_reason="関数戻り値として返却")
    assert info.is_returned is True
    assert info.is_field_assigned is False
    assert info.escape_reason == "関数戻り値として返却"


@pytest.mark.parametrize(
    "returned, assigned, expected",
    [(True, False, True), (False, True, True), (False, False, False)],
)
def test_escape_info_has_escaped(returned, assigned, expected):
    assert EscapeInfo(returned, assigned, "reason").has_escaped() is expected


def test_spanner_escape_info_fields():
    info = SpannerEscapeInfo(
        is_auto_managed=True,
        transaction_type="ReadWriteTransaction",
        is_closure_managed=True,
        closure_detected=True,
        auto_management_reason="フレームワーク自動管理",
    )
    assert info.is_auto_managed is True
    assert info.transaction_type == "ReadWriteTransaction"
    assert info.is_closure_managed is True


def test_spanner_escape_constructor():
    info = spanner_escape("ReadOnlyTransaction", True, "クロージャ内自動管理")
    assert info.transaction_type == "ReadOnlyTransaction"
    assert info.is_auto_managed is True
    assert info.is_closure_managed is True
    assert info.closure_detected is True
    assert info.auto_management_reason == "クロージャ内自動管理"


def test_transaction_type_constants():
    read_write = spanner_escape(READ_WRITE_TRANSACTION_TYPE, True, "auto")
    read_only = spanner_escape(READ_ONLY_TRANSACTION_TYPE, True, "auto")
    assert read_write.transaction_type == "ReadWriteTransaction"
    assert read_only.transaction_type == "ReadOnlyTransaction"


def test_resource_info_with_spanner_escape():
    resource = ResourceInfo(Var("txn"), creation_pos=100, service_type="spanner",
                            creation_function="ReadWriteTransaction", cleanup_method="Close",
                            is_required=True)
    assert resource.has_spanner_escape() is False
    assert resource.should_skip_spanner_cleanup() is False
    resource.spanner_escape = spanner_escape("ReadWriteTransaction", True, "クロージャ管理")
    assert resource.spanner_escape.is_auto_managed is True
    assert resource.has_spanner_escape() is True
    assert resource.should_skip_spanner_cleanup() is True


def test_spanner_escape_validation():
    spanner_escape(READ_WRITE_TRANSACTION_TYPE, True, "フレームワーク自動管理").validate()
    with pytest.raises(ValidationError):
        SpannerEscapeInfo(is_auto_managed=True, transaction_type="InvalidTransaction",
                          auto_management_reason="テスト").validate()
    with pytest.raises(ValidationError):
        SpannerEscapeInfo(is_auto_managed=True, transaction_type=READ_WRITE_TRANSACTION_TYPE,
                          auto_management_reason="").validate()


def test_spanner_escape_should_skip_cleanup():
    assert spanner_escape(READ_WRITE_TRANSACTION_TYPE, True, "自動管理").should_skip_cleanup() is True
    assert spanner_escape(READ_WRITE_TRANSACTION_TYPE, False, "").should_skip_cleanup() is False


def test_spanner_escape_normalises_transaction_type():
    assert spanner_escape("InvalidType", True, "テスト").transaction_type == READ_WRITE_TRANSACTION_TYPE
    assert spanner_escape(READ_ONLY_TRANSACTION_TYPE, False, "").transaction_type == READ_ONLY_TRANSACTION_TYPE


@pytest.mark.parametrize(
    "name, pos, depth, valid",
    [
        ("cancel", 100, 1, True),
        ("timeoutCancel", 200, 2, True),
        ("", 300, 0, False),
    ],
)
def test_defer_cancel_info(name, pos, depth, valid):
    info = DeferCancelInfo(name, pos, depth, valid)
    assert info.cancel_var_name == name
    assert info.defer_pos == pos
    assert info.scope_depth == depth
    assert info.is_valid is valid
    if valid:
        info.validate()
    else:
        with pytest.raises(ValidationError):
            info.validate()


def test_context_info_with_defer_info():
    info = ContextInfo(Var("ctx"), Var("cancel"), creation_pos=100)
    defer = DeferCancelInfo("cancel", 200, 1, True)
    info.set_defer_info(defer)
    assert info.first_defer_info() == defer
    assert info.has_defer_info() is True


def test_set_defer_info_none_keeps_existing():
    info = ContextInfo(Var("ctx"), Var("cancel"))
    defer = DeferCancelInfo("cancel", 200, 1, True)
    info.set_defer_info(defer)
    info.set_defer_info(None)
    info.add_defer_info(None)
    assert info.defer_infos == [defer]


@pytest.mark.parametrize(
    "info, fails",
    [
        (DeferCancelInfo("cancel", 100, 1, True), False),
        (DeferCancelInfo("", 100, 1, False), True),
        (DeferCancelInfo("cancel", 0, 1, False), True),
    ],
)
def test_defer_cancel_info_validation(info, fails):
    if fails:
        with pytest.raises(ValidationError):
            info.validate()
    else:
        info.validate()
        assert info.cancel_var_name == "cancel"


def test_context_info_multiple_defers():
    info = ContextInfo(Var("ctx"), Var("cancel"), creation_pos=100)
    first = DeferCancelInfo("cancel", 200, 1, True)
    second = DeferCancelInfo("cancel", 300, 2, True)
    info.set_defer_info(first)
    assert info.has_defer_info() is True
    assert info.first_defer_info().defer_pos == 200
    info.add_defer_info(second)
    assert len(info.defer_infos) == 2
    assert [d.defer_pos for d in info.defer_infos] == [200, 300]


def test_defer_infos_are_copies():
    info = ContextInfo(Var("ctx"), Var("cancel"))
    defer = DeferCancelInfo("cancel", 200, 1, True)
    info.add_defer_info(defer)
    defer.defer_pos = 999
    assert info.first_defer_info().defer_pos == 200


def test_context_info_validation():
    with pytest.raises(ValidationError):
        ContextInfo(None, Var("cancel")).validate()
    with pytest.raises(ValidationError):
        ContextInfo(Var("ctx"), None).validate()
    info = ContextInfo(Var("ctx"), Var("cancel"))
    info.validate()
    assert info.cancel_func.name == "cancel"


@pytest.mark.parametrize(
    "record",
    [
        ResourceInfo(None, service_type="test", cleanup_method="Close"),
        ResourceInfo(Var("client"), service_type="", cleanup_method="Close"),
        ResourceInfo(Var("client"), service_type="test", cleanup_method=""),
        ContextInfo(None, Var("cancel")),
        ContextInfo(Var("ctx"), None),
        DeferCancelInfo("", 100),
        DeferCancelInfo("cancel", 0),
        SpannerEscapeInfo(transaction_type="Invalid", is_auto_managed=True,
                          auto_management_reason="test"),
        SpannerEscapeInfo(transaction_type=READ_WRITE_TRANSACTION_TYPE, is_auto_managed=True,
                          auto_management_reason=""),
    ],
)
def test_validation_messages_are_english(record):
    with pytest.raises(ValidationError) as excinfo:
        record.validate()
    message = str(excinfo.value)
    assert message
    assert _JAPANESE.search(message) is None