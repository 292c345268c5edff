import pytest

from orderflow.status import (
    CustomerStatus,
    OrderStatus,
    customer_status,
    is_backward,
    is_terminal,
    parse_status,
    rank,
    valid_status_values,
)


def test_parse_status_accepts_canonical_values_and_aliases():
    assert parse_status("Cooking") is OrderStatus.COOKING
    assert parse_status(OrderStatus.READY) is OrderStatus.READY
    assert parse_status("Order") is OrderStatus.PENDING
    assert parse_status("Preparing") is OrderStatus.COOKING


def test_parse_status_rejects_unknown_label():
    with pytest.raises(ValueError) as exc:
        parse_status("Flying")
    assert "Pending" in str(exc.value)
    assert "Preparing" in str(exc.value)


def test_customer_view_collapses_kitchen_states():
    assert customer_status("Pending") is CustomerStatus.ORDER
    assert customer_status("Cooking") is CustomerStatus.PREPARING
    assert customer_status("Ready") is CustomerStatus.PREPARING
    assert customer_status("Served") is CustomerStatus.SERVED
    assert customer_status("Completed") is CustomerStatus.COMPLETED


def test_progression_order():
    assert [rank(s) for s in OrderStatus] == [0, 1, 2, 3, 4]
    assert is_backward("Served", "Cooking")
    assert not is_backward("Cooking", "Served")
    assert not is_backward("Cooking", "Preparing")


def test_is_terminal():
    assert is_terminal("Completed")
    assert not is_terminal("Served")
    assert not is_terminal(None)
    assert not is_terminal("garbage")


def test_valid_status_values_lists_canonical_first():
    values = valid_status_values()
    assert values[:5] == ["Pending", "Cooking", "Ready", "Served", "Completed"]
    assert set(values[5:]) == {"Order", "Preparing"}
