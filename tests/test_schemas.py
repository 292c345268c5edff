import pytest
from pydantic import ValidationError

from orderflow.schemas import OrderCreate, OrderStatusUpdate
from orderflow.status import OrderStatus, PaymentStatus


def test_dine_in_order_sorts_chairs(dine_in_order):
    order = OrderCreate.model_validate(dine_in_order)
    assert order.is_dine_in
    assert order.chair_indices == [0, 2]
    assert order.user_email == "u1@example.com"


def test_parcel_order_needs_contact_number(parcel_order):
    order = OrderCreate.model_validate(parcel_order)
    assert not order.is_dine_in
    assert order.delivery_location.address == "12 MG Road"

    parcel_order.pop("contactNumber")
    with pytest.raises(ValidationError):
        OrderCreate.model_validate(parcel_order)


def test_order_cannot_be_dine_in_and_parcel(dine_in_order):
    dine_in_order["contactNumber"] = "9876543210"
    with pytest.raises(ValidationError) as exc:
        OrderCreate.model_validate(dine_in_order)
    assert "not both" in str(exc.value)


def test_chairs_only_for_dine_in(parcel_order):
    parcel_order["chairIndices"] = [1]
    with pytest.raises(ValidationError):
        OrderCreate.model_validate(parcel_order)


@pytest.mark.parametrize("chairs", [[-1], [1, 1]])
def test_invalid_chair_indices(dine_in_order, chairs):
    dine_in_order["chairIndices"] = chairs
    with pytest.raises(ValidationError):
        OrderCreate.model_validate(dine_in_order)


def test_blank_email_becomes_none_and_bad_email_is_rejected(dine_in_order):
    dine_in_order["userEmail"] = "  "
    assert OrderCreate.model_validate(dine_in_order).user_email is None

    dine_in_order["userEmail"] = "not-an-email"
    with pytest.raises(ValidationError):
        OrderCreate.model_validate(dine_in_order)


def test_short_contact_number_is_rejected(parcel_order):
    parcel_order["contactNumber"] = "12345"
    with pytest.raises(ValidationError):
        OrderCreate.model_validate(parcel_order)


def test_status_update_resolves_aliases():
    update = OrderStatusUpdate.model_validate({"status": "Preparing"})
    assert update.status is OrderStatus.COOKING


def test_status_update_payment_only():
    update = OrderStatusUpdate.model_validate({"paymentStatus": "Paid", "paymentMethod": "UPI"})
    assert update.status is None
    assert update.payment_status is PaymentStatus.PAID


def test_status_update_requires_a_field():
    with pytest.raises(ValidationError):
        OrderStatusUpdate.model_validate({})


@pytest.mark.parametrize("status", ["Flying", 3])
def test_status_update_rejects_bad_status(status):
    with pytest.raises(ValidationError):
        OrderStatusUpdate.model_validate({"status": status})
