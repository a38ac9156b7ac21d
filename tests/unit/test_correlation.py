from app.modules.shipping.correlation import extract_correlation_keys, resolve_carrier
from tests.conftest import make_order


def test_bol_blob_read_first():
    order = make_order(
        1,
        bol_result={"data": {"referenceNumbers": {"pro": "0123456789", "bol": "B-1"}}},
        orders_meta={"pro": "999", "po": "PO-7"},
    )
    keys = extract_correlation_keys(order)
    assert keys.pro == "0123456789"
    assert keys.bol == "B-1"
    assert keys.po == "PO-7"


def test_shipment_confirmation_number_is_a_pro():
    order = make_order(1, bol_result={"referenceNumbers": {"shipmentConfirmationNumber": 7231049604370}})
    assert extract_correlation_keys(order).pro == "7231049604370"


def test_specific_fields_win_within_one_blob():
    order = make_order(
        1,
        bol_result={"referenceNumbers": {"pro": "P-1", "shipmentConfirmationNumber": "SC-1"}},
        orders_meta={"po": "PO-1", "purchaseOrder": "PO-2"},
    )
    keys = extract_correlation_keys(order)
    assert keys.pro == "SC-1"
    assert keys.po == "PO-2"


def test_pickup_request_id_becomes_pur():
    assert extract_correlation_keys(make_order(1, pickup_result={"id": 42})).pur == "42"
    assert extract_correlation_keys(
        make_order(1, pickup_result={"data": {"pickupRequestId": "PU9"}})
    ).pur == "PU9"


def test_quote_id_ignored_unless_enabled():
    order = make_order(1, rate_quote_result={"data": {"quoteId": "Q-1"}})
    assert extract_correlation_keys(order).is_empty()
    assert extract_correlation_keys(order, quote_id_as_load_number=True).ldn == "Q-1"


def test_metadata_keys():
    order = make_order(
        1,
        orders_meta={"purchaseOrder": "PO-1", "exl": "E1", "interlinePro": "IP1"},
    )
    assert extract_correlation_keys(order).as_params() == {
        "po": "PO-1",
        "exl": "E1",
        "interlinePro": "IP1",
    }


def test_no_recognizable_fields_is_empty():
    order = make_order(
        1,
        orders_meta={"note": "hello"},
        bol_result={"message": "created"},
        pickup_result=["unexpected"],
        rate_quote_result=None,
    )
    assert extract_correlation_keys(order).is_empty()


def test_blank_values_do_not_block_later_blobs():
    order = make_order(1, bol_result={"referenceNumbers": {"pro": "  "}}, orders_meta={"pro": "P2"})
    assert extract_correlation_keys(order).pro == "P2"


def test_resolve_carrier():
    assert resolve_carrier(make_order(1, orders_meta={"carrier": "XPO"}), "estes") == "xpo"
    assert resolve_carrier(make_order(1, bol_result={"shippingCompanyName": "xpo"}), "estes") == "xpo"
    assert resolve_carrier(make_order(1), "estes") == "estes"
