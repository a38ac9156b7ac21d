import pytest

from app.core.exceptions import ValidationError
from app.modules.shipping.carriers.xpo import BOL_SCHEMA, PICKUP_SCHEMA
from app.modules.shipping.merge import merge
from app.modules.shipping.normalize import normalize_payload
from app.modules.shipping.templates import render
from app.modules.shipping.validation import get_rule, run_validation


def _party(name):
    return {
        "address": {
            "addressLine1": "1 Main St",
            "cityName": "Portland",
            "stateCd": "OR",
            "postalCd": "97201",
            "countryCd": "US",
        },
        "contactInfo": {"companyName": name, "phone": {"phoneNbr": "+1 (503) 555-0100"}},
    }


def xpo_bol_payload(**overrides):
    payload = {
        "bol": {
            "requester": {"role": "S"},
            "consignee": _party("Consignee Co"),
            "shipper": _party("Shipper Co"),
            "billToCust": _party("Bill To Co"),
            "commodityLine": [
                {"pieceCnt": 2, "grossWeight": {"weight": 450}, "desc": "Comics"},
            ],
        }
    }
    payload["bol"].update(overrides)
    return payload


def build(schema, payload):
    return merge(render(schema), normalize_payload(payload))


def test_complete_bol_passes():
    run_validation("xpo", "createBillOfLading", build(BOL_SCHEMA, xpo_bol_payload()))


def test_empty_bol_reports_every_missing_field():
    with pytest.raises(ValidationError) as exc_info:
        run_validation("xpo", "createBillOfLading", render(BOL_SCHEMA))

    fields = exc_info.value.details["fields"]
    assert "bol.requester.role" in fields
    assert "bol.shipper.address.postalCd" in fields
    assert "bol.consignee.contactInfo.phone.phoneNbr" in fields
    assert "bol.commodityLine" in fields
    assert exc_info.value.status_code == 400


def test_placeholder_phone_is_rejected():
    payload = xpo_bol_payload()
    payload["bol"]["shipper"]["contactInfo"]["phone"]["phoneNbr"] = "+1"

    with pytest.raises(ValidationError) as exc_info:
        run_validation("xpo", "createBillOfLading", build(BOL_SCHEMA, payload))
    assert exc_info.value.details["fields"] == ["bol.shipper.contactInfo.phone.phoneNbr"]


def test_zero_weight_commodity_is_rejected():
    payload = xpo_bol_payload(commodityLine=[{"pieceCnt": 1, "grossWeight": {"weight": 0}, "desc": "x"}])

    with pytest.raises(ValidationError) as exc_info:
        run_validation("xpo", "createBillOfLading", build(BOL_SCHEMA, payload))
    assert exc_info.value.details["fields"] == ["bol.commodityLine[0].grossWeight.weight"]


def test_pickup_requires_items_and_contact_phone():
    with pytest.raises(ValidationError) as exc_info:
        run_validation("xpo", "createPickupRequest", render(PICKUP_SCHEMA))
    fields = exc_info.value.details["fields"]
    assert "pickupRqstInfo.pkupDate" in fields
    assert "pickupRqstInfo.contact.phone.phoneNbr" in fields
    assert "pickupRqstInfo.pkupItem" in fields


def test_estes_bol_rule():
    with pytest.raises(ValidationError) as exc_info:
        run_validation("Estes", "createBillOfLading", {"origin": {"name": "A"}})
    fields = exc_info.value.details["fields"]
    assert "origin.address1" in fields
    assert "origin.name" not in fields
    assert "commodities.handlingUnits" in fields


def test_operations_without_rules_pass():
    assert get_rule("xpo", "auth") is None
    run_validation("xpo", "auth", {})
    run_validation("acme", "createBillOfLading", {})
