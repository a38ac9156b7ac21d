"""
Tests for CarrierGatewayService.

Carrier traffic goes through httpx.MockTransport; the order store is the
in-memory FakeOrderStore from conftest.
"""
import json
from urllib.parse import parse_qs

import httpx
import pytest

from app.core.exceptions import (
    AuthenticationError,
    CarrierError,
    NotFoundError,
    ValidationError,
)
from app.modules.shipping.correlation import CorrelationKeySet
from app.modules.shipping.registry import build_registry
from app.services.gateway_service import BILL_OF_LADING, CarrierGatewayService
from tests.conftest import (
    ESTES_URL,
    FakeOrderStore,
    XPO_LTL_URL,
    XPO_URL,
    carrier_settings,
    make_client,
    make_order,
)
from tests.unit.test_validation import xpo_bol_payload


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, response=None):
        self.response = response or httpx.Response(200, json={"ok": True})
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.response

    @property
    def last(self):
        return self.requests[-1]


def make_gateway(recorder, store=None, settings=None):
    registry = build_registry(settings or carrier_settings())
    return CarrierGatewayService(registry, make_client(recorder), store)


class TestResolve:
    """Test endpoint resolution errors."""

    def test_unknown_carrier(self):
        gateway = make_gateway(Recorder())
        with pytest.raises(NotFoundError) as exc_info:
            gateway.resolve("ups", "auth")
        assert "ups" in exc_info.value.message

    def test_unknown_operation(self):
        gateway = make_gateway(Recorder())
        with pytest.raises(NotFoundError) as exc_info:
            gateway.resolve("xpo", "cancelShipment")
        assert "cancelShipment" in exc_info.value.message

    def test_unconfigured_base_url(self):
        gateway = make_gateway(Recorder(), settings=carrier_settings(XPO_BASE_URL=""))
        with pytest.raises(NotFoundError) as exc_info:
            gateway.resolve("XPO", "auth")
        assert "configuration" in exc_info.value.message


class TestAuthenticate:
    """Test carrier authentication."""

    @pytest.mark.asyncio
    async def test_xpo_form_encoded_and_token_stored(self):
        recorder = Recorder(httpx.Response(200, json={"access_token": "xpo-token", "expires_in": 43200}))
        store = FakeOrderStore()
        gateway = make_gateway(recorder, store)

        data = await gateway.authenticate("XPO", "ops", "pw")

        request = recorder.last
        assert str(request.url) == f"{XPO_URL}/token"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.headers["authorization"] == "Basic eHBvLWtleQ=="
        form = parse_qs(request.content.decode())
        assert form == {"grant_type": ["password"], "username": ["ops"], "password": ["pw"]}
        assert data["access_token"] == "xpo-token"
        assert store.tokens == {"xpo": "xpo-token"}

    @pytest.mark.asyncio
    async def test_estes_json_with_apikey(self):
        recorder = Recorder(httpx.Response(200, json={"data": {"token": "estes-token"}}))
        store = FakeOrderStore()
        gateway = make_gateway(recorder, store)

        await gateway.authenticate("estes", "ops", "pw")

        request = recorder.last
        assert str(request.url) == f"{ESTES_URL}/authenticate"
        assert request.headers["apikey"] == "estes-key"
        assert "authorization" not in request.headers
        assert json.loads(request.content) == {"username": "ops", "password": "pw"}
        assert store.tokens == {"estes": "estes-token"}

    @pytest.mark.asyncio
    async def test_rejected_credentials(self):
        recorder = Recorder(httpx.Response(401, json={"error": "invalid_grant"}))
        store = FakeOrderStore()
        gateway = make_gateway(recorder, store)

        with pytest.raises(AuthenticationError) as exc_info:
            await gateway.authenticate("xpo", "ops", "wrong")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "invalid_grant"
        assert store.tokens == {}

    @pytest.mark.asyncio
    async def test_response_without_token(self):
        gateway = make_gateway(Recorder(httpx.Response(200, json={"status": "ok"})), FakeOrderStore())
        with pytest.raises(CarrierError) as exc_info:
            await gateway.authenticate("xpo", "ops", "pw")
        assert exc_info.value.status_code == 502


class TestSubmit:
    """Test rate quote, BOL and pickup submission."""

    @pytest.mark.asyncio
    async def test_bill_of_lading_end_to_end(self):
        recorder = Recorder(httpx.Response(
            201, json={"data": {"referenceNumbers": {"pro": "0123456789"}}}
        ))
        store = FakeOrderStore([make_order(7)])
        gateway = make_gateway(recorder, store)

        result = await gateway.create_bill_of_lading("xpo", "tok", xpo_bol_payload(), order_id=7)

        sent = json.loads(recorder.last.content)
        assert recorder.last.headers["authorization"] == "Bearer tok"
        assert sent["bol"]["shipper"]["contactInfo"]["phone"]["phoneNbr"] == "503-5550100"
        assert sent["bol"]["emergencyContactName"] == ""
        assert sent["bol"]["additionalService"] == []
        assert "emergencyContactPhone" not in sent["bol"]
        assert "autoAssignPro" not in sent

        assert result["message"] == "Bill of Lading created successfully for xpo"
        assert result["shippingCompanyName"] == "xpo"
        assert result["data"] == {"data": {"referenceNumbers": {"pro": "0123456789"}}}
        assert store.saved_results == [(7, BILL_OF_LADING, result)]

    @pytest.mark.asyncio
    async def test_unknown_order_sends_nothing(self):
        recorder = Recorder(httpx.Response(201, json={"data": {}}))
        store = FakeOrderStore([make_order(7)])
        gateway = make_gateway(recorder, store)

        with pytest.raises(NotFoundError) as exc_info:
            await gateway.create_bill_of_lading("xpo", "tok", xpo_bol_payload(), order_id=999)

        assert "999" in exc_info.value.message
        assert recorder.requests == []
        assert store.saved_results == []

    @pytest.mark.asyncio
    async def test_validation_failure_sends_nothing(self):
        recorder = Recorder()
        gateway = make_gateway(recorder)

        with pytest.raises(ValidationError) as exc_info:
            await gateway.create_bill_of_lading("xpo", "tok", {"bol": {"requester": {"role": "S"}}})

        assert "bol.commodityLine" in exc_info.value.details["fields"]
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_missing_token(self):
        recorder = Recorder()
        gateway = make_gateway(recorder)
        with pytest.raises(AuthenticationError):
            await gateway.create_rate_quote("xpo", "  ", {})
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_non_object_payload(self):
        gateway = make_gateway(Recorder())
        with pytest.raises(ValidationError):
            await gateway.create_pickup_request("estes", "tok", ["not", "an", "object"])

    @pytest.mark.asyncio
    async def test_carrier_error_is_propagated(self):
        recorder = Recorder(httpx.Response(400, json={"validationErrors": [{"field": "x", "message": "bad"}]}))
        gateway = make_gateway(recorder)

        payload = {
            "quoteRequest": {
                "origin": {"address": {"postalCode": "97201"}},
                "destination": {"address": {"postalCode": "10001"}},
            },
            "payment": {"account": "ACC"},
            "commodity": {"handlingUnits": [{"count": 1, "weight": 100}]},
        }
        with pytest.raises(CarrierError) as exc_info:
            await gateway.create_rate_quote("estes", "tok", payload)

        assert exc_info.value.status_code == 400
        assert "bad" in exc_info.value.message


class TestShipmentHistory:
    """Test shipment history lookups."""

    @pytest.mark.asyncio
    async def test_only_declared_parameters_are_sent(self):
        recorder = Recorder(httpx.Response(200, json={"data": {"status": "IN_TRANSIT"}}))
        gateway = make_gateway(recorder)

        result = await gateway.get_shipment_history(
            "estes", "tok", {"pro": "123", "interlinePro": "IP9", "foo": "bar", "bol": " "}
        )

        params = dict(recorder.last.url.params)
        assert params == {"pro": "123", "interline-pro": "IP9"}
        assert result["data"] == {"data": {"status": "IN_TRANSIT"}}

    @pytest.mark.asyncio
    async def test_no_usable_parameters(self):
        recorder = Recorder()
        gateway = make_gateway(recorder)
        with pytest.raises(ValidationError):
            await gateway.get_shipment_history("estes", "tok", {"foo": "bar"})
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_query_history_uses_carrier_mapping(self):
        recorder = Recorder(httpx.Response(200, json={"data": []}))
        gateway = make_gateway(recorder)

        await gateway.query_history("xpo", "tok", CorrelationKeySet(bol="B1", po="P1"))

        assert dict(recorder.last.url.params) == {"referenceNumbers": "B1"}

    @pytest.mark.asyncio
    async def test_query_history_without_accepted_keys(self):
        recorder = Recorder()
        gateway = make_gateway(recorder)
        assert await gateway.query_history("xpo", "tok", CorrelationKeySet(exl="E1")) is None
        assert recorder.requests == []


class TestBolPdf:
    """Test BOL document download."""

    @pytest.mark.asyncio
    async def test_download_joins_relative_uri(self):
        recorder = Recorder(httpx.Response(200, json={"data": {"bolpdf": {"contentType": "pdf"}}}))
        gateway = make_gateway(recorder)

        result = await gateway.download_bol_pdf("xpo", "tok", "billoflading/1.0/billsoflading/123/pdf")

        assert str(recorder.last.url) == f"{XPO_LTL_URL}/billoflading/1.0/billsoflading/123/pdf"
        assert recorder.last.method == "GET"
        assert result["shippingCompanyName"] == "xpo"
        assert result["data"] == {"bolpdf": {"contentType": "pdf"}}

    @pytest.mark.asyncio
    async def test_uri_required(self):
        gateway = make_gateway(Recorder())
        with pytest.raises(ValidationError):
            await gateway.download_bol_pdf("xpo", "tok", "")

    @pytest.mark.asyncio
    async def test_carrier_without_pdf_endpoint(self):
        gateway = make_gateway(Recorder())
        with pytest.raises(NotFoundError):
            await gateway.download_bol_pdf("estes", "tok", "/doc")
