"""
Estes Express Lines

Endpoints:
- auth                  POST /authenticate (JSON, apikey header)
- createRateQuote       POST /v1/rate-quotes
- createBillOfLading    POST /v1/bol
- createPickupRequest   POST /v1/pickup-request
- getShipmentHistory    GET  /v1/shipments/history
"""
from typing import Any, Dict, List

from app.modules.shipping.carriers import register_carrier
from app.modules.shipping.carriers.base import BaseCarrier
from app.modules.shipping.endpoint import EndpointConfig
from app.modules.shipping.templates import A, ArrayOf, B, N, S, obj
from app.modules.shipping.validation import (
    require,
    require_items,
    require_positive,
    validation_rule,
)

# =============================================================================
# Body schemas
# =============================================================================

AUTH_SCHEMA = obj(username=S, password=S)

_QUOTE_ADDRESS = obj(address=obj(city=S, stateProvince=S, postalCode=S, country=S))

RATE_QUOTE_SCHEMA = obj(
    quoteRequest=obj(
        shipDate=S,
        shipTime=S,
        serviceLevels=A,
        origin=_QUOTE_ADDRESS,
        destination=_QUOTE_ADDRESS,
    ),
    payment=obj(account=S, payor=S, terms=S),
    requestor=obj(name=S, phone=S, email=S),
    commodity=obj(
        handlingUnits=ArrayOf(obj(
            count=N,
            type=S,
            weight=N,
            weightUnit=S,
            length=N,
            width=N,
            height=N,
            dimensionsUnit=S,
            isStackable=B,
            isTurnable=B,
            lineItems=ArrayOf(obj(
                description=S,
                weight=N,
                pieces=N,
                packagingType=S,
                classification=S,
                nmfc=S,
                nmfcSub=S,
                isHazardous=B,
            )),
        )),
    ),
    accessorials=obj(codes=A),
)


def _party(with_account: bool = True, with_contact_name: bool = True):
    fields = dict(
        name=S,
        address1=S,
        city=S,
        stateProvince=S,
        postalCode=S,
        country=S,
    )
    if with_account:
        fields["account"] = S
    contact = dict(phone=S, email=S)
    if with_contact_name:
        contact["name"] = S
    fields["contact"] = obj(**contact)
    return obj(**fields)


BOL_SCHEMA = obj(
    version=S,
    bol=obj(
        function=S,
        isTest=B,
        requestorRole=S,
        requestedPickupDate=S,
        specialInstructions=S,
    ),
    payment=obj(terms=S),
    origin=_party(),
    destination=_party(with_account=False, with_contact_name=False),
    billTo=_party(),
    referenceNumbers=obj(masterBol=S, quoteID=S),
    commodities=obj(
        lineItemLayout=S,
        handlingUnits=ArrayOf(obj(
            count=N,
            type=S,
            weight=N,
            weightUnit=S,
            length=N,
            width=N,
            height=N,
            dimensionsUnit=S,
            stackable=B,
            lineItems=ArrayOf(obj(
                description=S,
                weight=N,
                weightUnit=S,
                pieces=N,
                packagingType=S,
                classification=S,
                nmfc=S,
                nmfcSub=S,
                hazardous=B,
            )),
        )),
    ),
    accessorials=obj(codes=A),
    images=obj(
        includeBol=B,
        includeShippingLabels=B,
        shippingLabels=obj(format=S, quantity=N, position=N),
        email=obj(includeBol=B, includeLabels=B, addresses=A),
    ),
    notifications=ArrayOf(obj(email=S)),
)

_PERSON_NAME = obj(firstName=S, middleName=S, lastName=S)
_ADDRESS_INFO = dict(
    addressLine1=S,
    addressLine2=S,
    city=S,
    stateProvince=S,
    postalCode=S,
    postalCode4=S,
    countryAbbrev=S,
)
_CONTACT_INFO = dict(
    name=_PERSON_NAME,
    email=S,
    phone=obj(areaCode=N, number=N, extension=N),
    fax=obj(areaCode=N, number=N),
    receiveNotifications=S,
    notificationMethod=S,
)

PICKUP_SCHEMA = obj(
    shipper=obj(
        shipperName=S,
        accountCode=S,
        shipperAddress=obj(addressInfo=obj(**_ADDRESS_INFO)),
        shipperContacts=obj(
            shipperContact=ArrayOf(obj(contactInfo=obj(**_CONTACT_INFO))),
        ),
    ),
    requestAction=S,
    paymentTerms=S,
    pickupDate=S,
    pickupStartTime=S,
    pickupEndTime=S,
    totalPieces=N,
    totalWeight=N,
    totalHandlingUnits=N,
    hazmatFlag=S,
    expeditedCode=S,
    whoRequested=S,
    trailer=A,
    referenceNumbers=obj(
        referenceNumber=ArrayOf(obj(referenceInfo=obj(
            type=S, value=S, required=S, totalPieces=N, totalWeight=N,
        ))),
    ),
    commodities=obj(
        commodity=ArrayOf(obj(commodityInfo=obj(
            code=S,
            packageCode=S,
            description=S,
            hazmat=obj(hazmatCode=S, hazmatFlag=S),
            pieces=N,
            weight=N,
            nmfcNumber=S,
            nmfcSubNumber=S,
        ))),
    ),
    comments=obj(
        comment=ArrayOf(obj(commentInfo=obj(type=S, commentText=S))),
    ),
    consignee=obj(accountCode=S, accountName=S),
    thirdParty=obj(accountCode=S, accountName=S),
    addresses=obj(
        address=ArrayOf(obj(addressInfo=obj(addressType=S, **_ADDRESS_INFO))),
    ),
    contacts=obj(
        contact=ArrayOf(obj(contactInfo=obj(contactType=S, **_CONTACT_INFO))),
    ),
    notifications=obj(
        notification=ArrayOf(obj(notificationInfo=obj(type=S))),
    ),
)

HISTORY_PARAMETERS = ("pro", "po", "bol", "pur", "ldn", "exl", "interlinePro")


@register_carrier("estes")
class EstesCarrier(BaseCarrier):
    """Estes Express Lines: JSON everywhere, apikey header on every call."""

    name = "Estes"
    description = "Estes Express Lines"

    def endpoints(self, settings) -> List[EndpointConfig]:
        base_url = settings.ESTES_BASE_URL.rstrip("/")
        api_key = settings.ESTES_API_KEY
        bearer = {
            "Content-Type": "application/json",
            "apikey": api_key,
            "Authorization": "Bearer ",
        }

        def endpoint(operation, path, method="POST", headers=None, **kwargs):
            return EndpointConfig(
                carrier=self.code,
                operation=operation,
                url=f"{base_url}{path}",
                method=method,
                headers=headers or bearer,
                base_url=base_url,
                description=self.description,
                **kwargs,
            )

        return [
            endpoint(
                "auth",
                "/authenticate",
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "apikey": api_key,
                },
                body_schema=AUTH_SCHEMA,
            ),
            endpoint("createRateQuote", "/v1/rate-quotes", body_schema=RATE_QUOTE_SCHEMA),
            endpoint("createBillOfLading", "/v1/bol", body_schema=BOL_SCHEMA),
            endpoint("createPickupRequest", "/v1/pickup-request", body_schema=PICKUP_SCHEMA),
            endpoint(
                "getShipmentHistory",
                "/v1/shipments/history",
                method="GET",
                query_parameters=HISTORY_PARAMETERS,
            ),
        ]

    def wire_params(self, params: Dict[str, str]) -> Dict[str, str]:
        # Estes spells the interline PRO parameter with a hyphen
        if "interlinePro" not in params:
            return params
        params = dict(params)
        params["interline-pro"] = params.pop("interlinePro")
        return params


# =============================================================================
# Validation rules
# =============================================================================

_PARTY_FIELDS = ("name", "address1", "city", "stateProvince", "postalCode")


@validation_rule("estes", "createBillOfLading")
def validate_bill_of_lading(body: Dict[str, Any]) -> List[str]:
    missing: List[str] = []
    for party in ("origin", "destination", "billTo"):
        require(body, [f"{party}.{f}" for f in _PARTY_FIELDS], missing)

    units = require_items(body, "commodities.handlingUnits", missing)
    for i, unit in enumerate(units):
        prefix = f"commodities.handlingUnits[{i}]."
        require_positive(unit, ("count", "weight"), missing, prefix)
        for j, item in enumerate(unit.get("lineItems") or []):
            if isinstance(item, dict):
                require(item, ("description",), missing, f"{prefix}lineItems[{j}].")
    return missing


@validation_rule("estes", "createRateQuote")
def validate_rate_quote(body: Dict[str, Any]) -> List[str]:
    missing: List[str] = []
    require(
        body,
        (
            "quoteRequest.origin.address.postalCode",
            "quoteRequest.destination.address.postalCode",
            "payment.account",
        ),
        missing,
    )
    units = require_items(body, "commodity.handlingUnits", missing)
    for i, unit in enumerate(units):
        require_positive(unit, ("count", "weight"), missing, f"commodity.handlingUnits[{i}].")
    return missing


@validation_rule("estes", "createPickupRequest")
def validate_pickup_request(body: Dict[str, Any]) -> List[str]:
    missing: List[str] = []
    require(
        body,
        (
            "shipper.shipperName",
            "shipper.shipperAddress.addressInfo.addressLine1",
            "shipper.shipperAddress.addressInfo.city",
            "shipper.shipperAddress.addressInfo.postalCode",
            "pickupDate",
        ),
        missing,
    )
    return missing
