"""
XPO Logistics

Endpoints:
- auth                  POST /token (form-encoded, Basic API key, grant_type=password)
- createRateQuote       POST /rating/1.0/ratequotes
- createBillOfLading    POST /billoflading/1.0/billsoflading
- createPickupRequest   POST /pickuprequest/1.0/cust-pickup-requests
- getShipmentHistory    GET  /tracking/1.0/shipments/shipment-status-details
- getBillOfLadingPdf    GET  <XPO_LTL_URL><relative document URI>
"""
from typing import Any, Dict, List

from app.modules.shipping.carriers import register_carrier
from app.modules.shipping.carriers.base import BaseCarrier
from app.modules.shipping.correlation import CorrelationKeySet
from app.modules.shipping.endpoint import EndpointConfig
from app.modules.shipping.templates import ArrayOf, B, Leaf, N, S, obj
from app.modules.shipping.validation import (
    require,
    require_items,
    require_phone,
    require_positive,
    validation_rule,
)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# =============================================================================
# Body schemas
# =============================================================================

AUTH_SCHEMA = obj(
    grant_type=Leaf("string", default="password"),
    username=S,
    password=S,
)

RATE_QUOTE_SCHEMA = obj(
    shipmentInfo=obj(
        accessorials=ArrayOf(obj(accessorialCd=S, accessorialDesc=S, accessorialType=S)),
        commodity=ArrayOf(obj(
            pieceCnt=N,
            packageCode=S,
            grossWeight=obj(weight=N, weightUom=S),
            desc=S,
            nmfcClass=S,
            nmfcItemCd=S,
            hazmatInd=B,
            dimensions=obj(length=N, width=N, height=N, dimensionsUom=S),
        )),
        freezableInd=B,
        hazmatInd=B,
        paymentTermCd=S,
        shipmentDate=S,
        shipper=obj(acctInstId=S),
        consignee=obj(address=obj(postalCd=S, countryCd=S)),
        bill2Party=obj(address=obj(usZip4=S)),
        palletCnt=N,
        linealFt=N,
    ),
)


def _bol_party():
    return obj(
        address=obj(addressLine1=S, cityName=S, stateCd=S, countryCd=S, postalCd=S),
        contactInfo=obj(
            companyName=S,
            email=obj(emailAddr=S),
            phone=obj(phoneNbr=S),
        ),
    )


BOL_SCHEMA = obj(
    bol=obj(
        requester=obj(role=S),
        consignee=_bol_party(),
        shipper=_bol_party(),
        billToCust=_bol_party(),
        commodityLine=ArrayOf(obj(
            pieceCnt=N,
            packaging=obj(packageCd=S),
            grossWeight=obj(weight=N),
            desc=S,
            hazmatInd=B,
            nmfcClass=S,
            nmfcItemCd=S,
            sub=S,
        )),
        remarks=S,
        emergencyContactName=S,
        emergencyContactPhone=obj(phoneNbr=S),
        chargeToCd=S,
        additionalService=Leaf("array", default=[]),
        suppRef=obj(
            otherRefs=ArrayOf(obj(
                referenceTypeCd=S,
                reference=S,
                referenceCode=S,
                referenceDescr=S,
            )),
        ),
    ),
    autoAssignPro=B,
)


def _pickup_contact():
    return obj(
        companyName=S,
        email=obj(emailAddr=S),
        fullName=S,
        phone=obj(phoneNbr=S),
    )


PICKUP_SCHEMA = obj(
    pickupRqstInfo=obj(
        pkupDate=S,
        readyTime=S,
        closeTime=S,
        specialEquipmentCd=S,
        insidePkupInd=B,
        shipper=obj(
            name=S,
            addressLine1=S,
            addressLine2=S,
            cityName=S,
            stateCd=S,
            countryCd=S,
            postalCd=S,
        ),
        requestor=obj(contact=_pickup_contact(), roleCd=S),
        contact=_pickup_contact(),
        remarks=S,
        pkupItem=ArrayOf(obj(
            destZip6=S,
            totWeight=obj(weight=N),
            loosePiecesCnt=N,
            palletCnt=N,
            garntInd=B,
            hazmatInd=B,
            frzbleInd=B,
            holDlvrInd=B,
            foodInd=B,
            remarks=S,
        )),
    ),
)

# Correlation keys XPO accepts as a reference number, in preference order
REFERENCE_KEY_ORDER = ("pro", "bol", "po", "pur")


@register_carrier("xpo")
class XPOCarrier(BaseCarrier):
    """XPO Logistics: form-encoded token endpoint, JSON elsewhere."""

    name = "XPO"
    description = "XPO Logistics"

    def endpoints(self, settings) -> List[EndpointConfig]:
        base_url = settings.XPO_BASE_URL.rstrip("/")
        bearer = {
            "Accept": "application/json",
            "Content-Type": "application/json",
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

        ltl_url = settings.XPO_LTL_URL.rstrip("/")

        return [
            endpoint(
                "auth",
                "/token",
                headers={
                    "Content-Type": FORM_CONTENT_TYPE,
                    "Authorization": f"Basic {settings.XPO_API_KEY}",
                },
                body_schema=AUTH_SCHEMA,
            ),
            endpoint("createRateQuote", "/rating/1.0/ratequotes", body_schema=RATE_QUOTE_SCHEMA),
            endpoint(
                "createBillOfLading",
                "/billoflading/1.0/billsoflading",
                body_schema=BOL_SCHEMA,
            ),
            endpoint(
                "createPickupRequest",
                "/pickuprequest/1.0/cust-pickup-requests",
                body_schema=PICKUP_SCHEMA,
            ),
            endpoint(
                "getShipmentHistory",
                "/tracking/1.0/shipments/shipment-status-details",
                method="GET",
                query_parameters=("referenceNumbers",),
            ),
            EndpointConfig(
                carrier=self.code,
                operation="getBillOfLadingPdf",
                url=ltl_url,
                method="GET",
                headers={"Accept": "application/json", "Authorization": "Bearer "},
                base_url=ltl_url,
                description=self.description,
            ),
        ]

    def history_query(self, keys: CorrelationKeySet, declared: tuple) -> Dict[str, str]:
        params = keys.as_params()
        for key in REFERENCE_KEY_ORDER:
            if params.get(key):
                return {"referenceNumbers": params[key]}
        return {}


# =============================================================================
# Validation rules
# =============================================================================

_ADDRESS_FIELDS = ("addressLine1", "cityName", "stateCd", "postalCd", "countryCd")


@validation_rule("xpo", "createBillOfLading")
def validate_bill_of_lading(body: Dict[str, Any]) -> List[str]:
    missing: List[str] = []
    require(body, ("bol.requester.role",), missing)

    for party in ("consignee", "shipper", "billToCust"):
        base = f"bol.{party}"
        require(body, [f"{base}.address.{f}" for f in _ADDRESS_FIELDS], missing)
        require(body, (f"{base}.contactInfo.companyName",), missing)
        require_phone(body, f"{base}.contactInfo.phone.phoneNbr", missing)

    lines = require_items(body, "bol.commodityLine", missing)
    for i, line in enumerate(lines):
        prefix = f"bol.commodityLine[{i}]."
        require_positive(line, ("pieceCnt", "grossWeight.weight"), missing, prefix)
        require(line, ("desc",), missing, prefix)
    return missing


@validation_rule("xpo", "createRateQuote")
def validate_rate_quote(body: Dict[str, Any]) -> List[str]:
    missing: List[str] = []
    require(
        body,
        ("shipmentInfo.shipper.acctInstId", "shipmentInfo.consignee.address.postalCd"),
        missing,
    )
    commodities = require_items(body, "shipmentInfo.commodity", missing)
    for i, commodity in enumerate(commodities):
        require_positive(
            commodity,
            ("pieceCnt", "grossWeight.weight"),
            missing,
            f"shipmentInfo.commodity[{i}].",
        )
    return missing


@validation_rule("xpo", "createPickupRequest")
def validate_pickup_request(body: Dict[str, Any]) -> List[str]:
    missing: List[str] = []
    info = "pickupRqstInfo"
    require(
        body,
        [f"{info}.{f}" for f in ("pkupDate", "readyTime", "closeTime")],
        missing,
    )
    require(
        body,
        [f"{info}.shipper.{f}" for f in ("name", "addressLine1", "cityName", "stateCd", "postalCd")],
        missing,
    )
    require_phone(body, f"{info}.contact.phone.phoneNbr", missing)
    require_items(body, f"{info}.pkupItem", missing)
    return missing
