import copy

from app.modules.shipping.carriers.xpo import BOL_SCHEMA
from app.modules.shipping.merge import merge
from app.modules.shipping.templates import render


def test_merge_with_empty_payload_equals_template():
    template = render(BOL_SCHEMA)
    assert merge(template, {}) == template
    assert merge(template, None) == template


def test_merge_never_mutates_template():
    template = {"bol": {"remarks": None, "lines": [{"a": None}]}}
    snapshot = copy.deepcopy(template)

    merge(template, {"bol": {"remarks": "fragile", "lines": [{"a": 1}]}})

    assert template == snapshot


def test_arrays_are_replaced_not_merged():
    assert merge({"a": [1, 2]}, {"a": [9]}) == {"a": [9]}


def test_nested_objects_merge_recursively():
    template = {"shipper": {"name": None, "address": {"city": None, "zip": None}}}
    merged = merge(template, {"shipper": {"address": {"city": "Ontario"}}})
    assert merged == {"shipper": {"name": None, "address": {"city": "Ontario", "zip": None}}}


def test_none_values_keep_placeholder():
    assert merge({"a": "x", "b": None}, {"a": None}) == {"a": "x", "b": None}


def test_type_mismatch_replaces_wholesale():
    assert merge({"a": {"b": None}}, {"a": "flat"}) == {"a": "flat"}
    assert merge({"a": None}, {"a": {"b": 1}}) == {"a": {"b": 1}}


def test_unknown_keys_are_added():
    assert merge({"a": None}, {"extra": {"k": 1}}) == {"a": None, "extra": {"k": 1}}


def test_merge_is_idempotent():
    template = render(BOL_SCHEMA)
    payload = {
        "bol": {
            "requester": {"role": "S"},
            "commodityLine": [{"pieceCnt": 2, "desc": "chairs"}],
        }
    }
    once = merge(template, payload)
    assert merge(once, payload) == once


def test_merged_payload_is_not_aliased():
    payload = {"lines": [{"a": 1}]}
    merged = merge({}, payload)
    merged["lines"][0]["a"] = 99
    assert payload["lines"][0]["a"] == 1
