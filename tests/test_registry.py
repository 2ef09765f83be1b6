from __future__ import annotations

import asyncio
import json
from urllib.parse import unquote

import pytest

from conftest import FakeCortellis
from core.cortellis import CortellisService
from core.errors import ValidationError
from core.models import DEAL_SEARCH_FIELDS, DrugSearchParams, RecordKind, RecordLookup
from tools.registry import TOOLS, call_tool, get_tool, list_tools


def run(service: CortellisService, name: str, arguments=None):
    return asyncio.run(call_tool(service, name, arguments))


def requested_query(api: FakeCortellis) -> str:
    url = str(api.authenticated_requests[0].url)
    return unquote(url.split("query=", 1)[1].split("&", 1)[0])


def test_tool_names() -> None:
    assert [tool["name"] for tool in list_tools()] == [
        "search_drugs",
        "search_companies",
        "search_deals",
        "explore_ontology",
        "get_drug",
        "get_drug_swot",
        "get_drug_financial",
        "get_company",
    ]
    for tool in list_tools():
        assert tool["description"]
        assert tool["inputSchema"]["type"] == "object"


def test_deal_schema_lists_every_field() -> None:
    properties = get_tool("search_deals").input_schema["properties"]
    assert set(DEAL_SEARCH_FIELDS) <= set(properties)
    assert len(DEAL_SEARCH_FIELDS) == len(set(DEAL_SEARCH_FIELDS))


def test_record_tools_require_id() -> None:
    for tool in TOOLS:
        if tool.name.startswith("get_"):
            assert tool.input_schema["required"] == ["id"]


def test_search_drugs_returns_envelope(service: CortellisService, fake_api: FakeCortellis) -> None:
    envelope = run(service, "search_drugs", {"phase": "C3 OR PR", "indication": "obesity"}).to_dict()

    assert envelope["isError"] is False
    assert envelope["content"][0]["type"] == "text"
    assert json.loads(envelope["content"][0]["text"]) == fake_api.body
    assert requested_query(fake_api) == "indicationsPrimary:obesity AND (phaseHighest::C3 OR phaseHighest::PR)"


def test_search_companies_dispatch(service: CortellisService, fake_api: FakeCortellis) -> None:
    run(service, "search_companies", {"company_size": "<2", "offset": 100})
    url = str(fake_api.authenticated_requests[0].url)
    assert "/company-v2/company/search?" in url
    assert "offset=100" in url
    assert requested_query(fake_api) == "companyCategoryCompanySize:RANGE(<2000000000)"


def test_search_deals_ignores_unknown_arguments(service: CortellisService, fake_api: FakeCortellis) -> None:
    run(service, "search_deals", {"dealCompanyPrincipal": "Novo Nordisk", "colour": "blue"})
    assert requested_query(fake_api) == "dealCompanyPrincipal:Novo Nordisk"


def test_explore_ontology_dispatch(service: CortellisService, fake_api: FakeCortellis) -> None:
    run(service, "explore_ontology", {"drug_name": "semaglutide"})
    assert fake_api.authenticated_requests[0].url.path.endswith("/taxonomy/drug/search/semaglutide")


def test_get_drug_swot_dispatch(service: CortellisService, fake_api: FakeCortellis) -> None:
    run(service, "get_drug_swot", {"id": 93910})
    assert fake_api.authenticated_requests[0].url.path.endswith("/drugs-v2/drug/SWOTs/93910")


@pytest.mark.parametrize(
    ("name", "arguments"),
    [
        ("delete_everything", {}),
        ("", {}),
        ("get_drug", {}),
        ("get_company", {"id": "  "}),
        ("get_drug", {"id": ["1"]}),
        ("search_drugs", {"company": 42}),
        ("search_drugs", {"offset": -1}),
        ("search_companies", {"offset": "next"}),
        ("search_drugs", ["not", "a", "mapping"]),
        ("explore_ontology", {}),
        ("explore_ontology", {"category": "disease", "term": "obesity"}),
    ],
)
def test_validation_errors_happen_before_network(
    service: CortellisService, fake_api: FakeCortellis, name: str, arguments
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        run(service, name, arguments)
    assert excinfo.value.code == -32602
    assert fake_api.requests == []


def test_params_coercion() -> None:
    params = DrugSearchParams.from_arguments({"offset": 100.0, "company": "", "phase": "C3"})
    assert params.offset == 100
    assert params.company is None
    assert DrugSearchParams.from_arguments({"offset": "200"}).offset == 200
    assert RecordLookup.from_arguments(RecordKind.DRUG, {"id": 93910}).id == "93910"
