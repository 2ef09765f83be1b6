from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

import main
from conftest import FakeCortellis
from core.cortellis import CortellisService
from tools.mcp_server import create_mcp_server
from tools.registry import list_tools


def test_server_exposes_every_registered_tool(service: CortellisService) -> None:
    async def names() -> set[str]:
        async with Client(create_mcp_server(service)) as client:
            return {tool.name for tool in await client.list_tools()}

    assert asyncio.run(names()) == {tool["name"] for tool in list_tools()}


def test_tool_call_result_is_the_envelope(service: CortellisService, fake_api: FakeCortellis) -> None:
    async def call():
        async with Client(create_mcp_server(service)) as client:
            return await client.call_tool("get_drug", {"id": "93910"})

    result = asyncio.run(call())
    assert result.is_error is False
    assert len(result.content) == 1
    assert result.content[0].type == "text"
    assert json.loads(result.content[0].text) == fake_api.body
    assert fake_api.authenticated_requests[0].url.path.endswith("/drugs-v2/drug/93910")


def test_search_deals_sends_only_given_filters(service: CortellisService, fake_api: FakeCortellis) -> None:
    async def call():
        async with Client(create_mcp_server(service)) as client:
            return await client.call_tool(
                "search_deals",
                {"dealCompanyPartner": "Pfizer", "dealDrugNamesAll": "semaglutide", "offset": 100},
            )

    result = asyncio.run(call())
    assert json.loads(result.content[0].text) == fake_api.body
    url = fake_api.authenticated_requests[0].url
    assert url.params["query"] == "dealDrugNamesAll:semaglutide AND dealCompanyPartner:Pfizer"
    assert url.params["offset"] == "100"


def test_tool_error_carries_numeric_code(service: CortellisService, fake_api: FakeCortellis) -> None:
    async def call() -> None:
        async with Client(create_mcp_server(service)) as client:
            await client.call_tool("get_drug", {"id": ""})

    with pytest.raises(Exception, match="-32602"):
        asyncio.run(call())
    assert fake_api.requests == []


def test_list_tools_flag_needs_no_credentials(monkeypatch, capsys) -> None:
    monkeypatch.delenv("CORTELLIS_USERNAME", raising=False)
    monkeypatch.delenv("CORTELLIS_PASSWORD", raising=False)

    assert main.main(["--list-tools"]) == 0
    printed = json.loads(capsys.readouterr().out)
    assert [tool["name"] for tool in printed] == [tool["name"] for tool in list_tools()]


def test_missing_credentials_exit_code(monkeypatch) -> None:
    monkeypatch.setattr(main, "load_dotenv", lambda: None)
    monkeypatch.delenv("CORTELLIS_USERNAME", raising=False)
    monkeypatch.delenv("CORTELLIS_PASSWORD", raising=False)

    assert main.main([]) == 1
