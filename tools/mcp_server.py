# =============================================================================
# tools/mcp_server.py  —  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Exposes the eight Cortellis tools over MCP.  Each tool is a thin async
#   wrapper: it logs the call, hands the arguments to the dispatcher in
#   tools/registry.py, and logs the Result Envelope it gets back.
#
# HOW IT WORKS (the flow):
#   1. An MCP client lists tools, then calls one by name ("search_drugs")
#   2. FastMCP routes the call to the decorated function below
#   3. The function calls registry.call_tool → core/ builds the URL, runs
#      the Digest handshake, wraps the JSON
#   4. The client receives { content: [{ type: "text", text: <API JSON> }],
#      isError: false } as the call result itself
#
# ERRORS:
#   Core errors carry a numeric code.  We re-raise them as FastMCP's
#   ToolError with the code in the message, so the client sees
#   "MCP error -32602: Invalid drug identifier" rather than a stack trace.
#
# RUNNING THIS SERVER:
#   python main.py            (stdio transport, the default)
# =============================================================================

import json
import logging
import sys
from typing import Any, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent

from core.cortellis import CortellisService
from core.errors import CortellisError
from core.models import DEAL_SEARCH_FIELDS
from tools.registry import call_tool

# =============================================================================
# Logging Setup
# =============================================================================
# We log to STDERR because stdout IS the MCP transport.  A single print()
# to stdout would corrupt the JSON-RPC stream.
#
# ANSI colours:  CYAN requests, GREEN responses, YELLOW status/errors.
# =============================================================================
_CYAN = "\033[36m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RESET = "\033[0m"

# Responses can be hundreds of KB; the log keeps only the head.
_LOG_PREVIEW_CHARS = 500


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logging.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logging.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, result: dict) -> dict:
    """Log a preview of the response in GREEN, then return it."""
    preview = json.dumps(result, separators=(",", ":"))
    if len(preview) > _LOG_PREVIEW_CHARS:
        preview = preview[:_LOG_PREVIEW_CHARS] + f"... ({len(preview)} chars)"
    logging.info(f"{_GREEN}  ← {tool_name} response: {preview}{_RESET}")
    return result


async def _run(service: CortellisService, tool_name: str, **arguments: Any) -> ToolResult:
    """Dispatch one tool call, translating core errors into ToolError.

    The envelope's text block becomes the MCP call result itself; FastMCP
    would otherwise serialise a returned dict into a second text block.
    """
    arguments = {k: v for k, v in arguments.items() if v is not None}
    _log_request(tool_name, **arguments)
    try:
        envelope = await call_tool(service, tool_name, arguments)
    except CortellisError as exc:
        _log_status(f"{type(exc).__name__}: {exc.message}")
        raise ToolError(f"MCP error {exc.code}: {exc.message}") from exc
    _log_response(tool_name, envelope.to_dict())
    return ToolResult(content=[TextContent(type="text", text=envelope.text)])


# =============================================================================
# Server factory
# =============================================================================
# The service (credentials + transport) is passed in, never read from a
# global, so tests can build a server around a mocked transport.
# =============================================================================
def create_mcp_server(service: CortellisService) -> FastMCP:
    mcp = FastMCP("cortellis")

    # -------------------------------------------------------------------------
    # Searches
    # -------------------------------------------------------------------------
    @mcp.tool()
    async def search_drugs(
        query: Optional[str] = None,
        company: Optional[str] = None,
        indication: Optional[str] = None,
        action: Optional[str] = None,
        phase: Optional[str] = None,
        phase_terminated: Optional[str] = None,
        technology: Optional[str] = None,
        drug_name: Optional[str] = None,
        country: Optional[str] = None,
        offset: int = 0,
    ) -> ToolResult:
        """Search for drugs in the Cortellis database.

        If the number of drugs returned does not match totalResults, ALWAYS
        use the offset parameter to get the next page(s) of results.

        Args:
            query: Raw Cortellis query. When given, all other filters are ignored.
            company: Company developing the drug (active companies).
            indication: Active indication (e.g. "obesity").
            action: Target specific action (e.g. "glucagon").
            phase: Highest development status. Short codes S, DR, CU, C1, C2,
                C3, PR, R, L, OL, NDR, DX, W, or descriptive text. Combine
                with OR/AND, e.g. "C3 OR PR".
            phase_terminated: Last phase before No Development Reported or
                Discontinued.
            technology: Technology (e.g. "small molecule").
            drug_name: Drug name (e.g. "semaglutide").
            country: Country of development (e.g. "US").
            offset: Starting position in the results (pages of 100).
        """
        return await _run(
            service, "search_drugs",
            query=query, company=company, indication=indication, action=action,
            phase=phase, phase_terminated=phase_terminated, technology=technology,
            drug_name=drug_name, country=country, offset=offset,
        )

    @mcp.tool()
    async def search_companies(
        query: Optional[str] = None,
        company_name: Optional[str] = None,
        hq_country: Optional[str] = None,
        deals_count: Optional[str] = None,
        indications: Optional[str] = None,
        actions: Optional[str] = None,
        technologies: Optional[str] = None,
        company_size: Optional[str] = None,
        status: Optional[str] = None,
        offset: int = 0,
    ) -> ToolResult:
        """Search for companies in the Cortellis database.

        If the number of companies returned does not match totalResults,
        ALWAYS use the offset parameter to get the next page(s) of results.

        Args:
            query: Raw Cortellis query. When given, all other filters are ignored.
            company_name: Company name (e.g. "pfizer").
            hq_country: Headquarters country, two-letter code (e.g. "US").
            deals_count: "<X" for fewer than X deals, "X" or ">X" for more.
            indications: Top-10 indication terms of the company's portfolio.
            actions: Top-10 target-based action terms of the portfolio.
            technologies: Top-10 technology terms of the portfolio.
            company_size: Market cap in billions USD: "<2", "2", ">10".
            status: Highest status of associated drugs ("launched", "phase 3", ...).
            offset: Starting position in the results (pages of 100).
        """
        return await _run(
            service, "search_companies",
            query=query, company_name=company_name, hq_country=hq_country,
            deals_count=deals_count, indications=indications, actions=actions,
            technologies=technologies, company_size=company_size, status=status,
            offset=offset,
        )

    @mcp.tool()
    async def search_deals(
        query: Optional[str] = None,
        dealDrugNamesAll: Optional[str] = None,
        indications: Optional[str] = None,
        technologies: Optional[str] = None,
        dealActionsPrimary: Optional[str] = None,
        dealType: Optional[str] = None,
        dealStatus: Optional[str] = None,
        dealTitleSummary: Optional[str] = None,
        dealPhaseHighestStart: Optional[str] = None,
        dealPhaseHighestNow: Optional[str] = None,
        dealDateStart: Optional[str] = None,
        dealDateEnd: Optional[str] = None,
        dealDateEventMostRecent: Optional[str] = None,
        dealValuePaidToPrincipalMin: Optional[str] = None,
        dealValuePaidToPrincipalMax: Optional[str] = None,
        dealValuePaidToPrincipalMaxDisclosureStatus: Optional[str] = None,
        dealValueReportedByPrincipalMin: Optional[str] = None,
        dealValueReportedByPrincipalMax: Optional[str] = None,
        dealValueReportedByPrincipalMaxDisclosureStatus: Optional[str] = None,
        dealTotalPaidMin: Optional[str] = None,
        dealTotalPaidMax: Optional[str] = None,
        dealTotalPaidDisclosureStatus: Optional[str] = None,
        dealUpfrontPaymentMin: Optional[str] = None,
        dealUpfrontPaymentMax: Optional[str] = None,
        dealUpfrontPaymentDisclosureStatus: Optional[str] = None,
        dealTerritoriesIncluded: Optional[str] = None,
        dealTerritoriesExcluded: Optional[str] = None,
        dealCompanyPrincipal: Optional[str] = None,
        dealCompanyPartner: Optional[str] = None,
        dealCompanyPrincipalHq: Optional[str] = None,
        offset: int = 0,
    ) -> ToolResult:
        """Search for licensing and partnering deals in the Cortellis database.

        Every filter is named after the Cortellis deal field it matches and
        is sent verbatim as "<field>:<value>". Values may use the vendor's
        own syntax, e.g. dealDateStart="RANGE(>=2020-01-01)".

        If the number of deals returned does not match totalResults, ALWAYS
        use the offset parameter to get the next page(s) of results.
        """
        values = (
            dealDrugNamesAll, indications, technologies, dealActionsPrimary,
            dealType, dealStatus, dealTitleSummary, dealPhaseHighestStart,
            dealPhaseHighestNow, dealDateStart, dealDateEnd,
            dealDateEventMostRecent, dealValuePaidToPrincipalMin,
            dealValuePaidToPrincipalMax,
            dealValuePaidToPrincipalMaxDisclosureStatus,
            dealValueReportedByPrincipalMin, dealValueReportedByPrincipalMax,
            dealValueReportedByPrincipalMaxDisclosureStatus, dealTotalPaidMin,
            dealTotalPaidMax, dealTotalPaidDisclosureStatus,
            dealUpfrontPaymentMin, dealUpfrontPaymentMax,
            dealUpfrontPaymentDisclosureStatus, dealTerritoriesIncluded,
            dealTerritoriesExcluded, dealCompanyPrincipal, dealCompanyPartner,
            dealCompanyPrincipalHq,
        )
        filters = dict(zip(DEAL_SEARCH_FIELDS, values, strict=True))
        return await _run(service, "search_deals", query=query, offset=offset, **filters)

    # -------------------------------------------------------------------------
    # Ontology
    # -------------------------------------------------------------------------
    @mcp.tool()
    async def explore_ontology(
        term: Optional[str] = None,
        category: Optional[str] = None,
        action: Optional[str] = None,
        indication: Optional[str] = None,
        company: Optional[str] = None,
        drug_name: Optional[str] = None,
        target: Optional[str] = None,
        technology: Optional[str] = None,
    ) -> ToolResult:
        """Explore the ontology or taxonomy terms in the Cortellis database.

        Either give category + term (category is one of action, indication,
        company, drug_name, target, technology), or set exactly one of the
        single-purpose fields, e.g. drug_name="semaglutide".
        """
        return await _run(
            service, "explore_ontology",
            term=term, category=category, action=action, indication=indication,
            company=company, drug_name=drug_name, target=target, technology=technology,
        )

    # -------------------------------------------------------------------------
    # Single records
    # -------------------------------------------------------------------------
    @mcp.tool()
    async def get_drug(id: str) -> ToolResult:
        """Return the entire drug record with all available fields.

        Args:
            id: Drug identifier from the Cortellis database (e.g. "93910").
        """
        return await _run(service, "get_drug", id=id)

    @mcp.tool()
    async def get_drug_swot(id: str) -> ToolResult:
        """Return the SWOT analysis (strengths, weaknesses, opportunities,
        threats) complementing a drug record.

        Args:
            id: Drug identifier from the Cortellis database.
        """
        return await _run(service, "get_drug_swot", id=id)

    @mcp.tool()
    async def get_drug_financial(id: str) -> ToolResult:
        """Return financial commentary and data (actual sales and consensus
        forecast) for a drug.

        Args:
            id: Drug identifier from the Cortellis database.
        """
        return await _run(service, "get_drug_financial", id=id)

    @mcp.tool()
    async def get_company(id: str) -> ToolResult:
        """Return the entire company record with all available fields.

        Args:
            id: Company identifier from the Cortellis database.
        """
        return await _run(service, "get_company", id=id)

    return mcp
