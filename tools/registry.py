# =============================================================================
# tools/registry.py  —  Tool Definitions & Dispatcher
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Declares every tool ONCE — its name, the description the LLM reads, its
#   JSON input schema — and maps it to a core operation.  Both front doors
#   use it:
#     - tools/mcp_server.py  (MCP over stdio)
#     - api/rest.py          (the REST facade)
#     - main.py --list-tools (prints TOOLS as JSON)
#
# DISPATCH FLOW:
#   call_tool(service, "search_drugs", {"phase": "C3"})
#     1. look up the ToolDefinition        (unknown name → ValidationError)
#     2. validate arguments into a params dataclass (bad type → ValidationError)
#     3. await the CortellisService operation → ResultEnvelope
# =============================================================================

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from core.cortellis import CortellisService
from core.errors import ValidationError
from core.models import (
    DEAL_SEARCH_FIELDS,
    CompanySearchParams,
    DealSearchParams,
    DrugSearchParams,
    OntologyParams,
    RecordKind,
    RecordLookup,
    ResultEnvelope,
)
from core.query_builder import ONTOLOGY_CATEGORIES

Handler = Callable[[CortellisService, Mapping[str, Any]], Awaitable[ResultEnvelope]]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: dict
    handler: Handler

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


# =============================================================================
# Input schemas
# =============================================================================
_PHASE_CODES = {
    "S": "Suspended - Development temporarily halted",
    "DR": "Discovery/Preclinical - Early stage research",
    "CU": "Clinical unknown - Clinical stage not specified",
    "C1": "Phase 1 - Initial human safety trials",
    "C2": "Phase 2 - Small scale efficacy trials",
    "C3": "Phase 3 - Large scale efficacy trials",
    "PR": "Pre-registration - Submitted for approval",
    "R": "Registered - Approved but not yet launched",
    "L": "Launched - Available in market",
    "OL": "Outlicensed - Rights transferred to another company",
    "NDR": "No Development Reported - No recent updates",
    "DX": "Discontinued - Development stopped",
    "W": "Withdrawn - Removed from market",
}

_OFFSET = {
    "type": "number",
    "description": "Starting position in the results (default: 0). Pages hold 100 hits.",
    "default": 0,
}

_RAW_QUERY = {
    "type": "string",
    "description": "Raw search query in Cortellis query syntax. When given, all other filters are ignored.",
}

SEARCH_DRUGS_SCHEMA = {
    "type": "object",
    "properties": {
        "query": _RAW_QUERY,
        "company": {"type": "string", "description": "Company developing the drug (active companies)"},
        "indication": {"type": "string", "description": "Active indications of a drug (e.g. obesity or cancer)"},
        "action": {"type": "string", "description": "Target specific action (e.g. glucagon)"},
        "phase": {
            "type": "string",
            "description": (
                "Overall highest development status of the drug. Short codes ("
                + ", ".join(f"{code}={text.split(' - ')[0]}" for code, text in _PHASE_CODES.items())
                + ") or descriptive text. Combine with OR/AND, e.g. 'C3 OR PR'."
            ),
            "examples": ["C3", "C3 OR PR", "C1 AND C2"],
        },
        "phase_terminated": {
            "type": "string",
            "description": "Last phase before No Development Reported or Discontinued statuses",
        },
        "technology": {"type": "string", "description": "Technologies used (e.g. small molecule, biologic)"},
        "drug_name": {"type": "string", "description": "Name of the drug (e.g. semaglutide)"},
        "country": {"type": "string", "description": "Country of drug development (e.g. US, EU)"},
        "offset": _OFFSET,
    },
}

SEARCH_COMPANIES_SCHEMA = {
    "type": "object",
    "properties": {
        "query": _RAW_QUERY,
        "company_name": {"type": "string", "description": "Company name to search for"},
        "hq_country": {"type": "string", "description": "Headquarters country, two-letter code (e.g. US, CH)"},
        "deals_count": {
            "type": "string",
            "description": "Distinct deals as principal/partner: '<X' for fewer than X, 'X' or '>X' for more",
            "examples": ["<20", "20", ">50"],
        },
        "indications": {"type": "string", "description": "Top 10 indication terms from the company's drugs/patents"},
        "actions": {"type": "string", "description": "Top 10 target-based action terms from the company's portfolio"},
        "technologies": {"type": "string", "description": "Top 10 technology terms from the company's portfolio"},
        "company_size": {
            "type": "string",
            "description": "Market cap in billions USD: '<X' for less than $XB, 'X' or '>X' for more",
            "examples": ["<2", "2", ">10"],
        },
        "status": {
            "type": "string",
            "description": "Highest status of associated drugs",
            "enum": ["launched", "phase 3", "phase 2", "phase 1", "preclinical"],
        },
        "offset": _OFFSET,
    },
}

_DEAL_FIELD_DESCRIPTIONS = {
    "dealDrugNamesAll": "Drug name involved in the deal",
    "indications": "Indication covered by the deal",
    "technologies": "Technology covered by the deal",
    "dealActionsPrimary": "Primary mechanism of action of the deal's drugs",
    "dealType": "Deal type (e.g. Drug - Development/Commercialization License)",
    "dealStatus": "Deal status (e.g. Active, Completed, Terminated)",
    "dealTitleSummary": "Words in the deal title or summary",
    "dealPhaseHighestStart": "Highest drug phase when the deal started",
    "dealPhaseHighestNow": "Highest drug phase now",
    "dealDateStart": "Deal start date, e.g. RANGE(>=2020-01-01)",
    "dealDateEnd": "Deal end date",
    "dealDateEventMostRecent": "Date of the most recent deal event",
    "dealValuePaidToPrincipalMin": "Minimum value paid to the principal (USD)",
    "dealValuePaidToPrincipalMax": "Maximum value paid to the principal (USD)",
    "dealValuePaidToPrincipalMaxDisclosureStatus": "Disclosure status of the value paid to the principal",
    "dealValueReportedByPrincipalMin": "Minimum value reported by the principal (USD)",
    "dealValueReportedByPrincipalMax": "Maximum value reported by the principal (USD)",
    "dealValueReportedByPrincipalMaxDisclosureStatus": "Disclosure status of the value reported by the principal",
    "dealTotalPaidMin": "Minimum total paid (USD)",
    "dealTotalPaidMax": "Maximum total paid (USD)",
    "dealTotalPaidDisclosureStatus": "Disclosure status of the total paid",
    "dealUpfrontPaymentMin": "Minimum upfront payment (USD)",
    "dealUpfrontPaymentMax": "Maximum upfront payment (USD)",
    "dealUpfrontPaymentDisclosureStatus": "Disclosure status of the upfront payment",
    "dealTerritoriesIncluded": "Territories included in the deal",
    "dealTerritoriesExcluded": "Territories excluded from the deal",
    "dealCompanyPrincipal": "Principal company (licensor/seller)",
    "dealCompanyPartner": "Partner company (licensee/buyer)",
    "dealCompanyPrincipalHq": "Headquarters country of the principal company",
}

SEARCH_DEALS_SCHEMA = {
    "type": "object",
    "properties": {
        "query": _RAW_QUERY,
        **{
            name: {"type": "string", "description": _DEAL_FIELD_DESCRIPTIONS[name]}
            for name in DEAL_SEARCH_FIELDS
        },
        "offset": _OFFSET,
    },
}

EXPLORE_ONTOLOGY_SCHEMA = {
    "type": "object",
    "properties": {
        "term": {"type": "string", "description": "Search term, used together with category"},
        "category": {"type": "string", "description": "Category to search within", "enum": list(ONTOLOGY_CATEGORIES)},
        "action": {"type": "string", "description": "Target specific action of the drug (e.g. GLP-1)"},
        "indication": {"type": "string", "description": "Indication (e.g. obesity, NASH)"},
        "company": {"type": "string", "description": "Company name (e.g. Novo Nordisk)"},
        "drug_name": {"type": "string", "description": "Drug name (e.g. semaglutide)"},
        "target": {"type": "string", "description": "Biological target (e.g. GLP-1 receptor)"},
        "technology": {"type": "string", "description": "Technology (e.g. monoclonal antibody)"},
    },
}


def _id_schema(noun: str) -> dict:
    return {
        "type": "object",
        "properties": {"id": {"type": "string", "description": f"{noun} identifier from the Cortellis database"}},
        "required": ["id"],
    }


# =============================================================================
# Handlers
# =============================================================================
async def _search_drugs(service: CortellisService, arguments: Mapping[str, Any]) -> ResultEnvelope:
    return await service.search_drugs(DrugSearchParams.from_arguments(arguments))


async def _search_companies(service: CortellisService, arguments: Mapping[str, Any]) -> ResultEnvelope:
    return await service.search_companies(CompanySearchParams.from_arguments(arguments))


async def _search_deals(service: CortellisService, arguments: Mapping[str, Any]) -> ResultEnvelope:
    return await service.search_deals(DealSearchParams.from_arguments(arguments))


async def _explore_ontology(service: CortellisService, arguments: Mapping[str, Any]) -> ResultEnvelope:
    return await service.explore_ontology(OntologyParams.from_arguments(arguments))


def _record_handler(kind: RecordKind) -> Handler:
    async def handler(service: CortellisService, arguments: Mapping[str, Any]) -> ResultEnvelope:
        return await service.get_record(RecordLookup.from_arguments(kind, arguments))

    return handler


# =============================================================================
# The registry
# =============================================================================
_PAGINATION_HINT = (
    " If the number of results returned does not match totalResults, ALWAYS use"
    " the offset parameter to get the next page(s) of results."
)

TOOLS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="search_drugs",
        description="Search for drugs in the Cortellis database." + _PAGINATION_HINT,
        input_schema=SEARCH_DRUGS_SCHEMA,
        handler=_search_drugs,
    ),
    ToolDefinition(
        name="search_companies",
        description="Search for companies in the Cortellis database." + _PAGINATION_HINT,
        input_schema=SEARCH_COMPANIES_SCHEMA,
        handler=_search_companies,
    ),
    ToolDefinition(
        name="search_deals",
        description="Search for licensing and partnering deals in the Cortellis database." + _PAGINATION_HINT,
        input_schema=SEARCH_DEALS_SCHEMA,
        handler=_search_deals,
    ),
    ToolDefinition(
        name="explore_ontology",
        description=(
            "Explore the ontology or taxonomy terms in the Cortellis database. Use it to turn "
            "free text into the exact terms the search tools recognise."
        ),
        input_schema=EXPLORE_ONTOLOGY_SCHEMA,
        handler=_explore_ontology,
    ),
    ToolDefinition(
        name="get_drug",
        description="Return the entire drug record with all available fields for a given identifier.",
        input_schema=_id_schema("Drug"),
        handler=_record_handler(RecordKind.DRUG),
    ),
    ToolDefinition(
        name="get_drug_swot",
        description="Return the SWOT analysis complementing a drug record for a drug identifier.",
        input_schema=_id_schema("Drug"),
        handler=_record_handler(RecordKind.DRUG_SWOT),
    ),
    ToolDefinition(
        name="get_drug_financial",
        description="Return financial commentary and data (actual sales and consensus forecast) for a drug identifier.",
        input_schema=_id_schema("Drug"),
        handler=_record_handler(RecordKind.DRUG_FINANCIAL),
    ),
    ToolDefinition(
        name="get_company",
        description="Return the entire company record with all available fields for a given identifier.",
        input_schema=_id_schema("Company"),
        handler=_record_handler(RecordKind.COMPANY),
    ),
)

_TOOLS_BY_NAME = {tool.name: tool for tool in TOOLS}


def list_tools() -> list[dict]:
    """Tool definitions as plain dicts (name, description, inputSchema)."""
    return [tool.to_dict() for tool in TOOLS]


def get_tool(name: str) -> ToolDefinition:
    tool = _TOOLS_BY_NAME.get(name) if name else None
    if tool is None:
        raise ValidationError(f"Unknown tool: {name}" if name else "Tool name not provided")
    return tool


async def call_tool(service: CortellisService, name: str, arguments: Any = None) -> ResultEnvelope:
    """Validate `arguments` for tool `name` and run it."""
    tool = get_tool(name)
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ValidationError("Tool arguments must be an object")
    return await tool.handler(service, arguments)
