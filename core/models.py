# =============================================================================
# core/models.py  —  Data Models (the "nouns" of the system)
# =============================================================================
#
# One parameter dataclass per tool intent.  Together they form a tagged
# union: the dispatcher picks the variant from the tool name, then calls
# its from_arguments() to validate the loosely-typed argument mapping ONCE,
# at the boundary.  After that, the query builder only ever sees clean
# Optional[str] fields and an int offset.
#
# VALIDATION RULES (shared by every variant):
#   - A string field must be a str.  Empty strings count as "not given".
#   - offset must be a non-negative integer (JSON numbers and digit
#     strings are accepted).  Missing → 0.
#   - Unknown keys are ignored.
#   - Anything else raises ValidationError — no network call happens.
# =============================================================================

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from core.errors import ValidationError


# -----------------------------------------------------------------------------
# Boundary helpers
# -----------------------------------------------------------------------------
def _optional_str(arguments: Mapping[str, Any], name: str) -> Optional[str]:
    value = arguments.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {name} parameter: expected a string")
    return value or None


def _offset(arguments: Mapping[str, Any]) -> int:
    value = arguments.get("offset")
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValidationError("Invalid offset parameter: expected a number")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 0:
        raise ValidationError("Invalid offset parameter: expected a non-negative integer")
    return value


def _require_mapping(arguments: Any) -> Mapping[str, Any]:
    if arguments is None:
        return {}
    if not isinstance(arguments, Mapping):
        raise ValidationError("Tool arguments must be an object")
    return arguments


# -----------------------------------------------------------------------------
# search_drugs
# -----------------------------------------------------------------------------
@dataclass
class DrugSearchParams:
    """Filters for the drug search endpoint.

    company / indication / country / phase describe the drug's CURRENT
    development status; technology / drug_name / action are independent
    properties of the drug record.
    """

    query: Optional[str] = None
    company: Optional[str] = None
    indication: Optional[str] = None
    action: Optional[str] = None
    phase: Optional[str] = None              # "C3", "C3 OR PR", "Phase 2 Clinical"
    phase_terminated: Optional[str] = None   # last phase before NDR / DX
    technology: Optional[str] = None
    drug_name: Optional[str] = None
    country: Optional[str] = None
    offset: int = 0

    @classmethod
    def from_arguments(cls, arguments: Any) -> "DrugSearchParams":
        arguments = _require_mapping(arguments)
        return cls(
            query=_optional_str(arguments, "query"),
            company=_optional_str(arguments, "company"),
            indication=_optional_str(arguments, "indication"),
            action=_optional_str(arguments, "action"),
            phase=_optional_str(arguments, "phase"),
            phase_terminated=_optional_str(arguments, "phase_terminated"),
            technology=_optional_str(arguments, "technology"),
            drug_name=_optional_str(arguments, "drug_name"),
            country=_optional_str(arguments, "country"),
            offset=_offset(arguments),
        )


# -----------------------------------------------------------------------------
# search_companies
# -----------------------------------------------------------------------------
@dataclass
class CompanySearchParams:
    """Filters for the company search endpoint.

    deals_count and company_size are Range Expressions: "<20", ">50" or a
    bare number (meaning "greater than").  company_size is in billions USD.
    """

    query: Optional[str] = None
    company_name: Optional[str] = None
    hq_country: Optional[str] = None
    deals_count: Optional[str] = None
    indications: Optional[str] = None
    actions: Optional[str] = None
    technologies: Optional[str] = None
    company_size: Optional[str] = None
    status: Optional[str] = None
    offset: int = 0

    @classmethod
    def from_arguments(cls, arguments: Any) -> "CompanySearchParams":
        arguments = _require_mapping(arguments)
        return cls(
            query=_optional_str(arguments, "query"),
            company_name=_optional_str(arguments, "company_name"),
            hq_country=_optional_str(arguments, "hq_country"),
            deals_count=_optional_str(arguments, "deals_count"),
            indications=_optional_str(arguments, "indications"),
            actions=_optional_str(arguments, "actions"),
            technologies=_optional_str(arguments, "technologies"),
            company_size=_optional_str(arguments, "company_size"),
            status=_optional_str(arguments, "status"),
            offset=_offset(arguments),
        )


# -----------------------------------------------------------------------------
# search_deals
# -----------------------------------------------------------------------------
# The deal search fields are named exactly like the vendor's query fields,
# and each one becomes a "<field>:<value>" clause verbatim.  The order here
# is the order clauses appear in the query.
# -----------------------------------------------------------------------------
DEAL_SEARCH_FIELDS: tuple[str, ...] = (
    "dealDrugNamesAll",
    "indications",
    "technologies",
    "dealActionsPrimary",
    "dealType",
    "dealStatus",
    "dealTitleSummary",
    "dealPhaseHighestStart",
    "dealPhaseHighestNow",
    "dealDateStart",
    "dealDateEnd",
    "dealDateEventMostRecent",
    "dealValuePaidToPrincipalMin",
    "dealValuePaidToPrincipalMax",
    "dealValuePaidToPrincipalMaxDisclosureStatus",
    "dealValueReportedByPrincipalMin",
    "dealValueReportedByPrincipalMax",
    "dealValueReportedByPrincipalMaxDisclosureStatus",
    "dealTotalPaidMin",
    "dealTotalPaidMax",
    "dealTotalPaidDisclosureStatus",
    "dealUpfrontPaymentMin",
    "dealUpfrontPaymentMax",
    "dealUpfrontPaymentDisclosureStatus",
    "dealTerritoriesIncluded",
    "dealTerritoriesExcluded",
    "dealCompanyPrincipal",
    "dealCompanyPartner",
    "dealCompanyPrincipalHq",
)


@dataclass
class DealSearchParams:
    """Filters for the deal search endpoint, keyed by vendor field name."""

    query: Optional[str] = None
    filters: dict[str, str] = field(default_factory=dict)
    offset: int = 0

    @classmethod
    def from_arguments(cls, arguments: Any) -> "DealSearchParams":
        arguments = _require_mapping(arguments)
        filters = {}
        for name in DEAL_SEARCH_FIELDS:
            value = _optional_str(arguments, name)
            if value is not None:
                filters[name] = value
        return cls(
            query=_optional_str(arguments, "query"),
            filters=filters,
            offset=_offset(arguments),
        )


# -----------------------------------------------------------------------------
# explore_ontology
# -----------------------------------------------------------------------------
@dataclass
class OntologyParams:
    """Either an explicit (category, term) pair or one single-purpose field."""

    term: Optional[str] = None
    category: Optional[str] = None
    action: Optional[str] = None
    indication: Optional[str] = None
    company: Optional[str] = None
    drug_name: Optional[str] = None
    target: Optional[str] = None
    technology: Optional[str] = None

    @classmethod
    def from_arguments(cls, arguments: Any) -> "OntologyParams":
        arguments = _require_mapping(arguments)
        return cls(
            term=_optional_str(arguments, "term"),
            category=_optional_str(arguments, "category"),
            action=_optional_str(arguments, "action"),
            indication=_optional_str(arguments, "indication"),
            company=_optional_str(arguments, "company"),
            drug_name=_optional_str(arguments, "drug_name"),
            target=_optional_str(arguments, "target"),
            technology=_optional_str(arguments, "technology"),
        )


# -----------------------------------------------------------------------------
# get_drug / get_drug_swot / get_drug_financial / get_company
# -----------------------------------------------------------------------------
class RecordKind(str, Enum):
    DRUG = "drug"
    DRUG_SWOT = "drug_swot"
    DRUG_FINANCIAL = "drug_financial"
    COMPANY = "company"


@dataclass
class RecordLookup:
    kind: RecordKind
    id: str

    @classmethod
    def from_arguments(cls, kind: RecordKind, arguments: Any) -> "RecordLookup":
        arguments = _require_mapping(arguments)
        record_id = arguments.get("id")
        if isinstance(record_id, int) and not isinstance(record_id, bool):
            record_id = str(record_id)
        if not isinstance(record_id, str) or not record_id.strip():
            noun = "company" if kind is RecordKind.COMPANY else "drug"
            raise ValidationError(f"Invalid {noun} identifier")
        return cls(kind=kind, id=record_id.strip())


# -----------------------------------------------------------------------------
# ResultEnvelope — the uniform shape every tool returns
# -----------------------------------------------------------------------------
@dataclass
class ResultEnvelope:
    """{ content: [{ type: "text", text: <JSON> }], isError: bool }"""

    text: str
    is_error: bool = False

    @classmethod
    def from_response(cls, data: Any) -> "ResultEnvelope":
        return cls(text=json.dumps(data, indent=2))

    def to_dict(self) -> dict:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }
