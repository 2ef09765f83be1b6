# =============================================================================
# core/query_builder.py  —  Cortellis Query & URL Construction
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns one validated params object (core/models.py) into a fully encoded
#   request URL for the Cortellis REST API.  No I/O, no clock, no randomness:
#   the same params always produce the same URL.
#
# THE QUERY LANGUAGE IN ONE MINUTE:
#   A search query is a list of clauses joined by " AND ":
#
#       companiesPrimary:"Novo Nordisk" AND phaseHighest::C3
#
#   - "field:value"   matches descriptive text
#   - "field::CODE"   matches a short code (C3, PR, DX, ...)
#   - "LINKED(...)"   correlates clauses on ONE sub-record (e.g. a single
#                     development-status entry) instead of anywhere in the
#                     drug record
#   - "RANGE(>N)"     numeric comparison
#   - "*"             everything (used when no filter is given)
#
# RAW QUERY ESCAPE HATCH:
#   Every search intent accepts a raw `query`.  When it is non-empty it is
#   sent verbatim and ALL structured fields are ignored.
# =============================================================================

import math
import re
from typing import Optional
from urllib.parse import quote

from core.config import DEFAULT_BASE_URL
from core.errors import ValidationError
from core.models import (
    DEAL_SEARCH_FIELDS,
    CompanySearchParams,
    DealSearchParams,
    DrugSearchParams,
    OntologyParams,
    RecordKind,
)

WILDCARD = "*"
PAGE_SIZE = 100

_DRUG_SEARCH_PATH = "drugs-v2/drug/search"
_COMPANY_SEARCH_PATH = "company-v2/company/search"
_DEAL_SEARCH_PATH = "deals-v2/deal/search"
_ONTOLOGY_PATH = "ontologies-v1/taxonomy"

_RECORD_PATHS: dict[RecordKind, str] = {
    RecordKind.DRUG: "drugs-v2/drug",
    RecordKind.DRUG_SWOT: "drugs-v2/drug/SWOTs",
    RecordKind.DRUG_FINANCIAL: "drugs-v2/financial",
    RecordKind.COMPANY: "company-v2/company",
}

# Ontology category → taxonomy path segment.
ONTOLOGY_CATEGORIES: dict[str, str] = {
    "action": "action",
    "indication": "indication",
    "company": "company",
    "drug_name": "drug",
    "target": "target",
    "technology": "technology",
}

# First non-empty field wins when no explicit (category, term) pair is given.
ONTOLOGY_PRIORITY: tuple[str, ...] = (
    "action",
    "indication",
    "company",
    "drug_name",
    "target",
    "technology",
)

_SHORT_CODE = re.compile(r"^[A-Z0-9]+$")
_PHASE_OPERATOR = re.compile(r"\s+(OR|AND)\s+")
_PHASE_SPLIT = re.compile(r"\s+(?:OR|AND)\s+")

# Leading-number prefixes: "2.5" → 2 as an integer, "50 deals" → 50,
# "1_0" → 1.  Trailing text after the number is ignored.
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LEADING_DECIMAL = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def encode_component(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(value, safe="-_.!~*'()")


# =============================================================================
# Phase Expressions
# =============================================================================
def _phase_token(field: str, token: str, quote_descriptive: bool) -> str:
    if _SHORT_CODE.match(token):
        return f"{field}::{token}"
    if quote_descriptive:
        return f'{field}:"{token}"'
    return f"{field}:{token}"


def expand_phase(field: str, expression: str, quote_descriptive: bool = False) -> str:
    """Expand a phase expression into one clause.

    "C3"               → phaseHighest::C3
    "C3 OR PR"         → (phaseHighest::C3 OR phaseHighest::PR)
    "Phase 2 Clinical" → phaseHighest:Phase 2 Clinical

    Descriptive tokens are quoted when quote_descriptive is set (used for
    phaseTerminated).  The operator is the first OR/AND found in the
    unsplit expression; OR if none is found.
    """
    tokens = [token.strip() for token in _PHASE_SPLIT.split(expression)]
    if len(tokens) == 1:
        return _phase_token(field, tokens[0], quote_descriptive)

    match = _PHASE_OPERATOR.search(expression)
    operator = match.group(1) if match else "OR"
    parts = [_phase_token(field, token, quote_descriptive) for token in tokens]
    return "(" + f" {operator} ".join(parts) + ")"


# =============================================================================
# Range Expressions
# =============================================================================
def _split_range(expression: str) -> tuple[str, str]:
    expression = expression.strip()
    if expression.startswith("<"):
        return "<", expression[1:].strip()
    if expression.startswith(">"):
        return ">", expression[1:].strip()
    return ">", expression


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


def expand_range(field: str, expression: str, scale: Optional[float] = None) -> Optional[str]:
    """Expand "<N" / ">N" / "N" into field:RANGE(<op><value>).

    Without `scale` the leading integer is used (deal counts).  With
    `scale` the leading decimal is multiplied by it (company size, billions).
    Returns None when the value does not start with a number, so the clause
    is dropped.
    """
    operator, raw = _split_range(expression)
    if scale is None:
        match = _LEADING_INT.match(raw)
        if match is None:
            return None
        return f"{field}:RANGE({operator}{int(match.group(1))})"

    match = _LEADING_DECIMAL.match(raw)
    if match is None:
        return None
    number = float(match.group(1))
    if not math.isfinite(number):
        return None
    return f"{field}:RANGE({operator}{_format_number(number * scale)})"


def _join(clauses: list[str]) -> str:
    return " AND ".join(clauses) if clauses else WILDCARD


# =============================================================================
# Drugs
# =============================================================================
def build_drug_query(params: DrugSearchParams) -> str:
    if params.query:
        return params.query

    clauses = []
    if params.company:
        clauses.append(f'companiesPrimary:"{params.company}"')
    if params.indication:
        clauses.append(f"indicationsPrimary:{params.indication}")
    if params.action:
        clauses.append(f"actionsPrimary:{params.action}")
    if params.phase:
        clauses.append(expand_phase("phaseHighest", params.phase))
    if params.phase_terminated:
        clauses.append(expand_phase("phaseTerminated", params.phase_terminated, quote_descriptive=True))
    if params.technology:
        clauses.append(f"technologies:{params.technology}")
    if params.drug_name:
        clauses.append(f"drugNamesAll:{params.drug_name}")
    if params.country:
        clauses.append(f"LINKED(developmentStatusCountryId:{params.country})")
    return _join(clauses)


def build_drug_search_url(params: DrugSearchParams, base_url: str = DEFAULT_BASE_URL) -> str:
    query = build_drug_query(params)
    return (
        f"{base_url}/{_DRUG_SEARCH_PATH}?query={encode_component(query)}"
        f"&offset={params.offset}&filtersEnabled=false&fmt=json&hits={PAGE_SIZE}"
    )


# =============================================================================
# Companies
# =============================================================================
def build_company_query(params: CompanySearchParams) -> str:
    if params.query:
        return params.query

    clauses = []
    if params.company_name:
        clauses.append(f"companyNameDisplay:{params.company_name}")
    if params.hq_country:
        clauses.append(f"companyHqCountry:{params.hq_country}")
    if params.deals_count:
        clause = expand_range("companyDealsCount", params.deals_count)
        if clause:
            clauses.append(clause)
    if params.indications:
        clauses.append(f"companyIndicationsKey:{params.indications}")
    if params.actions:
        clauses.append(f"companyActionsKey:{params.actions}")
    if params.technologies:
        clauses.append(f"companyTechnologiesKey:{params.technologies}")
    if params.company_size:
        # Input is in billions USD; the API wants the raw market cap.
        clause = expand_range("companyCategoryCompanySize", params.company_size, scale=1_000_000_000)
        if clause:
            clauses.append(clause)
    if params.status:
        clauses.append(f"LINKED(statusLinked:{params.status})")
    return _join(clauses)


def build_company_search_url(params: CompanySearchParams, base_url: str = DEFAULT_BASE_URL) -> str:
    query = build_company_query(params)
    return (
        f"{base_url}/{_COMPANY_SEARCH_PATH}?query={encode_component(query)}"
        f"&offset={params.offset}&hits={PAGE_SIZE}&fmt=json"
    )


# =============================================================================
# Deals
# =============================================================================
def build_deal_query(params: DealSearchParams) -> str:
    if params.query:
        return params.query

    clauses = [
        f"{name}:{params.filters[name]}"
        for name in DEAL_SEARCH_FIELDS
        if params.filters.get(name)
    ]
    return _join(clauses)


def build_deal_search_url(params: DealSearchParams, base_url: str = DEFAULT_BASE_URL) -> str:
    query = build_deal_query(params)
    return (
        f"{base_url}/{_DEAL_SEARCH_PATH}?query={encode_component(query)}"
        f"&offset={params.offset}&filtersEnabled=false&fmt=json&hits={PAGE_SIZE}"
    )


# =============================================================================
# Ontology
# =============================================================================
def resolve_ontology_term(params: OntologyParams) -> tuple[str, str]:
    """Reduce the ontology params to exactly one (path segment, term) pair.

    1. category + term both given → use them.
    2. category given alone → the matching single-purpose field is the term.
    3. otherwise the first non-empty field in ONTOLOGY_PRIORITY wins.

    Raises:
        ValidationError: nothing resolves, or the category is unknown.
    """
    category, term = params.category, params.term

    if category and category not in ONTOLOGY_CATEGORIES:
        raise ValidationError(
            f"Invalid category '{category}'. Expected one of: {', '.join(ONTOLOGY_CATEGORIES)}"
        )
    if category and not term:
        term = getattr(params, category)

    if not (category and term):
        category, term = None, None
        for name in ONTOLOGY_PRIORITY:
            value = getattr(params, name)
            if value:
                category, term = name, value
                break

    if not category or not term:
        raise ValidationError("Category and search term are required")
    return ONTOLOGY_CATEGORIES[category], term


def build_ontology_search_url(params: OntologyParams, base_url: str = DEFAULT_BASE_URL) -> str:
    segment, term = resolve_ontology_term(params)
    return (
        f"{base_url}/{_ONTOLOGY_PATH}/{segment}/search/{encode_component(term)}"
        f"?showDuplicates=1&hitSynonyms=1&fmt=json"
    )


# =============================================================================
# Single records
# =============================================================================
def build_record_url(kind: RecordKind, record_id: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{base_url}/{_RECORD_PATHS[kind]}/{encode_component(record_id)}?fmt=json"
