# =============================================================================
# core/cortellis.py  —  Tool Operations (build → fetch → wrap)
# =============================================================================
#
# Every operation here has the same three steps:
#   1. core/query_builder.py turns the params into a URL
#   2. core/digest_auth.py fetches it with Digest authentication
#   3. the raw JSON is wrapped in a ResultEnvelope
#
# The operations take already-validated params objects.  Validation of raw
# arguments happens in tools/registry.py (or the REST facade) before we get
# here.
# =============================================================================

import logging

from core.config import Settings
from core.digest_auth import DigestAuthClient
from core.models import (
    CompanySearchParams,
    DealSearchParams,
    DrugSearchParams,
    OntologyParams,
    RecordLookup,
    ResultEnvelope,
)
from core.query_builder import (
    build_company_search_url,
    build_deal_search_url,
    build_drug_search_url,
    build_ontology_search_url,
    build_record_url,
)

log = logging.getLogger(__name__)


class CortellisService:
    """The eight tool operations, bound to one DigestAuthClient."""

    def __init__(self, client: DigestAuthClient, base_url: str):
        self.client = client
        self.base_url = base_url

    @classmethod
    def from_settings(cls, settings: Settings, transport=None) -> "CortellisService":
        return cls(DigestAuthClient(settings, transport=transport), settings.base_url)

    async def _fetch(self, url: str) -> ResultEnvelope:
        data = await self.client.fetch_json(url)
        return ResultEnvelope.from_response(data)

    async def search_drugs(self, params: DrugSearchParams) -> ResultEnvelope:
        return await self._fetch(build_drug_search_url(params, self.base_url))

    async def search_companies(self, params: CompanySearchParams) -> ResultEnvelope:
        return await self._fetch(build_company_search_url(params, self.base_url))

    async def search_deals(self, params: DealSearchParams) -> ResultEnvelope:
        return await self._fetch(build_deal_search_url(params, self.base_url))

    async def explore_ontology(self, params: OntologyParams) -> ResultEnvelope:
        # Resolving the category happens before any network call.
        url = build_ontology_search_url(params, self.base_url)
        return await self._fetch(url)

    async def get_record(self, lookup: RecordLookup) -> ResultEnvelope:
        log.debug("Fetching %s record %s", lookup.kind.value, lookup.id)
        return await self._fetch(build_record_url(lookup.kind, lookup.id, self.base_url))
