from uuid import uuid4

from grantflow.crawlers.base import CrawlerRuntime
from grantflow.crawlers.persistence import save_match, save_opportunity, save_scored
from grantflow.matching import MatchCategory, MatchResult, OpportunityCandidate

from fakes import FakeGateway


def candidate(**overrides) -> OpportunityCandidate:
    values = {"source": "grants_gov", "source_id": "ED-2027-01", "title": "Literacy Grant"}
    values.update(overrides)
    return OpportunityCandidate(**values)


def runtime() -> CrawlerRuntime:
    return CrawlerRuntime(name="grants_gov", description="Federal grants")


async def test_save_opportunity_counts_only_inserts():
    gateway = FakeGateway()
    state = runtime()

    first = await save_opportunity(state, gateway, candidate())
    second = await save_opportunity(state, gateway, candidate(title="Literacy Grant (amended)"))

    assert first == second
    assert state.opportunities_found == 1
    assert len(gateway.opportunities) == 1
    assert gateway.opportunities[first]["title"] == "Literacy Grant (amended)"


async def test_save_opportunity_skips_missing_identity():
    gateway = FakeGateway()
    assert await save_opportunity(runtime(), gateway, candidate(source_id="")) is None
    assert gateway.opportunities == {}


async def test_save_opportunity_swallows_storage_errors():
    gateway = FakeGateway()
    gateway.fail_writes = True
    state = runtime()

    assert await save_opportunity(state, gateway, candidate()) is None
    assert state.opportunities_found == 0


async def test_save_match_writes_once_per_pair():
    gateway = FakeGateway()
    profile_id = str(uuid4())
    item = candidate()
    await save_opportunity(runtime(), gateway, item)

    assert await save_match(gateway, profile_id, item, MatchResult(score=80), MatchCategory.FEDERAL)
    assert not await save_match(gateway, profile_id, item, MatchResult(score=95), MatchCategory.FEDERAL)

    matches = gateway.matches_for(profile_id)
    assert len(matches) == 1
    assert matches[0]["score"] == 80
    assert matches[0]["category"] == "federal"


async def test_save_match_requires_profile_and_stored_opportunity():
    gateway = FakeGateway()
    item = candidate()
    assert not await save_match(gateway, None, item, MatchResult(score=80), MatchCategory.FEDERAL)
    assert not await save_match(gateway, str(uuid4()), item, MatchResult(score=80), MatchCategory.FEDERAL)
    assert gateway.matches == {}


async def test_save_scored_threshold_is_inclusive():
    gateway = FakeGateway()
    profile_id = str(uuid4())
    state = runtime()

    below = await save_scored(
        state, gateway, profile_id, candidate(source_id="low"), MatchResult(score=29), 30, MatchCategory.FEDERAL
    )
    at = await save_scored(
        state, gateway, profile_id, candidate(source_id="edge"), MatchResult(score=30), 30, MatchCategory.FEDERAL
    )

    assert not below
    assert at
    assert gateway.by_source_id("low") is None
    assert gateway.by_source_id("edge") is not None
    assert len(gateway.matches_for(profile_id)) == 1
