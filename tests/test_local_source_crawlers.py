from datetime import date

import pytest

from grantflow.core.exceptions import FetchException
from grantflow.crawlers import source_directory, university_scholarships, website
from grantflow.crawlers.parsing import parse_amount_range, parse_date
from grantflow.crawlers.source_directory import SourceDirectoryCrawler
from grantflow.crawlers.university_scholarships import UniversityScholarshipsCrawler
from grantflow.crawlers.website import WebsiteCrawler
from grantflow.matching import MatchingCriteria

from fakes import FakeExtractor, FakeFetcher, FakeGateway


class TestSourceDirectory:
    async def test_profiles_without_state_are_skipped(self, student_profile):
        profile = {**student_profile, "state": None}
        gateway = FakeGateway([profile])
        await SourceDirectoryCrawler(gateway, FakeFetcher(), request_delay=0).run()
        assert gateway.opportunities == {}

    async def test_focus_driven_leads(self, nonprofit_profile):
        gateway = FakeGateway([nonprofit_profile])
        fetcher = FakeFetcher()

        result = await SourceDirectoryCrawler(gateway, fetcher, request_delay=0).run()

        assert result.opportunities_found == 3
        assert sorted(r["source_id"] for r in gateway.opportunities.values()) == [
            "kiwanis_ca_oakland",
            "rotary_ca_oakland",
            "uw_ca_oakland",
        ]
        assert fetcher.calls == []

        by_title = {
            gateway.opportunities[m["opportunity_id"]]["title"]: m
            for m in gateway.matches_for(nonprofit_profile["id"])
        }
        kiwanis = by_title["Kiwanis Club of Oakland, CA - Community Grants"]
        assert kiwanis["score"] == 60
        assert kiwanis["reasons"][-1] == "Focus aligns with Kiwanis Club priorities"
        united_way = by_title["United Way of Oakland, CA - Community Investment"]
        assert united_way["reasons"][-1] == "Nonprofit eligible for United Way funding"
        assert {m["category"] for m in by_title.values()} == {"local"}

    async def test_every_lead_without_focus_signals(self):
        profile = {"id": "0b8f5d62-7d1e-4f0a-9c3b-2a6e4d5f7081", "name": "Lakeside Arts", "state": "MN"}
        gateway = FakeGateway([profile])

        result = await SourceDirectoryCrawler(gateway, FakeFetcher(), request_delay=0).run()

        assert result.opportunities_found == 8
        community = gateway.by_source_id("cf_mn_state")
        assert community["title"] == "Community Foundation of MN - Local Grants"
        assert community["url"].startswith("https://www.google.com/search?q=community+foundation")

    async def test_failing_lead_type_does_not_stop_the_others(self, monkeypatch):
        def broken(*args):
            raise KeyError("club")

        monkeypatch.setattr(source_directory, "service_club_candidate", broken)
        profile = {"id": "0b8f5d62-7d1e-4f0a-9c3b-2a6e4d5f7081", "name": "Lakeside Arts", "state": "MN"}
        gateway = FakeGateway([profile])

        result = await SourceDirectoryCrawler(gateway, FakeFetcher(), request_delay=0).run()

        assert result.success
        assert result.opportunities_found == 5
        assert gateway.by_source_id("cf_mn_state") is not None

    def test_local_ids_are_slugged(self):
        candidate = source_directory.service_club_candidate("lions", "CA", "San Jose")
        assert candidate.source_id == "lions_ca_san_jose"

    def test_club_focus_overlap(self):
        causes = source_directory.SERVICE_CLUBS["lions"][1]
        assert source_directory.club_focus_matches(MatchingCriteria(focus_areas=("Childhood Cancer Research",)), causes)
        assert not source_directory.club_focus_matches(MatchingCriteria(focus_areas=("arts",)), causes)


FASTWEB_PAGE = """
<html><body>
  <div class="scholarship-card">
    <h3>STEM Futures Scholarship</h3>
    <span class="amount">$1,000 - $5,000</span>
    <span class="deadline">March 1, 2027</span>
    <p class="description">For students pursuing engineering.</p>
    <div class="eligibility">First-generation  Hispanic students</div>
    <a href="https://www.fastweb.com/s/stem-futures">Apply</a>
  </div>
  <div class="scholarship-card"><span class="amount">$500</span></div>
</body></html>
"""


class TestUniversityScholarships:
    def test_parse_listings_uses_first_matching_selector(self):
        html = '<div class="scholarship-result"><h2>Legacy Award</h2><span class="award">$2,500</span></div>'
        (listing,) = university_scholarships.parse_listings(html, "Cappex")
        assert listing["title"] == "Legacy Award"
        assert listing["amount"] == "$2,500"
        assert listing["sponsor"] == "Cappex"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("$1,000 - $5,000", (1000.0, 5000.0)),
            ("$2,500", (2500.0, 2500.0)),
            ("Full tuition", (10000.0, 50000.0)),
            ("Varies", None),
            (None, None),
        ],
    )
    def test_amount_ranges(self, text, expected):
        assert parse_amount_range(text) == expected

    def test_deadline_formats(self):
        assert parse_date("March 1, 2027") == date(2027, 3, 1)
        assert parse_date("2027-03-01") == date(2027, 3, 1)
        assert parse_date("Rolling") is None

    async def test_non_students_are_skipped(self, nonprofit_profile):
        fetcher = FakeFetcher()
        await UniversityScholarshipsCrawler(FakeGateway([nonprofit_profile]), fetcher, request_delay=0).run()
        assert fetcher.calls == []

    async def test_listings_and_target_colleges(self, student_profile):
        gateway = FakeGateway([student_profile])
        fetcher = FakeFetcher({"https://www.fastweb.com/college-scholarships": FASTWEB_PAGE})

        result = await UniversityScholarshipsCrawler(gateway, fetcher, request_delay=0).run()

        assert result.success
        assert result.opportunities_found == 2
        assert len(fetcher.calls) == len(university_scholarships.SCHOLARSHIP_SOURCES)
        assert fetcher.calls[0][1] == {"state": "TX", "major": "Engineering"}

        stem = next(r for r in gateway.opportunities.values() if r["title"] == "STEM Futures Scholarship")
        assert stem["source_id"].startswith("scholarship_Fastweb_")
        assert (stem["amount_min"], stem["amount_max"]) == (1000.0, 5000.0)
        assert stem["deadline"] == date(2027, 3, 1)
        assert stem["url"] == "https://www.fastweb.com/s/stem-futures"

        rice = next(r for r in gateway.opportunities.values() if r["sponsor"] == "Rice University")
        assert rice["source_id"].startswith("univ_")
        assert rice["amount_min"] == 1000

        scores = {
            gateway.opportunities[m["opportunity_id"]]["title"]: (m["score"], m["reasons"])
            for m in gateway.matches_for(student_profile["id"])
        }
        assert scores["STEM Futures Scholarship"] == (75, ["First-generation student eligible", "Demographic match"])
        assert scores["Rice University - Institutional Scholarships"] == (50, [])

    async def test_listing_that_raises_is_skipped(self, student_profile, monkeypatch):
        def broken(scholarship, source_name):
            raise ValueError("bad listing")

        monkeypatch.setattr(university_scholarships, "scholarship_to_candidate", broken)
        gateway = FakeGateway([student_profile])
        fetcher = FakeFetcher({"https://www.fastweb.com/college-scholarships": FASTWEB_PAGE})

        result = await UniversityScholarshipsCrawler(gateway, fetcher, request_delay=0).run()

        assert result.success
        assert result.opportunities_found == 1
        (record,) = gateway.opportunities.values()
        assert record["sponsor"] == "Rice University"


LISTING_PAGE = """
<html><body>
  <nav><h2>Grant news</h2></nav>
  <div class="grant-item">
    <h3>Music Teachers Grant</h3>
    <p class="description">Funding for music teachers in public schools.</p>
    <span class="amount">Up to $2,500</span>
    <span class="deadline">2027-05-01</span>
  </div>
  <div class="grant-item">
    <h3>Robotics Challenge Award</h3>
    <p class="description">Funding for robotics clubs.</p>
  </div>
</body></html>
"""

PLAIN_PAGE = """
<html><head><meta property="og:site_name" content="Riverbend Fund"></head><body>
  <nav><h2>Grant news</h2></nav>
  <section>
    <h2>Community Grant Program</h2>
    <p>Small grants for neighborhood projects.</p>
  </section>
  <section><h2>About us</h2><p>We are a family fund.</p></section>
</body></html>
"""

PAGE_URL = "https://funds.example.org/apply"


class TestWebsite:
    async def test_structural_extraction_skips_ai(self):
        gateway = FakeGateway()
        extractor = FakeExtractor([{"title": "Should not be used"}])
        crawler = WebsiteCrawler(gateway, FakeFetcher({PAGE_URL: LISTING_PAGE}), extractor, request_delay=0)

        opportunities = await crawler.crawl_url(PAGE_URL)

        assert [o["title"] for o in opportunities] == ["Music Teachers Grant", "Robotics Challenge Award"]
        assert opportunities[0]["amount_min"] == 2500.0
        assert extractor.calls == []
        assert len(gateway.opportunities) == 2
        record = next(r for r in gateway.opportunities.values() if r["title"] == "Music Teachers Grant")
        assert record["sponsor"] == "funds.example.org"
        assert record["deadline"] == date(2027, 5, 1)
        assert record["url"] == PAGE_URL
        assert gateway.matches == {}

    async def test_ai_extraction_when_no_listing_markup(self):
        gateway = FakeGateway()
        extractor = FakeExtractor([{"title": "Green Futures Grant", "amount_max": 5000, "deadline": "2027-06-30"}])
        crawler = WebsiteCrawler(gateway, FakeFetcher({PAGE_URL: PLAIN_PAGE}), extractor, request_delay=0)

        opportunities = await crawler.crawl_url(PAGE_URL)

        assert opportunities == [{"title": "Green Futures Grant", "amount_max": 5000, "deadline": "2027-06-30"}]
        ((url, text),) = extractor.calls
        assert url == PAGE_URL
        assert "Small grants for neighborhood projects." in text
        assert "Grant news" not in text
        (record,) = gateway.opportunities.values()
        assert record["amount_max"] == 5000.0

    async def test_heading_fallback(self):
        gateway = FakeGateway()
        crawler = WebsiteCrawler(gateway, FakeFetcher({PAGE_URL: PLAIN_PAGE}), FakeExtractor(), request_delay=0)

        opportunities = await crawler.crawl_url(PAGE_URL)

        assert len(opportunities) == 1
        assert opportunities[0]["title"] == "Community Grant Program"
        assert opportunities[0]["sponsor"] == "Riverbend Fund"
        assert opportunities[0]["description"] == "Small grants for neighborhood projects."

    async def test_scored_crawl_for_profile(self):
        profile_id = "5c9e2f1a-3b4d-4e6f-8a7b-9c0d1e2f3a4b"
        gateway = FakeGateway()
        crawler = WebsiteCrawler(gateway, FakeFetcher({PAGE_URL: LISTING_PAGE}), FakeExtractor(), request_delay=0)

        opportunities = await crawler.crawl_url(PAGE_URL, MatchingCriteria(keywords=("music",)), profile_id)

        assert len(opportunities) == 2
        (record,) = gateway.opportunities.values()
        assert record["title"] == "Music Teachers Grant"
        (match,) = gateway.matches_for(profile_id)
        assert match["category"] == "custom"
        assert match["score"] == 33

    async def test_loosely_typed_ai_fields_are_coerced(self):
        profile_id = "6d0e3f2b-4c5e-4f70-9b8c-0d1e2f3a4b5c"
        gateway = FakeGateway()
        extractor = FakeExtractor([{
            "title": "Literacy Grant",
            "description": ["Reading support", "for grade schools"],
            "sponsor": ["Riverbend Fund"],
            "eligibility": 501,
            "focus_areas": ["literacy", None, 3],
        }])
        crawler = WebsiteCrawler(gateway, FakeFetcher({PAGE_URL: PLAIN_PAGE}), extractor, request_delay=0)

        await crawler.crawl_url(PAGE_URL, MatchingCriteria(keywords=("reading",)), profile_id)

        (record,) = gateway.opportunities.values()
        assert record["description"] == "Reading support for grade schools"
        assert record["sponsor"] == "Riverbend Fund"
        assert record["eligibility"] == "501"
        assert record["focus_areas"] == ["literacy", "3"]
        (match,) = gateway.matches_for(profile_id)
        assert match["score"] == 33

    async def test_extracted_item_that_raises_is_skipped(self, monkeypatch):
        convert = website.to_candidate

        def flaky(opportunity, page_url):
            if opportunity["title"] == "Broken":
                raise ValueError("bad item")
            return convert(opportunity, page_url)

        monkeypatch.setattr(website, "to_candidate", flaky)
        gateway = FakeGateway()
        extractor = FakeExtractor([{"title": "Broken"}, {"title": "Green Futures Grant"}])
        crawler = WebsiteCrawler(gateway, FakeFetcher({PAGE_URL: PLAIN_PAGE}), extractor, request_delay=0)

        opportunities = await crawler.crawl_url(PAGE_URL)

        assert len(opportunities) == 2
        (record,) = gateway.opportunities.values()
        assert record["title"] == "Green Futures Grant"

    async def test_fetch_failure_propagates(self):
        crawler = WebsiteCrawler(FakeGateway(), FakeFetcher(), FakeExtractor(), request_delay=0)
        with pytest.raises(FetchException):
            await crawler.crawl_url(PAGE_URL)

    async def test_scheduled_run_does_nothing(self, nonprofit_profile):
        fetcher = FakeFetcher()
        crawler = WebsiteCrawler(FakeGateway([nonprofit_profile]), fetcher, FakeExtractor(), request_delay=0)
        result = await crawler.run()
        assert result.success
        assert fetcher.calls == []

    def test_source_ids_are_stable_per_page_and_title(self):
        first = website.to_candidate({"title": "Arts Grant"}, PAGE_URL)
        second = website.to_candidate({"title": " Arts  Grant "}, PAGE_URL)
        other_page = website.to_candidate({"title": "Arts Grant"}, "https://other.example.org")
        assert first.source_id == second.source_id
        assert first.source_id != other_page.source_id
