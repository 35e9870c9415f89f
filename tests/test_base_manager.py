import pytest

from grantflow.core.exceptions import CrawlerNotFoundException
from grantflow.crawlers import CrawlerManager, CrawlerStatus, build_manager

from fakes import FailingCrawler, FakeExtractor, FakeGateway, RecordingCrawler


@pytest.fixture
def gateway(nonprofit_profile, student_profile):
    return FakeGateway([nonprofit_profile, student_profile])


class TestCrawlerRun:
    async def test_successful_run(self, gateway, fetcher):
        crawler = RecordingCrawler(gateway, fetcher)
        assert crawler.runtime.status == CrawlerStatus.IDLE

        result = await crawler.run()

        assert result.success
        assert result.profiles == 2
        assert crawler.status_during_crawl == CrawlerStatus.RUNNING
        assert crawler.runtime.status == CrawlerStatus.COMPLETED
        assert crawler.runtime.last_run is not None
        assert result.to_dict() == {"success": True, "opportunities_found": 0, "profiles": 2}

    async def test_run_restricted_to_profile_ids(self, gateway, fetcher, student_profile):
        crawler = RecordingCrawler(gateway, fetcher)
        await crawler.run([student_profile["id"]])
        assert crawler.seen == [student_profile["id"]]

    async def test_failed_run_is_recorded_not_raised(self, gateway, fetcher):
        crawler = FailingCrawler(gateway, fetcher)

        result = await crawler.run()

        assert not result.success
        assert result.error == "source exploded"
        assert result.to_dict() == {"success": False, "error": "source exploded"}
        assert crawler.runtime.status == CrawlerStatus.ERROR
        assert crawler.runtime.last_error == "source exploded"

    async def test_start_resets_counter(self, gateway, fetcher):
        crawler = RecordingCrawler(gateway, fetcher)
        crawler.runtime.opportunities_found = 7
        result = await crawler.run()
        assert result.opportunities_found == 0

    def test_snapshot(self, gateway, fetcher):
        snapshot = RecordingCrawler(gateway, fetcher).runtime.snapshot()
        assert snapshot == {
            "name": "recording",
            "description": "Records the profiles it receives",
            "status": "idle",
            "last_run": None,
            "last_error": None,
            "opportunities_found": 0,
        }


class TestCrawlerManager:
    @pytest.fixture
    def manager(self, gateway, fetcher):
        manager = CrawlerManager()
        manager.register(FailingCrawler(gateway, fetcher))
        manager.register(RecordingCrawler(gateway, fetcher))
        return manager

    def test_registry(self, manager):
        assert manager.get("recording").name == "recording"
        assert manager.get("missing") is None
        assert [s["name"] for s in manager.get_status()] == ["failing", "recording"]

    def test_get_or_raise_unknown(self, manager):
        with pytest.raises(CrawlerNotFoundException) as exc_info:
            manager.get_or_raise("missing")
        assert exc_info.value.status_code == 404
        assert exc_info.value.error_code == "CRAWLER_NOT_FOUND"

    async def test_run_crawler_unknown(self, manager):
        with pytest.raises(CrawlerNotFoundException):
            await manager.run_crawler("missing")

    async def test_run_all_continues_after_failure(self, manager):
        results = await manager.run_all()

        assert list(results) == ["failing", "recording"]
        assert not results["failing"].success
        assert results["recording"].success
        assert manager.get("recording").runtime.status == CrawlerStatus.COMPLETED

    async def test_run_selected_skips_unknown_names(self, manager, student_profile):
        results = await manager.run_selected(["missing", "recording"], [student_profile["id"]])

        assert list(results) == ["recording"]
        assert manager.get("recording").seen == [student_profile["id"]]
        assert manager.get("failing").runtime.status == CrawlerStatus.IDLE


def test_build_manager_registers_every_source(fetcher):
    manager = build_manager(FakeGateway(), fetcher, FakeExtractor())
    assert [c.name for c in manager.get_all()] == [
        "grants_gov",
        "benefits_gov",
        "dsire",
        "irs_990",
        "source_directory",
        "university_scholarships",
        "website",
    ]
