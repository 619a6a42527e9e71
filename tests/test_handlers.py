import requests

from game_import.importing.handlers.scrape import (
    DirectScraper,
    FirecrawlScraper,
    html_to_text,
    read_page_metadata,
)
from game_import.importing.handlers.search import TavilyGameSearch
from tests.fakes import FakeResponse, FakeSession


def test_read_page_metadata_prefers_og_tags():
    html = (
        "<html><head><title>Fallback</title>"
        '<meta property="og:title" content=" Azul | Board Game | BoardGameGeek ">'
        '<meta name="og:image" content="https://cf.geekdo-images.com/a/pic1.jpg">'
        "</head></html>"
    )
    meta = read_page_metadata(html)
    assert meta["title"] == "Azul | Board Game | BoardGameGeek"
    assert meta["image"] == "https://cf.geekdo-images.com/a/pic1.jpg"
    assert read_page_metadata("<title>Only Title</title>") == {"title": "Only Title"}


def test_html_to_text_drops_scripts():
    text = html_to_text("<body><script>var x = 1;</script><h1>Azul</h1><p>Tiles</p></body>")
    assert text == "Azul\nTiles"


def test_firecrawl_scrape():
    session = FakeSession([FakeResponse(200, {"success": True, "data": {"markdown": "# Azul", "rawHtml": "<h1>Azul</h1>"}})])
    scraper = FirecrawlScraper("fc-key", endpoint="https://firecrawl.example/v1/scrape", session=session)

    result = scraper.scrape("https://example.com/azul")

    assert result.value.markdown == "# Azul"
    assert result.value.raw_html == "<h1>Azul</h1>"
    call = session.calls[0]
    assert call["json"] == {"url": "https://example.com/azul", "formats": ["markdown", "rawHtml"], "onlyMainContent": True}
    assert call["headers"]["Authorization"] == "Bearer fc-key"


def test_firecrawl_failures():
    session = FakeSession([FakeResponse(403, "blocked"), FakeResponse(200, {"data": {}}), requests.Timeout("slow")])
    scraper = FirecrawlScraper("fc-key", session=session)

    assert scraper.scrape("https://example.com/a").reason == "Scrape failed: 403"
    assert scraper.scrape("https://example.com/b").is_miss
    assert scraper.scrape("https://example.com/c").is_failed


def test_direct_scraper_derives_text():
    session = FakeSession([FakeResponse(200, "<html><body><p>Catan</p></body></html>"), FakeResponse(404, "")])
    scraper = DirectScraper(session=session)

    page = scraper.scrape("https://example.com/catan").value
    assert page.markdown == "Catan"
    assert scraper.scrape("https://example.com/gone").reason == "Scrape failed: 404"


class _FakeTavily:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.kwargs = None

    def search(self, query, **kwargs):
        self.kwargs = dict(kwargs, query=query)
        if self.error:
            raise self.error
        return {"results": self.results}


def test_tavily_reads_first_game_link():
    client = _FakeTavily([
        {"url": "https://boardgamegeek.com/thread/1"},
        {"url": "https://boardgamegeek.com/boardgame/167791/terraforming-mars"},
    ])

    result = TavilyGameSearch(client=client).find_id("Terraforming Mars")

    assert result.value == "167791"
    assert client.kwargs["include_domains"] == ["boardgamegeek.com"]
    assert client.kwargs["query"] == '"Terraforming Mars" board game'


def test_tavily_miss_and_error():
    assert TavilyGameSearch(client=_FakeTavily([])).find_id("Nope").is_miss
    assert TavilyGameSearch(client=_FakeTavily(error=RuntimeError("quota"))).find_id("Nope").is_failed


def test_firecrawl_unexpected_json_shape_fails():
    session = FakeSession([FakeResponse(200, "[1, 2]"), FakeResponse(200, {"data": "oops"})])
    scraper = FirecrawlScraper("fc-key", session=session)

    assert scraper.scrape("https://example.com/a").reason == "Scrape failed: invalid response"
    assert scraper.scrape("https://example.com/b").is_failed
