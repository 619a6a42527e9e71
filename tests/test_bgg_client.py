import pytest

from game_import.error_handling import CollectionError, CollectionTimeoutError
from game_import.importing.handlers.bgg import (
    BGGClient,
    clean_page_title,
    extract_link_id,
    parse_bgg_id,
    parse_thing_html,
)
from game_import.models import ScrapedPage
from tests.fakes import FakeResponse, FakeScraper, FakeSession, bgg_page_html

API = "https://boardgamegeek.com/xmlapi2"
FALLBACK_API = "https://api.geekdo.com/xmlapi2"

COLLECTION_XML = """<?xml version="1.0" encoding="utf-8"?>
<items totalitems="2">
  <item objecttype="thing" objectid="13" subtype="boardgame"><name sortindex="1">Catan</name></item>
  <item objecttype="thing" objectid="266192" subtype="boardgame"><name sortindex="1"> Wingspan </name></item>
  <item objecttype="thing" subtype="boardgame"><name sortindex="1">No Id</name></item>
</items>"""

THING_XML = """<?xml version="1.0" encoding="utf-8"?>
<items>
  <item type="boardgame" id="266192">
    <image>https://cf.geekdo-images.com/yLZJCVLlIx4c7eJEWUNJ7w__original/img/x=/pic4458123.jpg</image>
    <name type="primary" sortindex="1" value="Wingspan"/>
    <name type="alternate" sortindex="1" value="Flügelschlag"/>
    <minplayers value="1"/>
    <maxplayers value="5"/>
    <playingtime value="70"/>
    <minage value="10"/>
  </item>
</items>"""


def _client(responses, scraper=None, sleeps=None):
    session = FakeSession(responses)
    client = BGGClient(
        session=session,
        scraper=scraper,
        api_urls=[API, FALLBACK_API],
        token=None,
        sleep=(sleeps.append if sleeps is not None else lambda _: None),
        max_attempts=5,
        retry_delay=3.0,
    )
    return client, session


def test_link_and_id_parsing():
    assert extract_link_id("https://boardgamegeek.com/boardgame/13/catan") == "13"
    assert extract_link_id("https://boardgamegeek.com/boardgameexpansion/325/seafarers") == "325"
    assert extract_link_id("https://boardgamegeek.com/geeklist/123") is None
    assert parse_bgg_id("266192") == "266192"
    assert parse_bgg_id(" id 42 ") == "42"
    assert parse_bgg_id("https://boardgamegeek.com/boardgame/13/catan") == "13"
    assert parse_bgg_id("catan") is None


def test_clean_page_title():
    assert clean_page_title("Catan | Board Game | BoardGameGeek") == "Catan"
    assert clean_page_title("Catan") == "Catan"
    assert clean_page_title(None) is None


def test_collection_polls_while_generating():
    sleeps = []
    client, session = _client(
        [FakeResponse(202, "<message>queued</message>"), FakeResponse(200, COLLECTION_XML)],
        sleeps=sleeps,
    )

    games = client.list_owned("alice")

    assert games == [{"id": "13", "name": "Catan"}, {"id": "266192", "name": "Wingspan"}]
    assert sleeps == [3.0]
    assert session.calls[0]["params"] == {"username": "alice", "own": 1, "excludesubtype": "boardgameexpansion"}


def test_collection_times_out_after_attempt_cap():
    sleeps = []
    client, session = _client([FakeResponse(202, "") for _ in range(5)], sleeps=sleeps)

    with pytest.raises(CollectionTimeoutError) as excinfo:
        client.list_owned("alice")

    assert excinfo.value.message == "BGG collection request timed out"
    assert excinfo.value.status_code == 504
    assert len(session.calls) == 5
    assert len(sleeps) == 5


def test_collection_failure_status():
    client, _ = _client([FakeResponse(500, "oops")])
    with pytest.raises(CollectionError) as excinfo:
        client.list_owned("alice")
    assert excinfo.value.message == "Failed to fetch collection: 500"


def test_collection_moves_to_next_host_when_blocked():
    client, session = _client([FakeResponse(403, ""), FakeResponse(200, COLLECTION_XML)])
    assert len(client.list_owned("alice")) == 2
    assert session.calls[0]["url"] == f"{API}/collection"
    assert session.calls[1]["url"] == f"{FALLBACK_API}/collection"


def test_collection_unparseable_body():
    client, _ = _client([FakeResponse(200, "<items><item>")])
    with pytest.raises(CollectionError):
        client.list_owned("alice")


def test_search_falls_back_to_fuzzy():
    client, session = _client([
        FakeResponse(200, '<items total="0"></items>'),
        FakeResponse(200, '<items total="1"><item type="boardgame" id="174430"/></items>'),
    ])

    result = client.find_id("Gloomhaven")

    assert result.is_found
    assert result.value == "174430"
    assert session.calls[0]["params"]["exact"] == 1
    assert "exact" not in session.calls[1]["params"]


def test_search_miss():
    client, _ = _client([FakeResponse(200, "<items/>"), FakeResponse(200, "<items/>")])
    assert client.find_id("No Such Game").is_miss


def test_thing_from_xml():
    client, _ = _client([FakeResponse(200, THING_XML)])

    result = client.get_thing("266192")

    thing = result.value
    assert thing.title == "Wingspan"
    assert thing.image_url == "https://cf.geekdo-images.com/yLZJCVLlIx4c7eJEWUNJ7w__original/img/x=/pic4458123.jpg"
    assert (thing.min_players, thing.max_players) == (1, 5)
    assert thing.suggested_age == "10+"
    assert thing.playing_time_minutes == 70


def test_thing_unknown_id_is_a_miss():
    client, _ = _client([FakeResponse(200, "<items></items>")])
    assert client.get_thing("999999999").is_miss


def test_thing_falls_back_to_page_when_blocked():
    page_url = "https://boardgamegeek.com/boardgame/266192"
    html = bgg_page_html("266192", "Wingspan") + "<div>1–5 Players</div><div>40–70 Min</div><div>Age: 10+</div>"
    scraper = FakeScraper({page_url: ScrapedPage(url=page_url, raw_html=html)})
    client, _ = _client([FakeResponse(403, ""), FakeResponse(429, "")], scraper=scraper)

    result = client.get_thing("266192")

    thing = result.value
    assert scraper.calls == [page_url]
    assert thing.title == "Wingspan"
    assert "__itemrep" in thing.image_url
    assert (thing.min_players, thing.max_players) == (1, 5)
    assert thing.playing_time_minutes == 55
    assert thing.suggested_age == "10+"


def test_thing_blocked_without_scraper_fails():
    client, _ = _client([FakeResponse(403, ""), FakeResponse(403, "")])
    result = client.get_thing("13")
    assert result.is_failed
    assert result.reason == "BGG request failed (403)"


def test_parse_thing_html_without_details():
    thing = parse_thing_html("13", "<html><head><title>Catan | Board Game | BoardGameGeek</title></head></html>")
    assert thing.title == "Catan"
    assert thing.image_url is None
    assert thing.min_players is None
    assert thing.playing_time_minutes is None
