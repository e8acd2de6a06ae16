import pytest
import respx
import httpx
from harvester.app.connectors import google_search
from harvester.app.connectors.google_search import GoogleSearch, build_search_url
from harvester.app.models import Coordinate, SearchRequest
from harvester.app.services import uule
from harvester.app.services.geo import DatasetsGeoLookup, NominatimGeoLookup

NYC = Coordinate(lat=40.7128, lng=-74.006)


class FakeLookup:
    def __init__(self, coordinate=None):
        self.coordinate = coordinate
        self.calls = []

    async def lookup(self, location):
        self.calls.append(location)
        return self.coordinate


def _google(mock):
    return mock.get(host="www.google.com", path="/search")


def test_build_search_url():
    assert build_search_url("coffee shops") == "https://www.google.com/search?q=coffee%20shops&num=100"
    assert build_search_url("a&b", 100, 200, "de") == "https://www.google.com/search?q=a%26b&num=100&start=200&hl=de"
    assert build_search_url("x", 10, 0, None, "http://serp.test/search") == "http://serp.test/search?q=x&num=10"


@pytest.mark.asyncio
async def test_target_found_stops_harvest(serp):
    with respx.mock() as mock:
        route = _google(mock).mock(side_effect=[
            httpx.Response(200, text=serp(["https://a.test/1", "https://b.test/2"])),
            httpx.Response(200, text=serp(["https://shop.example.com/item", "https://c.test/3"])),
            httpx.Response(200, text=serp(["https://d.test/4"], has_next=False)),
        ])
        async with GoogleSearch(max_retries=1) as google:
            res = await google.search(SearchRequest(keyword="widgets", target="*.example.com", location=NYC))
    assert res.ok
    assert res.data.position == 3
    assert res.data.url == "https://shop.example.com/item"
    assert route.call_count == 2
    assert "start" not in route.calls[0].request.url.params
    assert route.calls[1].request.url.params["start"] == "100"


@pytest.mark.asyncio
async def test_target_not_found_is_empty_success(serp):
    with respx.mock() as mock:
        _google(mock).mock(side_effect=[
            httpx.Response(200, text=serp(["https://a.test/1"])),
            httpx.Response(200, text=serp(["https://b.test/2"], has_next=False)),
        ])
        async with GoogleSearch(max_retries=1) as google:
            res = await google.search(SearchRequest(keyword="widgets", target="example.com", location=NYC))
    assert res.ok
    assert res.data is None


@pytest.mark.asyncio
async def test_result_cap_truncates_mid_page(serp):
    with respx.mock() as mock:
        route = _google(mock).mock(side_effect=[
            httpx.Response(200, text=serp([f"https://p1.test/{i}" for i in range(4)])),
            httpx.Response(200, text=serp([f"https://p2.test/{i}" for i in range(6)], has_next=False)),
        ])
        async with GoogleSearch(max_retries=1) as google:
            res = await google.search(SearchRequest(keyword="widgets", max_results=5, location=NYC))
    assert res.ok
    assert [i.position for i in res.data] == [1, 2, 3, 4, 5]
    assert res.data[4].url == "https://p2.test/0"
    assert route.call_count == 2


@pytest.mark.asyncio
async def test_cap_also_ends_target_mode(serp):
    with respx.mock() as mock:
        route = _google(mock).mock(side_effect=[
            httpx.Response(200, text=serp(["https://a.test/1", "https://b.test/2", "https://example.com/"])),
        ])
        async with GoogleSearch(max_retries=1) as google:
            res = await google.search(SearchRequest(keyword="w", target="example.com", max_results=2, location=NYC))
    assert res.ok and res.data is None
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_no_next_link_stops_pagination(serp):
    with respx.mock() as mock:
        route = _google(mock).mock(side_effect=[
            httpx.Response(200, text=serp(["https://a.test/1", "https://b.test/2", "https://c.test/3"], has_next=False)),
        ])
        async with GoogleSearch(max_retries=1) as google:
            res = await google.search(SearchRequest(keyword="widgets", max_results=100, location=NYC))
    assert res.ok
    assert len(res.data) == 3
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_positions_continue_across_pages(serp):
    with respx.mock() as mock:
        _google(mock).mock(side_effect=[
            httpx.Response(200, text=serp(["https://a.test/1", "https://a.test/2"])),
            httpx.Response(200, text=serp([(None, "no link", None), "https://b.test/3"], has_next=False)),
        ])
        async with GoogleSearch(max_retries=1) as google:
            res = await google.search(SearchRequest(keyword="widgets", location=NYC))
    assert [i.position for i in res.data] == [1, 2, 3, 4]
    assert res.data[2].url is None


@pytest.mark.asyncio
async def test_fetch_failure_discards_collected_items(serp):
    with respx.mock() as mock:
        route = _google(mock).mock(side_effect=[
            httpx.Response(200, text=serp(["https://a.test/1"])),
            httpx.Response(500),
            httpx.Response(500),
        ])
        async with GoogleSearch(max_retries=2) as google:
            res = await google.search(SearchRequest(keyword="widgets", location=NYC))
    assert not res.ok
    assert res.status == 500
    assert res.data is None
    assert route.call_count == 3


@pytest.mark.asyncio
async def test_missing_geo_coordinate_fails_without_fetching():
    lookup = FakeLookup(None)
    with respx.mock(assert_all_called=False) as mock:
        route = _google(mock).respond(200, text="")
        async with GoogleSearch(datasets=lookup) as google:
            res = await google.search(SearchRequest(keyword="widgets", location="Atlantis"))
    assert not res.ok
    assert res.error == "configuration"
    assert lookup.calls == ["Atlantis"]
    assert route.call_count == 0


@pytest.mark.asyncio
async def test_named_location_sets_uule_cookie(serp):
    paris = Coordinate(lat=48.8566, lng=2.3522)
    with respx.mock() as mock:
        route = _google(mock).respond(200, text=serp(["https://a.test/1"], has_next=False))
        async with GoogleSearch(datasets=FakeLookup(paris)) as google:
            res = await google.search(SearchRequest(keyword="bistro", location="Paris,France", language="fr"))
    assert res.ok
    req = route.calls.last.request
    assert req.headers["cookie"] == "UULE=" + uule.encode(paris)
    assert req.url.params["hl"] == "fr"
    assert req.url.params["q"] == "bistro"


@pytest.mark.asyncio
async def test_explicit_coordinate_without_distance_is_used_as_is(serp):
    with respx.mock() as mock:
        route = _google(mock).respond(200, text=serp([], has_next=False))
        async with GoogleSearch() as google:
            res = await google.search(SearchRequest(keyword="x", location={"lat": 40.7128, "lng": -74.006}))
    assert res.ok and res.data == []
    assert uule.decode(route.calls.last.request.headers["cookie"][len("UULE="):]) == NYC


@pytest.mark.asyncio
async def test_invalid_request_proxy_is_configuration_failure():
    with respx.mock(assert_all_called=False) as mock:
        route = _google(mock).respond(200, text="")
        async with GoogleSearch() as google:
            res = await google.search(SearchRequest(keyword="w", location=NYC, proxy={"username": "u"}))
    assert not res.ok
    assert res.status == 500
    assert res.error == "configuration"
    assert "url" in res.reason
    assert route.call_count == 0


@pytest.mark.asyncio
async def test_request_proxy_uses_a_dedicated_client(serp, monkeypatch):
    built = []

    def spy(proxy=None, **kwargs):
        client = httpx.AsyncClient()
        built.append((proxy, client))
        return client

    monkeypatch.setattr(google_search, "build_client", spy)
    instance_requests = []

    def instance_handler(request):
        instance_requests.append(request)
        return httpx.Response(500)

    instance = httpx.AsyncClient(transport=httpx.MockTransport(instance_handler))
    proxy = {"url": "http://proxy.test:3128", "username": "u", "password": "p"}
    with respx.mock() as mock:
        route = _google(mock).respond(200, text=serp(["https://a.test/1"], has_next=False))
        async with GoogleSearch(client=instance, max_retries=1) as google:
            res = await google.search(SearchRequest(keyword="w", location=NYC, proxy=proxy))
    assert res.ok and len(res.data) == 1
    assert route.call_count == 1
    assert [p for p, _ in built] == [proxy]
    assert built[0][1].is_closed
    assert instance_requests == []
    assert not instance.is_closed
    await instance.aclose()


@pytest.mark.asyncio
async def test_shared_client_survives_another_instance_closing(serp):
    shared = httpx.AsyncClient()
    first = GoogleSearch(client=shared, max_retries=1)
    second = GoogleSearch(client=shared, max_retries=1)
    await first.aclose()
    with respx.mock() as mock:
        _google(mock).respond(200, text=serp(["https://a.test/1"], has_next=False))
        res = await second.search(SearchRequest(keyword="w", location=NYC))
    assert res.ok
    assert not shared.is_closed
    await second.aclose()
    assert not shared.is_closed
    await shared.aclose()


@pytest.mark.asyncio
async def test_unexpected_geotarget_shape_is_configuration_failure():
    with respx.mock(assert_all_called=False) as mock:
        mock.post("https://datasets.test/geotargets/get-geotarget").respond(200, json={"data": ["x"]})
        route = _google(mock).respond(200, text="")
        async with GoogleSearch(datasets="https://datasets.test") as google:
            res = await google.search(SearchRequest(keyword="w", location="London"))
    assert not res.ok
    assert res.error == "configuration"
    assert route.call_count == 0


@pytest.mark.asyncio
async def test_geo_lookup_backend_selection():
    async with GoogleSearch(datasets="https://datasets.test") as google:
        assert isinstance(google.resolver.lookup, DatasetsGeoLookup)
    async with GoogleSearch(datasets=None, geo_lookup="nominatim") as google:
        assert isinstance(google.resolver.lookup, NominatimGeoLookup)
    async with GoogleSearch(datasets=None, geo_lookup="datasets") as google:
        assert google.resolver.lookup is None
