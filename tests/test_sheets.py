import httpx
import pytest

from ptc_dashboard.errors import UpstreamFetchError
from ptc_dashboard.sheets import SheetFetcher, sheet_export_url

CSV_TEXT = "Item,Email\n6th Grade,a@x.com\n"


def _fetcher(handler, **kwargs):
    return SheetFetcher("sheet123", transport=httpx.MockTransport(handler), **kwargs)


def test_export_url():
    assert sheet_export_url("abc") == "https://docs.google.com/spreadsheets/d/abc/export?format=csv"


def test_fetch_ok():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, text=CSV_TEXT)

    assert _fetcher(handler).fetch_csv() == CSV_TEXT
    assert seen == [sheet_export_url("sheet123")]


def test_follows_redirects():
    def handler(request):
        if request.url.host == "docs.google.com":
            return httpx.Response(307, headers={"Location": "https://doc-export.googleusercontent.com/x.csv"})
        return httpx.Response(200, text=CSV_TEXT)

    assert _fetcher(handler).fetch_csv() == CSV_TEXT


def test_redirect_loop_bounded():
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(302, headers={"Location": f"https://docs.google.com/loop/{len(calls)}"})

    with pytest.raises(UpstreamFetchError, match="redirects"):
        _fetcher(handler, max_redirects=5).fetch_csv()
    assert len(calls) == 6


def test_non_200_raises_with_status():
    def handler(request):
        return httpx.Response(401, text="login required")

    with pytest.raises(UpstreamFetchError) as exc_info:
        _fetcher(handler).fetch_csv()
    assert exc_info.value.status_code == 401
    assert "Anyone with the link" in str(exc_info.value)


def test_transport_error_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamFetchError) as exc_info:
        _fetcher(handler).fetch_csv()
    assert exc_info.value.status_code is None
