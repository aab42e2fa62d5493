import io
import os

import httpx
import pytest

from deltacrawl.exceptions import SinkError
from deltacrawl.sink.solr import SolrSink


@pytest.fixture
def captured():
    return []


def make_sink(captured, status_code=200, error=None):
    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        captured.append(request)
        if error is not None:
            raise error(f"cannot reach {request.url.host}", request=request)
        return httpx.Response(status_code, json={"responseHeader": {"status": 0}})

    return SolrSink("http://solr:8983/solr/documents/", transport=httpx.MockTransport(handler))


def test_push_posts_to_extract_handler(captured):
    sink = make_sink(captured)
    sink.push(
        "\\\\server\\share/doc.pdf",
        io.BytesIO(b"%PDF-1.4 body"),
        "application/pdf",
        {"id": "\\\\server\\share/doc.pdf", "resourcename": "doc.pdf"},
    )

    request = captured[0]
    assert request.method == "POST"
    assert request.url.path == "/solr/documents/update/extract"
    params = request.url.params
    assert params["literal.id"] == "\\\\server\\share/doc.pdf"
    assert params["literal.resourcename"] == "doc.pdf"
    assert params["resource.name"] == "doc.pdf"
    assert params["uprefix"] == "attr_"
    assert params["fmap.content"] == "text"
    assert params["defaultField"] == "text"
    assert params["commit"] == "true"
    assert "literal.literal.id" not in params
    assert b"%PDF-1.4 body" in request.content
    assert b"application/pdf" in request.content
    assert request.headers["content-type"].startswith("multipart/form-data")


def test_http_error_raises_sink_error(captured):
    sink = make_sink(captured, status_code=500)
    with pytest.raises(SinkError, match="HTTP 500"):
        sink.push("id", io.BytesIO(b"x"), "text/plain", {"id": "id"})


def test_transport_error_raises_sink_error(captured):
    sink = make_sink(captured, error=httpx.ConnectError)
    with pytest.raises(SinkError, match="Couldn't push"):
        sink.push("id", io.BytesIO(b"x"), "text/plain", {"id": "id"})


def test_context_manager_closes_client(captured):
    with make_sink(captured) as sink:
        assert not sink._client.is_closed
    assert sink._client.is_closed


def test_from_settings(make_settings):
    settings = make_settings(["/docs"], solr_uri="http://search:8983/solr/core", sink_timeout=5)
    sink = SolrSink.from_settings(settings)
    assert sink.base_url == "http://search:8983/solr/core"
    assert sink._client.timeout.read == 5
    sink.close()


@pytest.mark.network
def test_push_live():
    """Needs a Solr core with the extracting handler. Run with: pytest -m network"""
    uri = os.environ.get("SOLR_TEST_URI")
    if not uri:
        pytest.skip("SOLR_TEST_URI not set")
    with SolrSink(uri) as sink:
        sink.push("deltacrawl-test", io.BytesIO(b"hello solr"), "text/plain", {"id": "deltacrawl-test"})
