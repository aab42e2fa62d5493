"""Push files to Solr's extracting request handler (Solr Cell / Tika)."""

import logging
from typing import BinaryIO

import httpx

from deltacrawl.exceptions import SinkError
from deltacrawl.sink.base import BaseSink

logger = logging.getLogger(__name__)


class SolrSink(BaseSink):
    """Posts each file as multipart to ``<solr_uri>/update/extract`` with commit on write."""

    EXTRACT_HANDLER = "/update/extract"

    def __init__(
        self,
        solr_uri: str,
        timeout: float | None = 120.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = solr_uri.rstrip("/")
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings) -> "SolrSink":
        return cls(settings.solr_uri, timeout=settings.sink_timeout)

    def build_params(self, identifier: str, metadata: dict[str, str]) -> dict[str, str]:
        params = {
            "literal.id": identifier,
            # Unknown Tika metadata goes to dynamic attr_* fields
            "uprefix": "attr_",
            # Extracted body is the free-text search field
            "fmap.content": "text",
            "defaultField": "text",
            "commit": "true",
            "waitSearcher": "true",
        }
        for key, value in metadata.items():
            if key == "id":
                continue
            params[f"literal.{key}"] = value
        if "resourcename" in metadata:
            params["resource.name"] = metadata["resourcename"]
        return params

    def push(
        self,
        identifier: str,
        content: BinaryIO,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        filename = metadata.get("resourcename", identifier)
        try:
            response = self._client.post(
                f"{self.base_url}{self.EXTRACT_HANDLER}",
                params=self.build_params(identifier, metadata),
                files={"file": (filename, content, content_type)},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SinkError(
                f"Solr rejected {identifier}: HTTP {e.response.status_code} {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise SinkError(f"Couldn't push {identifier} to {self.base_url}: {e}") from e

        logger.debug(f"Solr accepted {identifier}")

    def close(self) -> None:
        self._client.close()
