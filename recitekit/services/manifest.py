"""Remote model repository tree listing."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from ..errors import ManifestFetchError
from ..schemas import TreeRecord

LOGGER = logging.getLogger("recitekit.manifest")

_TREE_ADAPTER = TypeAdapter(List[TreeRecord])


class EntryKind(enum.Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class ManifestEntry:
    kind: EntryKind
    path: str


class ManifestResolver:
    """Lists one directory level of a Hub model repository per call."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        endpoint: str = "https://huggingface.co",
        revision: str = "main",
    ) -> None:
        self._client = client
        self.endpoint = endpoint.rstrip("/")
        self.revision = revision

    def tree_url(self, repo: str, path: str = "") -> str:
        url = f"{self.endpoint}/api/models/{repo}/tree/{self.revision}"
        path = path.strip("/")
        if path:
            url = f"{url}/{quote(path)}"
        return url

    async def list_tree(self, repo: str, path: str = "") -> List[ManifestEntry]:
        url = self.tree_url(repo, path)
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
            records = _TREE_ADAPTER.validate_json(resp.content)
        except httpx.HTTPStatusError as exc:
            raise ManifestFetchError(
                f"Tree listing failed for {repo}/{path}: {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ManifestFetchError(f"Tree listing failed for {repo}/{path}: {exc}") from exc
        except ValidationError as exc:
            raise ManifestFetchError(f"Invalid tree listing for {repo}/{path}") from exc

        entries: List[ManifestEntry] = []
        for record in records:
            try:
                kind = EntryKind(record.type)
            except ValueError:
                LOGGER.debug("Ignoring %s entry %s", record.type, record.path)
                continue
            entries.append(ManifestEntry(kind=kind, path=record.path))
        return entries
