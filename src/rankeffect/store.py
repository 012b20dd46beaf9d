"""Vote counters kept in a key-value document store, keyed by filename.

Two document stores are supported:

    FirestoreStore     Firestore REST API; increments are server-side
                       field transforms, so concurrent votes never lose
                       an update.
    JsonDocumentStore  a JSON file on disk for single-process use:
                       .state/votes.json = {"documents": {filename: {...}}}

Both expose the same coroutine interface (get, get_all, create, increment),
and VoteStore adapts either one to VoteRecord objects.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote

import httpx

from .errors import StoreReadFault, StoreWriteFault
from .models import VoteRecord

logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1"
COLLECTION_NAME = "mediaVotes"
PAGE_SIZE = 300


def encode_value(value) -> dict:
    """Wrap a Python scalar in a Firestore typed value."""
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        # Firestore transports 64-bit integers as strings
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if value is None:
        return {"nullValue": None}
    return {"stringValue": str(value)}


def decode_value(field: dict):
    """Extract a Python scalar from a Firestore typed value."""
    if "stringValue" in field:
        return field["stringValue"]
    if "integerValue" in field:
        return int(field["integerValue"])
    if "doubleValue" in field:
        return float(field["doubleValue"])
    if "booleanValue" in field:
        return bool(field["booleanValue"])
    if "timestampValue" in field:
        return field["timestampValue"]
    return None


def decode_fields(fields: dict) -> dict:
    return {name: decode_value(value) for name, value in fields.items()}


class FirestoreStore:
    """Document store backed by the Firestore REST API."""

    def __init__(
        self,
        project_id: str,
        collection: str = COLLECTION_NAME,
        api_key: str | None = None,
        access_token: str | None = None,
        timeout: float = 30.0,
    ):
        self._collection = collection
        self._database = f"projects/{project_id}/databases/(default)"
        self._documents_url = f"{FIRESTORE_URL}/{self._database}/documents"
        headers = {"content-type": "application/json"}
        if access_token:
            headers["authorization"] = f"Bearer {access_token}"
        self._client = httpx.AsyncClient(
            headers=headers,
            params={"key": api_key} if api_key else None,
            timeout=timeout,
        )

    @property
    def collection_url(self) -> str:
        return f"{self._documents_url}/{self._collection}"

    def document_url(self, key: str) -> str:
        return f"{self.collection_url}/{quote(key, safe='')}"

    def document_name(self, key: str) -> str:
        return f"{self._database}/documents/{self._collection}/{key}"

    async def get(self, key: str) -> dict | None:
        """Fetch one document's fields, or None if it does not exist."""
        try:
            response = await self._client.get(self.document_url(key))
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return decode_fields(response.json().get("fields", {}))
        except httpx.HTTPError as e:
            raise StoreReadFault(f"Failed to read vote document {key!r}: {e}") from e
        except (ValueError, AttributeError) as e:
            raise StoreReadFault(f"Unreadable vote document {key!r}: {e}") from e

    async def get_all(self) -> dict[str, dict]:
        """Fetch every document in the collection, following page tokens."""
        documents: dict[str, dict] = {}
        page_token: str | None = None

        while True:
            params: dict = {"pageSize": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            try:
                response = await self._client.get(self.collection_url, params=params)
                response.raise_for_status()
                data = response.json()
                for doc in data.get("documents", []):
                    fields = decode_fields(doc.get("fields", {}))
                    # Resource names carry the raw document id
                    key = fields.get("filename") or doc["name"].rsplit("/", 1)[-1]
                    documents[key] = fields
            except httpx.HTTPError as e:
                raise StoreReadFault(f"Failed to list vote documents: {e}") from e
            except (ValueError, KeyError, AttributeError) as e:
                raise StoreReadFault(f"Unreadable vote document listing: {e}") from e

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.debug("Fetched %d vote documents from Firestore", len(documents))
        return documents

    async def create(self, key: str, fields: dict) -> bool:
        """Create a document unless one exists. Returns True if it was created."""
        body = {"fields": {name: encode_value(v) for name, v in fields.items()}}
        try:
            response = await self._client.post(
                self.collection_url, params={"documentId": key}, json=body
            )
            if response.status_code == 409:
                return False
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreWriteFault(f"Failed to create vote document {key!r}: {e}") from e
        return True

    async def increment(self, key: str, field: str, delta: int = 1) -> None:
        """Atomically add delta to one field, creating the document if needed.

        The write only masks "filename", so existing counters are left to the
        server-side increment transform.
        """
        write = {
            "update": {
                "name": self.document_name(key),
                "fields": {"filename": encode_value(key)},
            },
            "updateMask": {"fieldPaths": ["filename"]},
            "updateTransforms": [
                {"fieldPath": field, "increment": encode_value(delta)}
            ],
        }
        try:
            response = await self._client.post(
                f"{self._documents_url}:commit", json={"writes": [write]}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreWriteFault(
                f"Failed to increment {field} for {key!r}: {e}"
            ) from e

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()


class JsonDocumentStore:
    """Document store persisted to a JSON file.

    Every operation completes without suspending, so increments are atomic
    within a single event loop. Not safe across processes.
    """

    def __init__(self, state_dir: Path = Path(".state")):
        self.state_dir = state_dir
        self.state_file = state_dir / "votes.json"
        self._documents: dict[str, dict] = {}
        self._load()

    def _load(self) -> None:
        if self.state_file.exists():
            try:
                data = json.loads(self.state_file.read_text())
            except (OSError, ValueError) as e:
                raise StoreReadFault(f"Failed to read {self.state_file}: {e}") from e
            self._documents = data.get("documents", {})
            logger.info(
                "Loaded %d vote documents from %s",
                len(self._documents),
                self.state_file,
            )
        else:
            logger.info("No existing vote file found. Starting fresh.")

    def _save(self, documents: dict[str, dict]) -> None:
        data = {
            "documents": documents,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(json.dumps(data, indent=2, sort_keys=True))
        except OSError as e:
            raise StoreWriteFault(f"Failed to write {self.state_file}: {e}") from e

    @property
    def count(self) -> int:
        return len(self._documents)

    async def get(self, key: str) -> dict | None:
        doc = self._documents.get(key)
        return dict(doc) if doc is not None else None

    async def get_all(self) -> dict[str, dict]:
        return {key: dict(doc) for key, doc in self._documents.items()}

    async def create(self, key: str, fields: dict) -> bool:
        if key in self._documents:
            return False
        self._commit(key, dict(fields))
        return True

    async def increment(self, key: str, field: str, delta: int = 1) -> None:
        doc = dict(self._documents.get(key) or {"filename": key})
        doc[field] = doc.get(field, 0) + delta
        self._commit(key, doc)

    def _commit(self, key: str, doc: dict) -> None:
        # Memory only changes once the file write succeeded
        documents = {**self._documents, key: doc}
        self._save(documents)
        self._documents = documents

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()


class VoteStore:
    """Reads and records votes through a document store.

    Reads never raise: faults are logged and the zero record (or an empty
    mapping) is returned. Vote recording propagates StoreWriteFault so a
    failed vote is never shown as applied.
    """

    def __init__(self, store):
        self._store = store

    async def get_votes(self, filename: str) -> VoteRecord:
        try:
            fields = await self._store.get(filename)
            if fields is None:
                return VoteRecord(filename)
            return VoteRecord.from_fields(filename, fields)
        except ValueError as e:
            logger.error("Malformed vote document for %s: %s", filename, e)
        except StoreReadFault as e:
            logger.error("Error getting votes for %s: %s", filename, e)
        return VoteRecord(filename)

    async def get_all_votes(self) -> dict[str, VoteRecord]:
        try:
            documents = await self._store.get_all()
        except StoreReadFault as e:
            logger.error("Error getting all votes: %s", e)
            return {}

        votes: dict[str, VoteRecord] = {}
        for key, fields in documents.items():
            try:
                votes[key] = VoteRecord.from_fields(key, fields)
            except ValueError as e:
                logger.warning("Skipping malformed vote document %s: %s", key, e)
        return votes

    async def record_upvote(self, filename: str) -> VoteRecord:
        return await self._record(filename, "upvotes")

    async def record_downvote(self, filename: str) -> VoteRecord:
        return await self._record(filename, "downvotes")

    async def record_veto(self, filename: str) -> VoteRecord:
        return await self._record(filename, "vetos")

    async def _record(self, filename: str, field: str) -> VoteRecord:
        if await self._store.create(filename, VoteRecord(filename).to_fields()):
            logger.debug("Created vote document for %s", filename)
        await self._store.increment(filename, field, 1)

        # Reload strictly: the caller must only ever see confirmed counts
        try:
            fields = await self._store.get(filename)
        except StoreReadFault as e:
            raise StoreWriteFault(
                f"Recorded {field} for {filename!r} but could not reload it: {e}"
            ) from e
        if fields is None:
            raise StoreWriteFault(f"Vote document for {filename!r} vanished after write")
        try:
            record = VoteRecord.from_fields(filename, fields)
        except ValueError as e:
            raise StoreWriteFault(str(e)) from e

        logger.info(
            "Recorded %s for %s (up=%d down=%d veto=%d)",
            field,
            filename,
            record.upvotes,
            record.downvotes,
            record.vetos,
        )
        return record
