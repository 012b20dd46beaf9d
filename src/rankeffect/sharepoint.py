"""SharePoint document library access through Microsoft Graph.

Authentication uses the OAuth client-credentials flow (an Azure AD app
registration with a client secret). Tokens come from MSAL, which caches
them until shortly before expiry.

The library folder holding the gallery media is configured as a path such as
"Shared Documents/Gallery"; the leading library name is dropped because Graph
addresses paths relative to the drive root.
"""

import asyncio
import logging
import re
from urllib.parse import quote

import httpx
import msal

from .errors import ListingFault, TransformFault
from .models import MEDIA_EXTENSIONS, MediaItem, file_extension

logger = logging.getLogger(__name__)

GRAPH_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]
LOGIN_URL = "https://login.microsoftonline.com"

# Document library names, English and German tenants
LIBRARY_NAMES = ("Documents", "Dokumente", "Shared Documents")
_LIBRARY_PREFIX = re.compile(r"^/?(Shared Documents|Documents|Dokumente)/?")


class GraphError(Exception):
    """A Graph request failed (token, transport or HTTP status)."""


def normalize_folder_path(folder_path: str) -> str:
    """Strip a leading document library name and surrounding slashes."""
    return _LIBRARY_PREFIX.sub("", folder_path or "").strip("/")


def is_listable(item: dict) -> bool:
    """True for files (not folders) with a supported media extension."""
    return "file" in item and file_extension(item.get("name", "")) in MEDIA_EXTENSIONS


class SharePointClient:
    """Lists, downloads and uploads gallery media in a SharePoint document library."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        hostname: str,
        site_name: str,
        folder_path: str = "",
        timeout: float = 30.0,
    ):
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._hostname = hostname.rstrip("/")
        self._site_name = site_name
        self._folder = normalize_folder_path(folder_path)
        self._msal_app: msal.ConfidentialClientApplication | None = None
        self._site_id: str | None = None
        self._drive_id: str | None = None
        self._client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    def _acquire_token(self) -> str:
        # MSAL is synchronous and may hit the network on first use
        if self._msal_app is None:
            self._msal_app = msal.ConfidentialClientApplication(
                self._client_id,
                authority=f"{LOGIN_URL}/{self._tenant_id}",
                client_credential=self._client_secret,
            )
        result = self._msal_app.acquire_token_for_client(scopes=GRAPH_SCOPES)
        if "access_token" not in result:
            raise GraphError(
                "Could not acquire a Graph token: "
                f"{result.get('error')} {result.get('error_description', '')}".strip()
            )
        return result["access_token"]

    async def _graph(self, method: str, endpoint: str, **kwargs):
        """Make an authenticated Graph request and return the decoded JSON."""
        token = await asyncio.to_thread(self._acquire_token)
        url = endpoint if endpoint.startswith("https://") else f"{GRAPH_URL}{endpoint}"
        headers = {"authorization": f"Bearer {token}", **kwargs.pop("headers", {})}

        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise GraphError(f"Graph request to {endpoint} failed: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            wait_msg = f" Retry in {retry_after}s." if retry_after else ""
            raise GraphError(f"Rate limited by Microsoft Graph.{wait_msg}")

        if response.status_code in (401, 403):
            raise GraphError(
                "Graph rejected the app credentials. Check the tenant, client id "
                "and secret, and that the app has Sites.Read.All / Sites.ReadWrite.All."
            )

        if response.is_error:
            logger.error("Graph API error: %d %s", response.status_code, response.text)
            raise GraphError(
                f"Graph API error: {response.status_code} - {response.text}"
            )

        return response.json()

    async def site_id(self) -> str:
        if self._site_id is None:
            site = await self._graph(
                "GET", f"/sites/{self._hostname}:/sites/{self._site_name}"
            )
            self._site_id = site["id"]
        return self._site_id

    async def drive_id(self) -> str:
        """Id of the site's document library drive."""
        if self._drive_id is None:
            site_id = await self.site_id()
            drives = (await self._graph("GET", f"/sites/{site_id}/drives"))["value"]
            if not drives:
                raise GraphError(f"Site {self._site_name} has no drives")
            documents = next(
                (d for d in drives if d.get("name") in LIBRARY_NAMES), drives[0]
            )
            self._drive_id = documents["id"]
        return self._drive_id

    async def list_media_files(self) -> list[MediaItem]:
        """List media files in the configured folder, following pagination.

        Raises ListingFault when the site, drive or folder cannot be read.
        """
        try:
            drive_id = await self.drive_id()
            if self._folder:
                url = f"/drives/{drive_id}/root:/{quote(self._folder)}:/children"
            else:
                url = f"/drives/{drive_id}/root/children"

            items: list[dict] = []
            while url:
                data = await self._graph("GET", url)
                items.extend(data.get("value", []))
                url = data.get("@odata.nextLink")
        except (GraphError, KeyError) as e:
            raise ListingFault(f"Failed to list SharePoint files: {e}") from e

        media = [_to_media_item(item) for item in items if is_listable(item)]
        logger.info(
            "Listed %d media files out of %d items in SharePoint", len(media), len(items)
        )
        return media

    async def _item(self, item_id: str) -> dict:
        try:
            drive_id = await self.drive_id()
            return await self._graph("GET", f"/drives/{drive_id}/items/{quote(item_id)}")
        except (GraphError, KeyError, ValueError) as e:
            raise ListingFault(f"Failed to read SharePoint item {item_id}: {e}") from e

    async def get_item(self, item_id: str) -> MediaItem:
        return _to_media_item(await self._item(item_id))

    async def get_download_url(self, item_id: str) -> str:
        """Short-lived pre-authenticated URL for the item's content."""
        url = (await self._item(item_id)).get("@microsoft.graph.downloadUrl")
        if not url:
            raise ListingFault(f"SharePoint item {item_id} has no download URL")
        return url

    async def download(self, item_id: str) -> bytes:
        """Fetch an item's bytes. Raises ListingFault on failure."""
        url = await self.get_download_url(item_id)
        # The download URL carries its own credentials; no bearer header
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ListingFault(f"Failed to download SharePoint item {item_id}: {e}") from e
        logger.info("Downloaded SharePoint item %s (%d bytes)", item_id, len(response.content))
        return response.content

    async def upload_file(self, filename: str, data: bytes, mime_type: str) -> MediaItem:
        """Upload bytes into the gallery folder. Raises TransformFault on failure."""
        path = f"{self._folder}/{filename}" if self._folder else filename
        try:
            drive_id = await self.drive_id()
            item = await self._graph(
                "PUT",
                f"/drives/{drive_id}/root:/{quote(path)}:/content",
                content=data,
                headers={"content-type": mime_type or "application/octet-stream"},
            )
        except (GraphError, KeyError) as e:
            raise TransformFault(f"Upload failed: {e}", filename=filename) from e
        logger.info("Uploaded %s (%d bytes)", filename, len(data))
        return _to_media_item(item)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()


def _to_media_item(item: dict) -> MediaItem:
    return MediaItem(
        filename=item["name"],
        id=item.get("id"),
        url=item.get("@microsoft.graph.downloadUrl") or item.get("webUrl"),
        size=item.get("size"),
        mime_type=item.get("file", {}).get("mimeType"),
    )
