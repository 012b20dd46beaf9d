"""Configuration loading and saving.

Config file location: ~/.config/rankeffect/config.toml

Schema:
    [auth]
    username = "..."
    password = "..."

    [firestore]            # optional; votes go to .state/votes.json without it
    project_id = "..."
    collection = "mediaVotes"
    api_key = "..."

    [sharepoint]           # optional; local media only without it
    tenant_id = "..."
    client_id = "..."
    client_secret = "..."
    hostname = "contoso.sharepoint.com"
    site_name = "..."
    folder_path = "Shared Documents/Gallery"

    [local]
    media_dir = "public/media"
    files = ["a.jpeg", "b.mp4"]  # listed order; media_dir is scanned when empty

    [gallery]
    url_prefix = "/media"

    [state]
    state_dir = ".state"

Secrets can be supplied through the environment instead:
    RANKEFFECT_SHAREPOINT_CLIENT_SECRET
    RANKEFFECT_FIRESTORE_API_KEY
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w

CONFIG_DIR = Path.home() / ".config" / "rankeffect"
CONFIG_FILE = CONFIG_DIR / "config.toml"

SHAREPOINT_REQUIRED = ("tenant_id", "client_id", "client_secret", "hostname", "site_name")


@dataclass
class AuthConfig:
    username: str
    password: str


@dataclass
class FirestoreConfig:
    project_id: str
    collection: str = "mediaVotes"
    api_key: str | None = None


@dataclass
class SharePointConfig:
    tenant_id: str
    client_id: str
    client_secret: str
    hostname: str
    site_name: str
    folder_path: str = ""


@dataclass
class AppConfig:
    auth: AuthConfig
    firestore: FirestoreConfig | None = None
    sharepoint: SharePointConfig | None = None
    media_dir: Path = Path("public/media")
    local_files: list[str] = field(default_factory=list)
    url_prefix: str = "/media"
    state_dir: Path = Path(".state")


def _load_firestore(data: dict) -> FirestoreConfig | None:
    if not data:
        return None
    if not data.get("project_id"):
        raise ValueError("Config missing required firestore.project_id")
    return FirestoreConfig(
        project_id=data["project_id"],
        collection=data.get("collection", "mediaVotes"),
        api_key=os.environ.get("RANKEFFECT_FIRESTORE_API_KEY") or data.get("api_key"),
    )


def _load_sharepoint(data: dict) -> SharePointConfig | None:
    if not data:
        return None
    data = dict(data)
    env_secret = os.environ.get("RANKEFFECT_SHAREPOINT_CLIENT_SECRET")
    if env_secret:
        data["client_secret"] = env_secret
    missing = [key for key in SHAREPOINT_REQUIRED if not data.get(key)]
    if missing:
        raise ValueError(
            "Config missing required sharepoint."
            + ", sharepoint.".join(missing)
        )
    return SharePointConfig(
        tenant_id=data["tenant_id"],
        client_id=data["client_id"],
        client_secret=data["client_secret"],
        hostname=data["hostname"],
        site_name=data["site_name"],
        folder_path=data.get("folder_path", ""),
    )


def load_config(config_path: Path = CONFIG_FILE) -> AppConfig:
    """Load and validate config from TOML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    auth_data = data.get("auth", {})
    username = auth_data.get("username", "")
    password = auth_data.get("password", "")

    if not username or not password:
        raise ValueError("Config missing required auth.username and auth.password")

    local_data = data.get("local", {})
    gallery_data = data.get("gallery", {})
    state_data = data.get("state", {})

    return AppConfig(
        auth=AuthConfig(username=username, password=password),
        firestore=_load_firestore(data.get("firestore", {})),
        sharepoint=_load_sharepoint(data.get("sharepoint", {})),
        media_dir=Path(local_data.get("media_dir", "public/media")),
        local_files=list(local_data.get("files", [])),
        url_prefix=gallery_data.get("url_prefix", "/media"),
        state_dir=Path(state_data.get("state_dir", ".state")),
    )


def save_config(config: AppConfig, config_path: Path = CONFIG_FILE) -> None:
    """Write config to TOML file with restricted permissions."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict = {
        "auth": {
            "username": config.auth.username,
            "password": config.auth.password,
        },
        "local": {
            "media_dir": str(config.media_dir),
            "files": config.local_files,
        },
        "gallery": {
            "url_prefix": config.url_prefix,
        },
        "state": {
            "state_dir": str(config.state_dir),
        },
    }

    if config.firestore:
        data["firestore"] = {
            "project_id": config.firestore.project_id,
            "collection": config.firestore.collection,
        }
        if config.firestore.api_key:
            data["firestore"]["api_key"] = config.firestore.api_key

    if config.sharepoint:
        data["sharepoint"] = {
            "tenant_id": config.sharepoint.tenant_id,
            "client_id": config.sharepoint.client_id,
            "client_secret": config.sharepoint.client_secret,
            "hostname": config.sharepoint.hostname,
            "site_name": config.sharepoint.site_name,
            "folder_path": config.sharepoint.folder_path,
        }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)

    # Restrict permissions: file contains the gallery password and app secrets
    os.chmod(config_path, 0o600)


def config_exists(config_path: Path = CONFIG_FILE) -> bool:
    """Check if config file exists."""
    return config_path.exists()
