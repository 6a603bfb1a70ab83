"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_LOG_DIR = Path.home() / ".claude-transcript-hook" / "logs"

GATE_POLICIES = ("session_end", "always", "never")


@dataclass
class HookConfig:
    api_url: str = ""
    api_key: str = ""
    timeout_seconds: float = 4.0
    grace_seconds: float = 0.05
    gate_policy: str = "session_end"
    marker_dir: str = ".claude"
    marker_name: str = "transcript-upload.enabled"


@dataclass
class ServerConfig:
    backend: str = "typesense"
    api_key: str = ""
    upload_path: str = "/api/upload"
    allow_preflight: bool = True
    require_tool_use_id: bool = False
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class TypesenseConfig:
    host: str = "localhost"
    port: int = 8108
    protocol: str = "http"
    api_key: str = ""
    collection: str = "tool_calls"
    connection_timeout_seconds: float = 5.0


@dataclass
class BlobConfig:
    connection_string: str = ""
    container: str = "claude-transcripts"
    key_prefix: str = "transcripts"
    connection_timeout_seconds: float = 5.0


@dataclass
class Config:
    log_dir: Path = field(default_factory=lambda: DEFAULT_LOG_DIR)
    hook: HookConfig = field(default_factory=HookConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    typesense: TypesenseConfig = field(default_factory=TypesenseConfig)
    blob: BlobConfig = field(default_factory=BlobConfig)


# Environment variable -> (section, attribute, converter)
ENV_OVERRIDES: dict[str, tuple[str | None, str, type]] = {
    "CLAUDE_TRANSCRIPT_API_URL": ("hook", "api_url", str),
    "CLAUDE_TRANSCRIPT_API_KEY": ("hook", "api_key", str),
    "TRANSCRIPT_RELAY_GATE_POLICY": ("hook", "gate_policy", str),
    "TRANSCRIPT_RELAY_LOG_DIR": (None, "log_dir", Path),
    "TRANSCRIPT_RELAY_BACKEND": ("server", "backend", str),
    "TRANSCRIPT_RELAY_SERVER_API_KEY": ("server", "api_key", str),
    "TYPESENSE_HOST": ("typesense", "host", str),
    "TYPESENSE_PORT": ("typesense", "port", int),
    "TYPESENSE_PROTOCOL": ("typesense", "protocol", str),
    "TYPESENSE_API_KEY": ("typesense", "api_key", str),
    "TYPESENSE_COLLECTION": ("typesense", "collection", str),
    "AZURE_STORAGE_CONNECTION_STRING": ("blob", "connection_string", str),
    "TRANSCRIPT_RELAY_CONTAINER": ("blob", "container", str),
}


def expand_env_var(value: str) -> str:
    """Expand environment variables in string (e.g. ${VAR})."""
    if value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.environ.get(env_var, "")
    return value


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    return {
        key: expand_env_var(value) if isinstance(value, str) else value
        for key, value in section.items()
    }


def apply_env_overrides(config: Config, environ: dict[str, str] | None = None) -> Config:
    """Override configuration fields from environment variables.

    Only variables that are set and non-empty take effect.
    """
    if environ is None:
        environ = dict(os.environ)

    for var, (section, attr, convert) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if not raw:
            continue
        target = getattr(config, section) if section else config
        setattr(target, attr, convert(raw))

    return config


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file, then apply environment overrides."""
    if config_path is None:
        # Look for config in standard locations
        search_paths = [
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "transcript-relay" / "config.yaml",
            Path("/etc/transcript-relay/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return apply_env_overrides(Config())

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    hook_data = _section(data, "hook")
    hook = HookConfig(
        api_url=hook_data.get("api_url", ""),
        api_key=hook_data.get("api_key", ""),
        timeout_seconds=float(hook_data.get("timeout_seconds", 4.0)),
        grace_seconds=float(hook_data.get("grace_seconds", 0.05)),
        gate_policy=hook_data.get("gate_policy", "session_end"),
        marker_dir=hook_data.get("marker_dir", ".claude"),
        marker_name=hook_data.get("marker_name", "transcript-upload.enabled"),
    )

    server_data = _section(data, "server")
    server = ServerConfig(
        backend=server_data.get("backend", "typesense"),
        api_key=server_data.get("api_key", ""),
        upload_path=server_data.get("upload_path", "/api/upload"),
        allow_preflight=bool(server_data.get("allow_preflight", True)),
        require_tool_use_id=bool(server_data.get("require_tool_use_id", False)),
        host=server_data.get("host", "127.0.0.1"),
        port=int(server_data.get("port", 8000)),
    )

    ts_data = _section(data, "typesense")
    typesense = TypesenseConfig(
        host=ts_data.get("host", "localhost"),
        port=int(ts_data.get("port", 8108)),
        protocol=ts_data.get("protocol", "http"),
        api_key=ts_data.get("api_key", ""),
        collection=ts_data.get("collection", "tool_calls"),
        connection_timeout_seconds=float(ts_data.get("connection_timeout_seconds", 5.0)),
    )

    blob_data = _section(data, "blob")
    blob = BlobConfig(
        connection_string=blob_data.get("connection_string", ""),
        container=blob_data.get("container", "claude-transcripts"),
        key_prefix=blob_data.get("key_prefix", "transcripts"),
        connection_timeout_seconds=float(blob_data.get("connection_timeout_seconds", 5.0)),
    )

    log_dir = data.get("log_dir")

    config = Config(
        log_dir=expand_path(log_dir) if log_dir else DEFAULT_LOG_DIR,
        hook=hook,
        server=server,
        typesense=typesense,
        blob=blob,
    )
    return apply_env_overrides(config)
