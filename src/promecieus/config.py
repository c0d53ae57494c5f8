"""Configuration system for promecieus."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit


@dataclass
class ServerConfig:
    """Status endpoint location."""

    host: str = "localhost:8080"  # host[:port] serving /ws/status
    secure: bool = False  # Use wss:// instead of ws://
    path: str = "/ws/status"
    open_timeout: float = 10.0  # Seconds allowed for the WebSocket handshake

    @property
    def ws_url(self) -> str:
        """Full WebSocket URL for the status feed."""
        scheme = "wss:" if self.secure else "ws:"
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"{scheme}//{self.host}{path}"


@dataclass
class ReconnectConfig:
    """Reconnect backoff settings."""

    initial_delay_ms: int = 250  # Delay after the first failure, restored on open
    max_delay_ms: int = 10_000  # Cap for any delay
    multiplier: float = 2.0  # Growth per consecutive failure


@dataclass
class LoggingConfig:
    """JSON log file settings."""

    level: str = "info"
    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


# =============================================================================
# TUI Color Configuration
# =============================================================================


@dataclass
class VariantColors:
    """Colors for status feed entries, by display variant.

    Variants follow the service's message kinds:
    - info: status and progress
    - danger: failure
    - success: done
    - primary: link

    Default palette: Dracula theme.
    """

    info: str = "#8be9fd"  # Dracula cyan
    danger: str = "#ff5555"  # Dracula red
    success: str = "#50fa7b"  # Dracula green
    primary: str = "#bd93f9"  # Dracula purple


@dataclass
class ConnectionColors:
    """Colors for the connection indicator."""

    connected: str = "#50fa7b"
    disconnected: str = "#ff5555"


@dataclass
class TUIColorsConfig:
    """All TUI color configurations grouped together."""

    variants: VariantColors = field(default_factory=VariantColors)
    connection: ConnectionColors = field(default_factory=ConnectionColors)


@dataclass
class TUIConfig:
    """TUI-specific configuration."""

    colors: TUIColorsConfig = field(default_factory=TUIColorsConfig)
    placeholder: str = "Feed me Prow URLs..."


_VALID_LEVELS = {"debug", "info", "warning", "error"}


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    server: ServerConfig = field(default_factory=ServerConfig)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tui: TUIConfig = field(default_factory=TUIConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "promecieus"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "promecieus"

    @property
    def log_path(self) -> Path:
        """JSON log path."""
        return self.state_dir / "client.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ["server", "reconnect", "logging", "tui"]:
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        Raises:
            ValueError: If the file can't be parsed or holds invalid values
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            server=_load_server_config(data.get("server", {})),
            reconnect=_load_reconnect_config(data.get("reconnect", {})),
            logging=_load_logging_config(data.get("logging", {})),
            tui=_load_tui_config(data.get("tui", {})),
        )


def _load_server_config(data: dict) -> ServerConfig:
    """Load server config from TOML data."""
    d = ServerConfig()
    host = data.get("host", d.host)
    open_timeout = data.get("open_timeout", d.open_timeout)

    if not host:
        raise ValueError("server.host must not be empty")
    if "://" in host:
        raise ValueError(f"server.host must not include a scheme, got {host!r}")
    if open_timeout <= 0:
        raise ValueError(f"open_timeout must be > 0, got {open_timeout}")

    return ServerConfig(
        host=host,
        secure=data.get("secure", d.secure),
        path=data.get("path", d.path),
        open_timeout=open_timeout,
    )


def _load_reconnect_config(data: dict) -> ReconnectConfig:
    """Load reconnect config from TOML data, validating the backoff bounds."""
    d = ReconnectConfig()
    initial = data.get("initial_delay_ms", d.initial_delay_ms)
    max_delay = data.get("max_delay_ms", d.max_delay_ms)
    multiplier = data.get("multiplier", d.multiplier)

    if initial < 1:
        raise ValueError(f"initial_delay_ms must be >= 1, got {initial}")
    if max_delay < initial:
        raise ValueError(
            f"max_delay_ms must be >= initial_delay_ms, got {max_delay} < {initial}"
        )
    if multiplier < 1:
        raise ValueError(f"multiplier must be >= 1, got {multiplier}")

    return ReconnectConfig(
        initial_delay_ms=initial,
        max_delay_ms=max_delay,
        multiplier=multiplier,
    )


def _load_logging_config(data: dict) -> LoggingConfig:
    """Load logging config from TOML data."""
    d = LoggingConfig()
    level = data.get("level", d.level)
    if level not in _VALID_LEVELS:
        raise ValueError(f"Invalid logging level: {level!r}. Must be one of {_VALID_LEVELS}")
    return LoggingConfig(
        level=level,
        log_max_bytes=data.get("log_max_bytes", d.log_max_bytes),
        log_backup_count=data.get("log_backup_count", d.log_backup_count),
    )


def _load_tui_config(data: dict) -> TUIConfig:
    """Load TUI config from TOML data.

    Handles nested [tui.colors.*] sections with defaults.
    """
    tui_defaults = TUIConfig()
    colors_data = data.get("colors", {})
    variants_data = colors_data.get("variants", {})
    connection_data = colors_data.get("connection", {})

    v = VariantColors()
    c = ConnectionColors()

    return TUIConfig(
        colors=TUIColorsConfig(
            variants=VariantColors(
                info=variants_data.get("info", v.info),
                danger=variants_data.get("danger", v.danger),
                success=variants_data.get("success", v.success),
                primary=variants_data.get("primary", v.primary),
            ),
            connection=ConnectionColors(
                connected=connection_data.get("connected", c.connected),
                disconnected=connection_data.get("disconnected", c.disconnected),
            ),
        ),
        placeholder=data.get("placeholder", tui_defaults.placeholder),
    )
