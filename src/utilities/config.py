import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


# ========== ENVIRONMENT VARIABLE HELPERS ==========
def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable"""
    value = os.getenv(key, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    elif value in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer value from environment variable"""
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get float value from environment variable"""
    try:
        return float(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_env_str(key: str, default: str = "") -> str:
    """Get string value from environment variable"""
    return os.getenv(key, default)


def get_env_list(key: str, default: list[str]) -> list[str]:
    """Get comma-separated list from environment variable"""
    value = os.getenv(key)
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def get_env_enum(key: str, enum_class: type, default: Any) -> Any:
    """Get enum value from environment variable"""
    value = os.getenv(key, "").lower()
    for enum_val in enum_class:
        if enum_val.value.lower() == value:
            return enum_val
    return default


# ========== ENUMS ==========
class LogLevel(str, Enum):
    """Logging levels"""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# ========== BASE CONFIGURATION CLASS ==========
@dataclass
class BaseConfig:
    """Base configuration class"""

    def model_dump(self) -> dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)

    def validate(self) -> None:
        """Validate configuration values"""
        pass


DEFAULT_SYSTEM_PROMPT = (
    "You are Snowbasin, a helpful assistant specialized in Utah. "
    "You help with snow forecasts, ski and road conditions, winter weather, "
    "and UTA public transit (buses, TRAX, FrontRunner, routes, stops and service alerts). "
    "Keep answers concise and practical. When real-time data is provided, prefer it over "
    "general knowledge and say when information may be out of date."
)


# ========== LLM CONFIGURATION ==========
@dataclass
class LLMConfig(BaseConfig):
    """Large Language Model configuration"""

    model: str = "llama3.1:latest"
    base_url: str = "http://localhost:11434"
    timeout: int = 90

    # Generation parameters
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int | None = None

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    title_max_length: int = 50

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Load LLM configuration from environment variables"""
        max_tokens_str = get_env_str("SNOWBASIN_LLM_MAX_TOKENS", "")
        max_tokens = int(max_tokens_str) if max_tokens_str.isdigit() else None

        return cls(
            model=get_env_str("SNOWBASIN_LLM_MODEL", "llama3.1:latest"),
            base_url=get_env_str("SNOWBASIN_LLM_BASE_URL", "http://localhost:11434"),
            timeout=get_env_int("SNOWBASIN_LLM_TIMEOUT", 90),
            temperature=get_env_float("SNOWBASIN_LLM_TEMPERATURE", 0.7),
            top_p=get_env_float("SNOWBASIN_LLM_TOP_P", 0.9),
            max_tokens=max_tokens,
            system_prompt=get_env_str("SNOWBASIN_LLM_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
            title_max_length=get_env_int("SNOWBASIN_LLM_TITLE_MAX_LENGTH", 50),
        )

    def validate(self) -> None:
        """Validate LLM configuration"""
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        if not 0.0 <= self.top_p <= 1.0:
            raise ValueError("top_p must be between 0.0 and 1.0")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.title_max_length <= 0:
            raise ValueError("title_max_length must be positive")


# ========== TRANSIT CONFIGURATION ==========
@dataclass
class TransitConfig(BaseConfig):
    """Transit-data provider configuration"""

    enabled: bool = True
    base_url: str = "https://api.rideuta.com/v1"
    api_key: str = ""
    timeout: float = 5.0
    popular_stop_limit: int = 5
    arrivals_per_stop: int = 3

    @classmethod
    def from_env(cls) -> "TransitConfig":
        """Load transit configuration from environment variables"""
        return cls(
            enabled=get_env_bool("SNOWBASIN_TRANSIT_ENABLED", True),
            base_url=get_env_str("SNOWBASIN_TRANSIT_BASE_URL", "https://api.rideuta.com/v1"),
            api_key=get_env_str("SNOWBASIN_TRANSIT_API_KEY", ""),
            timeout=get_env_float("SNOWBASIN_TRANSIT_TIMEOUT", 5.0),
            popular_stop_limit=get_env_int("SNOWBASIN_TRANSIT_POPULAR_STOP_LIMIT", 5),
            arrivals_per_stop=get_env_int("SNOWBASIN_TRANSIT_ARRIVALS_PER_STOP", 3),
        )

    def validate(self) -> None:
        """Validate transit configuration"""
        if self.timeout <= 0:
            raise ValueError("transit timeout must be positive")
        if self.popular_stop_limit < 0:
            raise ValueError("popular_stop_limit cannot be negative")
        if self.arrivals_per_stop < 0:
            raise ValueError("arrivals_per_stop cannot be negative")


# ========== STORAGE / CHAT CONFIGURATION ==========
@dataclass
class StorageConfig(BaseConfig):
    """Chat persistence configuration"""

    database_path: str = "./data/chat-data/snowbasin.db"

    @classmethod
    def from_env(cls) -> "StorageConfig":
        """Load storage configuration from environment variables"""
        return cls(
            database_path=get_env_str(
                "SNOWBASIN_STORAGE_DATABASE_PATH", "./data/chat-data/snowbasin.db"
            ),
        )


@dataclass
class ChatConfig(BaseConfig):
    """Chat behaviour configuration"""

    default_title: str = "New Chat"
    share_id_length: int = 8

    @classmethod
    def from_env(cls) -> "ChatConfig":
        """Load chat configuration from environment variables"""
        return cls(
            default_title=get_env_str("SNOWBASIN_CHAT_DEFAULT_TITLE", "New Chat"),
            share_id_length=get_env_int("SNOWBASIN_CHAT_SHARE_ID_LENGTH", 8),
        )

    def validate(self) -> None:
        """Validate chat configuration"""
        if not 1 <= self.share_id_length <= 32:
            raise ValueError("share_id_length must be between 1 and 32")
        if not self.default_title:
            raise ValueError("default_title cannot be empty")


# ========== AUTH CONFIGURATION ==========
def parse_token_map(value: str) -> dict[str, str]:
    """Parse 'token:user,token2:user2' into a token -> user id mapping."""
    tokens: dict[str, str] = {}
    for pair in value.split(","):
        pair = pair.strip()
        if not pair:
            continue
        token, sep, user_id = pair.partition(":")
        if not sep or not token or not user_id:
            raise ValueError(f"Invalid auth token entry: {pair!r}")
        tokens[token.strip()] = user_id.strip()
    return tokens


@dataclass
class AuthConfig(BaseConfig):
    """Identity provider configuration (static bearer tokens)"""

    tokens: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """Load auth configuration from environment variables"""
        return cls(tokens=parse_token_map(get_env_str("SNOWBASIN_AUTH_TOKENS", "")))


# ========== SERVER / CLIENT CONFIGURATION ==========
@dataclass
class ServerConfig(BaseConfig):
    """HTTP server configuration"""

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load server configuration from environment variables"""
        return cls(
            host=get_env_str("SNOWBASIN_SERVER_HOST", "0.0.0.0"),
            port=get_env_int("SNOWBASIN_SERVER_PORT", 8000),
            cors_origins=get_env_list(
                "SNOWBASIN_SERVER_CORS_ORIGINS",
                ["http://localhost:3000", "http://127.0.0.1:3000"],
            ),
        )

    def validate(self) -> None:
        """Validate server configuration"""
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")


@dataclass
class ClientConfig(BaseConfig):
    """Terminal chat client configuration"""

    base_url: str = "http://localhost:8000"
    token: str = ""

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Load client configuration from environment variables"""
        return cls(
            base_url=get_env_str("SNOWBASIN_CLIENT_BASE_URL", "http://localhost:8000"),
            token=get_env_str("SNOWBASIN_CLIENT_TOKEN", ""),
        )


# ========== LOGGING CONFIGURATION ==========
@dataclass
class LoggingConfig(BaseConfig):
    """Logging configuration"""

    level: LogLevel = LogLevel.INFO
    log_to_file: bool = False
    log_file_path: str = "./logs/snowbasin.log"
    log_to_console: bool = True
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Load logging configuration from environment variables"""
        return cls(
            level=get_env_enum("SNOWBASIN_LOGGING_LEVEL", LogLevel, LogLevel.INFO),
            log_to_file=get_env_bool("SNOWBASIN_LOGGING_LOG_TO_FILE", False),
            log_file_path=get_env_str("SNOWBASIN_LOGGING_LOG_FILE_PATH", "./logs/snowbasin.log"),
            log_to_console=get_env_bool("SNOWBASIN_LOGGING_LOG_TO_CONSOLE", True),
            verbose=get_env_bool("SNOWBASIN_LOGGING_VERBOSE", False),
        )


# ========== MAIN CONFIGURATION CLASS ==========
@dataclass
class SnowbasinConfig(BaseConfig):
    """Complete Snowbasin configuration"""

    llm: LLMConfig = field(default_factory=LLMConfig)
    transit: TransitConfig = field(default_factory=TransitConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    version: str = "1.0.0"

    @classmethod
    def from_env(cls) -> "SnowbasinConfig":
        """Load configuration from environment variables"""
        config = cls(
            llm=LLMConfig.from_env(),
            transit=TransitConfig.from_env(),
            storage=StorageConfig.from_env(),
            chat=ChatConfig.from_env(),
            auth=AuthConfig.from_env(),
            server=ServerConfig.from_env(),
            client=ClientConfig.from_env(),
            logging=LoggingConfig.from_env(),
            version=get_env_str("SNOWBASIN_VERSION", "1.0.0"),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate entire configuration"""
        self.llm.validate()
        self.transit.validate()
        self.chat.validate()
        self.server.validate()


def get_config(from_env: bool = False) -> SnowbasinConfig:
    """
    Get a configuration instance.

    Args:
        from_env: If True, load configuration from environment variables.
                 If False, use default values.

    Returns:
        SnowbasinConfig instance with specified settings

    Example:
        # Use default configuration
        config = get_config()

        # Load from environment variables
        config = get_config(from_env=True)

        Environment Variables:
            SNOWBASIN_LLM_MODEL="llama3.1:latest"
            SNOWBASIN_LLM_BASE_URL="http://localhost:11434"
            SNOWBASIN_TRANSIT_BASE_URL="https://api.rideuta.com/v1"
            SNOWBASIN_TRANSIT_API_KEY="..."
            SNOWBASIN_STORAGE_DATABASE_PATH="./data/chat-data/snowbasin.db"
            SNOWBASIN_AUTH_TOKENS="token1:alice,token2:bob"
            SNOWBASIN_CLIENT_TOKEN="token1"
            SNOWBASIN_LOGGING_LEVEL="info"
    """
    if from_env:
        return SnowbasinConfig.from_env()
    return SnowbasinConfig()
