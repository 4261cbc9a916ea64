"""WebUntis configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class UntisConfig(BaseSettings):
    """WebUntis configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # WebUntis server (JSON-RPC and public timetable API share the host)
    untis_host: str = Field(
        default="ikarus.webuntis.com",
        description="WebUntis host name, without scheme",
    )
    untis_school: str = Field(
        default="",
        description="School login name passed as ?school= to the JSON-RPC endpoint",
    )
    untis_user: str = Field(
        default="",
        description="WebUntis username for CLI runs",
    )
    untis_password: str = Field(
        default="",
        description="WebUntis password for CLI runs",
    )

    # HTTP
    request_timeout_seconds: float = Field(
        default=30,
        description="Timeout for each request to WebUntis",
    )

    # Speakable endpoint
    server_host: str = Field(
        default="127.0.0.1",
        description="Bind address of the /speakable endpoint",
    )
    server_port: int = Field(
        default=8000,
        description="Port of the /speakable endpoint",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def rpc_url(self) -> str:
        """JSON-RPC endpoint for authenticate/logout."""
        return f"https://{self.untis_host}/WebUntis/jsonrpc.do?school={self.untis_school}"

    @property
    def timetable_url(self) -> str:
        """Public weekly timetable endpoint."""
        return f"https://{self.untis_host}/WebUntis/api/public/timetable/weekly/data"


# Singleton pattern
_config: UntisConfig | None = None


def get_config() -> UntisConfig:
    """Get the WebUntis configuration singleton.

    Returns:
        UntisConfig: WebUntis configuration instance
    """
    global _config
    if _config is None:
        _config = UntisConfig()
    return _config
