"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProofBackendMode(str, Enum):
    """Proof generation backend."""

    MOCK = "mock"
    SNARKJS = "snarkjs"


class PaymentRailMode(str, Enum):
    """Payment rail implementation."""

    MOCK = "mock"
    X402 = "x402"


class ZKSettings(BaseSettings):
    """Proof system configuration."""

    model_config = SettingsConfigDict(env_prefix="ZK_")

    backend: ProofBackendMode = ProofBackendMode.MOCK
    build_dir: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent / "circuits" / "build"
    )
    snarkjs_command: str = "npx snarkjs"
    mock_secret: SecretStr = SecretStr("zk-agentmesh-mock-proving-key")

    # 10 bits covers the 0-1000 fixed-point score scale
    bit_width: int = Field(default=10, ge=1, le=252)
    score_scale: int = 1000

    @property
    def snarkjs_argv(self) -> list[str]:
        """Split the configured snarkjs command into argv form."""
        return self.snarkjs_command.split()


class RegistrySettings(BaseSettings):
    """Verification registry fees and operator threshold policy."""

    model_config = SettingsConfigDict(env_prefix="REGISTRY_")

    registration_fee: Decimal = Decimal("0.01")
    verification_fee: Decimal = Decimal("0.001")

    # category -> threshold name -> operator bound. A proof's ``min_*``
    # thresholds must be at least the bound, its ``max_*`` thresholds at most.
    threshold_policy: dict[str, dict[str, int]] = Field(
        default_factory=lambda: {
            "quality": {"min_quality_threshold": 800},
            "ethics": {"max_bias_threshold": 200, "min_fairness_score": 800, "max_harmful_rate": 0},
            "compliance": {"min_privacy_score": 800, "min_data_handling_score": 800},
            "capability": {"min_capability_score": 800, "min_training_coverage": 800},
            "reputation": {"min_interactions": 1, "min_reputation_score": 500},
            "incentive": {"min_user_benefit": 700, "min_societal_impact": 700, "max_misalignment_rate": 100},
            "adaptation": {
                "min_adaptation_success": 700,
                "min_principle_preservation": 700,
                "min_learning_efficiency": 700,
            },
        }
    )

    @field_validator("threshold_policy")
    @classmethod
    def bounds_must_be_directional(cls, v: dict[str, dict[str, int]]) -> dict[str, dict[str, int]]:
        """Every policy entry must name a min_ or max_ threshold."""
        for category, bounds in v.items():
            for name in bounds:
                if not name.startswith(("min_", "max_")):
                    raise ValueError(f"{category}.{name} is neither a min_ nor a max_ threshold")
        return v


class QuerySettings(BaseSettings):
    """Query processor pricing and settlement policy."""

    model_config = SettingsConfigDict(env_prefix="QUERY_")

    platform_fee_bps: int = Field(default=250, ge=0, le=10000)
    royalty_bps: int = Field(default=500, ge=0, le=10000)
    payment_tolerance_bps: int = Field(default=1000, ge=0, le=10000)
    complexity_scale: int = Field(default=1000, gt=0)
    # Largest accepted gap between estimated and proven complexity
    max_complexity_drift: int = Field(default=1000, ge=0)


class PaymentSettings(BaseSettings):
    """Off-chain payment rail configuration."""

    model_config = SettingsConfigDict(env_prefix="PAYMENT_")

    rail: PaymentRailMode = PaymentRailMode.MOCK
    x402_endpoint: str = "https://x402pay.com/api"
    api_key: SecretStr = SecretStr("")
    timeout_seconds: float = 30.0
    platform_address: str = "0xplatform"


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServicePorts(BaseSettings):
    """Service port configuration."""

    agent_registry: int = Field(default=8010, alias="AGENT_REGISTRY_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Proof system
    zk: ZKSettings = Field(default_factory=ZKSettings)

    # Ledger contracts
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    query: QuerySettings = Field(default_factory=QuerySettings)

    # External collaborators
    payment: PaymentSettings = Field(default_factory=PaymentSettings)

    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
