from pathlib import Path
from typing import Any, Dict, List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Timeouts
    request_timeout_seconds: float = Field(default=15.0, description="Timeout for chain reads and signer calls")
    quote_timeout_seconds: float = Field(default=20.0, description="Timeout for each routing service call")

    # Routing services
    enable_lifi: bool = Field(default=True, description="Enable LI.FI quote source")
    enable_zerox: bool = Field(default=True, description="Enable 0x quote source")
    lifi_base_url: str = Field(default="https://li.quest/v1", description="LI.FI API base URL")
    lifi_integrator: str = Field(default="", description="Optional LI.FI integrator tag")
    zerox_base_url: str = Field(default="https://api.0x.org", description="0x API base URL")
    zerox_api_key: str = Field(
        default="",
        description="0x API key",
        validation_alias=AliasChoices("zerox_api_key", "ZEROX_API_KEY", "ZERO_X_API_KEY"),
    )

    # Yield data
    defillama_yields_url: str = Field(
        default="https://yields.llama.fi",
        description="DefiLlama yields API base URL",
    )
    min_pool_tvl_usd: float = Field(default=1_000_000.0, description="Ignore pools below this TVL")
    yield_chains: List[str] = Field(
        default_factory=lambda: ["base", "arbitrum"],
        description="Chains searched when a deposit does not name one",
    )

    # Remote signer
    signer_base_url: str = Field(default="", description="Base URL of the remote signing service")
    signer_api_key: str = Field(default="", description="API key for the remote signing service")

    # Chain RPC overrides, keyed by chain name
    rpc_urls: Dict[str, str] = Field(
        default_factory=dict,
        description="Per-chain JSON-RPC URL overrides (e.g. {'base': 'https://...'})",
    )

    # Trading defaults
    default_slippage_bps: int = Field(default=50, ge=0, le=5000, description="Default slippage in basis points")
    price_impact_warn_pct: float = Field(default=1.0, description="Price impact that triggers a warning")
    price_impact_high_pct: float = Field(default=5.0, description="Price impact that triggers a high-impact warning")

    @property
    def has_zerox_key(self) -> bool:
        return bool(self.zerox_api_key)

    @property
    def has_signer(self) -> bool:
        return bool(self.signer_base_url)

    def rpc_url_for(self, chain: str, default: str) -> str:
        """Return the configured RPC URL for a chain, falling back to the public endpoint."""
        return self.rpc_urls.get(chain.lower()) or default

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)
        object.__setattr__(self, "yield_chains", [c.strip().lower() for c in self.yield_chains if c.strip()])


# Global settings instance
settings = Settings()
