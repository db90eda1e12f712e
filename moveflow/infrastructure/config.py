"""
Configuration Management for MoveFlow
Environment-based configuration with secrets handling and feature flags

Features:
- Environment-based config (dev/staging/prod)
- Movement chain + contract addresses
- Refresh cadence for chain snapshots
- Secrets management
- Feature flags
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional
from enum import Enum

logger = logging.getLogger("Config")


MOVEMENT_TESTNET_RPC = "https://testnet.movementnetwork.xyz/v1"
MOVEMENT_MAINNET_RPC = "https://mainnet.movementnetwork.xyz/v1"

DEFAULT_CONTRACT_ADDRESS = "0xc227292511a7df4b728b91a03077b5556583fcc979c36e1043bbe7b102273857"
DEFAULT_COIN_TYPE = "0x1::aptos_coin::AptosCoin"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class ChainConfig:
    """Movement network + deployed contract configuration"""
    network: str = "testnet"
    rpc_url: str = MOVEMENT_TESTNET_RPC

    # Contract addresses (vault/router default to the publisher account)
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    vault_address: str = DEFAULT_CONTRACT_ADDRESS
    router_address: str = DEFAULT_CONTRACT_ADDRESS
    coin_type: str = DEFAULT_COIN_TYPE

    request_timeout: float = 10.0


@dataclass
class RefreshConfig:
    """Snapshot refresh cadence"""
    vault_interval_seconds: int = 30
    router_interval_seconds: int = 60

    # Retry/backoff for a single refresh cycle
    retry_attempts: int = 3
    retry_delay: float = 1.0
    retry_backoff: float = 2.0


@dataclass
class FeeConfig:
    """Vault fees in basis points"""
    withdrawal_fee_bps: int = 10  # 0.1%


@dataclass
class BotConfig:
    """Telegram bot configuration"""
    app_url: str = "https://moveflow.xyz"
    wallet_db_path: str = "data/moveflow_wallets.db"


@dataclass
class MonitoringConfig:
    """Monitoring configuration"""
    log_level: str = "INFO"
    sentry_traces_sample_rate: float = 0.2


@dataclass
class FeatureFlags:
    """Feature flags for gradual rollout"""
    enable_auto_refresh: bool = True


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, str(default)).lower() == "true"


@dataclass
class MoveFlowConfig:
    """Main application configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True

    # Component configs
    chain: ChainConfig = field(default_factory=ChainConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    fees: FeeConfig = field(default_factory=FeeConfig)
    bot: BotConfig = field(default_factory=BotConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)

    @classmethod
    def from_env(cls) -> "MoveFlowConfig":
        """Create configuration from environment variables"""
        env = os.environ.get("MOVEFLOW_ENV", "development").lower()

        config = cls(
            environment=Environment(env) if env in [e.value for e in Environment] else Environment.DEVELOPMENT,
            debug=_env_bool("DEBUG", True),
        )

        # Chain config
        network = os.environ.get("MOVEMENT_NETWORK", "testnet").lower()
        default_rpc = MOVEMENT_MAINNET_RPC if network == "mainnet" else MOVEMENT_TESTNET_RPC
        contract = os.environ.get("MOVEFLOW_CONTRACT_ADDRESS", DEFAULT_CONTRACT_ADDRESS)
        config.chain = ChainConfig(
            network=network,
            rpc_url=os.environ.get("MOVEMENT_RPC_URL", default_rpc).rstrip("/"),
            contract_address=contract,
            vault_address=os.environ.get("MOVEFLOW_VAULT_ADDRESS") or contract,
            router_address=os.environ.get("MOVEFLOW_ROUTER_ADDRESS") or contract,
            coin_type=os.environ.get("MOVEFLOW_COIN_TYPE", DEFAULT_COIN_TYPE),
            request_timeout=float(os.environ.get("RPC_TIMEOUT", "10")),
        )

        # Refresh cadence
        config.refresh = RefreshConfig(
            vault_interval_seconds=int(os.environ.get("VAULT_REFRESH_SECONDS", "30")),
            router_interval_seconds=int(os.environ.get("ROUTER_REFRESH_SECONDS", "60")),
            retry_attempts=int(os.environ.get("REFRESH_RETRY_ATTEMPTS", "3")),
            retry_delay=float(os.environ.get("REFRESH_RETRY_DELAY", "1.0")),
        )

        config.bot = BotConfig(
            app_url=os.environ.get("MOVEFLOW_APP_URL", "https://moveflow.xyz"),
            wallet_db_path=os.environ.get("WALLET_DB_PATH", "data/moveflow_wallets.db"),
        )

        config.monitoring.log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

        config.features = FeatureFlags(
            enable_auto_refresh=_env_bool("ENABLE_AUTO_REFRESH", True),
        )

        # Production hardening
        if config.environment == Environment.PRODUCTION:
            config.debug = False
            config.monitoring.log_level = "WARNING"

        return config

    def to_dict(self) -> Dict:
        """Convert to dictionary (hiding secrets)"""
        def sanitize(obj):
            if isinstance(obj, dict):
                return {k: sanitize(v) for k, v in obj.items() if "token" not in k.lower() and "secret" not in k.lower()}
            elif hasattr(obj, '__dataclass_fields__'):
                return sanitize({k: getattr(obj, k) for k in obj.__dataclass_fields__})
            elif isinstance(obj, Enum):
                return obj.value
            else:
                return obj

        return sanitize(self)


# ============================================
# SECRETS MANAGEMENT
# ============================================

class SecretsManager:
    """
    Holds secrets loaded from the environment.
    Values never appear in MoveFlowConfig.to_dict() or logs.
    """

    SECRET_KEYS = [
        "TELEGRAM_BOT_TOKEN",
        "SENTRY_DSN",
    ]

    def __init__(self):
        self._secrets: Dict[str, str] = {}
        self._load_from_env()

    def _load_from_env(self):
        for key in self.SECRET_KEYS:
            value = os.environ.get(key)
            if value:
                self._secrets[key] = value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a secret value"""
        return self._secrets.get(key, default)

    def set(self, key: str, value: str):
        """Set a secret value (runtime only)"""
        self._secrets[key] = value

    def has(self, key: str) -> bool:
        return key in self._secrets


# ============================================
# GLOBAL INSTANCES
# ============================================

config = MoveFlowConfig.from_env()
secrets = SecretsManager()


def get_config() -> MoveFlowConfig:
    """Get the global configuration"""
    return config


def get_secrets() -> SecretsManager:
    """Get the secrets manager"""
    return secrets


def reload_config() -> MoveFlowConfig:
    """Reload configuration and secrets from environment"""
    global config, secrets
    config = MoveFlowConfig.from_env()
    secrets = SecretsManager()
    logger.info(f"Configuration reloaded for environment: {config.environment.value}")
    return config
