"""
MoveFlow Infrastructure Module
Configuration, errors and chain RPC access
"""

from .errors import (
    MoveFlowError,
    ValidationError,
    NotFoundError,
    ChainReadUnavailableError,
    ChainWriteRejectedError,
    ErrorCode,
    ErrorTracker,
    error_tracker,
    retry,
    register_exception_handlers,
    ErrorHandlingMiddleware,
)

from .config import (
    MoveFlowConfig,
    Environment,
    FeatureFlags,
    SecretsManager,
    get_config,
    get_secrets,
    reload_config,
)

from .rpc import (
    MovementRPC,
    OCTAS_PER_UNIT,
    from_octas,
    to_octas,
    get_rpc,
)

__all__ = [
    # Errors
    "MoveFlowError",
    "ValidationError",
    "NotFoundError",
    "ChainReadUnavailableError",
    "ChainWriteRejectedError",
    "ErrorCode",
    "ErrorTracker",
    "error_tracker",
    "retry",
    "register_exception_handlers",
    "ErrorHandlingMiddleware",

    # Config
    "MoveFlowConfig",
    "Environment",
    "FeatureFlags",
    "SecretsManager",
    "get_config",
    "get_secrets",
    "reload_config",

    # RPC
    "MovementRPC",
    "OCTAS_PER_UNIT",
    "from_octas",
    "to_octas",
    "get_rpc",
]
