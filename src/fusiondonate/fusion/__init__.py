"""Fusion+ cross-chain settlement provider integration."""

from fusiondonate.fusion.client import FusionAPIError, FusionPlusClient, get_fusion_client
from fusiondonate.fusion.hashlock import HashLock, InvalidSecretsError, generate_secrets, parse_secrets
from fusiondonate.fusion.models import Quote, SwapParams
from fusiondonate.fusion.retry import with_rate_limit_retry

__all__ = [
    "FusionAPIError",
    "FusionPlusClient",
    "get_fusion_client",
    "HashLock",
    "InvalidSecretsError",
    "generate_secrets",
    "parse_secrets",
    "Quote",
    "SwapParams",
    "with_rate_limit_retry",
]
