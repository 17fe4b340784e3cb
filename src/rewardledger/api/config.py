import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ApiConfig:
    mode: str  # "dev" | "testnet" | "prod"
    caller_header: str
    host: str
    port: int


def load_api_config() -> ApiConfig:
    """
    Read HTTP-facing settings.

    caller_header names the header an upstream authenticating gateway sets to
    the caller identity. The API trusts it as-is; never expose this service
    without such a gateway in front.
    """
    mode = os.getenv("REWARDLEDGER_MODE", "prod").strip().lower()
    header = os.getenv("REWARDLEDGER_CALLER_HEADER", "x-caller-identity").strip().lower() or "x-caller-identity"
    host = os.getenv("REWARDLEDGER_API_HOST", "127.0.0.1").strip() or "127.0.0.1"
    raw_port = os.getenv("REWARDLEDGER_API_PORT", "8080").strip()
    try:
        port = int(raw_port)
    except ValueError:
        raise ValueError(f"REWARDLEDGER_API_PORT must be an integer; got: {raw_port!r}") from None
    if port <= 0 or port > 65535:
        raise ValueError(f"REWARDLEDGER_API_PORT must be 1..65535; got: {port}")
    return ApiConfig(mode=mode, caller_header=header, host=host, port=port)
