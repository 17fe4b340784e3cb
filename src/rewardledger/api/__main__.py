# src/rewardledger/api/__main__.py
from __future__ import annotations

import uvicorn

from rewardledger.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so REWARDLEDGER_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from rewardledger.api.app import create_app
    from rewardledger.api.config import load_api_config
    from rewardledger.api.structured_logging import configure_structured_logging
    from rewardledger.runtime.ledger_config import load_ledger_config

    ledger_cfg = load_ledger_config()
    configure_structured_logging(ledger_cfg.log_level)

    api_cfg = load_api_config()
    uvicorn.run(create_app(), host=api_cfg.host, port=api_cfg.port, log_level="info")


if __name__ == "__main__":
    main()
