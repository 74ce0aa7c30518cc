from __future__ import annotations

import json
from pathlib import Path

ABIS_DIR = Path(__file__).parent / "abis"

PRICE_RECORDER_ABI_PATH = ABIS_DIR / "PriceRecorder.json"
CUSTOM_FEED_ABI_PATH = ABIS_DIR / "PoolPriceCustomFeed.json"
FDC_HUB_ABI_PATH = ABIS_DIR / "FdcHub.json"
FEE_CONFIG_ABI_PATH = ABIS_DIR / "FdcRequestFeeConfigurations.json"
RELAY_ABI_PATH = ABIS_DIR / "Relay.json"


def load_abi(path: str | Path) -> list[dict]:
    """Load an ABI from a JSON file and return its "abi" field.

    Args:
        path: Path to the JSON file containing an "abi" field.

    Returns:
        ABI as a list of dictionaries.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        KeyError: If the JSON does not contain an "abi" field.
    """
    p = Path(path)
    with p.open() as f:
        data = json.load(f)
    return data["abi"]


def load_price_recorder_abi() -> list[dict]:
    """Load the PriceRecorder ABI."""
    return load_abi(PRICE_RECORDER_ABI_PATH)


def load_custom_feed_abi() -> list[dict]:
    """Load the PoolPriceCustomFeed ABI."""
    return load_abi(CUSTOM_FEED_ABI_PATH)


def load_fdc_hub_abi() -> list[dict]:
    return load_abi(FDC_HUB_ABI_PATH)


def load_fee_config_abi() -> list[dict]:
    return load_abi(FEE_CONFIG_ABI_PATH)


def load_relay_abi() -> list[dict]:
    """Load the Relay ABI."""
    return load_abi(RELAY_ABI_PATH)
