"""Network, attestation-protocol and fixed-point constants."""

from typing import TypedDict

from eth_utils import keccak


class FdcNetwork(TypedDict):
    chain_id: int
    rpc_url: str
    fdc_hub: str
    relay: str
    da_layer_url: str
    verifier_url: str
    source_id: str
    native_symbol: str


FLARE_NETWORK: FdcNetwork = {
    "chain_id": 14,
    "rpc_url": "https://flare-api.flare.network/ext/bc/C/rpc",
    "fdc_hub": "0xc25c749DC27Efb1864Cb3DADa8845B7687eB2d44",
    "relay": "0x57a4c3676d08Aa5d15410b5A6A80fBcEF72f3F45",
    "da_layer_url": "https://flr-data-availability.flare.network",
    "verifier_url": "https://fdc-verifiers-mainnet.flare.network/verifier/flr/EVMTransaction/prepareRequest",
    # "FLR"
    "source_id": "0x464c520000000000000000000000000000000000000000000000000000000000",
    "native_symbol": "FLR",
}

COSTON2_NETWORK: FdcNetwork = {
    "chain_id": 114,
    "rpc_url": "https://coston2-api.flare.network/ext/bc/C/rpc",
    "fdc_hub": "0x48aC463d7975828989331836548F74Cf28Fc1e60",
    "relay": "0x5CdF9eAF3EB8b44fB696984a1420B56A7575D250",
    "da_layer_url": "https://ctn2-data-availability.flare.network",
    "verifier_url": "https://fdc-verifiers-testnet.flare.network/verifier/c2flr/EVMTransaction/prepareRequest",
    # "testC2FR"
    "source_id": "0x7465737443324652000000000000000000000000000000000000000000000000",
    "native_symbol": "C2FLR",
}

# "EVMTransaction", right-padded to bytes32
EVM_TRANSACTION_TYPE = "0x45564d5472616e73616374696f6e000000000000000000000000000000000000"
# Relay protocol id for attestation voting rounds
FDC_PROTOCOL_ID = 200

# Public key accepted by the verifier service when no personal key is configured
PUBLIC_VERIFIER_API_KEY = "00000000-0000-0000-0000-000000000000"

DA_PROOF_PATH = "/api/v1/fdc/proof-by-request-round-raw"

PRICE_RECORDED_SIGNATURE = (
    "PriceRecorded(address,uint160,int24,uint128,address,address,uint256,uint256)"
)
PRICE_RECORDED_TOPIC: bytes = keccak(text=PRICE_RECORDED_SIGNATURE)

# Fixed-point scales
Q96 = 2**96
Q192 = Q96 * Q96
INTERMEDIATE_DECIMALS = 18
FEED_DECIMALS = 6
MAX_PRICE = 2**128
MAX_SQRT_PRICE_X96 = 2**160

# bytes21 feed ids start with the custom-feed category byte
CUSTOM_FEED_CATEGORY = 0x21

WEI_PER_NATIVE = 10**18
WEI_PER_GWEI = 10**9
