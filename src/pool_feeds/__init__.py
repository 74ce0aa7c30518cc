"""Attestation-gated price feeds for concentrated-liquidity DEX pools."""

__version__ = "0.1.0"
