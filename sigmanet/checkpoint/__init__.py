"""Checkpoint persistence for sigmanet networks."""

from .codec import (
    checkpoint_name,
    decode_into,
    encode_network,
    load_into,
    load_network,
    parse_topology,
    save_network,
)

__all__ = [
    "checkpoint_name",
    "decode_into",
    "encode_network",
    "load_into",
    "load_network",
    "parse_topology",
    "save_network",
]
