"""Raw binary checkpoints whose file name carries the layer topology.

A checkpoint body is, for every layer in order, the row-major weight matrix
followed by the bias vector, each as little-endian float32 with no header or
length prefix.  The layer sizes live only in the file name, e.g.
``64-30-10-digits.net``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Sequence

import numpy as np

from ..core.errors import CorruptCheckpoint
from ..core.network import Network

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".net"
WIRE_DTYPE = np.dtype("<f4")
_DIGITS = re.compile(r"^[0-9]+$")


def checkpoint_name(sizes: Sequence[int], hint: str = "", extension: str = DEFAULT_EXTENSION) -> str:
    """Return ``"<n0>-<n1>-...-<hint><extension>"`` for ``sizes``."""

    if extension and not extension.startswith("."):
        raise ValueError(f"Checkpoint extension {extension!r} must be empty or start with '.'")
    if hint:
        first = hint.split("-", 1)[0].split(".", 1)[0]
        if _DIGITS.match(first):
            raise ValueError(f"Checkpoint hint {hint!r} would be parsed as a layer size")
        if "/" in hint or "\\" in hint:
            raise ValueError(f"Checkpoint hint {hint!r} must not contain path separators")
    parts = [str(int(size)) for size in sizes]
    if hint:
        parts.append(hint)
    return "-".join(parts) + extension


def parse_topology(path: str | Path) -> List[int]:
    """Recover the layer sizes from the leading dash-separated decimal run."""

    name = Path(path).name
    sizes: List[int] = []
    for token in name.split("-"):
        # The final size may carry the extension directly: ``10.net``.
        head = token.split(".", 1)[0] if "." in token else token
        if not _DIGITS.match(head):
            break
        sizes.append(int(head))
        if head != token:
            break
    return sizes


def expected_nbytes(sizes: Sequence[int]) -> int:
    dims = [int(size) for size in sizes]
    floats = dims[0]
    for prev, size in zip(dims[:-1], dims[1:]):
        floats += size * prev + size
    return floats * WIRE_DTYPE.itemsize


def encode_network(network: Network) -> bytes:
    """Serialise every layer's weights then biases, in layer order."""

    chunks: List[bytes] = []
    for layer in network.layers:
        chunks.append(layer.weights.data.astype(WIRE_DTYPE, copy=False).tobytes(order="C"))
        chunks.append(layer.biases.data.astype(WIRE_DTYPE, copy=False).tobytes())
    return b"".join(chunks)


def decode_into(network: Network, payload: bytes) -> Network:
    """Fill ``network``'s weights and biases from ``payload``."""

    expected = expected_nbytes(network.sizes)
    if len(payload) != expected:
        raise CorruptCheckpoint(
            f"Checkpoint holds {len(payload)} bytes but topology {network.sizes} "
            f"requires {expected}"
        )
    offset = 0
    for layer in network.layers:
        for buffer in (layer.weights.data, layer.biases.data):
            count = int(buffer.size)
            values = np.frombuffer(payload, dtype=WIRE_DTYPE, count=count, offset=offset)
            buffer[...] = values.reshape(buffer.shape)
            offset += count * WIRE_DTYPE.itemsize
    return network


def save_network(
    network: Network,
    hint: str = "",
    directory: str | Path = ".",
    *,
    extension: str = DEFAULT_EXTENSION,
) -> Path:
    """Write ``network`` to ``directory`` and return the checkpoint path."""

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / checkpoint_name(network.sizes, hint, extension)
    payload = encode_network(network)
    with path.open("wb") as handle:
        handle.write(payload)
    logger.info("Saved checkpoint %s (%d bytes)", path, len(payload))
    return path


def _read_checked(path: Path, sizes: Sequence[int]) -> bytes:
    if len(sizes) < 2:
        raise CorruptCheckpoint(
            f"Checkpoint name {path.name!r} does not encode at least two layer sizes"
        )
    if any(size <= 0 for size in sizes):
        raise CorruptCheckpoint(f"Checkpoint name {path.name!r} encodes an empty layer")
    with path.open("rb") as handle:
        payload = handle.read()
    expected = expected_nbytes(sizes)
    if len(payload) != expected:
        raise CorruptCheckpoint(
            f"{path.name}: read {len(payload)} bytes, topology {list(sizes)} requires {expected}"
        )
    return payload


def load_network(path: str | Path) -> Network:
    """Rebuild a network from the topology in ``path``'s name and fill it."""

    path = Path(path)
    sizes = parse_topology(path)
    payload = _read_checked(path, sizes)
    network = decode_into(Network.zeros(sizes), payload)
    logger.info("Loaded checkpoint %s with topology %s", path, sizes)
    return network


def load_into(network: Network, path: str | Path) -> Network:
    """Load ``path`` into an existing ``network`` of the same topology."""

    path = Path(path)
    sizes = parse_topology(path)
    if sizes != network.sizes:
        raise CorruptCheckpoint(
            f"{path.name}: encodes topology {sizes}, network has {network.sizes}"
        )
    payload = _read_checked(path, sizes)
    decode_into(network, payload)
    logger.info("Loaded checkpoint %s into existing network", path)
    return network


__all__ = [
    "DEFAULT_EXTENSION",
    "checkpoint_name",
    "decode_into",
    "encode_network",
    "expected_nbytes",
    "load_into",
    "load_network",
    "parse_topology",
    "save_network",
]
