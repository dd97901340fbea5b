"""Token embeddings, sinusoidal position encodings and their sum."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field

import numpy as np

from attnblocks.forward import DTYPE, VarStore


@dataclass
class TokenEmbeddingConfig:
    """Size of the vocabulary and of the vector each token is mapped to."""

    vocab_size: int
    embedding_dim: int


def _standard_normal(rng: np.random.Generator, shape: tuple[int, ...]) -> np.ndarray:
    return rng.normal(0.0, 1.0, size=shape)


class TokenEmbedding:
    """Lookup table from token ids to vectors, scaled by the square root of the model size."""

    def __init__(self, config: TokenEmbeddingConfig, vb: VarStore) -> None:
        self.config = config
        self.weight = vb.pp("token_embeddings").get(
            "weight", (config.vocab_size, config.embedding_dim), _standard_normal
        )

    def forward(self, xs) -> np.ndarray:
        """Look up the ids in ``xs``; the result gains a trailing embedding dimension."""
        ids = np.asarray(xs)
        if not np.issubdtype(ids.dtype, np.integer):
            raise TypeError(f"token ids must be integers, got {ids.dtype}")
        if ids.size and (ids.min() < 0 or ids.max() >= self.config.vocab_size):
            raise IndexError(
                f"token id out of range for vocabulary of size {self.config.vocab_size}"
            )
        scale = DTYPE(math.sqrt(self.config.embedding_dim))
        return (self.weight[ids] * scale).astype(DTYPE)

    __call__ = forward


class PositionEmbeddingType(enum.Enum):
    """How positions are encoded."""

    ABSOLUTE = "absolute"
    RELATIVE = "relative"


@dataclass
class PositionEncodingConfig:
    """Longest supported sequence, model size and encoding kind."""

    max_position_embeddings: int = 512
    embedding_dim: int = 768
    position_embedding_type: PositionEmbeddingType = field(
        default=PositionEmbeddingType.ABSOLUTE
    )


def pos_encoding(sequence_len: int, d_model: int) -> np.ndarray:
    """Sinusoidal table: even columns hold sin(pos * w_i), odd columns cos(pos * w_i).

    The frequencies are ``w_i = exp(-2i * ln(10000) / d_model)``.
    """
    position = np.arange(sequence_len, dtype=DTYPE)[:, None]
    steps = np.arange(0, d_model, 2, dtype=DTYPE)
    inv_freq = DTYPE(-(math.log(10000.0) / d_model))
    div_term = np.exp(steps * inv_freq).astype(DTYPE)
    angles = (position @ div_term[None, :]).astype(DTYPE)
    table = np.stack([np.sin(angles), np.cos(angles)], axis=2)
    return table.reshape(sequence_len, -1).astype(DTYPE)


class PositionEncoding:
    """A precomputed sinusoidal position table of shape (max_positions, embedding_dim)."""

    def __init__(self, config: PositionEncodingConfig) -> None:
        self.config = config
        self.embedding = pos_encoding(config.max_position_embeddings, config.embedding_dim)

    def forward(self, seq_len: int) -> np.ndarray:
        """The first ``seq_len`` rows of the table."""
        limit = self.embedding.shape[0]
        if seq_len < 0 or seq_len > limit:
            raise ValueError(f"sequence length {seq_len} outside of [0, {limit}]")
        return self.embedding[:seq_len]

    __call__ = forward


class InputEmbeddings:
    """Token embeddings plus position encodings, the input to the transformer blocks."""

    def __init__(self, token_embeddings: TokenEmbedding, pos_embeddings: PositionEncoding) -> None:
        self.token_embeddings = token_embeddings
        self.pos_embeddings = pos_embeddings

    def forward(self, xs, context_len: int) -> np.ndarray:
        token = self.token_embeddings.forward(xs)
        pe = self.pos_embeddings.forward(context_len)
        return (token + pe).astype(DTYPE)

    __call__ = forward