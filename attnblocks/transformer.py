"""Pre-norm encoder and decoder blocks built from attention and feed-forward layers."""

from __future__ import annotations

import numpy as np

from attnblocks.attention import MultiHeadAttention
from attnblocks.forward import DTYPE, FeedForward, LayerNorm, VarStore

_LN_EPS = 1e-5


class EncodeBlock:
    """Masked self-attention followed by a feed-forward network, each with a residual."""

    def __init__(
        self,
        in_dim: int,
        num_heads: int,
        context_length: int,
        drop_p: float,
        vb: VarStore,
    ) -> None:
        self.ln1 = LayerNorm(in_dim, vb.pp("ln_1"), eps=_LN_EPS)
        self.ln2 = LayerNorm(in_dim, vb.pp("ln_2"), eps=_LN_EPS)
        self.attn = MultiHeadAttention(
            in_dim, in_dim, context_length, drop_p, num_heads, vb.pp("attn"), True
        )
        self.ff = FeedForward(in_dim, drop_p, vb.pp("ff"))

    def forward(self, xs: np.ndarray, train: bool) -> np.ndarray:
        xs = np.asarray(xs, dtype=DTYPE)
        x = self.attn.forward(self.ln1.forward(xs), train) + xs
        x = self.ff.forward(self.ln2.forward(x)) + x
        return x.astype(DTYPE)


class DecoderBlock:
    """Masked self-attention, cross-attention over the encoder output, then feed-forward."""

    def __init__(
        self,
        in_dim: int,
        num_heads: int,
        context_length: int,
        drop_p: float,
        vb: VarStore,
    ) -> None:
        self.ln1 = LayerNorm(in_dim, vb.pp("ln_1"), eps=_LN_EPS)
        self.ln2 = LayerNorm(in_dim, vb.pp("ln_2"), eps=_LN_EPS)
        self.ln3 = LayerNorm(in_dim, vb.pp("ln_3"), eps=_LN_EPS)
        self.masked_attn = MultiHeadAttention(
            in_dim, in_dim, context_length, drop_p, num_heads, vb.pp("masked_attn"), True
        )
        self.cross_attn = MultiHeadAttention(
            in_dim, in_dim, context_length, drop_p, num_heads, vb.pp("cross_attn"), True
        )
        self.ff = FeedForward(in_dim, drop_p, vb.pp("ff"))

    def forward(self, xs: np.ndarray, encoder_output: np.ndarray, train: bool) -> np.ndarray:
        xs = np.asarray(xs, dtype=DTYPE)
        x = self.masked_attn.forward(self.ln1.forward(xs), train) + xs
        x = self.cross_attn.forward_cross(self.ln2.forward(x), encoder_output, train) + x
        x = self.ff.forward(self.ln3.forward(x)) + x
        return x.astype(DTYPE)