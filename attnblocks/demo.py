"""Run an encoder block and a decoder block on a small batch and report the shapes."""

from __future__ import annotations

import argparse

import numpy as np

from attnblocks.embeddings import (
    InputEmbeddings,
    PositionEmbeddingType,
    PositionEncoding,
    PositionEncodingConfig,
    TokenEmbedding,
    TokenEmbeddingConfig,
)
from attnblocks.forward import VarStore
from attnblocks.transformer import DecoderBlock, EncodeBlock

VOCAB_SIZE = 100
EMBEDDING_DIM = 12
MAX_POSITION_EMBEDDINGS = 100
NUM_HEADS = 12
CONTEXT_LENGTH = 32
DROP_P = 0.1
BATCH = 2


def run(seed: int | None = None) -> tuple[np.ndarray, np.ndarray]:
    """Build the blocks with fresh parameters and return (encoder, decoder) outputs."""
    vb = VarStore(seed)

    embed_config = TokenEmbeddingConfig(VOCAB_SIZE, EMBEDDING_DIM)
    src_embedding = TokenEmbedding(embed_config, vb.pp("src_embeddings"))
    tgt_embedding = TokenEmbedding(embed_config, vb.pp("tgt_embeddings"))

    pe_config = PositionEncodingConfig(
        MAX_POSITION_EMBEDDINGS, EMBEDDING_DIM, PositionEmbeddingType.ABSOLUTE
    )
    src_pe = PositionEncoding(pe_config)
    tgt_pe = PositionEncoding(pe_config)

    encoder = EncodeBlock(EMBEDDING_DIM, NUM_HEADS, CONTEXT_LENGTH, DROP_P, vb.pp("encoder"))
    decoder = DecoderBlock(EMBEDDING_DIM, NUM_HEADS, CONTEXT_LENGTH, DROP_P, vb.pp("decoder"))

    ids = np.arange(BATCH * CONTEXT_LENGTH, dtype=np.uint32).reshape(BATCH, CONTEXT_LENGTH)

    src_embedded = InputEmbeddings(src_embedding, src_pe).forward(ids, CONTEXT_LENGTH)
    encoder_output = encoder.forward(src_embedded, True) + tgt_pe.forward(CONTEXT_LENGTH)

    tgt_embedded = InputEmbeddings(tgt_embedding, tgt_pe).forward(ids, CONTEXT_LENGTH)
    decoder_output = decoder.forward(tgt_embedded, encoder_output, True)
    return encoder_output, decoder_output


def _format_shape(shape: tuple[int, ...]) -> str:
    return "[" + ", ".join(str(dim) for dim in shape) + "]"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", type=int, default=None, help="seed for parameters and dropout")
    args = parser.parse_args(argv)

    encoder_output, decoder_output = run(args.seed)
    print(f"Encoder output shape: {_format_shape(encoder_output.shape)}")
    print(f"Decoder output shape: {_format_shape(decoder_output.shape)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())