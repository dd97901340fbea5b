"""Transformer building blocks on NumPy: embeddings, multi-head attention, feed-forward, encoder and decoder blocks."""

__version__ = "0.1.0"
__all__ = ["attention", "demo", "embeddings", "forward", "transformer"]