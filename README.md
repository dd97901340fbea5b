# attnblocks

Transformer building blocks written with NumPy. All arrays are `float32`.
The package provides:

- token embeddings and sinusoidal position encodings
- multi-head attention, in a causal self-attention form and a cross-attention form
- a position-wise feed-forward network
- pre-LayerNorm encoder and decoder blocks

## Installation

```
pip install .
```

To run the tests, install the `test` extra and run pytest:

```
pip install ".[test]"
pytest
```

## Modules

### `attnblocks.forward`

- `VarStore(seed=None)` is a store of named parameter arrays. It has its own
  random generator. `pp(name)` returns a view with a longer dotted prefix. The
  view uses the same storage and the same generator. `get(name, shape, init)`
  returns the stored array. If the array is missing, `get` creates it with
  `init(rng, shape)`. If the stored array has a different shape, `get` raises
  `ValueError`. `names()` lists the full names under the current prefix in
  sorted order.
- `Linear(in_dim, out_dim, vb, bias=True)` computes `xs @ weight.T + bias`.
  Its weight has shape `(out_dim, in_dim)`.
- `LayerNorm(size, vb, eps=1e-5)` normalises over the last dimension. Its scale
  starts at one and its shift starts at zero.
- `Dropout(p, rng=None)` zeroes elements with probability `p` when
  `forward(xs, train)` is called with `train` true. It rescales the elements
  that remain. `p` must lie in `[0, 1)`.
- `gelu(xs)` is the exact GELU, computed with the error function.
- `softmax(xs, axis)` is a numerically stable softmax.
- `FeedForward(in_dim, drop_p, vb)` applies Linear(d, 4d), GELU and then
  Linear(4d, d). It stores `drop_p` but applies no dropout.

### `attnblocks.attention`

- `MultiHeadAttention(in_dim, out_dim, context_length, drop_p, num_heads, vb, qkv_bias)`
  raises `ValueError` if `out_dim` is not divisible by `num_heads`. It has two
  entry points:
  - `forward(xs, train)` runs causal self-attention on a
    `(batch, tokens, out_dim)` array.
  - `forward_cross(xs, kv_xs, train)` runs unmasked cross-attention. The
    queries come from `xs`, and the keys and values come from `kv_xs`.
- `get_causal_mask(size)` returns a `(size, size)` `uint32` mask. It holds 1
  where `j > i`.
- `masked_fill(on_false, mask, on_true)` replaces the entries of `on_false` by
  `on_true` wherever `mask` is non-zero.

### `attnblocks.embeddings`

- `TokenEmbeddingConfig(vocab_size, embedding_dim)` holds the sizes for a
  token embedding.
- `TokenEmbedding(config, vb)` looks up integer token ids and multiplies the
  vectors by √embedding_dim. It raises `TypeError` for ids that are not
  integers and `IndexError` for ids outside the vocabulary.
- `PositionEmbeddingType` has two members, `ABSOLUTE` and `RELATIVE`.
- `PositionEncodingConfig` defaults to 512 positions, a dimension of 768 and
  `ABSOLUTE`.
- `pos_encoding(sequence_len, d_model)` builds the sinusoidal table. Sines go
  in the even columns and cosines in the odd columns.
- `PositionEncoding(config)` precomputes the table. `forward(seq_len)` returns
  the first `seq_len` rows and raises `ValueError` if `seq_len` is out of range.
- `InputEmbeddings(token_embeddings, pos_embeddings)` adds token embeddings and
  position encodings together. Use it as `forward(xs, context_len)`.

### `attnblocks.transformer`

- `EncodeBlock(in_dim, num_heads, context_length, drop_p, vb)` runs causal
  self-attention and then the feed-forward network. Each step is pre-normed and
  has a residual connection. Call it as `forward(xs, train)`.
- `DecoderBlock(in_dim, num_heads, context_length, drop_p, vb)` runs three
  steps: causal self-attention, cross-attention over the encoder output, and
  the feed-forward network. Call it as `forward(xs, encoder_output, train)`.

### `attnblocks.demo`

`run(seed=None)` builds an encoder and a decoder with embedding size 12 and 12
heads. It passes a batch of 2 sequences of 32 token ids through them, in
training mode. It returns the encoder output and the decoder output.

## Example

```python
import numpy as np
from attnblocks.forward import VarStore
from attnblocks.transformer import EncodeBlock

vb = VarStore(seed=0)
block = EncodeBlock(16, 4, 8, 0.1, vb.pp("encoder"))
out = block.forward(np.zeros((2, 8, 16), dtype=np.float32), False)
print(out.shape)  # (2, 8, 16)
```

## Command

```
attnblocks-demo [--seed N]
```

This command runs the demo and prints the output shapes:

```
Encoder output shape: [2, 32, 12]
Decoder output shape: [2, 32, 12]
```

## What the package does not do

- It computes forward passes only. It has no gradients, no training loop and
  no optimiser.
- It has no tokenizer.
- It cannot load or save parameters from files. Parameters exist only in a
  `VarStore` and are initialised at random.