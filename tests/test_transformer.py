import numpy as np
import pytest

from attnblocks.forward import VarStore
from attnblocks.transformer import DecoderBlock, EncodeBlock

DIM = 12
HEADS = 4
CTX = 8


def _zeros(rng, shape):
    return np.zeros(shape)


def _inputs(seed=0, shape=(2, CTX, DIM)):
    return np.random.default_rng(seed).normal(size=shape).astype(np.float32)


def test_encoder_output_shape():
    block = EncodeBlock(DIM, HEADS, CTX, 0.1, VarStore(seed=1).pp("encoder"))
    out = block.forward(_inputs(), True)
    assert out.shape == (2, CTX, DIM)
    assert out.dtype == np.float32
    assert np.all(np.isfinite(out))


def test_decoder_output_shape():
    vs = VarStore(seed=2)
    decoder = DecoderBlock(DIM, HEADS, CTX, 0.1, vs.pp("decoder"))
    out = decoder.forward(_inputs(1), _inputs(2), True)
    assert out.shape == (2, CTX, DIM)
    assert np.all(np.isfinite(out))


def test_decoder_accepts_different_encoder_length():
    decoder = DecoderBlock(DIM, HEADS, CTX, 0.0, VarStore(seed=3))
    out = decoder.forward(_inputs(1, (2, 5, DIM)), _inputs(2, (2, 7, DIM)), False)
    assert out.shape == (2, 5, DIM)


def test_encoder_eval_is_deterministic():
    block = EncodeBlock(DIM, HEADS, CTX, 0.5, VarStore(seed=4))
    xs = _inputs()
    np.testing.assert_array_equal(block.forward(xs, False), block.forward(xs, False))


def test_encoder_is_causal():
    block = EncodeBlock(DIM, HEADS, CTX, 0.0, VarStore(seed=5))
    xs = _inputs()
    changed = xs.copy()
    changed[:, -1, :] += 3.0
    a = block.forward(xs, False)
    b = block.forward(changed, False)
    np.testing.assert_allclose(a[:, :-1], b[:, :-1], rtol=1e-5, atol=1e-5)
    assert not np.allclose(a[:, -1], b[:, -1])


def test_decoder_is_causal_in_its_own_input():
    decoder = DecoderBlock(DIM, HEADS, CTX, 0.0, VarStore(seed=6))
    xs, enc = _inputs(1), _inputs(2)
    changed = xs.copy()
    changed[:, -1, :] -= 2.0
    a = decoder.forward(xs, enc, False)
    b = decoder.forward(changed, enc, False)
    np.testing.assert_allclose(a[:, :-1], b[:, :-1], rtol=1e-5, atol=1e-5)


def test_decoder_depends_on_encoder_output_everywhere():
    decoder = DecoderBlock(DIM, HEADS, CTX, 0.0, VarStore(seed=7))
    xs, enc = _inputs(1), _inputs(2)
    a = decoder.forward(xs, enc, False)
    b = decoder.forward(xs, enc * 2.0 + 1.0, False)
    for position in range(CTX):
        assert not np.allclose(a[:, position], b[:, position])


def test_encoder_with_zero_output_projections_is_identity():
    vs = VarStore(seed=8)
    vs.pp("attn").pp("out_proj").get("weight", (DIM, DIM), _zeros)
    vs.pp("attn").pp("out_proj").get("bias", (DIM,), _zeros)
    vs.pp("ff").pp("second_layer").get("weight", (DIM, 4 * DIM), _zeros)
    vs.pp("ff").pp("second_layer").get("bias", (DIM,), _zeros)
    block = EncodeBlock(DIM, HEADS, CTX, 0.0, vs)
    xs = _inputs()
    np.testing.assert_array_equal(block.forward(xs, False), xs)


def test_encoder_parameter_names():
    vs = VarStore(seed=9)
    EncodeBlock(DIM, HEADS, CTX, 0.1, vs.pp("encoder"))
    names = vs.names()
    assert "encoder.ln_1.weight" in names
    assert "encoder.ln_2.bias" in names
    assert "encoder.attn.w_query.weight" in names
    assert "encoder.ff.first_layer.weight" in names


def test_decoder_parameter_names():
    vs = VarStore(seed=10)
    DecoderBlock(DIM, HEADS, CTX, 0.1, vs.pp("decoder"))
    names = vs.names()
    assert "decoder.ln_3.weight" in names
    assert "decoder.masked_attn.out_proj.bias" in names
    assert "decoder.cross_attn.w_value.weight" in names


def test_heads_must_divide_dimension():
    with pytest.raises(ValueError):
        EncodeBlock(DIM, 5, CTX, 0.1, VarStore(seed=11))


def test_encoder_rejects_wrong_rank():
    block = EncodeBlock(DIM, HEADS, CTX, 0.0, VarStore(seed=12))
    with pytest.raises(ValueError):
        block.forward(np.zeros((CTX, DIM), dtype=np.float32), False)