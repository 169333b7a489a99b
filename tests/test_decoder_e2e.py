import logging

import numpy as np
import pytest

from ft8codec import CallsignHashes, DecoderConfig, FreeTextMessage, StandardMessage, decode, encode
from ft8codec.char import apply_awgn, make_slot
from ft8codec.errors import ConfigurationError
from ft8codec.sync import SearchConfig


SR = 12000.0


def test_clean_1500hz_decodes_exactly_one_message():
    x = encode("K1ABC W9XYZ FN20", SR, 1500.0)
    results = decode(x, SR)
    assert len(results) == 1
    d = results[0]
    assert d.text == "K1ABC W9XYZ FN20"
    assert d.message == StandardMessage("K1ABC", "W9XYZ", "FN20")
    assert d.crc_ok
    assert d.confidence >= 0.9
    assert d.ldpc_iterations == 1
    assert d.frequency_hz == pytest.approx(1500.0)
    assert d.time_offset_s == pytest.approx(0.0)
    assert d.grid == "FN20"
    lat, lon = d.location
    assert lat == pytest.approx(40.5) and lon == pytest.approx(-75.0)


def test_gaussian_noise_decodes_nothing():
    rng = np.random.default_rng(2025)
    x = rng.normal(0.0, 0.3, size=int(SR * 15))
    assert decode(x, SR) == []


def test_noisy_slot_decodes():
    rng = np.random.default_rng(8)
    x = apply_awgn(make_slot([("CQ K1ABC FN42", 1200.0)], SR), -10.0, rng, SR)
    results = decode(x, SR)
    texts = [d.text for d in results]
    assert "CQ K1ABC FN42" in texts
    d = results[texts.index("CQ K1ABC FN42")]
    assert abs(d.time_offset_s - 0.5) <= 0.08
    assert abs(d.frequency_hz - 1200.0) <= 3.125
    assert -16.0 < d.snr_db < -4.0


def test_two_overlapping_slots_decode_both():
    rng = np.random.default_rng(21)
    slot = make_slot([("CQ K1ABC FN42", 800.0), ("W9XYZ K1ABC -11", 1700.0)], SR, gains_db=[0.0, -3.0])
    x = apply_awgn(slot, -5.0, rng, SR)
    texts = {d.text for d in decode(x, SR)}
    assert {"CQ K1ABC FN42", "W9XYZ K1ABC -11"} <= texts


def test_free_text_and_telemetry_decode():
    x = encode("TNX BOB 73 GL", SR, 1000.0)
    results = decode(x, SR)
    assert [d.text for d in results] == ["TNX BOB 73 GL"]
    assert isinstance(results[0].message, FreeTextMessage)
    assert results[0].grid is None
    assert results[0].location is None


def test_results_sorted_and_unique():
    rng = np.random.default_rng(5)
    slot = make_slot([("CQ K1ABC FN42", 700.0), ("K1ABC W9XYZ R-07", 1900.0)], SR)
    results = decode(apply_awgn(slot, 0.0, rng, SR), SR)
    texts = [d.text for d in results]
    assert len(texts) == len(set(texts))
    keys = [(-d.confidence, -d.sync_score) for d in results]
    assert keys == sorted(keys)


def test_thread_pool_matches_serial():
    rng = np.random.default_rng(33)
    slot = make_slot([("CQ K1ABC FN42", 900.0), ("W9XYZ K1ABC RR73", 1500.0)], SR)
    x = apply_awgn(slot, -3.0, rng, SR)
    serial = decode(x, SR)
    pooled = decode(x, SR, DecoderConfig(workers=4))
    assert serial == pooled


def test_time_budget_abandons_candidates(caplog):
    rng = np.random.default_rng(34)
    x = rng.normal(0.0, 0.3, size=int(SR * 15))
    cfg = DecoderConfig(search=SearchConfig(min_score=-100.0), time_budget_s=1e-6)
    with caplog.at_level(logging.INFO, logger="ft8codec.decoder"):
        assert decode(x, SR, cfg) == []
    assert "time budget exhausted" in caplog.text


def test_short_buffer_rejected():
    with pytest.raises(ValueError):
        decode(np.zeros(int(SR * 5)), SR)


@pytest.mark.parametrize(
    "cfg",
    [
        DecoderConfig(workers=0),
        DecoderConfig(llr_method="median"),
        DecoderConfig(time_osr=0),
        DecoderConfig(time_osr=7),
        DecoderConfig(time_budget_s=0.0),
        DecoderConfig(search=SearchConfig(max_candidates=0)),
    ],
)
def test_invalid_config_rejected(cfg):
    with pytest.raises(ConfigurationError):
        decode(np.zeros(int(SR * 15)), SR, cfg)


def test_hash_table_learns_and_resolves_calls():
    hashes = CallsignHashes()
    first = decode(encode("CQ PJ4/K1ABC", SR, 1200.0), SR, hashes=hashes)
    assert [d.text for d in first] == ["CQ PJ4/K1ABC"]
    assert "PJ4/K1ABC" in hashes

    reply = "<PJ4/K1ABC> W9XYZ -12"
    assert decode(encode(reply, SR, 1200.0), SR)[0].text == "<...> W9XYZ -12"
    second = decode(encode(reply, SR, 1200.0), SR, hashes=hashes)
    assert [d.text for d in second] == [reply]
    assert "W9XYZ" in hashes
