import threading

import pytest

from ft8codec.callsigns import HASHED_CALL, CallsignHashes, bracket, hash_call, is_hashed, unbracket


def test_hash_call_known_value():
    assert hash_call("SX60RAAG", 22) == 3214310


def test_hash_sizes_are_prefixes_of_each_other():
    for call in ("K1ABC", "PJ4/K1ABC", "KH1/KH7Z", "W9XYZ"):
        h22 = hash_call(call, 22)
        assert hash_call(call, 12) == h22 >> 10
        assert hash_call(call, 10) == h22 >> 12
        assert 0 <= h22 < 1 << 22


def test_hash_call_normalises_case_and_spaces():
    assert hash_call(" k1abc ", 22) == hash_call("K1ABC", 22)


def test_hash_call_rejects_bad_input():
    with pytest.raises(ValueError):
        hash_call("K1ABC", 16)
    with pytest.raises(ValueError):
        hash_call("", 22)
    with pytest.raises(ValueError):
        hash_call("ABCDEFGHIJKL", 22)
    with pytest.raises(ValueError):
        hash_call("K1-ABC", 22)


def test_bracket_helpers():
    assert bracket("K1ABC") == "<K1ABC>"
    assert bracket(None) == HASHED_CALL
    assert is_hashed("<K1ABC>") and is_hashed(HASHED_CALL)
    assert not is_hashed("K1ABC") and not is_hashed("<>")
    assert unbracket("<K1ABC>") == "K1ABC"
    with pytest.raises(ValueError):
        unbracket(HASHED_CALL)
    with pytest.raises(ValueError):
        unbracket("K1ABC")


def test_table_lookup_by_every_size():
    table = CallsignHashes(["K1ABC"])
    assert len(table) == 1
    assert "K1ABC" in table and "W9XYZ" not in table
    for bits in (10, 12, 22):
        assert table.lookup(hash_call("K1ABC", bits), bits) == "K1ABC"
    assert table.lookup(hash_call("W9XYZ", 22), 22) is None
    with pytest.raises(ValueError):
        table.lookup(0, 16)


def test_table_add():
    table = CallsignHashes()
    assert table.add("pj4/k1abc")
    assert "PJ4/K1ABC" in table
    assert not table.add("NOT A CALL!")
    assert len(table) == 1
    # Adding again keeps one entry
    assert table.add("PJ4/K1ABC")
    assert len(table) == 1


def test_table_shared_between_threads():
    table = CallsignHashes()
    calls = [f"K{i}ABC" for i in range(10)]

    def add_all():
        for call in calls:
            table.add(call)
            table.lookup(hash_call(call, 12), 12)

    threads = [threading.Thread(target=add_all) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert all(call in table for call in calls)
