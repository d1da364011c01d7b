import pytest

from zlog.hashtable import HashTable, str_equal, str_hash


def test_str_hash_of_empty_string_is_seed():
    assert str_hash("") == 5381


def test_str_hash_is_stable_and_32_bit():
    text = "a fairly long category name " * 20
    assert str_hash(text) == str_hash(text)
    assert 0 <= str_hash(text) < 2**32


def test_str_hash_differs_for_different_strings():
    assert str_hash("abc") != str_hash("abd")


def test_str_equal():
    assert str_equal("aa", "aa") is True
    assert str_equal("aa", "ab") is False


def test_put_and_get():
    table = HashTable()
    table.put("one", 1)
    table.put("two", 2)
    assert table.get("one") == 1
    assert table.get("two") == 2
    assert table.get("three") is None
    assert len(table) == 2


def test_put_replaces_and_disposes_old_entry():
    deleted_keys = []
    deleted_values = []
    table = HashTable(4, key_del=deleted_keys.append, value_del=deleted_values.append)
    table.put("k", "old")
    table.put("k", "new")
    assert table.get("k") == "new"
    assert len(table) == 1
    assert deleted_keys == ["k"]
    assert deleted_values == ["old"]


def test_remove_disposes_and_forgets():
    deleted_values = []
    table = HashTable(4, value_del=deleted_values.append)
    table.put("a", 10)
    table.put("b", 20)
    table.remove("a")
    assert "a" not in table
    assert "b" in table
    assert deleted_values == [10]
    assert len(table) == 1


def test_remove_missing_key_raises():
    table = HashTable()
    table.put("a", 1)
    with pytest.raises(KeyError):
        table.remove("b")
    assert len(table) == 1


def test_growth_keeps_every_entry():
    table = HashTable(1)
    expected = {f"key{n}": n for n in range(200)}
    for key, value in expected.items():
        table.put(key, value)
    assert len(table) == len(expected)
    assert dict(table.items()) == expected
    assert all(table.get(key) == value for key, value in expected.items())


def test_colliding_hash_uses_equality():
    table = HashTable(8, hash_fn=lambda key: 0, equal_fn=lambda a, b: a == b)
    table.put("x", 1)
    table.put("y", 2)
    table.put("z", 3)
    table.remove("y")
    assert sorted(table) == ["x", "z"]
    assert table.get("z") == 3


def test_clean_empties_and_disposes_everything():
    deleted = []
    table = HashTable(3, key_del=deleted.append)
    for key in ("p", "q", "r"):
        table.put(key, key.upper())
    table.clean()
    assert len(table) == 0
    assert list(table.items()) == []
    assert sorted(deleted) == ["p", "q", "r"]
    table.put("p", "again")
    assert table.get("p") == "again"


def test_iteration_matches_items():
    table = HashTable(5)
    for n in range(12):
        table.put(str(n), n)
    assert list(table) == [key for key, _ in table.items()]
    assert sorted(table, key=int) == [str(n) for n in range(12)]


def test_non_positive_size_is_rejected():
    with pytest.raises(ValueError):
        HashTable(0)