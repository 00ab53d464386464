import pytest
from storyvm.core.errors import VariableTypeError
from storyvm.core.variables import MISSING, VariableStore

def test_store_scalars(store):
    store["$gems"] = 3
    store["$name"] = "Ada"
    store["$ratio"] = 0.5
    store["$ready"] = True

    assert store["$gems"] == 3
    assert len(store) == 4
    assert set(store) == {"$gems", "$name", "$ratio", "$ready"}

def test_reject_non_scalar(store):
    with pytest.raises(VariableTypeError):
        store["$items"] = [1, 2]
    with pytest.raises(VariableTypeError):
        store["$nothing"] = None
    assert "$items" not in store

def test_reject_bad_key(store):
    with pytest.raises(VariableTypeError):
        store[""] = 1

def test_variable_type_error_is_type_error(store):
    with pytest.raises(TypeError):
        store["$x"] = {"a": 1}

def test_lookup_missing(store):
    assert store.lookup("$never") is MISSING
    assert not MISSING
    assert repr(MISSING) == "MISSING"

def test_snapshot_and_restore():
    store = VariableStore({"$a": 1})
    saved = store.snapshot()
    store["$a"] = 2
    store["$b"] = "x"

    store.restore(saved)

    assert dict(store) == {"$a": 1}
    saved["$a"] = 99
    assert store["$a"] == 1

def test_restore_rejects_non_scalar(store):
    store["$a"] = 1
    with pytest.raises(VariableTypeError):
        store.restore({"$a": object()})
    assert store["$a"] == 1
