import logging

import pyarrow as pa
import pytest

from tidyground.compute import (
    JoinError,
    JoinNode,
    PyArrowTableDataSource,
    SetOperationNode,
    collect_batch,
    duplicate_keys,
)

X_DATA = pa.record_batch({"key": pa.array([1, 2, 3]), "val_x": pa.array(["x1", "x2", "x3"])})
Y_DATA = pa.record_batch({"key": pa.array([1, 2, 4]), "val_y": pa.array(["y1", "y2", "y3"])})


@pytest.fixture
def x():
    return PyArrowTableDataSource(X_DATA)


@pytest.fixture
def y():
    return PyArrowTableDataSource(Y_DATA)


@pytest.mark.parametrize(
    "how, expected",
    [
        ("inner", {"key": [1, 2], "val_x": ["x1", "x2"], "val_y": ["y1", "y2"]}),
        ("left", {"key": [1, 2, 3], "val_x": ["x1", "x2", "x3"], "val_y": ["y1", "y2", None]}),
        ("right", {"key": [1, 2, 4], "val_x": ["x1", "x2", None], "val_y": ["y1", "y2", "y3"]}),
        (
            "full",
            {
                "key": [1, 2, 3, 4],
                "val_x": ["x1", "x2", "x3", None],
                "val_y": ["y1", "y2", None, "y3"],
            },
        ),
        ("semi", {"key": [1, 2], "val_x": ["x1", "x2"]}),
        ("anti", {"key": [3], "val_x": ["x3"]}),
    ],
)
def test_join_types(x, y, how, expected):
    result = collect_batch(JoinNode(x, y, how=how, on=["key"]))
    assert result.to_pydict() == expected


def test_duplicate_keys_produce_all_combinations():
    left = pa.record_batch({"key": [1, 2, 2, 1], "val_x": ["x1", "x2", "x3", "x4"]})
    right = pa.record_batch({"key": [1, 2, 2], "val_y": ["y1", "y2", "y3"]})
    node = JoinNode(PyArrowTableDataSource(left), PyArrowTableDataSource(right), on=["key"])
    assert collect_batch(node).to_pydict() == {
        "key": [1, 2, 2, 2, 2, 1],
        "val_x": ["x1", "x2", "x2", "x3", "x3", "x4"],
        "val_y": ["y1", "y2", "y3", "y2", "y3", "y1"],
    }


def test_null_keys_never_match():
    left = pa.record_batch({"key": [1, None], "a": ["x", "y"]})
    right = pa.record_batch({"key": [None, 1], "b": ["p", "q"]})
    node = JoinNode(PyArrowTableDataSource(left), PyArrowTableDataSource(right), how="left")
    assert collect_batch(node).to_pydict() == {"key": [1, None], "a": ["x", "y"], "b": ["q", None]}


def test_natural_join_is_logged(x, y, caplog):
    with caplog.at_level(logging.INFO, logger="tidyground.compute.join"):
        result = collect_batch(JoinNode(x, y))
    assert result.num_rows == 2
    assert "Joining by ['key']" in caplog.text


def test_different_key_names_and_suffixes():
    flights = pa.record_batch(
        {"origin": ["EWR", "LGA", "EWR"], "dest": ["IAH", "IAH", "MIA"], "year": [2013] * 3}
    )
    airports = pa.record_batch(
        {"faa": ["EWR", "LGA"], "name": ["Newark", "La Guardia"], "year": [1928, 1939]}
    )
    node = JoinNode(
        PyArrowTableDataSource(flights),
        PyArrowTableDataSource(airports),
        how="left",
        left_on=["origin"],
        right_on=["faa"],
    )
    assert collect_batch(node).to_pydict() == {
        "origin": ["EWR", "LGA", "EWR"],
        "dest": ["IAH", "IAH", "MIA"],
        "year_x": [2013, 2013, 2013],
        "name": ["Newark", "La Guardia", "Newark"],
        "year_y": [1928, 1939, 1928],
    }


def test_multiple_keys():
    weather = pa.record_batch({"origin": ["EWR", "EWR", "JFK"], "hour": [5, 6, 5], "temp": [39.0, 39.9, 39.0]})
    flights = pa.record_batch({"origin": ["JFK", "EWR", "LGA"], "hour": [5, 6, 5]})
    node = JoinNode(
        PyArrowTableDataSource(flights), PyArrowTableDataSource(weather), how="left", on=["origin", "hour"]
    )
    assert collect_batch(node).column("temp").to_pylist() == [39.0, 39.9, None]


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"how": "outer"}, "Invalid join type"),
        ({"on": ["key"], "left_on": ["key"], "right_on": ["key"]}, "either on or"),
        ({"left_on": ["key"]}, "provided together"),
    ],
)
def test_invalid_join_arguments(x, y, kwargs, message):
    with pytest.raises(JoinError, match=message):
        JoinNode(x, y, **kwargs)


def test_missing_and_incompatible_keys(x):
    strings = PyArrowTableDataSource(pa.record_batch({"key": ["1"], "other": [1]}))
    with pytest.raises(JoinError, match="missing from the right table"):
        collect_batch(JoinNode(x, strings, on=["val_x"]))
    with pytest.raises(JoinError, match="incompatible types"):
        collect_batch(JoinNode(x, strings, on=["key"]))
    with pytest.raises(JoinError, match="incompatible types"):
        collect_batch(JoinNode(x, strings))


def test_integer_and_float_keys():
    ints = PyArrowTableDataSource(pa.record_batch({"k": [1, 2], "a": ["a1", "a2"]}))
    floats = PyArrowTableDataSource(pa.record_batch({"k": [1.0, 2.5], "b": ["b1", "b2"]}))
    result = collect_batch(JoinNode(ints, floats, how="full", on=["k"]))
    assert result.schema.field("k").type == pa.float64()
    assert result.to_pydict() == {
        "k": [1.0, 2.0, 2.5],
        "a": ["a1", "a2", None],
        "b": ["b1", None, "b2"],
    }


def test_no_common_columns(x):
    other = PyArrowTableDataSource(pa.record_batch({"other": [1]}))
    with pytest.raises(JoinError, match="No common columns"):
        collect_batch(JoinNode(x, other))


DF1 = pa.record_batch({"x": [1, 2], "y": [1, 1]})
DF2 = pa.record_batch({"x": [1, 1], "y": [1, 2]})


@pytest.mark.parametrize(
    "kind, expected",
    [
        ("intersect", {"x": [1], "y": [1]}),
        ("union", {"x": [1, 2, 1], "y": [1, 1, 2]}),
        ("union_all", {"x": [1, 2, 1, 1], "y": [1, 1, 1, 2]}),
        ("setdiff", {"x": [2], "y": [1]}),
    ],
)
def test_set_operations(kind, expected):
    node = SetOperationNode(kind, PyArrowTableDataSource(DF1), PyArrowTableDataSource(DF2))
    assert collect_batch(node).to_pydict() == expected


def test_set_operations_need_same_columns():
    other = PyArrowTableDataSource(pa.record_batch({"x": [1], "z": [1]}))
    with pytest.raises(JoinError, match="same columns"):
        collect_batch(SetOperationNode("union", PyArrowTableDataSource(DF1), other))


def test_duplicate_keys():
    data = pa.record_batch({"year": [2013, 2013, 2013], "hour": [1, 1, 2]})
    result = duplicate_keys(PyArrowTableDataSource(data), ["year", "hour"])
    assert result.to_pydict() == {"year": [2013], "hour": [1], "n": [2]}
    assert duplicate_keys(PyArrowTableDataSource(data), ["hour"]).num_rows == 1
