import logging

import pyarrow as pa
import pytest

from tidyground.compute import MutateNode, PyArrowTableDataSource, collect_batch
from tidyground.factors import Factor, FactorError, FactorExpression, factor

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

PARTIES = [
    "Strong republican", "Not str democrat", "Strong democrat", "Strong democrat",
    "Independent", "Not str democrat", "No answer", "Strong democrat", "Don't know",
]


@pytest.fixture
def partyid():
    return factor(PARTIES)


def test_factor_default_levels_are_sorted():
    f = factor(["Dec", "Apr", "Jan", "Mar"])
    assert f.levels == ["Apr", "Dec", "Jan", "Mar"]
    assert f.codes == [1, 0, 2, 3]
    assert not f.ordered
    assert len(f) == 4


def test_factor_values_not_in_levels(caplog):
    with caplog.at_level(logging.WARNING):
        f = factor(["Dec", "Apr", "Jam", "Mar"], levels=MONTHS)
    assert f.to_pylist() == ["Dec", "Apr", None, "Mar"]
    assert "1 values not in the levels were converted to null" in caplog.text


def test_factor_duplicate_levels():
    with pytest.raises(FactorError, match="unique"):
        factor(["a"], levels=["a", "a"])


def test_factor_is_dictionary_encoded():
    f = factor(["b", "a"], levels=["b", "a"], ordered=True)
    array = f.to_arrow()
    assert pa.types.is_dictionary(array.type)
    assert array.type.ordered
    assert array.dictionary.to_pylist() == ["b", "a"]
    assert factor(array).levels == ["a", "b"]


def test_factor_equality():
    assert factor(["a", "b"]) == Factor.from_codes([0, 1], ["a", "b"])
    assert factor(["a", "b"]) != factor(["a", "b"], ordered=True)


def test_count_includes_unused_levels():
    f = factor(["Feb", "Jan", "Feb"], levels=MONTHS[:3])
    assert f.count().to_pydict() == {"level": ["Jan", "Feb", "Mar"], "n": [1, 2, 0]}
    assert f.count(sort=True).column("level").to_pylist() == ["Feb", "Jan", "Mar"]


def test_infreq(partyid):
    assert partyid.infreq().levels[:2] == ["Strong democrat", "Not str democrat"]
    assert partyid.infreq().to_pylist() == PARTIES


def test_inorder_and_rev():
    f = factor(["c", "a", "c", "b"])
    assert f.inorder().levels == ["c", "a", "b"]
    assert f.rev().levels == ["c", "b", "a"]
    assert f.rev().to_pylist() == ["c", "a", "c", "b"]


def test_relevel(partyid):
    moved = partyid.relevel("No answer", "Don't know")
    assert moved.levels[:2] == ["No answer", "Don't know"]
    after = partyid.relevel("No answer", after=1)
    assert after.levels[1] == "No answer"
    with pytest.raises(FactorError, match="Unknown levels"):
        partyid.relevel("Other party")


def test_reorder():
    relig = factor(["Buddhism", "Catholic", "Buddhism", "None", "Hinduism"])
    tvhours = [3.0, 2.0, 5.0, 1.0, None]
    reordered = relig.reorder(tvhours)
    assert reordered.levels == ["None", "Catholic", "Buddhism", "Hinduism"]
    assert relig.reorder(tvhours, desc=True).levels[0] == "Buddhism"
    with pytest.raises(FactorError):
        relig.reorder([1.0])


def test_reorder2():
    marital = factor(["Married", "Married", "Widowed", "Widowed"])
    age = [20, 80, 20, 80]
    prop = [0.5, 0.3, 0.01, 0.6]
    assert marital.reorder2(age, prop).levels == ["Widowed", "Married"]


def test_recode_and_merge(partyid, caplog):
    with caplog.at_level(logging.WARNING):
        recoded = partyid.recode(
            **{
                "Republican, strong": "Strong republican",
                "Other": ["No answer", "Don't know", "Other party"],
            }
        )
    assert "Other" in recoded.levels
    assert "Republican, strong" in recoded.levels
    assert recoded.to_pylist()[0] == "Republican, strong"
    assert recoded.count().to_pydict()["n"][recoded.levels.index("Other")] == 2
    assert "Unknown levels in factor: ['Other party']" in caplog.text


def test_collapse(partyid):
    collapsed = partyid.collapse(
        dem=["Not str democrat", "Strong democrat"],
        rep=["Strong republican"],
        other_level="other",
    )
    assert sorted(collapsed.levels) == ["dem", "other", "rep"]
    assert collapsed.to_pylist()[:3] == ["rep", "dem", "dem"]


def test_lump():
    f = factor(["a"] * 5 + ["b"] * 3 + ["c"] + ["d"])
    assert f.lump(n=1).levels == ["a", "Other"]
    assert f.lump(n=2).count().to_pydict() == {"level": ["a", "b", "Other"], "n": [5, 3, 2]}
    assert f.lump(prop=0.25).levels == ["a", "b", "Other"]
    assert f.lump().levels == ["a", "b", "Other"]
    assert factor(["a"] * 5 + ["b", "c", "d"]).lump().levels == ["a", "Other"]
    # Lumping a single level only renames it
    assert f.lump(n=3) == f


def test_drop_unused_and_explicit_na():
    f = factor(["a", None, "a"], levels=["a", "b"])
    assert f.drop_unused().levels == ["a"]
    explicit = f.explicit_na()
    assert explicit.levels == ["a", "b", "(Missing)"]
    assert explicit.to_pylist() == ["a", "(Missing)", "a"]


def test_ordered_conversions():
    f = factor(["lo", "hi"], levels=["lo", "hi"])
    assert f.as_ordered().ordered
    assert not f.as_ordered().as_unordered().ordered


def test_factor_expression_in_mutate():
    data = pa.record_batch({"month": ["Dec", "Jan", "Mar"]})
    node = MutateNode({"month": FactorExpression("month", levels=MONTHS)}, PyArrowTableDataSource(data))
    result = collect_batch(node)
    assert pa.types.is_dictionary(result.schema.field("month").type)
    assert result.column("month").dictionary.to_pylist() == MONTHS
    assert result.column("month").to_pylist() == ["Dec", "Jan", "Mar"]


def test_named_levels_on_numeric_factor():
    explicit = factor([1, None, 2]).explicit_na()
    assert explicit.levels == ["1", "2", "(Missing)"]
    assert explicit.to_pylist() == ["1", "(Missing)", "2"]

    lumped = factor([1, 1, 1, 2, 3]).lump(n=1)
    assert lumped.levels == ["1", "Other"]
    assert lumped.to_pylist() == ["1", "1", "1", "Other", "Other"]

    # Reordering alone keeps the original type of the levels
    assert factor([1, 2]).rev().levels == [2, 1]
