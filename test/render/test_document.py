import pytest

from tidyground.render import Chunk, Document, KnitError, Prose
from tidyground.render.document import parse_chunk_header

REPORT = """---
title: Life expectancy
output: html_document
params:
  year: 2007
  continent: {value: Europe}
---

Countries in `py params["continent"]`.

```{python setup, echo=False}
x = 1
```

```
not executed
```

```{python}
x
```
"""


def test_parse_front_matter():
    doc = Document.parse(REPORT)
    assert doc.title == "Life expectancy"
    assert doc.output == "html_document"
    assert doc.params == {"year": 2007, "continent": "Europe"}


def test_parse_blocks():
    doc = Document.parse(REPORT)
    assert [type(b) for b in doc.blocks] == [Prose, Chunk, Prose, Chunk]

    setup, unnamed = doc.chunks
    assert setup.label == "setup"
    assert setup.code == "x = 1"
    assert setup.line == 11
    assert setup.option("echo") is False
    assert setup.option("eval") is True
    assert unnamed.label == "unnamed-chunk-2"

    # Fences without braces are kept as they are
    assert "```\nnot executed\n```" in doc.blocks[2].text


def test_no_front_matter():
    doc = Document.parse("Just text\n")
    assert doc.metadata == {}
    assert doc.title is None
    assert doc.params == {}
    assert doc.chunks == []


def test_open(tmp_path):
    path = tmp_path / "report.md"
    path.write_text(REPORT)
    doc = Document.open(path)
    assert doc.path == path
    assert len(doc.chunks) == 2


@pytest.mark.parametrize(
    "header,expected",
    [
        ("", (None, {})),
        (" setup", ("setup", {})),
        (" echo=false, error=True", (None, {"echo": False, "error": True})),
        (" plot, include = no", ("plot", {"include": False})),
    ],
)
def test_parse_chunk_header(header, expected):
    assert parse_chunk_header(header, 1) == expected


def test_unknown_chunk_option():
    with pytest.raises(KnitError, match="line 3: unknown chunk option 'fig_width'"):
        Document.parse("Text\n\n```{python fig_width=7}\n1\n```\n")


def test_label_must_come_first():
    with pytest.raises(KnitError, match="chunk label must come first"):
        parse_chunk_header(" echo=False, setup", 1)


def test_unclosed_chunk():
    with pytest.raises(KnitError, match="line 1: code block is never closed"):
        Document.parse("```{python}\nx = 1\n")


@pytest.mark.parametrize(
    "text", ["---\n- a\n- b\n---\nText\n", "---\ntitle: [unclosed\n---\nText\n"]
)
def test_invalid_front_matter(text):
    with pytest.raises(KnitError):
        Document.parse(text)


def test_invalid_params():
    doc = Document.parse("---\nparams: [a, b]\n---\n")
    with pytest.raises(KnitError, match="params must be a mapping"):
        doc.params
