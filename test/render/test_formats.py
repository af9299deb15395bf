import pytest

from tidyground.render import (
    Document,
    KnitError,
    UnknownFormatError,
    available_formats,
    get_format,
    knit,
    register_format,
    render,
    resolve_format,
)
from tidyground.render import formats
from tidyground.render.formats import HtmlFormat, MarkdownFormat, OutputFormat, TextFormat

SOURCE = """---
title: Tables & numbers
---
Some text.

```{python}
1 + 1
```

```{python echo=False}
import pyarrow as pa
pa.table({"a": [1, 2]})
```
"""


@pytest.fixture
def knitted():
    return knit(Document.parse(SOURCE))


def test_available_formats():
    assert available_formats() == [
        "github_document",
        "html_document",
        "md_document",
        "text_document",
    ]


def test_markdown(knitted):
    assert get_format("md_document").write(knitted) == (
        "# Tables & numbers\n"
        "\n"
        "Some text.\n"
        "\n"
        "```python\n"
        "1 + 1\n"
        "```\n"
        "\n"
        "```\n"
        "## 2\n"
        "```\n"
        "\n"
        "```\n"
        "## a\n"
        "## -\n"
        "## 1\n"
        "## 2\n"
        "```\n"
    )


def test_markdown_without_comment(knitted):
    text = MarkdownFormat(comment="").write(knitted)
    assert "```\n2\n```" in text


def test_github_tables(knitted):
    text = get_format("github_document").write(knitted)
    assert text.endswith("| a |\n|---|\n| 1 |\n| 2 |\n")


def test_max_rows(knitted):
    text = get_format("github_document", max_rows=1).write(knitted)
    assert text.endswith("| 1 |\n\n... and 1 more rows\n")


def test_text(knitted):
    text = TextFormat().write(knitted)
    assert text.startswith("Tables & numbers\n================\n\nSome text.\n")
    assert "\n    1 + 1\n\n    2\n" in text


def test_html(knitted):
    page = HtmlFormat().write(knitted)
    assert page.startswith("<!DOCTYPE html>")
    assert "<title>Tables &amp; numbers</title>" in page
    assert '<h1 class="title">Tables &amp; numbers</h1>' in page
    assert "<p>Some text.</p>" in page
    assert '<pre class="source"><code class="language-python">1 + 1</code></pre>' in page
    assert '<pre class="output">2</pre>' in page
    assert "<table>" in page
    assert 'id="TOC"' not in page


def test_html_escapes_outputs():
    knitted = knit(Document.parse("```{python}\n'<b>'\n```\n"))
    page = HtmlFormat().write(knitted)
    assert '<pre class="output">&#x27;&lt;b&gt;&#x27;</pre>' in page


def test_html_toc():
    knitted = knit(Document.parse("## First\n\nText\n\n## Second\n"))
    page = HtmlFormat(toc=True).write(knitted)
    assert '<nav id="TOC">' in page
    assert 'href="#first"' in page
    assert '<h2 id="second">Second</h2>' in page


def test_unknown_format():
    with pytest.raises(UnknownFormatError, match="Unknown output format 'pdf_document'"):
        get_format("pdf_document")


def test_unknown_option():
    with pytest.raises(KnitError, match=r"Unknown options \['toc'\] for md_document"):
        get_format("md_document", toc=True)


@pytest.mark.parametrize(
    "output,name,expected_class,expected_options",
    [
        (None, None, MarkdownFormat, {"max_rows": 20, "comment": "##"}),
        ("text_document", None, TextFormat, {"max_rows": 20}),
        (["html_document", "md_document"], None, HtmlFormat, {"max_rows": 20, "toc": False}),
        ({"html_document": {"toc": True}}, None, HtmlFormat, {"max_rows": 20, "toc": True}),
        ({"html_document": {"toc": True}}, "md_document", MarkdownFormat, {"max_rows": 20, "comment": "##"}),
        ({"html_document": None}, None, HtmlFormat, {"max_rows": 20, "toc": False}),
    ],
)
def test_resolve_format(output, name, expected_class, expected_options):
    fmt = resolve_format(output, name)
    assert type(fmt) is expected_class
    assert fmt.options == expected_options


@pytest.mark.parametrize("output", [42, {"html_document": "toc"}])
def test_resolve_invalid_output(output):
    with pytest.raises(KnitError):
        resolve_format(output)


def test_register_format(monkeypatch, knitted):
    monkeypatch.setattr(formats, "FORMATS", dict(formats.FORMATS))

    @register_format
    class CountFormat(OutputFormat):
        name = "count_document"
        extension = ".count"

        def output(self, output):
            return type(output).__name__

    assert "count_document" in available_formats()
    assert get_format("count_document").write(knitted) == (
        "# Tables & numbers\n\nSome text.\n\nSourceOutput\n\nTextOutput\n\nTableOutput\n"
    )


def test_render_returns_text_for_parsed_documents():
    assert render(Document.parse("Hello\n")) == "Hello\n"


def test_render_to_files(tmp_path):
    source = tmp_path / "report.md"
    source.write_text("---\noutput: html_document\n---\nHello `py 6 * 7`\n")

    html_file = render(source)
    assert html_file == tmp_path / "report.html"
    assert "<p>Hello 42</p>" in html_file.read_text()

    md_file = render(source, output_format="md_document")
    assert md_file == tmp_path / "report.out.md"
    assert md_file.read_text() == "Hello 42\n"

    custom = render(source, output_format="text_document", output_file=tmp_path / "out.txt")
    assert custom.read_text() == "Hello 42\n"
