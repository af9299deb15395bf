"""Output formats of rendered documents.

The same knitted document can be written in multiple formats,
the one to use is chosen in the front matter of the document::

    output: html_document

Formats can also receive options, in which case the
front matter entry is a mapping from the format name to its options::

    output:
      html_document:
        toc: true
        max_rows: 10

The available formats are:

``md_document``
    Markdown, with tables printed as text. Good to be read as it is.
``github_document``
    Markdown using pipe tables, which GitHub shows as real tables.
``html_document``
    A standalone HTML page, the markdown is converted by
    Python-Markdown and wrapped into a Jinja2 template.
``text_document``
    Plain text, code indented instead of fenced.

New formats can be added by subclassing :class:`OutputFormat`
and registering the class with :func:`register_format`.
"""

import abc
import html
import logging
from typing import Any

import jinja2
import markdown

from ..utils.tabulate import markdown_table, tabulate
from .document import KnitError, Prose
from .knit import ErrorOutput, KnittedDocument, Output, SourceOutput, TableOutput

log = logging.getLogger(__name__)

FORMATS: dict[str, type["OutputFormat"]] = {}
DEFAULT_FORMAT = "md_document"


class UnknownFormatError(ValueError):
    """The requested output format does not exist."""


def register_format(cls: type["OutputFormat"]) -> type["OutputFormat"]:
    """Class decorator adding an output format to the registry."""
    FORMATS[cls.name] = cls
    return cls


def available_formats() -> list[str]:
    return sorted(FORMATS)


def get_format(name: str, **options: Any) -> "OutputFormat":
    """Create the output format registered as ``name``."""
    try:
        cls = FORMATS[name]
    except KeyError:
        raise UnknownFormatError(
            f"Unknown output format {name!r}, available formats: {available_formats()}"
        ) from None
    return cls(**options)


def resolve_format(output: Any, name: str | None = None) -> "OutputFormat":
    """Pick the output format from the ``output`` entry of a front matter.

    ``name`` overrides the format requested by the document, the
    options in the front matter are still used if they are for that format.
    """
    if output is None:
        output = {}
    elif isinstance(output, str):
        output = {output: {}}
    elif isinstance(output, list):
        output = {entry: {} for entry in output}
    if not isinstance(output, dict):
        raise KnitError(f"Invalid output entry: {output!r}")

    if name is None:
        name = next(iter(output), DEFAULT_FORMAT)
    options = output.get(name) or {}
    if not isinstance(options, dict):
        raise KnitError(f"Options of {name} must be a mapping, got {options!r}")
    log.debug("Using output format %s with options %s", name, options)
    return get_format(name, **options)


class OutputFormat(abc.ABC):
    """Writes a knitted document to text.

    Subclasses provide their ``name``, the file ``extension``
    and how each kind of block is written. ``OPTIONS`` holds
    the options they accept with their default values.
    """

    name: str
    extension: str
    OPTIONS: dict[str, Any] = {"max_rows": 20}

    def __init__(self, **options: Any) -> None:
        unknown = set(options) - set(self.OPTIONS)
        if unknown:
            raise KnitError(
                f"Unknown options {sorted(unknown)} for {self.name}, "
                f"accepted options: {sorted(self.OPTIONS)}"
            )
        self.options = {**self.OPTIONS, **options}

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.options})"

    def write(self, document: KnittedDocument) -> str:
        parts = []
        if document.title:
            parts.append(self.heading(document.title))
        for block in document.blocks:
            if isinstance(block, Prose):
                if block.text.strip():
                    parts.append(block.text.strip("\n"))
            else:
                parts.extend(self.output(o) for o in block.outputs)
        return "\n\n".join(parts) + "\n"

    def heading(self, title: str) -> str:
        return f"# {title}"

    @abc.abstractmethod
    def output(self, output: Output) -> str:
        pass


@register_format
class MarkdownFormat(OutputFormat):
    """Markdown, outputs are prefixed by ``##`` so they can't be confused with code."""

    name = "md_document"
    extension = ".md"
    OPTIONS = {"max_rows": 20, "comment": "##"}

    def output(self, output: Output) -> str:
        if isinstance(output, SourceOutput):
            return f"```python\n{output.code}\n```"
        if isinstance(output, TableOutput):
            text = self.table(output)
        elif isinstance(output, ErrorOutput):
            text = f"Error: {output.message}"
        else:
            text = output.text
        return "```\n" + self.comment(text) + "\n```"

    def comment(self, text: str) -> str:
        prefix = self.options["comment"]
        if not prefix:
            return text
        return "\n".join(f"{prefix} {line}".rstrip() for line in text.splitlines())

    def table(self, output: TableOutput) -> str:
        return tabulate(output.data, max_rows=self.options["max_rows"])


@register_format
class GithubFormat(MarkdownFormat):
    """Markdown for GitHub, tables become real pipe tables."""

    name = "github_document"

    def output(self, output: Output) -> str:
        if isinstance(output, TableOutput):
            return markdown_table(output.data, max_rows=self.options["max_rows"])
        return super().output(output)


@register_format
class TextFormat(OutputFormat):
    name = "text_document"
    extension = ".txt"

    def heading(self, title: str) -> str:
        return f"{title}\n{'=' * len(title)}"

    def output(self, output: Output) -> str:
        if isinstance(output, SourceOutput):
            text = output.code
        elif isinstance(output, TableOutput):
            text = tabulate(output.data, max_rows=self.options["max_rows"])
        elif isinstance(output, ErrorOutput):
            text = f"Error: {output.message}"
        else:
            text = output.text
        return "\n".join(f"    {line}".rstrip() for line in text.splitlines())


HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
body { max-width: 50em; margin: 2em auto; font-family: sans-serif; line-height: 1.5; }
pre { background: #f6f8fa; padding: 0.8em; overflow-x: auto; }
pre.output { background: #fff; border: 1px solid #ddd; }
pre.error { color: #a00; }
table { border-collapse: collapse; }
th, td { border: 1px solid #ddd; padding: 0.2em 0.6em; }
</style>
</head>
<body>
{% if title %}<h1 class="title">{{ title }}</h1>{% endif %}
{% if toc %}<nav id="TOC">
{{ toc | safe }}
</nav>{% endif %}
{{ body | safe }}
</body>
</html>
"""


@register_format
class HtmlFormat(OutputFormat):
    """A standalone HTML page."""

    name = "html_document"
    extension = ".html"
    OPTIONS = {"max_rows": 20, "toc": False}
    MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "toc"]

    def write(self, document: KnittedDocument) -> str:
        parts = []
        for block in document.blocks:
            if isinstance(block, Prose):
                parts.append(block.text)
            else:
                parts.extend(self.output(o) for o in block.outputs)

        converter = markdown.Markdown(extensions=self.MARKDOWN_EXTENSIONS)
        body = converter.convert("\n\n".join(parts))
        template = jinja2.Template(HTML_TEMPLATE, autoescape=True)
        return template.render(
            title=document.title or "",
            toc=converter.toc if self.options["toc"] else "",
            body=body,
        )

    def output(self, output: Output) -> str:
        # Raw HTML blocks are passed through by Python-Markdown
        if isinstance(output, SourceOutput):
            return f'<pre class="source"><code class="language-python">{html.escape(output.code)}</code></pre>'
        if isinstance(output, TableOutput):
            return markdown_table(output.data, max_rows=self.options["max_rows"])
        if isinstance(output, ErrorOutput):
            return f'<pre class="output error">Error: {html.escape(output.message)}</pre>'
        return f'<pre class="output">{html.escape(output.text)}</pre>'
