"""Communicating results through executable documents.

An analysis is only useful once it's communicated. Documents
combine the prose explaining the analysis with the code that
performs it and its results, so that the reader can see both
what was done and what came out of it. As the document is
re-executed every time it's rendered, results never get out
of sync with the data.

Rendering happens in two steps:

1. :func:`~tidyground.render.knit.knit` runs the code chunks of a
   :class:`~tidyground.render.document.Document` and collects their outputs.
2. An :class:`~tidyground.render.formats.OutputFormat` writes the
   knitted document as markdown, HTML or plain text.

:func:`render` does both, and writes the result to a file next to
the source document::

    render("report.md", output_format="html_document", params={"year": 2013})
"""

import logging
import pathlib
from typing import Any

from .document import Chunk, Document, KnitError, Prose
from .formats import (
    OutputFormat,
    UnknownFormatError,
    available_formats,
    get_format,
    register_format,
    resolve_format,
)
from .knit import KnittedDocument, knit

log = logging.getLogger(__name__)


def render(
    source: str | pathlib.Path | Document,
    output_format: str | None = None,
    params: dict[str, Any] | None = None,
    output_file: str | pathlib.Path | None = None,
) -> pathlib.Path | str:
    """Knit a document and write it in the requested format.

    :param source: Path of the document, or an already parsed :class:`Document`.
    :param output_format: Name of the format, overrides the one in the front matter.
    :param params: Values for the parameters declared by the document.
    :param output_file: Where to write the result, by default next to the
                        source with the extension of the format. When the
                        source is a parsed document without a path and no
                        output file is given, the rendered text is returned.
    """
    document = source if isinstance(source, Document) else Document.open(source)
    fmt = resolve_format(document.output, output_format)
    text = fmt.write(knit(document, params))

    if output_file is None:
        if document.path is None:
            return text
        output_file = document.path.with_suffix(fmt.extension)
        if output_file == document.path:
            output_file = document.path.with_name(f"{document.path.stem}.out{fmt.extension}")

    output_file = pathlib.Path(output_file)
    output_file.write_text(text, encoding="utf-8")
    log.info("Rendered %s to %s", fmt.name, output_file)
    return output_file


__all__ = (
    "render",
    "knit",
    "Document",
    "Chunk",
    "Prose",
    "KnittedDocument",
    "KnitError",
    "OutputFormat",
    "UnknownFormatError",
    "available_formats",
    "get_format",
    "register_format",
    "resolve_format",
)
