"""Parsing of executable documents.

A document mixes prose written in markdown with chunks of
python code whose results are embedded in the rendered output::

    ---
    title: Diamond sizes
    output: html_document
    params:
      cutoff: 2.5
    ---

    We have data about diamonds, only a few are larger than
    `py params["cutoff"]` carats.

    ```{python setup, echo=False}
    from tidyground.dataframe import Dataframe
    ```

The optional YAML header (the *front matter*) configures the
document: its ``title``, the ``output`` format and the ``params``
that can be changed each time the document is rendered.

Chunks are fenced with ```` ```{python} ````, the braces can contain
a label for the chunk and its options. Code fenced without the braces
is shown as it is and never executed. Inline code wrapped in
```` `py ...` ```` is evaluated and replaced by its result.
"""

import dataclasses
import logging
import pathlib
import re
from typing import Any

import yaml

log = logging.getLogger(__name__)

FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\n(.*?\n)?---[ \t]*(?:\n|\Z)", re.DOTALL)
CHUNK_START_RE = re.compile(r"^```+\s*\{python(?P<header>[^}]*)\}\s*$")
FENCE_RE = re.compile(r"^(```+)")
INLINE_RE = re.compile(r"`py\s+([^`]+)`")

CHUNK_OPTIONS = {
    # Show the source of the chunk
    "echo": True,
    # Run the chunk
    "eval": True,
    # Show anything at all of the chunk, code is run anyway
    "include": True,
    # Embed exceptions in the output instead of stopping
    "error": False,
}


class KnitError(ValueError):
    """The document can't be parsed or executed."""


@dataclasses.dataclass
class Prose:
    """Markdown text, possibly containing inline expressions."""

    text: str


@dataclasses.dataclass
class Chunk:
    """A block of python code to execute."""

    code: str
    label: str
    options: dict[str, Any]
    line: int = 0

    def option(self, name: str) -> Any:
        return self.options.get(name, CHUNK_OPTIONS[name])


def parse_chunk_header(header: str, line: int) -> tuple[str | None, dict[str, Any]]:
    """Parse the ``label, name=value`` part of a chunk header.

    Option values are YAML scalars, so both ``False`` and
    ``false`` are accepted.

    >>> parse_chunk_header(" setup, echo=False", 1)
    ('setup', {'echo': False})
    """
    label, options = None, {}
    for position, piece in enumerate(p.strip() for p in header.split(",")):
        if not piece:
            continue
        if "=" not in piece:
            if position != 0:
                raise KnitError(f"line {line}: chunk label must come first, got {piece!r}")
            label = piece
            continue
        name, value = (part.strip() for part in piece.split("=", 1))
        if name not in CHUNK_OPTIONS:
            raise KnitError(
                f"line {line}: unknown chunk option {name!r}, "
                f"expected one of {sorted(CHUNK_OPTIONS)}"
            )
        try:
            options[name] = yaml.safe_load(value)
        except yaml.YAMLError as e:
            raise KnitError(f"line {line}: invalid value for {name}: {value!r}") from e
    return label, options


class Document:
    """A parsed document: its front matter and the sequence of prose and chunks."""

    def __init__(
        self,
        blocks: list[Prose | Chunk],
        metadata: dict[str, Any] | None = None,
        path: pathlib.Path | None = None,
    ) -> None:
        self.blocks = blocks
        self.metadata = metadata or {}
        self.path = path

    def __repr__(self) -> str:
        return f"Document(title={self.title!r}, chunks={len(self.chunks)})"

    @property
    def title(self) -> str | None:
        return self.metadata.get("title")

    @property
    def chunks(self) -> list[Chunk]:
        return [block for block in self.blocks if isinstance(block, Chunk)]

    @property
    def output(self) -> Any:
        """The ``output`` entry of the front matter, if any."""
        return self.metadata.get("output")

    @property
    def params(self) -> dict[str, Any]:
        """Default values of the document parameters.

        Parameters can be provided directly, ``cutoff: 2.5``,
        or with their value in a mapping, ``cutoff: {value: 2.5}``.
        """
        params = self.metadata.get("params") or {}
        if not isinstance(params, dict):
            raise KnitError("params must be a mapping of names to default values")
        return {
            name: value["value"] if isinstance(value, dict) and "value" in value else value
            for name, value in params.items()
        }

    @classmethod
    def open(cls, path: str | pathlib.Path) -> "Document":
        path = pathlib.Path(path)
        log.debug("Reading document %s", path)
        return cls.parse(path.read_text(encoding="utf-8"), path=path)

    @classmethod
    def parse(cls, text: str, path: pathlib.Path | None = None) -> "Document":
        """Split the text in front matter, prose and chunks.

        >>> doc = Document.parse("---\\ntitle: Hi\\n---\\nText\\n```{python}\\n1 + 1\\n```\\n")
        >>> doc.title, [type(b).__name__ for b in doc.blocks]
        ('Hi', ['Prose', 'Chunk'])
        """
        metadata, line_offset = {}, 0
        match = FRONT_MATTER_RE.match(text)
        if match is not None:
            try:
                metadata = yaml.safe_load(match.group(1) or "") or {}
            except yaml.YAMLError as e:
                raise KnitError(f"Invalid front matter: {e}") from e
            if not isinstance(metadata, dict):
                raise KnitError("Front matter must be a mapping")
            line_offset = text[: match.end()].count("\n")
            text = text[match.end() :]

        blocks: list[Prose | Chunk] = []
        prose: list[str] = []
        lines = text.splitlines()
        idx = 0
        while idx < len(lines):
            line = lines[idx]
            start = CHUNK_START_RE.match(line)
            fence = FENCE_RE.match(line)
            if start is None and fence is None:
                prose.append(line)
                idx += 1
                continue

            lineno = idx + line_offset + 1
            closing = fence.group(1)
            end = idx + 1
            while end < len(lines) and lines[end].rstrip() != closing:
                end += 1
            if end == len(lines):
                raise KnitError(f"line {lineno}: code block is never closed")

            if start is None:
                # Plain code, kept as prose
                prose.extend(lines[idx : end + 1])
            else:
                if prose:
                    blocks.append(Prose("\n".join(prose)))
                    prose = []
                label, options = parse_chunk_header(start.group("header"), lineno)
                number = sum(isinstance(block, Chunk) for block in blocks) + 1
                blocks.append(
                    Chunk(
                        code="\n".join(lines[idx + 1 : end]),
                        label=label or f"unnamed-chunk-{number}",
                        options=options,
                        line=lineno,
                    )
                )
            idx = end + 1

        if prose:
            blocks.append(Prose("\n".join(prose)))
        return cls(blocks, metadata, path=path)
