"""Execution of documents.

Knitting runs each chunk of a :class:`~tidyground.render.document.Document`
in order and collects what the chunk produced: its source code,
anything it printed, the value of its last expression and the
errors it raised. All chunks share the same namespace, so
variables defined by a chunk are available to the following ones
and to the inline expressions in the prose after it.

The namespace starts with a ``params`` dictionary, holding the
parameters of the document merged with those provided when knitting.

>>> from tidyground.render.document import Document
>>> doc = Document.parse("```{python}\\nx = 40\\nx + 2\\n```\\nThe answer is `py x + 2`.")
>>> knitted = knit(doc)
>>> [type(o).__name__ for o in knitted.blocks[0].outputs]
['SourceOutput', 'TextOutput']
>>> knitted.blocks[1].text
'The answer is 42.'
"""

import ast
import contextlib
import dataclasses
import io
import logging
import re
import traceback
from typing import Any

import pyarrow as pa

from ..compute.base import collect_batch, table_to_batch
from ..dataframe import Dataframe
from .document import INLINE_RE, Chunk, Document, KnitError, Prose

log = logging.getLogger(__name__)


@dataclasses.dataclass
class SourceOutput:
    code: str


@dataclasses.dataclass
class TextOutput:
    """Printed text or the representation of a value."""

    text: str


@dataclasses.dataclass
class TableOutput:
    data: pa.RecordBatch


@dataclasses.dataclass
class ErrorOutput:
    message: str


Output = SourceOutput | TextOutput | TableOutput | ErrorOutput


@dataclasses.dataclass
class ChunkResult:
    chunk: Chunk
    outputs: list[Output]


@dataclasses.dataclass
class KnittedDocument:
    """The result of knitting, ready to be written by an output format."""

    metadata: dict[str, Any]
    params: dict[str, Any]
    blocks: list[Prose | ChunkResult]

    @property
    def title(self) -> str | None:
        return self.metadata.get("title")


def _as_table(value: Any) -> pa.RecordBatch | None:
    if isinstance(value, pa.RecordBatch):
        return value
    if isinstance(value, pa.Table):
        return table_to_batch(value)
    if isinstance(value, Dataframe):
        return collect_batch(value.node)
    return None


def _display(value: Any) -> Output:
    table = _as_table(value)
    if table is not None:
        return TableOutput(table)
    return TextOutput(repr(value))


def run_code(code: str, namespace: dict[str, Any], filename: str) -> tuple[str, Any]:
    """Execute code in the namespace.

    Returns what was printed and the value of the last
    statement, if it's an expression, like an interactive shell does.
    """
    tree = ast.parse(code, filename=filename)
    last = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        last = ast.Expression(tree.body.pop().value)

    stdout = io.StringIO()
    with contextlib.redirect_stdout(stdout):
        exec(compile(tree, filename, "exec"), namespace)
        value = eval(compile(last, filename, "eval"), namespace) if last is not None else None
    return stdout.getvalue(), value


def run_chunk(chunk: Chunk, namespace: dict[str, Any]) -> list[Output]:
    outputs: list[Output] = []
    if chunk.option("echo"):
        outputs.append(SourceOutput(chunk.code))
    if not chunk.option("eval"):
        return outputs if chunk.option("include") else []

    log.debug("Running chunk %s", chunk.label)
    try:
        printed, value = run_code(chunk.code, namespace, f"<chunk {chunk.label}>")
    except Exception as e:
        if not chunk.option("error"):
            raise KnitError(
                f"Error in chunk {chunk.label!r} (line {chunk.line}): {type(e).__name__}: {e}"
            ) from e
        log.info("Chunk %s raised %s, embedding the error", chunk.label, type(e).__name__)
        outputs.append(ErrorOutput("".join(traceback.format_exception_only(type(e), e)).strip()))
        return outputs if chunk.option("include") else []

    if printed:
        outputs.append(TextOutput(printed.rstrip("\n")))
    if value is not None:
        outputs.append(_display(value))
    return outputs if chunk.option("include") else []


def render_inline(text: str, namespace: dict[str, Any]) -> str:
    """Replace inline expressions with their values."""

    def evaluate(match: "re.Match[str]") -> str:
        expression = match.group(1).strip()
        try:
            value = eval(expression, namespace)
        except Exception as e:
            raise KnitError(f"Error in inline expression {expression!r}: {e}") from e
        return str(value)

    return INLINE_RE.sub(evaluate, text)


def merge_params(document: Document, params: dict[str, Any] | None) -> dict[str, Any]:
    """Parameters of the document, overridden by ``params``.

    Only parameters declared in the front matter can be provided.
    """
    merged = document.params
    for name, value in (params or {}).items():
        if name not in merged:
            raise KnitError(
                f"Unknown parameter {name!r}, the document declares {sorted(merged)}"
            )
        merged[name] = value
    return merged


def knit(document: Document, params: dict[str, Any] | None = None) -> KnittedDocument:
    """Run all the chunks of the document and collect their outputs."""
    merged = merge_params(document, params)
    namespace: dict[str, Any] = {"__name__": "__knit__", "params": merged}

    log.info("Knitting %s (%d chunks)", document.path or "document", len(document.chunks))
    blocks: list[Prose | ChunkResult] = []
    for block in document.blocks:
        if isinstance(block, Chunk):
            blocks.append(ChunkResult(block, run_chunk(block, namespace)))
        else:
            blocks.append(Prose(render_inline(block.text, namespace)))
    return KnittedDocument(metadata=document.metadata, params=merged, blocks=blocks)
