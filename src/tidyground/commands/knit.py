"""Command line interface for rendering documents.

This module provides a command line interface for knitting
documents based on :func:`tidyground.render.render`.

The rendered document is written next to the source one,
unless a different output file is provided, and its path
is printed to the console. Rendering to ``-`` prints the
rendered document itself.
"""

import argparse
import logging
import sys

import yaml

from tidyground.render import (
    Document,
    KnitError,
    UnknownFormatError,
    available_formats,
    knit,
    render,
    resolve_format,
)

log = logging.getLogger(__name__)


def parse_params(values: list[str] | None) -> dict:
    """Parse ``key=value`` pairs, values are YAML scalars."""
    params = {}
    for item in values or []:
        if "=" not in item:
            raise KnitError(f"Invalid parameter {item!r}, expected key=value")
        name, value = item.split("=", 1)
        try:
            params[name.strip()] = yaml.safe_load(value)
        except yaml.YAMLError as e:
            raise KnitError(f"Invalid value for parameter {name}: {value!r}") from e
    return params


def main(argv: list[str] | None = None) -> int:
    """Parse the command line arguments and render the document."""
    parser = argparse.ArgumentParser(description="Run the code of a document and render it.")
    parser.add_argument("input", nargs="?", help="The document to render.")
    parser.add_argument("-o", "--output", help="Where to write the result, - for stdout.")
    parser.add_argument(
        "-f", "--format", dest="output_format", help="Output format, overrides the document one."
    )
    parser.add_argument(
        "-P",
        "--param",
        action="append",
        help="Set a document parameter as key=value. Can be provided multiple times.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages.")
    parser.add_argument(
        "--list-formats", action="store_true", help="List the available output formats and exit."
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list_formats:
        for name in available_formats():
            print(name)
        return 0
    if args.input is None:
        parser.error("the input document is required")

    try:
        params = parse_params(args.param)
        if args.output == "-":
            document = Document.open(args.input)
            fmt = resolve_format(document.output, args.output_format)
            sys.stdout.write(fmt.write(knit(document, params)))
        else:
            output = render(args.input, args.output_format, params, args.output)
            print(output)
    except (KnitError, UnknownFormatError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
