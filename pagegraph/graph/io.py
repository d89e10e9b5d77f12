"""Entry points that read a PageGraph recording into a Graph."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Optional, Union

from pagegraph.config import ReaderConfig
from pagegraph.parsers.graphml import GraphMLParser

from .builder import GraphBuilder
from .core.graph import Graph

logger = logging.getLogger("pagegraph.graph.io")


def read_from_reader(stream: IO[bytes], config: Optional[ReaderConfig] = None) -> Graph:
    """Parse and build a Graph from an already-open byte stream.

    The stream is read once, to the end of the document, and is not closed.

    Args:
        stream: Binary file-like object holding a GraphML document.
        config: Reader options; defaults apply when None.

    Returns:
        Graph: The built graph, independent of the stream afterwards.

    Raises:
        ParseError: If the document is malformed or fails validation.
    """
    document = GraphMLParser().parse(stream)
    return GraphBuilder(config).build(document)


def read_from_file(path: Union[str, Path], config: Optional[ReaderConfig] = None) -> Graph:
    """Open, parse and build a Graph from a GraphML file.

    The file is closed on every exit path, including parse failures.

    Raises:
        OSError: If the file cannot be opened.
        ParseError: If the document is malformed or fails validation.
    """
    path = Path(path)
    logger.info("Reading PageGraph recording: %s", path)
    with path.open("rb") as stream:
        return read_from_reader(stream, config)
