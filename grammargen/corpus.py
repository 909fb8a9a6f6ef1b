"""
GrammarGen Corpus

Loading of the training corpus: an ordered, read-only collection of
example strings, one per line of a text file.
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, Tuple, Union

logger = logging.getLogger(__name__)


class Corpus:
    """
    Ordered, immutable collection of example strings.

    Lines can be appended while the corpus is being assembled; once
    ``freeze()`` is called (the engine does so when a run starts) it becomes
    read-only.
    """

    def __init__(self, lines: Iterable[str] = ()):
        self._lines = list(lines)
        self._frozen = False

    def append(self, line: str) -> None:
        """Add one example string."""
        if self._frozen:
            raise RuntimeError("Corpus is read-only once a run has started")
        self._lines.append(line)

    def extend(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.append(line)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def lines(self) -> Tuple[str, ...]:
        return tuple(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __getitem__(self, index):
        return self._lines[index]

    def __repr__(self):
        return f"Corpus({len(self._lines)} lines)"


def iter_lines(path: Union[str, Path]) -> Iterator[str]:
    """
    Yield each line of a text file verbatim, without its line terminator.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    with open(path, "r", encoding="utf-8", newline="") as f:
        for line in f:
            yield line.rstrip("\r\n")


def read_corpus(path: Union[str, Path], corpus: Corpus = None) -> Corpus:
    """
    Read a corpus file, one example per line.

    Args:
        path: Path of the text file
        corpus: Existing corpus to append to (a new one is created if None)

    Returns:
        The corpus holding the file's lines

    Raises:
        FileNotFoundError: If the file does not exist
    """
    if corpus is None:
        corpus = Corpus()
    before = len(corpus)
    corpus.extend(iter_lines(path))
    logger.info(f"Read {len(corpus) - before} corpus lines from {path}")
    return corpus
