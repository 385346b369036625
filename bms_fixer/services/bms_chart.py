"""
BMS Chart Fixer - Chart Model

In-memory representation of a single BMS chart file.

BMS is a line-oriented format.  Every line is either free text or a
``#``-prefixed directive, e.g. a header such as ``#TITLE My Song`` or a
channel line such as ``#00302:0.75`` (measure ``003``, channel ``02``,
value ``0.75``).  The model keeps the raw lines exactly as read and only
understands one defect: channel ``02`` (measure length) values that are too
long for many players to load.  ``Chart.fix()`` truncates those values to
``MEASURE_LENGTH_MAX_CHARS`` characters.

Typical lifecycle::

    chart = Chart(verbose=1)
    chart.read("songs/foo/7key_hyper.bms")
    chart.fix()
    if chart.is_modified:
        chart.save("songs/foo/7key_hyper.bms")
"""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from bms_fixer.config import CHART_ENCODING

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
MEASURE_LENGTH_CHANNEL = "02"
MEASURE_LENGTH_MAX_CHARS = 10

# "#" + exactly three ASCII digits + "02:" + value
_RE_MEASURE_LENGTH = re.compile(r"^(#([0-9]{3})02):(.*)$", re.DOTALL)
_RE_HEADER = re.compile(r"^#(TITLE|ARTIST|GENRE|PLAYLEVEL)(?:[ \t]+(.*))?$", re.IGNORECASE)

PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# Errors and records
# ---------------------------------------------------------------------------


class ChartEncodingError(OSError):
    """Raised when chart text cannot be decoded (read) or encoded (save)."""

    def __init__(self, path: str, encoding: str, reason: str):
        self.path = path
        self.encoding = encoding
        self.reason = reason
        super().__init__(f"Cannot handle {path} as {encoding}: {reason}")


@dataclass
class LineFix:
    """A single channel 02 rewrite made by :meth:`Chart.fix`."""

    line: int
    measure: int
    original: str
    corrected: str

    @property
    def changed(self) -> bool:
        return self.original != self.corrected

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line": self.line,
            "measure": self.measure,
            "original": self.original,
            "corrected": self.corrected,
            "changed": self.changed,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def split_lines(text: str) -> List[str]:
    """
    Split text into physical lines.

    Only ``\\n`` ends a line; a single trailing ``\\r`` is stripped from each
    line so CRLF files read the same as LF files.  Unlike
    ``str.splitlines()`` this never breaks on form feeds or other Unicode
    line separators that may appear inside values.
    """
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [p[:-1] if p.endswith("\r") else p for p in parts]


def parse_header_metadata(lines: List[str]) -> Dict[str, Any]:
    """Pick title/artist/genre/level from the first matching header lines."""
    found: Dict[str, str] = {}
    for line in lines:
        match = _RE_HEADER.match(line)
        if not match:
            continue
        key = match.group(1).upper()
        if key not in found:
            found[key] = (match.group(2) or "").strip()

    level = 0
    try:
        level = int(found.get("PLAYLEVEL", ""))
    except ValueError:
        pass

    return {
        "title": found.get("TITLE", ""),
        "artist": found.get("ARTIST", ""),
        "genre": found.get("GENRE", ""),
        "level": level,
    }


# ---------------------------------------------------------------------------
# Chart
# ---------------------------------------------------------------------------


class Chart:
    """
    Raw lines of one BMS file plus read-only metadata and a dirty flag.

    ``lines`` is the only carrier of file content.  ``path`` and the
    metadata fields are set by :meth:`read` and nothing else.  A chart is
    not safe to share between threads; use one instance per file.
    """

    def __init__(self, verbose: int = 0, encoding: Optional[str] = None):
        self.lines: List[str] = []
        self.verbose = verbose
        self.encoding = encoding or CHART_ENCODING
        self.corrections: List[LineFix] = []

        self._title = ""
        self._artist = ""
        self._genre = ""
        self._level = 0
        self._path = ""
        self._is_modified = False

    def __repr__(self) -> str:
        return (
            f"Chart(path={self._path!r}, lines={len(self.lines)}, "
            f"modified={self._is_modified})"
        )

    # -- read-only fields ---------------------------------------------------

    @property
    def path(self) -> str:
        return self._path

    @property
    def title(self) -> str:
        return self._title

    @property
    def artist(self) -> str:
        return self._artist

    @property
    def genre(self) -> str:
        return self._genre

    @property
    def level(self) -> int:
        return self._level

    @property
    def is_modified(self) -> bool:
        return self._is_modified

    def metadata(self) -> Dict[str, Any]:
        return {
            "title": self._title,
            "artist": self._artist,
            "genre": self._genre,
            "level": self._level,
        }

    # -- lifecycle ----------------------------------------------------------

    def read(self, path: PathLike) -> None:
        """
        Load every line of *path*, replacing any previous content.

        Raises ``OSError`` if the file cannot be opened and
        :class:`ChartEncodingError` if it is not valid text in
        ``self.encoding``.  Nothing on the chart changes when an error is
        raised.
        """
        path_str = str(path)
        try:
            with open(path_str, "r", encoding=self.encoding, newline="") as f:
                text = f.read()
        except (UnicodeDecodeError, LookupError) as e:
            raise ChartEncodingError(path_str, self.encoding, str(e)) from e

        lines = split_lines(text)
        meta = parse_header_metadata(lines)

        # Commit only once everything above succeeded
        self.lines = lines
        self._path = path_str
        self._title = meta["title"]
        self._artist = meta["artist"]
        self._genre = meta["genre"]
        self._level = meta["level"]
        self._is_modified = False
        self.corrections = []

        logger.debug("Read {} line(s) from {}", len(lines), path_str)

    def fix(self) -> List[LineFix]:
        """
        Truncate over-long channel 02 values in place.

        A line ``#MMM02:value`` whose value has ``MEASURE_LENGTH_MAX_CHARS``
        or more characters is rewritten to keep only the first
        ``MEASURE_LENGTH_MAX_CHARS`` characters.  A value of exactly that
        length is rewritten to itself and still counts as a correction.

        Returns the corrections made by this call.  Never raises.
        """
        fixes: List[LineFix] = []
        for pos, line in enumerate(self.lines):
            match = _RE_MEASURE_LENGTH.match(line)
            if not match:
                continue

            prefix, measure, value = match.group(1), match.group(2), match.group(3)
            if len(value) < MEASURE_LENGTH_MAX_CHARS:
                continue

            fixed_value = value[:MEASURE_LENGTH_MAX_CHARS]
            if self.verbose > 0:
                logger.info(
                    "File {}, Line {}, fixed: {} => {}",
                    self._path,
                    pos,
                    value,
                    fixed_value,
                )

            self.lines[pos] = f"{prefix}:{fixed_value}"
            self._is_modified = True
            fixes.append(LineFix(pos, int(measure), value, fixed_value))

        self.corrections.extend(fixes)
        return fixes

    def to_text(self) -> str:
        """Serialize the lines exactly as :meth:`save` writes them."""
        return "".join(f"{line}\n" for line in self.lines)

    def save(self, path: PathLike) -> None:
        """
        Write the lines to *path*, one per line, each ending in ``\\n``.

        The text goes to a temporary file next to *path* which then replaces
        the destination, so a failed write leaves any existing file intact.
        Does not change ``path`` or ``is_modified``.
        """
        path_str = str(path)
        try:
            data = self.to_text().encode(self.encoding)
        except (UnicodeEncodeError, LookupError) as e:
            raise ChartEncodingError(path_str, self.encoding, str(e)) from e

        dest = Path(path_str)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(dest.parent), prefix=f".{dest.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            if dest.exists():
                shutil.copymode(path_str, tmp_name)
            os.replace(tmp_name, path_str)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug("Wrote {} line(s) to {}", len(self.lines), path_str)
