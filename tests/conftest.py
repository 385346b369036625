"""
BMS Chart Fixer - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- Sample BMS chart content (clean and with over-long measure lengths)
- Chart files and song folder trees written to a temporary directory
- Capturing loguru output during a test
"""

import os
import sys
from pathlib import Path
from typing import List

import pytest
from loguru import logger

# ---------------------------------------------------------------------------
# Sample BMS content
# ---------------------------------------------------------------------------

SAMPLE_BMS_CLEAN = """\
*---------------------- HEADER FIELD
#PLAYER 1
#GENRE Trance
#TITLE Test Song
#ARTIST Test Artist
#BPM 150
#PLAYLEVEL 7
#RANK 2
#TOTAL 300
#WAV01 kick.wav
#WAV02 snare.wav

*---------------------- MAIN DATA FIELD

#00011:01020102
#00102:0.75
#00111:0101
#00212:02000200
"""

# Line 15 (#00002) and line 17 (#00202) carry over-long measure lengths,
# line 19 (#00302) is exactly at the limit.
SAMPLE_BMS_CORRUPT = """\
*---------------------- HEADER FIELD
#PLAYER 1
#GENRE Trance
#TITLE Broken Song
#ARTIST Test Artist
#BPM 150
#PLAYLEVEL 12
#RANK 2
#TOTAL 300
#WAV01 kick.wav
#WAV02 snare.wav

*---------------------- MAIN DATA FIELD

#00011:01020102
#00002:0.999733333333333
#00111:0101
#00202:0.7500000000000001
#00212:02000200
#00302:0.12345678
"""

CORRUPT_FIXED_LINES = {
    15: "#00002:0.99973333",
    17: "#00202:0.75000000",
}


def write_chart(path: Path, content: str, encoding: str = "utf-8") -> Path:
    """Write chart content to *path* (creating parents) and return it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode(encoding))
    return path


# ---------------------------------------------------------------------------
# File fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clean_chart_file(tmp_path: Path) -> Path:
    """A chart with nothing to fix."""
    return write_chart(tmp_path / "clean.bms", SAMPLE_BMS_CLEAN)


@pytest.fixture
def corrupt_chart_file(tmp_path: Path) -> Path:
    """A chart with two over-long measure length values."""
    return write_chart(tmp_path / "corrupt.bms", SAMPLE_BMS_CORRUPT)


@pytest.fixture
def song_library(tmp_path: Path) -> Path:
    """
    Create a small song library:

        library/
          Song A/a_normal.bms     (clean)
          Song A/a_hyper.bme      (corrupt)
          Song A/readme.txt
          Song B/sub/b.BML        (corrupt, upper-case extension)
          Song B/bgm.ogg
    """
    root = tmp_path / "library"
    write_chart(root / "Song A" / "a_normal.bms", SAMPLE_BMS_CLEAN)
    write_chart(root / "Song A" / "a_hyper.bme", SAMPLE_BMS_CORRUPT)
    write_chart(root / "Song A" / "readme.txt", "not a chart\n")
    write_chart(root / "Song B" / "sub" / "b.BML", SAMPLE_BMS_CORRUPT)
    (root / "Song B" / "bgm.ogg").write_bytes(b"\x00" * 64)
    return root


@pytest.fixture
def locked_library(tmp_path: Path) -> Path:
    """
    Create a library whose ``locked/`` subdirectory cannot be listed:

        locked_library/
          ok.bms              (corrupt)
          locked/hidden.bms   (mode 000 on locked/)
    """
    if sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0):
        pytest.skip("directory permissions are not enforced")
    root = tmp_path / "locked_library"
    write_chart(root / "ok.bms", SAMPLE_BMS_CORRUPT)
    locked = root / "locked"
    write_chart(locked / "hidden.bms", SAMPLE_BMS_CORRUPT)
    locked.chmod(0o000)
    yield root
    locked.chmod(0o755)


# ---------------------------------------------------------------------------
# Logging fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def log_messages() -> List[str]:
    """Collect the message text of every loguru record emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
