"""
BMS Chart Fixer - Chart Fixing Service

Runs the read → fix → (optional) save pipeline over one chart or a batch
of charts and reports the outcome of each file as a :class:`FixResult`.

Per-file I/O failures never propagate out of this module: they are logged
and stored on the result so the rest of a batch keeps going.

Key entry points:
- ``fix_chart_file()``   — process a single chart on local disk
- ``fix_chart_files()``  — process many charts, optionally on a worker pool
"""

import shutil
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from loguru import logger

from bms_fixer.config import BACKUP_SUFFIX
from bms_fixer.services.bms_chart import Chart, LineFix

PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# Result class
# ---------------------------------------------------------------------------


class FixResult:
    """Outcome of running the fixer on a single chart."""

    def __init__(self, chart_path: str):
        self.chart_path = chart_path
        self.fixes: List[LineFix] = []
        self.modified = False
        self.saved = False
        self.backup_path: Optional[str] = None
        self.error: Optional[str] = None
        self.metadata: Dict[str, Any] = {}

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def fix_count(self) -> int:
        return len(self.fixes)

    def summary(self) -> str:
        if self.has_error:
            status = "❌ ERROR"
        elif self.saved:
            status = "✅ FIXED"
        elif self.modified:
            status = "🔧 NEEDS FIX"
        else:
            status = "✅ OK"
        parts = [f"{status}: {self.chart_path}"]
        if self.error:
            parts.append(f"  {self.error}")
        if self.fixes:
            parts.append(f"  {self.fix_count} measure length value(s) truncated")
        if self.backup_path:
            parts.append(f"  backup: {self.backup_path}")
        return "\n".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chart_path": self.chart_path,
            "modified": self.modified,
            "saved": self.saved,
            "backup_path": self.backup_path,
            "error": self.error,
            "metadata": self.metadata,
            "fixes": [f.to_dict() for f in self.fixes],
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def create_backup(chart_path: PathLike, suffix: str = BACKUP_SUFFIX) -> Optional[Path]:
    """
    Copy *chart_path* to ``<chart_path><suffix>``.

    An existing backup is never overwritten, so the first backup always
    holds the original file.  Returns the backup path if one was created.
    """
    src = Path(chart_path)
    backup_path = src.with_name(src.name + suffix)
    if backup_path.exists():
        return None
    shutil.copy2(src, backup_path)
    return backup_path


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def fix_chart_file(
    chart_path: PathLike,
    write: bool = False,
    backup: bool = False,
    verbose: int = 0,
    encoding: Optional[str] = None,
) -> FixResult:
    """
    Read, fix and optionally save one chart.

    Parameters
    ----------
    chart_path : str or Path
        The chart to process.
    write : bool
        Save the corrected chart back to ``chart_path`` if it was modified.
        When False this is a dry run and nothing touches the disk.
    backup : bool
        Keep a copy of the original file before overwriting it.
    verbose : int
        Passed to :class:`Chart`; 1 or more logs every correction.
    encoding : str, optional
        Text codec of the chart (defaults to ``BMS_ENCODING``).

    Returns
    -------
    FixResult
    """
    result = FixResult(str(chart_path))
    chart = Chart(verbose=verbose, encoding=encoding)

    try:
        chart.read(chart_path)
    except OSError as e:
        logger.error("Failed to read {}: {}", chart_path, e)
        result.error = f"read failed: {e}"
        return result

    result.metadata = chart.metadata()
    result.fixes = chart.fix()
    result.modified = chart.is_modified

    if not (write and chart.is_modified):
        return result

    try:
        if backup:
            backup_path = create_backup(chart_path)
            if backup_path is not None:
                result.backup_path = str(backup_path)
        logger.info("Saving {} ...", chart_path)
        chart.save(chart_path)
        result.saved = True
    except OSError as e:
        logger.error("Failed to save {}: {}", chart_path, e)
        result.error = f"save failed: {e}"

    return result


def fix_chart_files(
    chart_paths: Iterable[PathLike],
    write: bool = False,
    backup: bool = False,
    verbose: int = 0,
    encoding: Optional[str] = None,
    workers: int = 1,
) -> List[FixResult]:
    """
    Run :func:`fix_chart_file` over many charts.

    With ``workers > 1`` the charts are spread over a thread pool.  Every
    path goes to exactly one worker, which builds its own :class:`Chart`.
    Results are returned in the order of ``chart_paths``.
    """
    paths = list(chart_paths)
    run = partial(
        fix_chart_file, write=write, backup=backup, verbose=verbose, encoding=encoding
    )

    if workers <= 1 or len(paths) <= 1:
        results = [run(p) for p in paths]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(run, paths))

    modified = sum(1 for r in results if r.modified)
    failed = sum(1 for r in results if r.has_error)
    logger.debug(
        "Processed {} chart(s): {} modified, {} failed", len(results), modified, failed
    )
    return results
