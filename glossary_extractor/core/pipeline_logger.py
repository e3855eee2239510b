"""Run-level logging for extraction runs.

Library modules log through ``logging.getLogger(__name__)``. This logger sits
on the package root logger ("glossary_extractor") and adds:
- A concise console format
- One log file per run when a log directory is configured
- Step headers with elapsed time
- key=value structured data
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "glossary_extractor"


class PipelineLogger:
    """Structured logger for extraction and ingestion runs."""

    def __init__(
        self,
        name: str = ROOT_LOGGER_NAME,
        verbose: bool = False,
        log_dir: str | Path | None = None,
    ):
        """Initialize the logger.

        Args:
            name: Logger name. Defaults to the package root so module
                loggers propagate into the same handlers.
            verbose: If True, show DEBUG level logs on the console.
            log_dir: Directory for per-run log files. If None, no file logging.
        """
        self.logger = logging.getLogger(name)
        self.verbose = verbose
        self._log_dir = Path(log_dir) if log_dir else None
        self._log_file: Path | None = None
        self._run_start: float = 0
        self._step_start: float = 0

        if not self.logger.handlers:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(ConsoleFormatter())
            console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
            self.logger.addHandler(console_handler)

        self.logger.setLevel(logging.DEBUG)

    @property
    def log_file(self) -> Path | None:
        return self._log_file

    def set_verbose(self, verbose: bool):
        self.verbose = verbose
        for handler in self.logger.handlers:
            if isinstance(handler, logging.StreamHandler) and handler.stream == sys.stdout:
                handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    def _elapsed(self, since: float) -> str:
        if not since:
            return ""
        elapsed = time.time() - since
        mins = int(elapsed // 60)
        if mins > 0:
            return f"{mins}m {elapsed % 60:.0f}s"
        return f"{elapsed:.1f}s"

    def start_run(self, source_file: str):
        """Mark run start and open the run's log file if configured."""
        self._run_start = time.time()

        if self._log_dir:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self._log_file = self._log_dir / f"{Path(source_file).stem}_{timestamp}.log"

            file_handler = logging.FileHandler(self._log_file, encoding="utf-8")
            file_handler.setFormatter(FileFormatter())
            file_handler.setLevel(logging.DEBUG)
            self.logger.addHandler(file_handler)

        self.logger.info(f"Starting run: {source_file}")

    def step(self, name: str, detail: str = ""):
        """Log a step header, e.g. 'PROFILE (3 columns)'."""
        self._step_start = time.time()
        header = name.upper()
        if detail:
            header += f" ({detail})"
        self.logger.info(header)

    def step_result(self, result: str, **metrics):
        """Log step completion with key metrics and elapsed time."""
        parts = [result]
        if metrics:
            parts.append(", ".join(f"{k}={v}" for k, v in metrics.items()))
        elapsed = self._elapsed(self._step_start)
        if elapsed:
            parts.append(f"[{elapsed}]")
        self.logger.info(f"  Done: {' | '.join(parts)}")

    def end_run(self, success: bool = True, stats: dict | None = None):
        """Mark run end and detach the run's file handler."""
        if stats:
            self.summary(stats)

        status = "COMPLETE" if success else "FAILED"
        self.logger.info(f"Run {status} [{self._elapsed(self._run_start)}]")
        if self._log_file:
            self.logger.info(f"Log: {self._log_file}")
        self._close_file_handlers()

    def debug(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.debug(message)

    def info(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.info(f"  {message}")

    def warning(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.warning(f"WARN: {message}")

    def error(self, message: str, exc: BaseException | None = None, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        if exc:
            message = f"{message} | {type(exc).__name__}: {exc}"
        self.logger.error(f"ERROR: {message}")

    def summary(self, stats: dict):
        """Log a summary block, one line per key (nested dicts indented)."""
        lines = ["SUMMARY"]
        for key, value in stats.items():
            if isinstance(value, dict):
                lines.append(f"  {key}:")
                lines.extend(f"    {k}: {v}" for k, v in value.items())
            else:
                lines.append(f"  {key}: {value}")
        self.logger.info("\n".join(lines))

    def _close_file_handlers(self):
        for handler in self.logger.handlers[:]:
            if isinstance(handler, logging.FileHandler):
                handler.close()
                self.logger.removeHandler(handler)


class ConsoleFormatter(logging.Formatter):
    """Console formatter: message only, with a short timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        return f"[{ts}] {record.getMessage()}"


class FileFormatter(logging.Formatter):
    """File formatter: full timestamp, level and logger name."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        return f"{ts} [{record.levelname[:4]}] {record.name}: {record.getMessage()}"


def _format_data(data: dict[str, Any]) -> str:
    parts = []
    for k, v in data.items():
        if isinstance(v, str) and len(v) > 50:
            v = v[:47] + "..."
        elif isinstance(v, list) and len(v) > 5:
            v = f"[{len(v)} items]"
        parts.append(f"{k}={v}")
    return ", ".join(parts)


_logger: PipelineLogger | None = None


def get_logger(verbose: bool = False, log_dir: str | Path | None = None) -> PipelineLogger:
    """Get or create the global run logger.

    Args:
        verbose: If True, show DEBUG level logs in console.
        log_dir: Directory for log files. Applied to an existing logger only
            if it has none yet.
    """
    global _logger
    if _logger is None:
        _logger = PipelineLogger(verbose=verbose, log_dir=log_dir)
    else:
        if verbose and not _logger.verbose:
            _logger.set_verbose(True)
        if log_dir and not _logger._log_dir:
            _logger._log_dir = Path(log_dir)
    return _logger


def reset_logger():
    """Reset the global logger (for testing)."""
    global _logger
    if _logger:
        _logger._close_file_handlers()
    _logger = None
