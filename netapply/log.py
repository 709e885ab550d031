# This file is part of netapply. See LICENSE file for license information.

import copy
import logging
import sys
import time
from collections import defaultdict
from contextlib import suppress
from typing import DefaultDict, Optional, Union

DEFAULT_LOG_FORMAT = "%(asctime)s - %(filename)s[%(levelname)s]: %(message)s"


class LogExporter(logging.StreamHandler):
    """Collect messages by level name so they can be summarised later."""

    def __init__(self):
        super().__init__()
        self.holder: DefaultDict[str, list] = defaultdict(list)

    def emit(self, record: logging.LogRecord):
        self.holder[record.levelname].append(record.getMessage())

    def export_logs(self):
        return copy.deepcopy(self.holder)

    def flush(self):
        pass


def _level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError("Unknown log level: %s" % level)
    return value


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    formatter: Optional[logging.Formatter] = None,
) -> LogExporter:
    """Configure the root logger for a run.

    Messages go to stderr and, if given, to log_file.  Timestamps are always
    UTC.  The returned LogExporter keeps every WARNING and above so the
    caller can include them in its summary.
    """
    logging.Formatter.converter = time.gmtime
    reset_logging()
    level = _level(level)
    formatter = formatter or logging.Formatter(DEFAULT_LOG_FORMAT)
    root = logging.getLogger()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(level)
    root.addHandler(console)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(
                "WARN: unable to open log file %s: %s\n" % (log_file, e)
            )
        else:
            file_handler.setFormatter(formatter)
            # The file always gets the full story.
            file_handler.setLevel(logging.DEBUG)
            root.addHandler(file_handler)

    exporter = LogExporter()
    exporter.setLevel(logging.WARNING)
    root.addHandler(exporter)

    root.setLevel(logging.DEBUG if log_file else level)
    return exporter


def flush_loggers(root):
    if not root:
        return
    for h in root.handlers:
        if isinstance(h, logging.StreamHandler):
            with suppress(IOError):
                h.flush()
    flush_loggers(root.parent)


def reset_logging():
    """Remove all current handlers and unset log level."""
    log = logging.getLogger()
    handlers = list(log.handlers)
    for h in handlers:
        # A stream closed under the handler cannot be flushed
        with suppress(IOError, ValueError):
            h.flush()
        h.close()
        log.removeHandler(h)
    log.setLevel(logging.NOTSET)


def logexc(
    log, msg, *args, log_level: int = logging.WARNING, exc_info=True
) -> None:
    log.log(log_level, msg, *args)
    log.debug(msg, *args, exc_info=exc_info)
