import gzip
import hashlib
import logging
import os
import shutil
import sys
from logging.handlers import TimedRotatingFileHandler
from typing import List, Optional

import structlog
from structlog.types import Processor

# uvicorn's own loggers go through our handlers. Its access log is muted:
# RequestContextMiddleware already writes one line per request with the
# request id and user attached.
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error")
MUTED_LOGGERS = ("uvicorn.access",)


def file_sha256(file_path: str) -> str:
    """SHA-256 of a file, used to fingerprint rotated log archives."""
    sha256 = hashlib.sha256()
    with open(file_path, 'rb') as f:
        while chunk := f.read(8192):
            sha256.update(chunk)
    return sha256.hexdigest()


def gzip_rotator(source: str, dest: str):
    """
    Rotator for TimedRotatingFileHandler: compresses the finished log to
    ``<dest>.gz``, writes its hash next to it as ``<dest>.gz.sha256`` and
    removes the uncompressed file.
    """
    dest_gz = dest + ".gz"

    try:
        with open(source, 'rb') as f_in, gzip.open(dest_gz, 'wb') as f_out:
            shutil.copyfileobj(f_in, f_out)

        with open(dest_gz + ".sha256", "w") as f_hash:
            f_hash.write(file_sha256(dest_gz))

        if os.path.exists(source):
            os.remove(source)

    except OSError as e:
        # The logging system itself is failing here, stderr is all that is left
        sys.stderr.write(f"Error rotating logs: {e}\n")


def _shared_processors() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _formatter(json_logs: bool, colors: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def build_file_handler(log_file: str, json_logs: bool = False, backup_days: int = 30) -> TimedRotatingFileHandler:
    """Midnight-rotated log file whose archives are gzipped and fingerprinted."""
    handler = TimedRotatingFileHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=backup_days,
        encoding="utf-8",
        delay=True,
    )
    handler.rotator = gzip_rotator
    handler.namer = lambda name: name
    handler.setFormatter(_formatter(json_logs, colors=False))
    return handler


def setup_logging(json_logs: bool = False, log_level: str = "INFO", log_file: Optional[str] = "app.log",
                  backup_days: int = 30):
    """
    Routes structlog and stdlib logging through the same handlers: stdout
    always, plus a rotated file when ``log_file`` is set. Safe to call more
    than once; each call replaces the previous handlers.
    """
    structlog.configure(
        processors=_shared_processors() + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_formatter(json_logs, colors=sys.stdout.isatty()))

    root_logger = logging.getLogger()
    root_logger.handlers = [console_handler]
    root_logger.setLevel(log_level.upper())

    if log_file:
        root_logger.addHandler(build_file_handler(log_file, json_logs, backup_days))

    for name in UVICORN_LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.propagate = True

    for name in MUTED_LOGGERS:
        logging.getLogger(name).disabled = True
