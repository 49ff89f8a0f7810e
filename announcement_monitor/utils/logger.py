import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def safe_log_text(text):
    """Escape only loguru formatting characters, keep brackets intact"""
    if not isinstance(text, str):
        text = str(text)
    text = text.replace('{', '{{').replace('}', '}}')
    return text


def _console_format(record):
    if log_data := record['extra'].get('exchange', ''):
        log_data += " "

    log_data += safe_log_text(record["message"])
    if record["exception"]:
        log_data += "\n{exception}"

    return f"<green>{record['time']:HH:mm:ss}</green> | {log_data}\n"


def _file_format(record):
    return (f"{record['time']:YYYY-MM-DD HH:mm:ss} | {record['level']} | "
            f"{record['extra'].get('component', record['extra'].get('exchange', 'app'))} | "
            f"{safe_log_text(record['message'])}\n")


def setup_logging(level: str = "INFO", json_logs: bool = False, log_dir: Optional[str] = "logs"):
    """
    Configure loguru sinks.

    Console output is "HH:mm:ss | <Exchange> message", or one JSON object per line with
    json_logs. When log_dir is set, DEBUG and above go to a rotating app.log and errors
    to errors.log.
    """
    level = (level or "INFO").upper()

    logger.remove()
    logger.configure(extra={"component": "app"})

    if json_logs:
        logger.add(sys.stdout, level=level, serialize=True)
    else:
        logger.add(sys.stdout, format=_console_format, level=level)

    if not log_dir:
        return

    Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger.add(
        str(Path(log_dir) / "app.log"),
        format=_file_format,
        level="DEBUG",
        rotation="10 MB",
        retention="7 days",
        compression="zip"
    )

    logger.add(
        str(Path(log_dir) / "errors.log"),
        format=lambda record: _file_format(record).rstrip("\n") + " | {exception}\n",
        level="ERROR",
        rotation="5 MB",
        retention="30 days"
    )
