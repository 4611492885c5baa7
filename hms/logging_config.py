from pathlib import Path
import sys


def _running_tests() -> bool:
    return "test" in sys.argv or "pytest" in sys.modules


def build_logging_config(log_dir: Path, log_level: str = "INFO"):
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "hms.logging_utils.JsonFormatter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
            "file": {
                # gunicorn/daphne workers share the file; the stdlib rotating handler is not process-safe.
                "class": "concurrent_log_handler.ConcurrentTimedRotatingFileHandler",
                "filename": log_dir / "hms.log",
                "when": "midnight",
                "interval": 1,
                "backupCount": 20,
                "formatter": "json",
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": log_level,
        },
        "loggers": {
            "django": {
                "handlers": ["console", "file"],
                "level": log_level,
                "propagate": False,
            },
            "django.request": {
                "handlers": ["console", "file"],
                "level": "ERROR",
                "propagate": False,
            },
            "triage": {
                "handlers": ["console", "file"],
                "level": log_level,
                "propagate": False,
            },
            "hms.request": {
                "handlers": ["console", "file"],
                "level": log_level,
                "propagate": False,
            },
        },
    }

    if _running_tests():
        config["handlers"]["console"] = {"class": "logging.NullHandler"}
        config["handlers"]["file"] = {"class": "logging.NullHandler"}

    return config
