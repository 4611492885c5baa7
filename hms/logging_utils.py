import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict


class JsonFormatter(logging.Formatter):
    """Render a log record as one JSON object per line.

    Dict messages (``logger.info({"event": ...})``) are merged into the
    payload as-is; anything else lands under ``message``.
    """

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            data: Dict[str, Any] = dict(record.msg)
        else:
            data = {"message": record.getMessage()}

        data.setdefault("level", record.levelname)
        data.setdefault("logger", record.name)

        if not data.get("time_local"):
            now = datetime.now(timezone.utc).astimezone()
            data["time_local"] = now.strftime("%Y-%m-%d %H:%M:%S")

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)
