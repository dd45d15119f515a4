import logging
from pathlib import Path
from datetime import datetime
from zoneinfo import ZoneInfo
from typing import Optional


def setup_logging(
    level: str = "INFO",
    component: str = "backfill",
    subdir: str = "default",
    base_dir: str | Path = "logs",
    to_file: bool = True,
) -> Optional[Path]:
    """
    Configure logging:
      - Console (stdout)
      - Daily log file in logs/<component>/<host_port>/YYYY-MM-DD.log (Berlin date)

    Returns:
      Path to the daily log file, or None when file logging is disabled.
    """

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(sh)

    if not to_file:
        return None

    log_dir = Path(base_dir) / component / subdir
    log_dir.mkdir(parents=True, exist_ok=True)
    date_str = datetime.now(ZoneInfo("Europe/Berlin")).strftime("%Y-%m-%d")
    log_path = log_dir / f"{date_str}.log"

    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setFormatter(fmt)
    root.addHandler(fh)
    return log_path
