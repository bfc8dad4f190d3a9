import json
import logging
import os
from pathlib import Path
from typing import Optional

LOG_DIR_ENV = "RENDEZVOUS_LOG_DIR"


def get_logger(run_id: str, log_path: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(f"rendezvous.{run_id}")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_path is None and os.getenv(LOG_DIR_ENV):
        log_path = get_log_path(run_id)
    if log_path is not None:
        os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    return logger


def log_summary(logger: logging.Logger, stats: dict) -> None:
    """実行統計を1行の JSON で出力する。"""
    logger.info("summary %s", json.dumps(stats, ensure_ascii=False, sort_keys=True, default=str))


def get_log_path(stem: str) -> str:
    """
    ログの出力先:
      環境変数 RENDEZVOUS_LOG_DIR（未設定時はカレントの logs/）
    """
    log_dir = Path(os.getenv(LOG_DIR_ENV, "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / f"{stem}.log")
