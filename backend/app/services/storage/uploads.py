# backend/app/services/storage/uploads.py
from __future__ import annotations

import re
import uuid
from pathlib import Path
from typing import Optional

from loguru import logger

from app import config

_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    name = Path(filename or "").name
    name = _SAFE_NAME.sub("_", name).strip("._")
    return name or "upload"


def new_batch_id() -> str:
    return uuid.uuid4().hex[:12]


def batch_dir(batch_id: str, root: Optional[Path] = None) -> Path:
    root = Path(root or config.UPLOAD_DIR)
    if not re.fullmatch(r"[0-9a-f]{12}", batch_id or ""):
        raise ValueError(f"invalid upload batch id: {batch_id!r}")
    return root / batch_id


def store_upload(filename: str, data: bytes, batch_id: Optional[str] = None, root: Optional[Path] = None) -> Path:
    # .shp の兄弟ファイルが同じディレクトリに並ぶよう、バッチ単位で保存
    batch_id = batch_id or new_batch_id()
    out_dir = batch_dir(batch_id, root)
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / safe_filename(filename)
    out.write_bytes(data)
    logger.debug("stored upload {} ({} bytes)", out, len(data))
    return out


def upload_url(path: Path, root: Optional[Path] = None) -> str:
    root = Path(root or config.UPLOAD_DIR)
    return "/uploads/" + path.relative_to(root).as_posix()
