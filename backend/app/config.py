# backend/app/config.py
from pathlib import Path
import os

# /app/data があればコンテナ、無ければ repo 直下の data
_container_data = Path("/app/data")
if _container_data.exists():
    DATA_DIR = _container_data
else:
    # backend/app/config.py → ../.. = <repo root>
    DATA_DIR = Path(__file__).resolve().parents[2] / "data"

DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{DATA_DIR / 'app.db'}"

# 一時アップロード先（shapefile の .shp/.dbf/... をまとめて置く）
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR") or (DATA_DIR / "uploads"))

SESSION_SECRET = os.getenv("SESSION_SECRET") or ""
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# 地図の初期表示位置
MAP_CENTER_LNG = float(os.getenv("MAP_CENTER_LNG", "-122.44"))
MAP_CENTER_LAT = float(os.getenv("MAP_CENTER_LAT", "37.75"))
MAP_ZOOM = float(os.getenv("MAP_ZOOM", "12"))
