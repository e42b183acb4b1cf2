from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from loguru import logger

# モデル定義側の Base（app.models.base）を利用してメタデータを統一
from app.models.base import Base
from app.config import DATABASE_URL

# 1) DATABASE_URL が指定されていれば優先（例: postgresql+psycopg://...）
# 2) それ以外は data/app.db の SQLite
SQLALCHEMY_DATABASE_URL = DATABASE_URL
_is_sqlite = SQLALCHEMY_DATABASE_URL.startswith("sqlite")

if _is_sqlite and SQLALCHEMY_DATABASE_URL.startswith("sqlite:///"):
    from pathlib import Path

    _db_file = SQLALCHEMY_DATABASE_URL[len("sqlite:///"):]
    if _db_file and _db_file != ":memory:":
        Path(_db_file).parent.mkdir(parents=True, exist_ok=True)

_connect_args = {"check_same_thread": False} if _is_sqlite else {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=_connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

if _is_sqlite:
    # SQLite は外部キー制約が既定で無効
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


def init_db() -> None:
    # パッケージ配下の各モデルモジュールを明示 import してメタデータ登録を確実化
    import app.models.user  # noqa: F401
    import app.models.survey  # noqa: F401
    import app.models.layer  # noqa: F401
    import app.models.feature  # noqa: F401
    import app.models.assignment  # noqa: F401
    import app.models.survey_response  # noqa: F401
    Base.metadata.create_all(bind=engine)

    # SQLite 簡易マイグレーション（既存DBの不足カラムを追加）
    if _is_sqlite:
        try:
            with engine.begin() as conn:
                # layers.default_survey_id
                cols_layers = conn.exec_driver_sql("PRAGMA table_info(layers)").fetchall()
                names_layers = {row[1] for row in cols_layers}
                if "default_survey_id" not in names_layers:
                    conn.exec_driver_sql("ALTER TABLE layers ADD COLUMN default_survey_id INTEGER")

                # assignments.coordinates
                cols_asg = conn.exec_driver_sql("PRAGMA table_info(assignments)").fetchall()
                names_asg = {row[1] for row in cols_asg}
                if "coordinates" not in names_asg:
                    # SQLite の JSON は TEXT として扱われるため TEXT で追加
                    conn.exec_driver_sql("ALTER TABLE assignments ADD COLUMN coordinates TEXT")
        except OperationalError:
            # 失敗しても起動続行
            logger.exception("sqlite column migration failed")


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
