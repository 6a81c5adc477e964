"""Run history storage. SQLite by default; set DATABASE_URL for another SQLAlchemy backend.
Startup ensures required tables exist; on connection failure logs and falls back to in-memory SQLite so the app can start."""
import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from smolr import config as app_config
from smolr.conversion.service import RunSummary

logger = logging.getLogger("smolr.db")

_engine: Optional[Engine] = None

# Tables required for the app (created at startup if missing)
REQUIRED_TABLES = ("runs", "run_items")

IN_MEMORY_URL = "sqlite:///:memory:"


def _is_sqlite() -> bool:
    return app_config.DATABASE_URL.startswith("sqlite")


def _make_engine(url: str) -> Engine:
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url == IN_MEMORY_URL:
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = _make_engine(app_config.DATABASE_URL)
        logger.info("Database engine created (%s)", "SQLite" if _is_sqlite() else _engine.dialect.name)
    return _engine


def reset_engine() -> None:
    """Dispose the current engine; the next call builds one from DATABASE_URL."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def _create_tables(conn) -> None:
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS runs (
            run_id VARCHAR(64) PRIMARY KEY,
            status VARCHAR(32) NOT NULL,
            files_total INTEGER NOT NULL DEFAULT 0,
            files_converted INTEGER NOT NULL DEFAULT 0,
            original_bytes BIGINT NOT NULL DEFAULT 0,
            bytes_saved BIGINT NOT NULL DEFAULT 0,
            started_at VARCHAR(64) NOT NULL,
            completed_at VARCHAR(64),
            duration_seconds FLOAT
        )
    """))
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS run_items (
            run_id VARCHAR(64) NOT NULL,
            item_id VARCHAR(64) NOT NULL,
            filename VARCHAR(512),
            output_path VARCHAR(2048),
            status VARCHAR(32) NOT NULL,
            input_bytes BIGINT,
            output_bytes BIGINT,
            PRIMARY KEY (run_id, item_id)
        )
    """))
    conn.commit()


def _ensure_tables(engine: Engine) -> None:
    """Create required tables if they do not exist."""
    with engine.connect() as conn:
        _create_tables(conn)
    logger.info("Required tables ensured: %s", ", ".join(REQUIRED_TABLES))


def init_db() -> None:
    """Prepare database at startup. On failure fall back to in-memory SQLite so the app can start."""
    global _engine
    try:
        _ensure_tables(get_engine())
        logger.info("Database ready: %s", app_config.DATABASE_URL.split("://", 1)[0])
        return
    except SQLAlchemyError as e:
        logger.warning("Database unavailable (%s). Using in-memory SQLite.", e, exc_info=True)

    reset_engine()
    app_config.DATABASE_URL = IN_MEMORY_URL
    _ensure_tables(get_engine())
    logger.warning("Using in-memory SQLite. Run history will not persist across restarts.")


@contextmanager
def session():
    with get_engine().connect() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def record_run(summary: RunSummary) -> None:
    """Store a finished run and its per-item outcomes."""
    stats = summary.stats
    with session() as conn:
        conn.execute(
            text("""
                INSERT INTO runs (run_id, status, files_total, files_converted, original_bytes, bytes_saved, started_at, completed_at, duration_seconds)
                VALUES (:run_id, :status, :files_total, :files_converted, :original_bytes, :bytes_saved, :started_at, :completed_at, :duration_seconds)
            """),
            {
                "run_id": summary.run_id,
                "status": summary.status,
                "files_total": stats.total_files_to_convert,
                "files_converted": stats.files_converted,
                "original_bytes": stats.total_original_bytes,
                "bytes_saved": stats.total_bytes_saved,
                "started_at": summary.started_at,
                "completed_at": summary.completed_at,
                "duration_seconds": summary.duration_seconds,
            },
        )
        for item in summary.items:
            conn.execute(
                text("""
                    INSERT INTO run_items (run_id, item_id, filename, output_path, status, input_bytes, output_bytes)
                    VALUES (:run_id, :item_id, :filename, :output_path, :status, :input_bytes, :output_bytes)
                """),
                {
                    "run_id": summary.run_id,
                    "item_id": item.item_id,
                    "filename": item.filename,
                    "output_path": item.output_path,
                    "status": item.status,
                    "input_bytes": item.input_bytes,
                    "output_bytes": item.output_bytes,
                },
            )
    logger.debug("Recorded run %s (%s items)", summary.run_id, len(summary.items))


def get_runs(limit: int = 50) -> list[dict]:
    """Recent runs, newest first."""
    with get_engine().connect() as conn:
        rows = conn.execute(
            text("""
                SELECT run_id, status, files_total, files_converted, original_bytes, bytes_saved, started_at, completed_at, duration_seconds
                FROM runs ORDER BY started_at DESC LIMIT :lim
            """),
            {"lim": limit},
        ).fetchall()
    return [
        {
            "run_id": r[0],
            "status": r[1],
            "files_total": r[2],
            "files_converted": r[3],
            "original_bytes": r[4],
            "bytes_saved": r[5],
            "started_at": r[6],
            "completed_at": r[7],
            "duration_seconds": r[8],
        }
        for r in rows
    ]


def get_run_items(run_id: str) -> list[dict]:
    with get_engine().connect() as conn:
        rows = conn.execute(
            text("""
                SELECT item_id, filename, output_path, status, input_bytes, output_bytes
                FROM run_items WHERE run_id = :run_id ORDER BY filename
            """),
            {"run_id": run_id},
        ).fetchall()
    return [
        {
            "item_id": r[0],
            "filename": r[1],
            "output_path": r[2],
            "status": r[3],
            "input_bytes": r[4],
            "output_bytes": r[5],
        }
        for r in rows
    ]


def get_history_stats() -> dict:
    """Totals across every recorded run."""
    with get_engine().connect() as conn:
        row = conn.execute(
            text("""
                SELECT
                    COUNT(*) AS runs,
                    COALESCE(SUM(files_converted), 0) AS files_converted,
                    COALESCE(SUM(original_bytes), 0) AS original_bytes,
                    COALESCE(SUM(bytes_saved), 0) AS bytes_saved
                FROM runs
            """),
        ).fetchone()
    runs, files_converted, original_bytes, bytes_saved = int(row[0]), int(row[1]), int(row[2]), int(row[3])
    saved_percent = round(bytes_saved / original_bytes * 100.0, 1) if original_bytes > 0 else 0.0
    return {
        "runs": runs,
        "files_converted": files_converted,
        "original_bytes": original_bytes,
        "bytes_saved": bytes_saved,
        "saved_percent": saved_percent,
    }
