"""Incident history store.

Persists every analyzed incident and answers "have we seen this before?"
queries by keyword substring match on the error message.

The engine and schema are created lazily on first use, so constructing a
HistoryStore never touches the database and an unreachable database only
surfaces when the runtime's best-effort history step calls in. Schema
creation is idempotent. For SQLite file URLs the parent directory is created
if it does not exist.

Writes are insert-only and serialized behind a lock; reads run concurrently.
"""

import logging
import pathlib
import threading
import uuid
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from history.models import Base, IncidentRecord
from schemas.classification import IncidentClassification
from schemas.incident import IncidentInput
from schemas.report import IncidentReport, SimilarIncident

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///db/incidents.db"
MIN_KEYWORD_LENGTH = 4
MAX_KEYWORDS = 5


def extract_keywords(message: str) -> list[str]:
    """Return up to five words from message longer than three characters, in order."""
    return [word for word in message.split() if len(word) >= MIN_KEYWORD_LENGTH][:MAX_KEYWORDS]


class HistoryStore:
    """SQL-backed store of previously analyzed incidents.

    Args:
        database_url: SQLAlchemy database URL. Defaults to a SQLite file
            under db/ in the working directory.
    """

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL) -> None:
        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._init_lock = threading.Lock()
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _get_engine(self) -> Engine:
        """Create the engine and schema on first call; reuse them afterwards."""
        with self._init_lock:
            if self._engine is not None:
                return self._engine

            url = make_url(self.database_url)
            engine_kwargs: dict = {}
            if url.get_backend_name() == "sqlite":
                engine_kwargs["connect_args"] = {"check_same_thread": False}
                if url.database in (None, "", ":memory:"):
                    engine_kwargs["poolclass"] = StaticPool
                else:
                    pathlib.Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            else:
                engine_kwargs["pool_pre_ping"] = True

            engine = create_engine(url, **engine_kwargs)
            Base.metadata.create_all(engine)
            self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
            self._engine = engine
            logger.info("History store ready at %s.", url.render_as_string(hide_password=True))
            return engine

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Context manager yielding a Session.

        Commits on success, rolls back on exception, and always closes.
        """
        self._get_engine()
        sess: Session = self._session_factory()
        try:
            yield sess
            sess.commit()
        except Exception:
            sess.rollback()
            raise
        finally:
            sess.close()

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        with self._init_lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
                self._session_factory = None

    # ------------------------------------------------------------------
    # Insert
    # ------------------------------------------------------------------

    def save_incident(
        self,
        incident: IncidentInput,
        classification: IncidentClassification,
        report: IncidentReport,
    ) -> str:
        """Record an analyzed incident.

        Returns:
            The generated incident ID (a uuid4 string).
        """
        incident_id = str(uuid.uuid4())
        record = IncidentRecord(
            id=incident_id,
            model=incident.model,
            error_code=incident.error.code,
            error_message=incident.error.message,
            fault_domain=classification.fault_domain.value,
            severity=classification.severity.value,
            report=report.model_dump_json(by_alias=True),
        )
        with self._write_lock, self.session() as sess:
            sess.add(record)
        logger.debug("Saved incident %s.", incident_id)
        return incident_id

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def find_similar(self, message: str, limit: int = 3) -> list[SimilarIncident]:
        """Find recorded incidents whose message contains message's first keyword.

        A keyword is a whitespace-separated word longer than three
        characters. Matching is a substring search, most recent first.

        Args:
            message: Error message of the current incident.
            limit: Maximum number of matches to return.

        Returns:
            Matching incidents, newest first. Empty if message has no
            keyword or nothing matches.
        """
        keywords = extract_keywords(message)
        if not keywords:
            return []

        stmt = (
            select(IncidentRecord)
            .where(IncidentRecord.error_message.contains(keywords[0], autoescape=True))
            .order_by(IncidentRecord.created_at.desc())
            .limit(limit)
        )
        with self.session() as sess:
            rows = sess.scalars(stmt).all()

        return [
            SimilarIncident(
                id=row.id,
                created_at=row.created_at.isoformat(),
                error_message=row.error_message,
                fault_domain=row.fault_domain,
                severity=row.severity,
            )
            for row in rows
        ]
