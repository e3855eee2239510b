"""Relational store for uploads, glossary terms and policy rules.

SQLite via the standard library. Every statement is parameterized. List
fields are stored as JSON text. Methods are async so callers can treat the
store like any other network collaborator; the queries themselves run
inline on the event loop.

Tables:
    uploaded_files            one row per distinct upload (natural key: checksum)
    data_glossary             one row per (term, dataset_id), upserted
    policy_rules              append-only
    compliance_reports        append-only
    customer_data_reports     upserted on customer_id
    transaction_data_reports  upserted on transaction_id
    risk_assessment_reports   upserted on risk_id
    chat_sessions             one row per conversation
    chat_messages             deleted with their session
"""

import json
import logging
import sqlite3
import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path

from glossary_extractor.core.config import DatabaseConfig
from glossary_extractor.core.errors import PersistenceError
from glossary_extractor.pydantic_models.chat_models import ChatMessage, ChatRole, ChatSession
from glossary_extractor.pydantic_models.glossary_models import (
    FileStatusRecord,
    GlossaryTerm,
    PolicyRule,
    ProcessingStatus,
    StoredFile,
    UsageTotals,
)
from glossary_extractor.pydantic_models.report_models import (
    REPORT_KEYS,
    REPORT_ROW_MODELS,
    ComplianceReportRow,
    ReportKind,
    ReportRow,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS uploaded_files (
    id TEXT PRIMARY KEY,
    checksum TEXT NOT NULL UNIQUE,
    filename TEXT NOT NULL,
    mime_type TEXT NOT NULL DEFAULT '',
    file_size INTEGER NOT NULL DEFAULT 0,
    file_path TEXT,
    page_count INTEGER,
    processing_status TEXT NOT NULL DEFAULT 'pending',
    extracted_terms_count INTEGER NOT NULL DEFAULT 0,
    extracted_rules_count INTEGER NOT NULL DEFAULT 0,
    llm_calls INTEGER NOT NULL DEFAULT 0,
    prompt_tokens INTEGER NOT NULL DEFAULT 0,
    completion_tokens INTEGER NOT NULL DEFAULT 0,
    cost_usd REAL NOT NULL DEFAULT 0,
    error_message TEXT,
    processed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS data_glossary (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    term TEXT NOT NULL,
    definition TEXT NOT NULL,
    source_columns TEXT NOT NULL DEFAULT '[]',
    data_types TEXT NOT NULL DEFAULT '[]',
    sample_values TEXT NOT NULL DEFAULT '[]',
    synonyms TEXT NOT NULL DEFAULT '[]',
    category TEXT,
    confidence REAL,
    dataset_id TEXT NOT NULL,
    source_file_id TEXT,
    source_filename TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(term, dataset_id)
);

CREATE INDEX IF NOT EXISTS idx_data_glossary_dataset ON data_glossary(dataset_id);
CREATE INDEX IF NOT EXISTS idx_data_glossary_term ON data_glossary(term);
CREATE INDEX IF NOT EXISTS idx_data_glossary_category ON data_glossary(category);
CREATE INDEX IF NOT EXISTS idx_data_glossary_source_file ON data_glossary(source_file_id);

CREATE TABLE IF NOT EXISTS policy_rules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_file_id TEXT,
    source_filename TEXT,
    rule_code TEXT,
    rule_text TEXT NOT NULL,
    citations TEXT NOT NULL DEFAULT '[]',
    tags TEXT NOT NULL DEFAULT '[]',
    severity TEXT,
    effective_date TEXT,
    confidence REAL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_policy_rules_source_file ON policy_rules(source_file_id);

CREATE TABLE IF NOT EXISTS compliance_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity TEXT NOT NULL DEFAULT '',
    issue_id TEXT NOT NULL DEFAULT '',
    issue_type TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT '',
    severity TEXT NOT NULL DEFAULT '',
    source_file TEXT NOT NULL DEFAULT '',
    report_date TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_compliance_reports_issue ON compliance_reports(issue_id);

CREATE TABLE IF NOT EXISTS customer_data_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity TEXT NOT NULL DEFAULT '',
    customer_id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL DEFAULT '',
    account_number TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT '',
    source_file TEXT NOT NULL DEFAULT '',
    report_date TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS transaction_data_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity TEXT NOT NULL DEFAULT '',
    transaction_id TEXT NOT NULL UNIQUE,
    amount REAL,
    date TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT '',
    source_file TEXT NOT NULL DEFAULT '',
    report_date TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS risk_assessment_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity TEXT NOT NULL DEFAULT '',
    risk_id TEXT NOT NULL UNIQUE,
    risk_type TEXT NOT NULL DEFAULT '',
    score REAL,
    mitigation TEXT NOT NULL DEFAULT '',
    source_file TEXT NOT NULL DEFAULT '',
    report_date TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS chat_sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_chat_sessions_user_id ON chat_sessions(user_id);

CREATE TABLE IF NOT EXISTS chat_messages (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES chat_sessions(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
    content TEXT NOT NULL,
    timestamp TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_chat_messages_session_id ON chat_messages(session_id);
"""

UPSERT_TERM = """
INSERT INTO data_glossary
    (term, definition, source_columns, data_types, sample_values, synonyms,
     category, confidence, dataset_id, source_file_id, source_filename,
     created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (term, dataset_id) DO UPDATE SET
    definition = excluded.definition,
    source_columns = excluded.source_columns,
    data_types = excluded.data_types,
    sample_values = excluded.sample_values,
    synonyms = excluded.synonyms,
    category = excluded.category,
    confidence = excluded.confidence,
    source_file_id = excluded.source_file_id,
    source_filename = excluded.source_filename,
    updated_at = excluded.updated_at
"""

INSERT_RULE = """
INSERT INTO policy_rules
    (source_file_id, source_filename, rule_code, rule_text, citations, tags,
     severity, effective_date, confidence, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

# Added after the first release; older databases get them on ensure_schema.
USAGE_COLUMNS = {
    "llm_calls": "INTEGER NOT NULL DEFAULT 0",
    "prompt_tokens": "INTEGER NOT NULL DEFAULT 0",
    "completion_tokens": "INTEGER NOT NULL DEFAULT 0",
    "cost_usd": "REAL NOT NULL DEFAULT 0",
}

REPORT_TABLES: dict[ReportKind, str] = {
    ReportKind.COMPLIANCE: "compliance_reports",
    ReportKind.CUSTOMERS: "customer_data_reports",
    ReportKind.TRANSACTIONS: "transaction_data_reports",
    ReportKind.RISK: "risk_assessment_reports",
}


def report_insert_sql(kind: ReportKind) -> str:
    """INSERT for one report kind, upserting on its key when it has one."""
    columns = [*REPORT_ROW_MODELS[kind].model_fields, "created_at"]
    sql = (
        f"INSERT INTO {REPORT_TABLES[kind]} ({', '.join(columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)})"
    )
    key = REPORT_KEYS[kind]
    if key:
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c not in (key, "created_at"))
        sql += f" ON CONFLICT ({key}) DO UPDATE SET {updates}"
    return sql


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _escape_like(keyword: str) -> str:
    return keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _term_from_row(row: sqlite3.Row) -> GlossaryTerm:
    return GlossaryTerm(
        term=row["term"],
        definition=row["definition"],
        source_columns=json.loads(row["source_columns"]),
        data_types=json.loads(row["data_types"]),
        sample_values=json.loads(row["sample_values"]),
        synonyms=json.loads(row["synonyms"]),
        category=row["category"],
        confidence=row["confidence"],
        source_file_id=row["source_file_id"],
        source_filename=row["source_filename"],
        dataset_id=row["dataset_id"],
    )


def _rule_from_row(row: sqlite3.Row) -> PolicyRule:
    return PolicyRule(
        rule_code=row["rule_code"],
        rule_text=row["rule_text"],
        citations=json.loads(row["citations"]),
        tags=json.loads(row["tags"]),
        severity=row["severity"],
        effective_date=row["effective_date"],
        confidence=row["confidence"],
    )


class SQLiteGlossaryRepository:
    """Glossary persistence on a single SQLite connection.

    Args:
        db_path: Database file, or ":memory:".
        batch_size: Terms per executemany batch.
    """

    def __init__(
        self,
        db_path: str | Path = DatabaseConfig.PATH,
        batch_size: int = DatabaseConfig.MAX_BATCH_SIZE,
    ):
        self.db_path = str(db_path)
        self.batch_size = batch_size
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(
                self.db_path,
                timeout=DatabaseConfig.CONNECTION_TIMEOUT_MS / 1000,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to connect to database: {e}") from e
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")

    def close(self) -> None:
        self._conn.close()

    def _execute(self, sql: str, params: Sequence = ()) -> sqlite3.Cursor:
        try:
            with self._conn:
                return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise PersistenceError(f"Database query failed: {e}") from e

    def _fetchall(self, sql: str, params: Sequence = ()) -> list[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Database query failed: {e}") from e

    async def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        try:
            self._conn.executescript(SCHEMA)
            existing = {row["name"] for row in self._conn.execute("PRAGMA table_info(uploaded_files)")}
            for column, definition in USAGE_COLUMNS.items():
                if column not in existing:
                    self._conn.execute(f"ALTER TABLE uploaded_files ADD COLUMN {column} {definition}")
                    logger.info("Added column uploaded_files.%s", column)
            self._conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to create schema: {e}") from e

    # Uploaded files

    async def register_upload(
        self,
        checksum: str,
        filename: str,
        mimetype: str,
        size: int,
        storage_path: str | None,
        page_count: int | None = None,
    ) -> str:
        """Upsert an upload by checksum and reset it to pending.

        Returns:
            The file id (existing id when the checksum was seen before).
        """
        now = utc_now()
        self._execute(
            """
            INSERT INTO uploaded_files
                (id, checksum, filename, mime_type, file_size, file_path, page_count,
                 processing_status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (checksum) DO UPDATE SET
                filename = excluded.filename,
                mime_type = excluded.mime_type,
                file_size = excluded.file_size,
                file_path = excluded.file_path,
                page_count = excluded.page_count,
                processing_status = excluded.processing_status,
                error_message = NULL,
                updated_at = excluded.updated_at
            """,
            (
                uuid.uuid4().hex, checksum, filename, mimetype, size, storage_path,
                page_count, ProcessingStatus.PENDING.value, now, now,
            ),
        )
        rows = self._fetchall("SELECT id FROM uploaded_files WHERE checksum = ?", (checksum,))
        file_id = rows[0]["id"]
        logger.info("Registered upload %s (file_id=%s, checksum=%s)", filename, file_id, checksum)
        return file_id

    async def get_file_metadata(self, file_id: str) -> StoredFile | None:
        rows = self._fetchall(
            "SELECT id, checksum, filename, mime_type, file_size, file_path "
            "FROM uploaded_files WHERE id = ?",
            (file_id,),
        )
        if not rows:
            return None
        row = rows[0]
        return StoredFile(
            id=row["id"],
            checksum=row["checksum"],
            filename=row["filename"],
            mimetype=row["mime_type"],
            size=row["file_size"],
            storage_path=row["file_path"],
        )

    async def update_status(
        self,
        file_id: str,
        status: ProcessingStatus,
        extracted_terms: int | None = None,
        extracted_rules: int | None = None,
        error_message: str | None = None,
        processed_at: str | None = None,
        usage: UsageTotals | None = None,
    ) -> None:
        """Set the processing status, plus any of the optional result fields."""
        assignments = ["processing_status = ?", "updated_at = ?"]
        params: list = [ProcessingStatus(status).value, utc_now()]
        optional = {
            "extracted_terms_count": extracted_terms,
            "extracted_rules_count": extracted_rules,
            "error_message": error_message,
            "processed_at": processed_at,
        }
        if usage is not None:
            optional.update({
                "llm_calls": usage.calls,
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "cost_usd": usage.cost_usd,
            })
        for column, value in optional.items():
            if value is not None:
                assignments.append(f"{column} = ?")
                params.append(value)
        params.append(file_id)

        cursor = self._execute(
            f"UPDATE uploaded_files SET {', '.join(assignments)} WHERE id = ?", params
        )
        if cursor.rowcount == 0:
            raise PersistenceError(f"No uploaded file with id {file_id}")
        logger.debug("Processing status updated (file_id=%s, status=%s)", file_id, status)

    async def get_status(self, file_id: str) -> FileStatusRecord | None:
        rows = self._fetchall(
            "SELECT processing_status, extracted_terms_count, extracted_rules_count, "
            "error_message, processed_at, filename, llm_calls, prompt_tokens, completion_tokens, cost_usd "
            "FROM uploaded_files WHERE id = ?",
            (file_id,),
        )
        if not rows:
            return None
        row = rows[0]
        return FileStatusRecord(
            status=row["processing_status"],
            extracted_terms=row["extracted_terms_count"] or 0,
            extracted_rules=row["extracted_rules_count"] or 0,
            error_message=row["error_message"],
            processed_at=row["processed_at"],
            filename=row["filename"],
            usage=UsageTotals(
                calls=row["llm_calls"],
                prompt_tokens=row["prompt_tokens"],
                completion_tokens=row["completion_tokens"],
                cost_usd=row["cost_usd"],
            ),
        )

    # Glossary terms

    async def upsert_terms(self, terms: Sequence[GlossaryTerm], dataset_id: str | None = None) -> int:
        """Upsert terms on (term, dataset_id) in one transaction.

        Args:
            terms: Terms to write. A term's own dataset_id wins over the
                argument.
            dataset_id: Dataset for terms that carry none.

        Returns:
            Number of terms written.

        Raises:
            PersistenceError: If any batch fails; nothing is written.
        """
        if not terms:
            return 0

        now = utc_now()
        rows = []
        for term in terms:
            target_dataset = term.dataset_id or dataset_id
            if not target_dataset:
                raise PersistenceError(f"Term '{term.term}' has no dataset id")
            rows.append((
                term.term,
                term.definition,
                json.dumps(term.source_columns),
                json.dumps(term.data_types),
                json.dumps(term.sample_values),
                json.dumps(term.synonyms),
                term.category_or_default,
                term.confidence,
                target_dataset,
                term.source_file_id,
                term.source_filename,
                now,
                now,
            ))

        try:
            with self._conn:
                for start in range(0, len(rows), self.batch_size):
                    self._conn.executemany(UPSERT_TERM, rows[start:start + self.batch_size])
                    logger.debug("Processed batch %d", start // self.batch_size + 1)
        except sqlite3.Error as e:
            logger.error("Term upsert rolled back: %s", e)
            raise PersistenceError(f"Database insertion failed: {e}") from e

        logger.info("Upserted %d terms", len(rows))
        return len(rows)

    async def get_terms(
        self,
        source_file_id: str | None = None,
        dataset_id: str | None = None,
    ) -> list[GlossaryTerm]:
        """Terms filtered by source file and/or dataset, highest confidence first."""
        clauses, params = [], []
        if source_file_id is not None:
            clauses.append("source_file_id = ?")
            params.append(source_file_id)
        if dataset_id is not None:
            clauses.append("dataset_id = ?")
            params.append(dataset_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._fetchall(
            f"SELECT * FROM data_glossary {where} ORDER BY confidence DESC, id ASC", params
        )
        return [_term_from_row(row) for row in rows]

    async def search_terms(
        self,
        keywords: Sequence[str],
        dataset_id: str | None = None,
        limit: int = 10,
    ) -> list[GlossaryTerm]:
        """Terms whose name, definition or synonyms contain any keyword."""
        if not keywords:
            return []
        matches = []
        params: list = []
        for keyword in keywords:
            pattern = f"%{_escape_like(keyword)}%"
            matches.append(
                "(term LIKE ? ESCAPE '\\' OR definition LIKE ? ESCAPE '\\' OR synonyms LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern, pattern])
        sql = f"SELECT * FROM data_glossary WHERE ({' OR '.join(matches)})"
        if dataset_id is not None:
            sql += " AND dataset_id = ?"
            params.append(dataset_id)
        sql += " ORDER BY confidence DESC, id ASC LIMIT ?"
        params.append(limit)
        return [_term_from_row(row) for row in self._fetchall(sql, params)]

    # Policy rules

    async def insert_rules(
        self,
        rules: Sequence[PolicyRule],
        source_file_id: str | None,
        source_filename: str | None,
    ) -> int:
        """Append rules for a source file. Returns the number inserted."""
        if not rules:
            return 0
        now = utc_now()
        rows = [
            (
                source_file_id,
                source_filename,
                rule.rule_code,
                rule.rule_text,
                json.dumps(rule.citations),
                json.dumps(rule.tags),
                rule.severity,
                rule.effective_date,
                rule.confidence,
                now,
            )
            for rule in rules
        ]
        try:
            with self._conn:
                self._conn.executemany(INSERT_RULE, rows)
        except sqlite3.Error as e:
            logger.error("Rule insert rolled back: %s", e)
            raise PersistenceError(f"Rules insertion failed: {e}") from e

        logger.info("Inserted %d policy rules (file_id=%s)", len(rows), source_file_id)
        return len(rows)

    async def get_rules(self, source_file_id: str) -> list[PolicyRule]:
        rows = self._fetchall(
            "SELECT * FROM policy_rules WHERE source_file_id = ? ORDER BY id ASC", (source_file_id,)
        )
        return [_rule_from_row(row) for row in rows]

    async def search_rules(self, keywords: Sequence[str], limit: int = 5) -> list[PolicyRule]:
        """Rules whose code, text or tags contain any keyword."""
        if not keywords:
            return []
        matches = []
        params: list = []
        for keyword in keywords:
            pattern = f"%{_escape_like(keyword)}%"
            matches.append(
                "(rule_code LIKE ? ESCAPE '\\' OR rule_text LIKE ? ESCAPE '\\' OR tags LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern, pattern])
        sql = (
            f"SELECT * FROM policy_rules WHERE ({' OR '.join(matches)}) "
            "ORDER BY confidence DESC, id ASC LIMIT ?"
        )
        params.append(limit)
        return [_rule_from_row(row) for row in self._fetchall(sql, params)]

    # Typed reports

    async def insert_report_rows(self, kind: ReportKind, rows: Sequence[ReportRow]) -> int:
        """Write report rows into the table of their kind in one transaction.

        Returns:
            Number of rows written.
        """
        if not rows:
            return 0
        now = utc_now()
        kind = ReportKind(kind)
        columns = list(REPORT_ROW_MODELS[kind].model_fields)
        params = [tuple(getattr(row, c) for c in columns) + (now,) for row in rows]
        try:
            with self._conn:
                self._conn.executemany(report_insert_sql(kind), params)
        except sqlite3.Error as e:
            logger.error("Report insert rolled back: %s", e)
            raise PersistenceError(f"Report insertion failed: {e}") from e

        logger.info("Wrote %d %s report rows", len(params), kind.value)
        return len(params)

    async def count_report_rows(self, kind: ReportKind) -> int:
        rows = self._fetchall(f"SELECT COUNT(*) AS n FROM {REPORT_TABLES[ReportKind(kind)]}")
        return rows[0]["n"]

    async def get_compliance_issues(self, limit: int = 50) -> list[ComplianceReportRow]:
        """Most recent compliance report rows first."""
        columns = list(ComplianceReportRow.model_fields)
        rows = self._fetchall(
            f"SELECT {', '.join(columns)} FROM compliance_reports "
            "ORDER BY report_date DESC, id DESC LIMIT ?",
            (limit,),
        )
        return [ComplianceReportRow(**{c: row[c] for c in columns}) for row in rows]

    async def count_recent_uploads(self, days: int) -> int:
        """Uploads registered or updated in the last ``days`` days."""
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        rows = self._fetchall(
            "SELECT COUNT(*) AS n FROM uploaded_files WHERE updated_at >= ?", (since,)
        )
        return rows[0]["n"]

    # Chat sessions

    async def create_chat_session(self, user_id: str, title: str) -> ChatSession:
        now = utc_now()
        session = ChatSession(
            id=uuid.uuid4().hex, user_id=user_id, title=title, created_at=now, updated_at=now
        )
        self._execute(
            "INSERT INTO chat_sessions (id, user_id, title, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (session.id, session.user_id, session.title, session.created_at, session.updated_at),
        )
        logger.info("Created chat session %s (user=%s)", session.id, user_id)
        return session

    async def list_chat_sessions(self, user_id: str, limit: int = 20) -> list[ChatSession]:
        """Sessions of one user, most recently active first."""
        rows = self._fetchall(
            "SELECT * FROM chat_sessions WHERE user_id = ? ORDER BY updated_at DESC, rowid DESC LIMIT ?",
            (user_id, limit),
        )
        return [ChatSession(**dict(row)) for row in rows]

    async def get_chat_session(self, session_id: str, user_id: str) -> ChatSession | None:
        """The session, or None when it does not exist or belongs to someone else."""
        rows = self._fetchall(
            "SELECT * FROM chat_sessions WHERE id = ? AND user_id = ?", (session_id, user_id)
        )
        return ChatSession(**dict(rows[0])) if rows else None

    async def rename_chat_session(self, session_id: str, user_id: str, title: str) -> ChatSession | None:
        cursor = self._execute(
            "UPDATE chat_sessions SET title = ?, updated_at = ? WHERE id = ? AND user_id = ?",
            (title, utc_now(), session_id, user_id),
        )
        if cursor.rowcount == 0:
            return None
        return await self.get_chat_session(session_id, user_id)

    async def delete_chat_session(self, session_id: str, user_id: str) -> bool:
        """Delete a session and its messages. False when nothing matched."""
        cursor = self._execute(
            "DELETE FROM chat_sessions WHERE id = ? AND user_id = ?", (session_id, user_id)
        )
        return cursor.rowcount > 0

    async def touch_chat_session(self, session_id: str) -> None:
        self._execute("UPDATE chat_sessions SET updated_at = ? WHERE id = ?", (utc_now(), session_id))

    async def add_chat_message(
        self,
        session_id: str,
        user_id: str,
        role: ChatRole,
        content: str,
    ) -> ChatMessage:
        message = ChatMessage(
            id=uuid.uuid4().hex,
            session_id=session_id,
            user_id=user_id,
            role=role,
            content=content,
            timestamp=utc_now(),
        )
        self._execute(
            "INSERT INTO chat_messages (id, session_id, user_id, role, content, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                message.id, message.session_id, message.user_id,
                message.role.value, message.content, message.timestamp,
            ),
        )
        return message

    async def get_chat_messages(self, session_id: str) -> list[ChatMessage]:
        """All messages of a session, oldest first."""
        rows = self._fetchall(
            "SELECT * FROM chat_messages WHERE session_id = ? ORDER BY timestamp ASC, rowid ASC",
            (session_id,),
        )
        return [ChatMessage(**dict(row)) for row in rows]

    async def count_chat_messages(self, session_id: str) -> int:
        rows = self._fetchall(
            "SELECT COUNT(*) AS n FROM chat_messages WHERE session_id = ?", (session_id,)
        )
        return rows[0]["n"]
