"""
Conversation store service.

Durably records and retrieves ordered message streams per
(user_id, session_id, agent_id) scope on a relational backend. Content is
JSON-serialized on write and deserialized on read. The store moves through
uninitialized -> initialized -> closed; operations outside the initialized
state fail fast.

Dependencies: sqlalchemy, chat_storage.boundary.db, chat_storage.configs
System role: Conversation log store used by the agent orchestrator
"""

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from chat_storage.boundary.db.connection import (
    create_store_engine,
    ensure_local_directory,
    get_async_session_factory,
    resolve_async_url,
)
from chat_storage.boundary.db.create_tables import create_all_tables
from chat_storage.boundary.db.CRUD.conversation_crud import conversation_crud
from chat_storage.boundary.db.models.conversation_model import ConversationModel
from chat_storage.configs import get_settings
from chat_storage.configs.database import DatabaseSettings
from chat_storage.core.exceptions import (
    DuplicateMessageError,
    InitializationError,
    MessageSerializationError,
    StorageOperationError,
    StoreClosedError,
    StoreNotInitializedError,
    ValidationError,
)
from chat_storage.models.message import ConversationMessage, StoredMessage
from chat_storage.observability.log_utils import log_store_failure, log_with_context

logger = logging.getLogger(__name__)

T = TypeVar("T")


def serialize_content(content: Any) -> str:
    """
    Serialize message content to its stored JSON text.

    Args:
        content: Any JSON-representable value

    Returns:
        str: JSON text

    Raises:
        MessageSerializationError: If content is not JSON-representable
    """
    try:
        return json.dumps(content, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise MessageSerializationError(
            f"Message content is not JSON-serializable: {exc}",
            {"content_type": type(content).__name__},
        ) from exc


def deserialize_content(raw: str) -> Any:
    """
    Deserialize stored JSON text back to message content.

    Raises:
        MessageSerializationError: If the stored text is not valid JSON
    """
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MessageSerializationError(
            f"Stored message content is not valid JSON: {exc}"
        ) from exc


def current_timestamp() -> int:
    """Return the current time in epoch milliseconds."""
    return int(time.time() * 1000)


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field=field)
    return value


def _require_non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field} must be a non-negative integer", field=field)
    return value


def _to_stored(row: ConversationModel) -> StoredMessage:
    return StoredMessage(
        user_id=row.user_id,
        session_id=row.session_id,
        agent_id=row.agent_id,
        message_index=row.message_index,
        role=row.role,
        content=deserialize_content(row.content),
        timestamp=row.timestamp,
    )


class ConversationStore:
    """
    Conversation log store over a SQLAlchemy async engine.

    Appends from one store instance are serialized by a lock so index
    assignment never races locally. Writers in other processes are handled
    by the primary key: a conflicting computed index is retried with
    exponential backoff up to ``append_retries`` times.

    Usage:
        store = ConversationStore("file:data/conversations.db")
        await store.initialize()
        await store.append("u1", "s1", "a1", "user", {"text": "hi"})
        history = await store.fetch("u1", "s1", "a1", limit=20)
        await store.close()
    """

    def __init__(
        self,
        url: str | None = None,
        auth_token: str | None = None,
        settings: DatabaseSettings | None = None,
    ) -> None:
        """
        Initialize store configuration without touching the backend.

        Args:
            url: Connection URL (defaults to settings.url)
            auth_token: Token for remote backends (defaults to settings.auth_token)
            settings: Database settings (defaults to get_settings().database)

        Raises:
            ConfigurationError: If the URL cannot be resolved to a supported backend
        """
        self.settings = settings or get_settings().database
        self.url = url or self.settings.url
        self._auth_token = auth_token
        # Fail fast on unsupported URLs
        resolve_async_url(self.url)

        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker | None = None
        self._initialized = False
        self._closed = False
        self._init_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    async def __aenter__(self) -> "ConversationStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def state(self) -> str:
        """Lifecycle state: 'uninitialized', 'initialized' or 'closed'."""
        if self._closed:
            return "closed"
        if self._initialized:
            return "initialized"
        return "uninitialized"

    # ── lifecycle ────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """
        Create the conversations table and lookup index if absent.

        Idempotent. Concurrent callers wait on the same lock, so schema
        creation runs once.

        Raises:
            StoreClosedError: If the store was closed
            ConfigurationError: If the engine cannot be built
            InitializationError: If the backend is unreachable or the schema
                cannot be created
        """
        if self._closed:
            raise StoreClosedError("initialize")
        if self._initialized:
            return

        async with self._init_lock:
            if self._closed:
                raise StoreClosedError("initialize")
            if self._initialized:
                return

            engine = create_store_engine(self.url, self._auth_token, self.settings)
            safe_url = engine.url.render_as_string(hide_password=True)
            try:
                ensure_local_directory(engine.url)
                await create_all_tables(engine)
            except (SQLAlchemyError, OSError) as exc:
                await engine.dispose()
                log_store_failure(logger, "initialize", exc, url=safe_url)
                raise InitializationError(
                    f"Failed to initialize conversation store: {exc}",
                    {"url": safe_url},
                ) from exc

            # close() may have run while the schema was being created
            if self._closed:
                await engine.dispose()
                raise StoreClosedError("initialize")

            self._engine = engine
            self._session_factory = get_async_session_factory(engine)
            self._initialized = True
            logger.info(f"Conversation store initialized at {safe_url}")

    async def close(self) -> None:
        """
        Release the engine and its connection pool.

        Idempotent. Every later operation raises StoreClosedError.
        """
        if self._closed:
            return
        self._closed = True
        self._initialized = False
        engine, self._engine = self._engine, None
        self._session_factory = None
        if engine is not None:
            await engine.dispose()
        logger.info("Conversation store closed")

    def _require_ready(self, operation: str) -> async_sessionmaker:
        if self._closed:
            raise StoreClosedError(operation)
        if not self._initialized or self._session_factory is None:
            raise StoreNotInitializedError(operation)
        return self._session_factory

    def _resolve_limit(self, limit: int | None) -> int | None:
        if limit is None:
            return self.settings.max_history_size
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError("limit must be a positive integer", field="limit")
        return limit

    # ── internal execution helpers ───────────────────────────────────────────

    async def _read(
        self,
        operation: str,
        query: Callable[[AsyncSession], Awaitable[T]],
        **context: Any,
    ) -> T:
        factory = self._require_ready(operation)
        try:
            async with factory() as session:
                return await query(session)
        except SQLAlchemyError as exc:
            log_store_failure(logger, operation, exc, **context)
            raise StorageOperationError(
                f"{operation} failed: {exc}", operation=operation, details=context
            ) from exc

    async def _write(
        self,
        operation: str,
        statement: Callable[[AsyncSession], Awaitable[T]],
        **context: Any,
    ) -> T:
        factory = self._require_ready(operation)
        try:
            async with factory() as session:
                async with session.begin():
                    return await statement(session)
        except SQLAlchemyError as exc:
            log_store_failure(logger, operation, exc, **context)
            raise StorageOperationError(
                f"{operation} failed: {exc}", operation=operation, details=context
            ) from exc

    async def _insert_batch(
        self,
        user_id: str,
        session_id: str,
        agent_id: str,
        rows: list[tuple[str, str, int]],
        message_index: int | None,
    ) -> list[StoredMessage]:
        factory = self._require_ready("append")
        start = message_index
        attempted = start
        try:
            async with factory() as session:
                async with session.begin():
                    if start is None:
                        start = await conversation_crud.next_index(
                            session, user_id, session_id, agent_id
                        )
                    created = []
                    for offset, (role, payload, timestamp) in enumerate(rows):
                        attempted = start + offset
                        created.append(
                            await conversation_crud.create(
                                session,
                                user_id=user_id,
                                session_id=session_id,
                                agent_id=agent_id,
                                message_index=attempted,
                                role=role,
                                content=payload,
                                timestamp=timestamp,
                            )
                        )
        except IntegrityError as exc:
            details = {}
            if len(rows) > 1:
                details["index_range"] = [start, start + len(rows) - 1]
            raise DuplicateMessageError(
                user_id,
                session_id,
                agent_id,
                attempted if attempted is not None else -1,
                details=details,
            ) from exc
        return [_to_stored(row) for row in created]

    async def _append_rows(
        self,
        user_id: str,
        session_id: str,
        agent_id: str,
        rows: list[tuple[str, str, int]],
        message_index: int | None = None,
    ) -> list[StoredMessage]:
        attempt = 0
        async with self._write_lock:
            while True:
                try:
                    return await self._insert_batch(
                        user_id, session_id, agent_id, rows, message_index
                    )
                except DuplicateMessageError:
                    if message_index is not None or attempt >= self.settings.append_retries:
                        raise
                    delay = self.settings.retry_backoff * (2 ** attempt)
                    attempt += 1
                    log_with_context(
                        logger,
                        logging.WARNING,
                        "Message index conflict, retrying append",
                        scope=(user_id, session_id, agent_id),
                        attempt=attempt,
                        retries=self.settings.append_retries,
                        delay_s=round(delay, 3),
                    )
                    await asyncio.sleep(delay)
                except SQLAlchemyError as exc:
                    log_store_failure(
                        logger, "append", exc, scope=(user_id, session_id, agent_id)
                    )
                    raise StorageOperationError(
                        f"append failed: {exc}",
                        operation="append",
                        details={
                            "user_id": user_id,
                            "session_id": session_id,
                            "agent_id": agent_id,
                        },
                    ) from exc

    # ── public API ───────────────────────────────────────────────────────────

    async def append(
        self,
        user_id: str,
        session_id: str,
        agent_id: str,
        role: str,
        content: Any,
        timestamp: int | None = None,
        *,
        message_index: int | None = None,
    ) -> StoredMessage:
        """
        Append one message to a scope.

        The next index (0 for an empty scope) is assigned inside the insert
        transaction unless message_index is given explicitly, in which case
        it is inserted as is and gaps are allowed.

        Args:
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent
            role: Sender classification
            content: JSON-representable payload
            timestamp: Epoch milliseconds (defaults to now)
            message_index: Explicit index instead of the computed one

        Returns:
            StoredMessage: The persisted record

        Raises:
            StoreNotInitializedError: Before initialize()
            StoreClosedError: After close()
            ValidationError: If identifiers, role, timestamp or index are invalid
            MessageSerializationError: If content is not JSON-serializable
            DuplicateMessageError: If the index already exists in the scope
            StorageOperationError: On backend I/O failure
        """
        self._require_ready("append")
        _require_text(user_id, "user_id")
        _require_text(session_id, "session_id")
        _require_text(agent_id, "agent_id")
        _require_text(role, "role")
        if timestamp is None:
            timestamp = current_timestamp()
        _require_non_negative_int(timestamp, "timestamp")
        if message_index is not None:
            _require_non_negative_int(message_index, "message_index")
        payload = serialize_content(content)

        stored = await self._append_rows(
            user_id,
            session_id,
            agent_id,
            [(role, payload, timestamp)],
            message_index,
        )
        log_with_context(
            logger,
            logging.DEBUG,
            "Appended message",
            scope=(user_id, session_id, agent_id),
            message_index=stored[0].message_index,
        )
        return stored[0]

    async def append_many(
        self,
        user_id: str,
        session_id: str,
        agent_id: str,
        messages: Iterable[ConversationMessage | dict],
    ) -> list[StoredMessage]:
        """
        Append a batch of messages in one transaction with contiguous indices.

        Args:
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent
            messages: ConversationMessage instances or dicts with role/content/timestamp

        Returns:
            list[StoredMessage]: Persisted records in index order

        Raises:
            ValidationError: If any message is malformed
            MessageSerializationError: If any content is not JSON-serializable
            StorageOperationError: On backend I/O failure
        """
        self._require_ready("append_many")
        _require_text(user_id, "user_id")
        _require_text(session_id, "session_id")
        _require_text(agent_id, "agent_id")

        rows: list[tuple[str, str, int]] = []
        for position, item in enumerate(messages):
            try:
                message = ConversationMessage.model_validate(item)
            except PydanticValidationError as exc:
                raise ValidationError(
                    f"Invalid message at position {position}: {exc}",
                    field="messages",
                    details={"position": position},
                ) from exc
            _require_text(message.role, "role")
            timestamp = message.timestamp if message.timestamp is not None else current_timestamp()
            rows.append((message.role, serialize_content(message.content), timestamp))

        if not rows:
            return []

        stored = await self._append_rows(user_id, session_id, agent_id, rows)
        log_with_context(
            logger,
            logging.DEBUG,
            "Appended message batch",
            scope=(user_id, session_id, agent_id),
            first_index=stored[0].message_index,
            count=len(stored),
        )
        return stored

    async def fetch(
        self,
        user_id: str,
        session_id: str,
        agent_id: str,
        limit: int | None = None,
    ) -> list[StoredMessage]:
        """
        Fetch a scope's messages in ascending message_index order.

        Args:
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent
            limit: Keep only the most recent N messages; None falls back to
                settings.max_history_size (None = all)

        Returns:
            list[StoredMessage]: Messages, oldest first

        Raises:
            StoreNotInitializedError: Before initialize()
            StoreClosedError: After close()
            ValidationError: If identifiers or limit are invalid
            StorageOperationError: On backend I/O failure
        """
        self._require_ready("fetch")
        _require_text(user_id, "user_id")
        _require_text(session_id, "session_id")
        _require_text(agent_id, "agent_id")
        limit = self._resolve_limit(limit)

        rows = await self._read(
            "fetch",
            lambda session: conversation_crud.get_scope_messages(
                session, user_id, session_id, agent_id, limit
            ),
            user_id=user_id,
            session_id=session_id,
            agent_id=agent_id,
        )
        return [_to_stored(row) for row in rows]

    async def fetch_all(
        self,
        user_id: str,
        session_id: str,
        limit: int | None = None,
    ) -> list[StoredMessage]:
        """
        Fetch every agent's messages in a session, merged by timestamp.

        Args:
            user_id: Session owner
            session_id: Session identifier
            limit: Keep only the most recent N messages across agents

        Returns:
            list[StoredMessage]: Messages ordered by (timestamp, agent_id, message_index)
        """
        self._require_ready("fetch_all")
        _require_text(user_id, "user_id")
        _require_text(session_id, "session_id")
        limit = self._resolve_limit(limit)

        rows = await self._read(
            "fetch_all",
            lambda session: conversation_crud.get_session_messages(
                session, user_id, session_id, limit
            ),
            user_id=user_id,
            session_id=session_id,
        )
        return [_to_stored(row) for row in rows]

    async def list_sessions(self, user_id: str) -> list[str]:
        """Return distinct session ids recorded for a user."""
        self._require_ready("list_sessions")
        _require_text(user_id, "user_id")
        session_ids = await self._read(
            "list_sessions",
            lambda session: conversation_crud.get_session_ids(session, user_id),
            user_id=user_id,
        )
        return list(session_ids)

    async def count(self, user_id: str, session_id: str, agent_id: str) -> int:
        """Return the number of messages stored for a scope."""
        self._require_ready("count")
        _require_text(user_id, "user_id")
        _require_text(session_id, "session_id")
        _require_text(agent_id, "agent_id")
        return await self._read(
            "count",
            lambda session: conversation_crud.count_scope(
                session, user_id, session_id, agent_id
            ),
            user_id=user_id,
            session_id=session_id,
            agent_id=agent_id,
        )

    async def clear(
        self,
        user_id: str,
        session_id: str,
        agent_id: str | None = None,
    ) -> int:
        """
        Delete one scope, or every agent's messages in a session.

        Args:
            user_id: Scope user
            session_id: Scope session
            agent_id: Scope agent (None = whole session)

        Returns:
            int: Number of deleted messages
        """
        self._require_ready("clear")
        _require_text(user_id, "user_id")
        _require_text(session_id, "session_id")
        if agent_id is not None:
            _require_text(agent_id, "agent_id")

        async with self._write_lock:
            deleted = await self._write(
                "clear",
                lambda session: conversation_crud.delete_scope(
                    session, user_id, session_id, agent_id
                ),
                user_id=user_id,
                session_id=session_id,
                agent_id=agent_id,
            )
        log_with_context(
            logger,
            logging.INFO,
            "Cleared conversation history",
            scope=(user_id, session_id, agent_id),
            deleted=deleted,
        )
        return deleted

    async def prune(self, older_than: int) -> int:
        """
        Delete messages with a timestamp before the cutoff.

        Args:
            older_than: Epoch milliseconds cutoff

        Returns:
            int: Number of deleted messages
        """
        self._require_ready("prune")
        _require_non_negative_int(older_than, "older_than")

        async with self._write_lock:
            deleted = await self._write(
                "prune",
                lambda session: conversation_crud.delete_older_than(session, older_than),
                older_than=older_than,
            )
        log_with_context(
            logger,
            logging.INFO,
            "Pruned old messages",
            older_than=older_than,
            deleted=deleted,
        )
        return deleted
