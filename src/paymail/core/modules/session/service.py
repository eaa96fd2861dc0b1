from typing import Any

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from paymail.core.core import Service
from paymail.core.db import store_errors
from paymail.core.modules.identity.models import Profile, TokenSet
from paymail.core.modules.session.models import PurgeResult, Session, SessionId
from paymail.errors import SessionExpiredError, SessionNotFoundError, TokenRefreshError
from paymail.utils import now_ms

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Owns the session lifecycle; the only writer of the sessions collection.

    Session ids are capability tokens and are never logged.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("sessions")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        with store_errors("create_index"):
            # Range queries by the cleanup job
            await self._collection.create_index([("expires_on", 1)])
            await self._collection.create_index([("email", 1)])

    async def create_session(self, profile: Profile, tokens: TokenSet) -> Session:
        """Persist a new session with a fresh id in a single insert.

        Existing sessions of the same user are left alone.
        """
        session = Session(
            email=profile.email,
            name=profile.name,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_on=tokens.expires_on,
        )
        with store_errors("create_session"):
            await self._collection.insert_one(session.to_mongo())
        logger.info("session_created", email=session.email, expires_on=session.expires_on)
        return session

    async def require_valid_session(self, session_id: SessionId) -> Session:
        """Load a live session, evicting it when expired.

        Raises:
            SessionNotFoundError: No record for this id
            SessionExpiredError: Record existed but its access token expired; it is deleted
        """
        with store_errors("get_session"):
            doc = await self._collection.find_one({"_id": session_id})
        if doc is None:
            raise SessionNotFoundError

        session = Session.model_validate(doc)
        if session.is_expired(now_ms()):
            # Concurrent requests may both delete; delete_one tolerates that
            await self.delete_session(session_id)
            logger.info("session_expired_evicted", email=session.email)
            raise SessionExpiredError
        return session

    async def get_valid_session(self, session_id: SessionId) -> Session | None:
        """Return the live session for this id, or None (expired records are deleted)."""
        try:
            return await self.require_valid_session(session_id)
        except (SessionNotFoundError, SessionExpiredError):
            return None

    async def refresh_session(self, session_id: SessionId) -> Session | None:
        """Swap in fresh tokens from the identity provider.

        Returns None, leaving the record untouched, when there is no stored
        refresh token or the provider refuses the refresh. Identity fields and
        the id never change.
        """
        with store_errors("get_session"):
            doc = await self._collection.find_one({"_id": session_id})
        if doc is None:
            return None
        session = Session.model_validate(doc)
        if not session.refresh_token:
            logger.info("session_refresh_skipped", email=session.email, reason="no_refresh_token")
            return None

        try:
            tokens = await self.core.identity.refresh_tokens(session.refresh_token, self.core.config.scopes)
        except TokenRefreshError:
            logger.info("session_refresh_rejected", email=session.email)
            return None

        update = {
            "access_token": tokens.access_token,
            # The provider does not always rotate the refresh token
            "refresh_token": tokens.refresh_token or session.refresh_token,
            "expires_on": tokens.expires_on,
        }
        with store_errors("refresh_session"):
            updated = await self._collection.find_one_and_update(
                {"_id": session_id}, {"$set": update}, return_document=ReturnDocument.AFTER
            )
        if updated is None:
            # Logged out while the refresh was in flight
            return None
        logger.info("session_refreshed", email=session.email, expires_on=tokens.expires_on)
        return Session.model_validate(updated)

    async def delete_session(self, session_id: SessionId) -> None:
        """Delete a session. Deleting an unknown id is not an error."""
        with store_errors("delete_session"):
            await self._collection.delete_one({"_id": session_id})

    async def purge_expired(self, now: int) -> PurgeResult:
        """Delete every session with expires_on < now.

        Each deletion is attempted independently; failures are counted, not raised.
        A failing range query still raises StoreError.
        """
        with store_errors("find_expired_sessions"):
            expired_ids = [doc["_id"] async for doc in self._collection.find({"expires_on": {"$lt": now}}, {"_id": 1})]

        result = PurgeResult()
        for session_id in expired_ids:
            try:
                await self._collection.delete_one({"_id": session_id})
            except PyMongoError as e:
                result.failed += 1
                logger.warning("expired_session_delete_failed", error=type(e).__name__)
            else:
                result.deleted += 1
        return result
