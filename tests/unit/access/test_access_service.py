"""Tests for the auth gate and core startup."""

import bson
import pytest
from pydantic import ValidationError as PydanticValidationError

from paymail.core.core import Core
from paymail.core.modules.email_log.models import EmailLog
from paymail.core.modules.session.models import Session
from paymail.errors import AuthenticationError, InvalidSessionError, SessionExpiredError, StoreError
from paymail.utils import now_ms


def store_session(collection, expires_on: int) -> Session:
    session = Session(email="jane@example.com", name="Jane Doe", access_token="access-0", expires_on=expires_on)
    collection.docs[session.id] = session.to_mongo()
    return session


class TestAuthenticate:
    """Tests for AccessService.authenticate."""

    async def test_missing_session_id(self, core):
        """Test that no cookie is rejected without touching the store."""
        with pytest.raises(AuthenticationError) as exc_info:
            await core.services.access.authenticate(None)

        assert not isinstance(exc_info.value, InvalidSessionError)

    async def test_unknown_session_id(self, core):
        """Test that an unknown id is rejected as an invalid session."""
        with pytest.raises(InvalidSessionError):
            await core.services.access.authenticate("unknown")

    async def test_expired_session(self, core, sessions_collection):
        """Test that an expired session is rejected and evicted."""
        session = store_session(sessions_collection, now_ms() - 1)

        with pytest.raises(SessionExpiredError):
            await core.services.access.authenticate(session.id)

        assert session.id not in sessions_collection.docs

    async def test_valid_session_gives_context(self, core, sessions_collection):
        """Test that a live session yields an immutable request context."""
        session = store_session(sessions_collection, now_ms() + 60_000)

        context = await core.services.access.authenticate(session.id)

        assert context.session_id == session.id
        assert context.email == "jane@example.com"
        assert context.access_token == "access-0"
        with pytest.raises(PydanticValidationError):
            context.email = "other@example.com"


class TestCoreStartup:
    """Tests for explicit store initialization."""

    async def test_unreachable_store_fails_startup(self, core, mongo_client):
        """Test that startup raises StoreError when the ping fails."""
        mongo_client.get_database("paymail_test").reachable = False

        with pytest.raises(StoreError):
            await core.on_start()

    async def test_start_and_stop(self, core, mongo_client, sessions_collection):
        """Test that startup creates indexes and shutdown closes the client."""
        async with core.lifespan():
            assert sessions_collection.indexes

        assert mongo_client.closed


class TestDefaultMongoClient:
    """Tests for the MongoDB client Core builds from config."""

    async def test_documents_encode_with_client_codec(self, config, http_client):
        """Test that stored models, UUID ids included, encode with the default client's codec options."""
        core = Core(config, http_client=http_client)
        try:
            log = EmailLog(
                sender_name="Jane Doe",
                sender_email="jane@example.com",
                recipient_name="Sam Worker",
                recipient_email="worker@example.com",
                recipient_worker_num="W-1",
                recipient_payslip_file="W-1.pdf",
                batch_id="batch-1",
                batch_item_num="1",
                batch_size=3,
                date="2026-10-19",
                time_sent="09:30:00",
                subject="Payslip",
                successful=True,
            )
            session = Session(email="jane@example.com", name="Jane Doe", access_token="access-0", expires_on=now_ms())

            log_codec = core.database.get_collection("email_logs").codec_options
            session_codec = core.database.get_collection("sessions").codec_options

            encoded_log = bson.encode(log.to_mongo(), codec_options=log_codec)
            encoded_session = bson.encode(session.to_mongo(), codec_options=session_codec)

            assert bson.decode(encoded_log, codec_options=log_codec)["_id"] == log.id
            assert bson.decode(encoded_session, codec_options=session_codec)["_id"] == session.id
        finally:
            await core.mongo_client.aclose()
