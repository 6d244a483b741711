"""Digest Authentication Stage — handshake over a scripted AGI session.

Tests cover:
    - the stage asks for SHA1 of the configured variable and a fresh nonce
    - correct digest passes; wrong, undecodable and absent replies raise typed errors
    - every attempt uses a new nonce
"""

import pytest

from ta_agi_doorbell.core.errors import (
    DigestDecodeError,
    MissingSecretError,
    WrongDigestError,
)
from ta_agi_doorbell.services.authenticate_digest import DigestAuthenticator

from tests.services.fakes import ScriptedSession, digest_answer, nonce_from_expression


async def test_correct_digest_authenticates(secret):
    session = ScriptedSession(digest_answer(secret))
    await DigestAuthenticator(secret).authenticate(session)
    assert len(session.expressions) == 1
    assert session.verbose_messages == []


async def test_expression_uses_configured_variable():
    session = ScriptedSession(digest_answer("s"))
    await DigestAuthenticator("s", variable="DOOR_SECRET").authenticate(session)
    assert session.expressions[0].startswith("${SHA1(${DOOR_SECRET}:")


async def test_injected_nonce_is_used(secret):
    session = ScriptedSession(digest_answer(secret))
    auth = DigestAuthenticator(secret, nonce_factory=lambda: "00" * 20)
    await auth.authenticate(session)
    assert nonce_from_expression(session.expressions[0]) == "00" * 20


async def test_wrong_secret_raises_wrong_digest(secret):
    session = ScriptedSession(digest_answer("guess"))
    with pytest.raises(WrongDigestError):
        await DigestAuthenticator(secret).authenticate(session)


async def test_non_hex_reply_raises_decode_error(secret):
    with pytest.raises(DigestDecodeError):
        await DigestAuthenticator(secret).authenticate(ScriptedSession("nope"))


async def test_absent_reply_raises_missing_secret(secret):
    with pytest.raises(MissingSecretError) as exc_info:
        await DigestAuthenticator(secret).authenticate(ScriptedSession(None))
    assert exc_info.value.variable == "BLAZING_AGI_DIGEST_SECRET"


async def test_every_attempt_uses_a_fresh_nonce(secret):
    session = ScriptedSession(digest_answer(secret))
    auth = DigestAuthenticator(secret)
    for _ in range(5):
        await auth.authenticate(session)
    nonces = [nonce_from_expression(e) for e in session.expressions]
    assert len(set(nonces)) == 5
