"""Digest Authentication Stage — SHA-1 challenge/response over the AGI variable mechanism.

Invariants:
    - Runs before every route; no actuation logic executes unless it returns normally
    - One fresh nonce per attempt, never stored
    - The secret itself never crosses the session, only the nonce and the digest

In Asterisk, the dialplan sets the same secret before calling the AGI:
    same => n,Set(BLAZING_AGI_DIGEST_SECRET=top_secret)
"""

import logging

from ta_agi_doorbell.core.boundary_protocols import AgiSession
from ta_agi_doorbell.core.digest import (
    create_nonce,
    digest_expression,
    expected_digest,
    verify_digest,
)
from ta_agi_doorbell.core.domain_types import DEFAULT_DIGEST_VARIABLE
from ta_agi_doorbell.core.errors import AuthenticationError

logger = logging.getLogger(__name__)


class DigestAuthenticator:
    def __init__(
        self, secret: str, variable: str = DEFAULT_DIGEST_VARIABLE,
        nonce_factory=create_nonce,
    ):
        self._secret = secret
        self._variable = variable
        self._nonce_factory = nonce_factory

    async def authenticate(self, session: AgiSession) -> None:
        nonce = self._nonce_factory()
        expected = expected_digest(self._secret, nonce)
        returned = await session.get_full_variable(
            digest_expression(self._variable, nonce),
        )
        try:
            verify_digest(expected, returned, self._variable)
        except AuthenticationError:
            logger.warning("Got AGI request, but the client could not authenticate.")
            raise
        logger.debug("AGI client authenticated")
