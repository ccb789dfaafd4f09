"""Tests for JWT verification and principal extraction."""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException

from hawala.api.deps import get_current_principal
from hawala.core import security
from hawala.core.authz import Role


class TestTokens:
    def test_round_trip(self):
        token = security.create_access_token("user-1", "AGENT", agent_id="abc")
        payload = security.verify_token(token, expected_type="access")
        assert payload["sub"] == "user-1"
        assert payload["role"] == "AGENT"
        assert payload["agent_id"] == "abc"

    def test_expired_token(self, test_rsa_keys):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "user-1", "role": "ADMIN", "type": "access", "iat": past, "exp": past},
            test_rsa_keys["private_key"],
            algorithm="RS256",
        )
        with pytest.raises(HTTPException) as exc_info:
            security.decode_token(token)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_type(self, test_rsa_keys):
        token = jwt.encode(
            {"sub": "user-1", "role": "ADMIN", "type": "refresh"},
            test_rsa_keys["private_key"],
            algorithm="RS256",
        )
        with pytest.raises(HTTPException):
            security.verify_token(token, expected_type="access")


class TestPrincipal:
    @pytest.mark.asyncio
    async def test_agent_principal(self):
        agent_id = uuid.uuid4()
        token = security.create_access_token("user-1", "AGENT", agent_id=str(agent_id))

        principal = await get_current_principal(authorization=f"Bearer {token}")

        assert principal.user_id == "user-1"
        assert principal.role == Role.AGENT
        assert principal.agent_id == agent_id
        assert not principal.is_admin

    @pytest.mark.asyncio
    async def test_admin_principal(self):
        token = security.create_access_token("admin-1", "ADMIN")
        principal = await get_current_principal(authorization=f"Bearer {token}")
        assert principal.is_admin
        assert principal.agent_id is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer"])
    async def test_bad_header(self, header):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_principal(authorization=header)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_agent_id_claim(self):
        token = security.create_access_token("user-1", "AGENT", agent_id="not-a-uuid")
        with pytest.raises(HTTPException):
            await get_current_principal(authorization=f"Bearer {token}")
