# pmapi/services/auth.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pmapi.http.transport import Transport
from pmapi.models.messages import Session, SignUpResponse, User
from pmapi.services.rest_client import request

logger = logging.getLogger("api.auth")


class AuthClient:
    """
    Auth endpoints, throwing convention. Nothing here writes tokens: sign_in
    hands the Session back and the caller decides whether to persist it.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def sign_in(self, email: str, password: str) -> Session:
        payload = await request(
            self._transport,
            "/auth/v1/token?grant_type=password",
            "POST",
            {"email": email, "password": password},
        )
        session = Session.model_validate(payload)
        logger.info("signed in as %s", session.user.email if session.user else email)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        username: Optional[str] = None,
    ) -> SignUpResponse:
        body: Dict[str, Any] = {"email": email, "password": password}
        if full_name is not None:
            body["full_name"] = full_name
        if username is not None:
            body["username"] = username
        payload = await request(self._transport, "/auth/v1/signup", "POST", body)
        return SignUpResponse.model_validate(payload or {})

    async def sign_out(self) -> Any:
        return await request(self._transport, "/auth/v1/logout", "POST")

    async def get_user(self) -> User:
        payload = await request(self._transport, "/auth/v1/user")
        return User.model_validate(payload)

    async def update_user(
        self,
        full_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> User:
        body = {
            k: v
            for k, v in {"full_name": full_name, "avatar_url": avatar_url, "phone": phone}.items()
            if v is not None
        }
        payload = await request(self._transport, "/auth/v1/user", "PUT", body)
        return User.model_validate(payload)

    async def update_password(self, old_password: str, new_password: str) -> Any:
        return await request(
            self._transport,
            "/auth/v1/user/password",
            "POST",
            {"old_password": old_password, "new_password": new_password},
        )
