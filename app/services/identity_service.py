"""Account lookup and credential updates against the identity backend."""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings
from app.core.security import hash_password
from app.db.models.user import User

logger = logging.getLogger(__name__)

SUPABASE_PAGE_SIZE = 200
SUPABASE_TIMEOUT = 15.0


class IdentityProviderError(Exception):
    """Lookup or credential update failed on the identity backend."""


@dataclass(frozen=True)
class Account:
    id: str
    email: str


class IdentityProvider(Protocol):
    def find_account_by_email(self, email: str) -> Optional[Account]: ...

    def update_account_password(self, account_id: str, new_password: str) -> None: ...


class LocalIdentityProvider:
    """Accounts stored in this service's own ``users`` table."""

    def __init__(self, db: Session):
        self.db = db

    def find_account_by_email(self, email: str) -> Optional[Account]:
        target = email.strip().lower()
        user = self.db.query(User).filter(func.lower(User.email) == target).first()
        if not user:
            return None
        return Account(id=str(user.id), email=user.email)

    def update_account_password(self, account_id: str, new_password: str) -> None:
        try:
            user_id = uuid.UUID(account_id)
        except ValueError as e:
            raise IdentityProviderError(f"Invalid account id: {account_id}") from e
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise IdentityProviderError(f"Account {account_id} not found")
        user.password_hash = hash_password(new_password)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise IdentityProviderError("Password update failed") from e


class SupabaseIdentityProvider:
    """Supabase Auth (GoTrue) admin API, authenticated with the service role key.

    Without an explicit ``client`` each call goes through module-level ``httpx``
    so no connection pool outlives the request.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        if not settings.supabase_admin_url or not settings.supabase_service_role:
            raise IdentityProviderError("Supabase service role environment variables are missing")
        self.admin_url = settings.supabase_admin_url
        self.service_role = settings.supabase_service_role
        self.client = client

    def _headers(self) -> dict:
        return {
            "apikey": self.service_role,
            "Authorization": f"Bearer {self.service_role}",
        }

    def _get(self, url: str, params: dict) -> httpx.Response:
        if self.client is not None:
            return self.client.get(url, params=params, headers=self._headers())
        return httpx.get(url, params=params, headers=self._headers(), timeout=SUPABASE_TIMEOUT)

    def _put(self, url: str, payload: dict) -> httpx.Response:
        if self.client is not None:
            return self.client.put(url, json=payload, headers=self._headers())
        return httpx.put(url, json=payload, headers=self._headers(), timeout=SUPABASE_TIMEOUT)

    def find_account_by_email(self, email: str) -> Optional[Account]:
        """Page through admin users; the admin API has no lookup by email."""
        target = email.strip().lower()
        page = 1
        while True:
            try:
                resp = self._get(
                    f"{self.admin_url}/users",
                    {"page": page, "per_page": SUPABASE_PAGE_SIZE},
                )
                resp.raise_for_status()
                data = resp.json()
            except httpx.HTTPError as e:
                raise IdentityProviderError(f"Supabase user listing failed: {e}") from e
            except ValueError as e:
                logger.warning("Supabase user listing returned non-JSON body (HTTP %s)", resp.status_code)
                raise IdentityProviderError("Supabase user listing returned invalid JSON") from e
            users = (data.get("users") if isinstance(data, dict) else None) or []
            for u in users:
                if (u.get("email") or "").lower() == target:
                    return Account(id=str(u["id"]), email=u["email"])
            if len(users) < SUPABASE_PAGE_SIZE:
                return None
            page += 1

    def update_account_password(self, account_id: str, new_password: str) -> None:
        try:
            resp = self._put(f"{self.admin_url}/users/{account_id}", {"password": new_password})
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Supabase password update failed: {e}") from e
