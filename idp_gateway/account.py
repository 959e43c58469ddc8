"""
Account lookup for the protocol engine.

The engine only looks accounts up by id when it needs claims, so a directory
keyed by account id is enough.
"""

from typing import Dict, Iterable, Optional
from pydantic import BaseModel

# Scope -> claims released under it.
SCOPE_CLAIMS: Dict[str, list[str]] = {
    "openid": ["sub"],
    "email": ["email", "email_verified"],
}


class AccountRecord(BaseModel):
    email: str
    email_verified: bool = False


USERS: Dict[str, AccountRecord] = {
    "23121d3c-84df-44ac-b458-3d63a9a05497": AccountRecord(
        email="foo@example.com", email_verified=True
    ),
    "c2ac2b4a-2262-4e2f-847a-a40dd3c4dcd5": AccountRecord(
        email="bar@example.com", email_verified=False
    ),
}


class Account:
    def __init__(self, account_id: str, record: AccountRecord):
        self.account_id = account_id
        self.record = record

    def claims(self, scopes: Optional[Iterable[str]] = None) -> dict:
        """
        Claims for this account, limited to those the given scopes release.
        All known claims when scopes is None.
        """
        claims = {"sub": self.account_id, **self.record.model_dump()}
        if scopes is None:
            return claims
        allowed = {"sub"}
        for scope in scopes:
            allowed.update(SCOPE_CLAIMS.get(scope, []))
        return {name: value for name, value in claims.items() if name in allowed}

    @classmethod
    async def find_by_id(cls, account_id: str) -> Optional["Account"]:
        record = USERS.get(account_id)
        if not record:
            return None
        return cls(account_id, record)
