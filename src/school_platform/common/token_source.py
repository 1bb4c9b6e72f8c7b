from __future__ import annotations

import uuid
from typing import Protocol


class TokenSource(Protocol):
    def new_token(self) -> str:
        raise NotImplementedError


class SecureTokenSource(TokenSource):
    """Random UUID4 tokens.

    ``uuid4`` draws from ``os.urandom``, so tokens are unguessable and carry no
    clock or counter component.
    """

    def new_token(self) -> str:
        return str(uuid.uuid4())
