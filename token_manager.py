"""
Presentation Control Helper
Copyright (C) 2024 thiccaxe

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import datetime
import logging
import secrets
from typing import Optional

TOKEN_LENGTH = 8


class TokenManager:
    """
    holds the single process-wide auth token inside the secrets document, so that saving the secrets
    persists it across restarts
    """

    def __init__(self, secrets_document):
        self._secrets = secrets_document

    @property
    def _server_secrets(self):
        return self._secrets["server"]

    @staticmethod
    def generate_token() -> str:
        return secrets.token_hex(TOKEN_LENGTH // 2)

    def get_current_token(self) -> Optional[str]:
        token = self._server_secrets.get("auth_token")
        return str(token) if token else None

    def get_or_create_token(self) -> str:
        token = self.get_current_token()
        if token is None:
            token = self._store(self.generate_token())
            logging.info("Generated new auth token")
        return token

    def regenerate_token(self) -> str:
        token = self._store(self.generate_token())
        logging.info("Auth token regenerated")
        return token

    def get_token_info(self) -> dict:
        return {
            "token": self.get_current_token(),
            "generated_at": self._server_secrets.get("token_generated_at"),
        }

    def verify(self, candidate) -> bool:
        current = self.get_current_token()
        if current is None or not isinstance(candidate, str):
            return False
        return secrets.compare_digest(candidate.encode(), current.encode())

    def _store(self, token: str) -> str:
        self._server_secrets["auth_token"] = token
        self._server_secrets["token_generated_at"] = datetime.datetime.now(datetime.timezone.utc).isoformat()
        return token
