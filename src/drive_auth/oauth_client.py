# src/drive_auth/oauth_client.py

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from .errors import TokenExchangeError
from .utils.json_fields import extract_json_field, parse_json_object

lib_logger = logging.getLogger("drive_auth")

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


@dataclass
class TokenResponse:
    """Raw token endpoint reply plus its decoded JSON object (if any)."""

    raw: str
    status_code: int = 200
    data: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_text(cls, raw: str, status_code: int = 200) -> "TokenResponse":
        return cls(raw=raw, status_code=status_code, data=parse_json_object(raw) or {})

    def field(self, key: str) -> Optional[str]:
        return extract_json_field(self.data, key)

    @property
    def access_token(self) -> Optional[str]:
        return self.field("access_token")

    @property
    def refresh_token(self) -> Optional[str]:
        return self.field("refresh_token")

    @property
    def expires_in(self) -> int:
        try:
            return int(float(self.field("expires_in") or 0))
        except ValueError:
            return 0


class TokenEndpoint:
    """
    Form-encoded POSTs against the OAuth2 token endpoint.

    HTTP error statuses are not raised here: Google reports failures as a
    JSON body without the expected field, and callers decide what is missing
    and surface the raw body to the operator. Only transport failures are
    converted into TokenExchangeError.
    """

    def __init__(
        self,
        token_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.token_url = token_url
        self._transport = transport
        self._timeout = timeout

    async def _post(self, data: Dict[str, str]) -> TokenResponse:
        grant = data.get("grant_type", "?")
        lib_logger.debug(f"POST {self.token_url} (grant_type={grant})")
        kwargs = {}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        try:
            async with httpx.AsyncClient(transport=self._transport, **kwargs) as client:
                response = await client.post(self.token_url, data=data)
        except httpx.HTTPError as e:
            lib_logger.warning(f"Token endpoint request failed ({grant}): {e}")
            raise TokenExchangeError(
                str(e), message=f"Token endpoint request failed: {e}"
            ) from e

        if response.status_code >= 400:
            lib_logger.debug(
                f"Token endpoint answered HTTP {response.status_code} for {grant}"
            )
        return TokenResponse.from_text(response.text, response.status_code)

    async def exchange_authorization_code(
        self, client_id: str, client_secret: str, code: str, redirect_uri: str
    ) -> TokenResponse:
        return await self._post(
            {
                "code": code.strip(),
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            }
        )

    async def refresh(
        self, client_id: str, client_secret: str, refresh_token: str
    ) -> TokenResponse:
        return await self._post(
            {
                "client_id": client_id,
                "client_secret": client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            }
        )

    async def jwt_bearer(self, assertion: str) -> TokenResponse:
        return await self._post({"grant_type": JWT_BEARER_GRANT, "assertion": assertion})
