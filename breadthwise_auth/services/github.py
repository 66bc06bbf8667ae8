"""GitHub OAuth2 client: authorize URL, code exchange and profile fetch."""

from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, field_validator

from breadthwise_auth.config import Settings
from breadthwise_auth.core.errors import ProviderError
from breadthwise_auth.core.logging import get_logger

logger = get_logger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"


class GitHubProfile(BaseModel):
    """The subset of the GitHub user object the auth flow consumes."""

    id: str
    login: str
    email: str | None = None
    name: str | None = None
    avatar_url: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        """GitHub returns a numeric id; store it as a string."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class GitHubOAuthClient:
    """
    Talks to GitHub's OAuth2 endpoints.

    Any transport failure, non-2xx status or unexpected payload surfaces as
    ProviderError. A transport can be supplied for tests (httpx.MockTransport).
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    def build_authorize_url(self, state: str) -> str:
        """URL the user agent is redirected to in order to start the flow."""
        params = {
            "client_id": self.settings.GITHUB_CLIENT_ID,
            "redirect_uri": self.settings.GITHUB_CALLBACK_URL,
            "scope": self.settings.GITHUB_SCOPE,
            "state": state,
        }
        return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.GITHUB_TIMEOUT_SECONDS,
            transport=self.transport,
        )

    async def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for a GitHub access token.

        Raises:
            ProviderError: If GitHub rejects the code or cannot be reached
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    GITHUB_TOKEN_URL,
                    data={
                        "client_id": self.settings.GITHUB_CLIENT_ID,
                        "client_secret": self.settings.GITHUB_CLIENT_SECRET,
                        "code": code,
                        "redirect_uri": self.settings.GITHUB_CALLBACK_URL,
                    },
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("github_token_exchange_failed", error=str(e))
            raise ProviderError() from e

        # GitHub reports bad codes with a 200 and an "error" field
        if not isinstance(result, dict) or result.get("error") or not result.get("access_token"):
            error = result.get("error") if isinstance(result, dict) else None
            logger.warning("github_token_exchange_rejected", error=error)
            raise ProviderError()

        return str(result["access_token"])

    async def fetch_profile(self, access_token: str) -> GitHubProfile:
        """
        Fetch the authenticated user's profile.

        Raises:
            ProviderError: If the request fails or the payload is unusable
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    GITHUB_USER_URL,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
                response.raise_for_status()
                return GitHubProfile.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            # ValidationError is a ValueError
            logger.error("github_profile_fetch_failed", error=str(e))
            raise ProviderError() from e

    async def authenticate(self, code: str) -> GitHubProfile:
        """Exchange the code and fetch the profile in one step."""
        access_token = await self.exchange_code(code)
        return await self.fetch_profile(access_token)

