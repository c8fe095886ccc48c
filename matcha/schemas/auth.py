"""Authentication schemas for JWT tokens and user context."""

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated user context extracted from the bearer token."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    username: str | None = Field(default=None, description="User's username if available")


class TokenPayload(BaseModel):
    """Access token claims.

    Tokens are issued by the authentication service; ``sub`` holds the
    numeric user id as a string.
    """

    sub: str = Field(description="Subject - the user's id")
    email: str | None = Field(default=None, description="User's email address")
    username: str | None = Field(default=None, description="User's username")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=int(self.sub),
            email=self.email,
            username=self.username,
        )


class AuthenticatedResponse(BaseModel):
    """Response for the authenticated health endpoint."""

    authenticated: bool = Field(default=True, description="Authentication status")
    user_id: int = Field(description="Authenticated user ID")
    email: str | None = Field(default=None, description="User email if available")
