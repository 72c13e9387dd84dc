"""
API request and response models for the SSO REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Request fields default to protobuf-style zero values ("" and 0) instead of
being required: "is this field present" is decided by auth/validation.py so
that a missing field and an empty field get the same invalid_argument fault.
"""

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    # strict: "1" is not silently accepted as app_id=1
    model_config = ConfigDict(strict=True)


class LoginRequest(_Request):
    email: str = ""
    password: str = Field(default="", repr=False)
    app_id: int = Field(default=0, ge=-(2**31), le=2**31 - 1)


class RegisterRequest(_Request):
    email: str = ""
    password: str = Field(default="", repr=False)


class IsAdminRequest(_Request):
    user_id: int = Field(default=0, ge=-(2**63), le=2**63 - 1)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    token: str


class RegisterResponse(BaseModel):
    user_id: int


class IsAdminResponse(BaseModel):
    is_admin: bool


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = {}


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail
