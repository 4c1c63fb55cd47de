from pydantic import BaseModel, Field, model_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SignupRequest(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=254)
    password: str = Field(min_length=6)
    fullname: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=10, max_length=20)


class LoginRequest(BaseModel):
    email: str
    password: str


class VerifyRequest(BaseModel):
    code: str | None = Field(default=None, min_length=6, max_length=6)
    token: str | None = None
    email: str | None = None

    @model_validator(mode="after")
    def _code_or_token(self):
        if not self.code and not self.token:
            raise ValueError("Either code or token is required")
        return self
