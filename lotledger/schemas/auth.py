from pydantic import BaseModel, ConfigDict


class LoginIn(BaseModel):
    username: str
    password: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "admin", "password": "correct-horse-battery"}}
    )


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
