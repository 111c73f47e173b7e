from pydantic import BaseModel


class NakamaSession(BaseModel):
    token: str
    refresh_token: str | None = None
    user_id: str = ""
    username: str = ""
    created: bool = False
