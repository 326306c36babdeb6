from pydantic import BaseModel
from .user import UserOut


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut

    model_config = {
        "from_attributes": True
    }


class RegisterOut(Token):
    message: str
