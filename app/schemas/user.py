from typing import Optional
from pydantic import BaseModel


# Claims carried by an access token
class TokenPayload(BaseModel):
    sub: Optional[str] = None
