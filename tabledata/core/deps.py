from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from tabledata.core.config import settings
from tabledata.core.security import decode_jwt

bearer = HTTPBearer(auto_error=False)

def get_current_user(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    if not creds:
        raise HTTPException(status_code=401, detail="Missing authorization token")
    try:
        return decode_jwt(creds.credentials, settings.JWT_SECRET)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
