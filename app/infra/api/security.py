# app/infra/api/security.py
from fastapi import Depends, HTTPException, status
from fastapi.security.api_key import APIKeyHeader
import os, logging
log = logging.getLogger("puphax.api")

API_KEY_NAME = "X-Api-Key"
_api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)


def _settings():
    return os.getenv("REQUIRE_API_KEY", "1") == "1", os.getenv("SERVICE_API_KEY", "")


async def require_api_key(api_key: str = Depends(_api_key_header)):
    required, service_key = _settings()
    if not required:
        return
    if not service_key:
        log.warning("REQUIRE_API_KEY=1 but SERVICE_API_KEY is empty")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service key not configured")
    if not api_key or api_key != service_key:
        log.info("rejected request with missing/invalid %s", API_KEY_NAME)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
