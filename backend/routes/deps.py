"""공유 의존성 모듈.

라우터들이 공통으로 사용하는 접근 비밀번호 검증을 정의합니다.
ACCESS_PASSWORD 가 비어 있으면 인증을 하지 않습니다.
"""

import os
from typing import Optional

from fastapi import Header, HTTPException


def get_access_password() -> str:
    """현재 설정된 접근 비밀번호 (요청마다 환경변수에서 읽음)."""
    return os.getenv("ACCESS_PASSWORD", "")


async def verify_auth_header(authorization: Optional[str] = Header(None)) -> bool:
    """Authorization: Bearer <password> 헤더를 검증합니다.

    Raises:
        HTTPException: 인증 실패 시 (401)
    """
    password = get_access_password()
    if not password:
        return True
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value:
        raise HTTPException(status_code=401, detail="Invalid authorization format")
    if value != password:
        raise HTTPException(status_code=401, detail="Invalid password")
    return True


def verify_ws_token(token: Optional[str]) -> bool:
    """WebSocket 쿼리 파라미터 토큰을 검증합니다."""
    password = get_access_password()
    if not password:
        return True
    return token == password
