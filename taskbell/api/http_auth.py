"""
HTTP 用の認証ユーティリティ（Bearer）。

方針:
    - 設定の token が空なら認証しない（ローカル単独利用の既定）。
    - token があれば Authorization: Bearer <token> を必須にする。
"""

from __future__ import annotations

import secrets

from fastapi import HTTPException, Request, status

from taskbell.config import get_token


def verify_bearer_token(auth_header: str | None, *, expected: str) -> bool:
    """Authorization ヘッダの Bearer を検証し、有効なら True。"""

    raw = str(auth_header or "").strip()
    if not raw:
        return False

    # --- 形式: "Bearer <TOKEN>" ---
    if not raw.lower().startswith("bearer "):
        return False
    provided = raw.split(" ", 1)[1].strip()
    return bool(provided and expected and secrets.compare_digest(provided, expected))


def require_bearer(request: Request) -> None:
    """HTTP リクエストで Bearer 認証を必須にする（token 未設定なら素通し）。"""

    expected = get_token()
    if not expected:
        return

    # --- Authorization ヘッダを検証 ---
    if verify_bearer_token(request.headers.get("Authorization"), expected=expected):
        return

    # --- 失敗 ---
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )
