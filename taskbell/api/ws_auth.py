"""
WebSocket用の認証ユーティリティ

ブラウザの WebSocket は任意ヘッダを付けられないため、
Authorization ヘッダの Bearer に加えて `token` クエリパラメータも受け付ける。
"""

from __future__ import annotations

import secrets

from fastapi import WebSocket

from taskbell.api.http_auth import verify_bearer_token
from taskbell.config import get_token


def authenticate_ws(websocket: WebSocket) -> bool:
    """
    WebSocket 接続の認証を検証する。

    - token 未設定なら常に True
    - Bearer ヘッダがあればそれで判定する
    - 無ければ ?token= で判定する
    """

    expected = get_token()
    if not expected:
        return True

    # --- 1) Bearer を優先 ---
    auth_header = websocket.headers.get("Authorization")
    if auth_header:
        return verify_bearer_token(auth_header, expected=expected)

    # --- 2) クエリパラメータ ---
    provided = str(websocket.query_params.get("token") or "").strip()
    return bool(provided and secrets.compare_digest(provided, expected))
