"""
実行時基盤パッケージ。

目的:
    - ログ設定、イベント配信、定期実行タスクを1箇所に集約する。
"""

from __future__ import annotations
