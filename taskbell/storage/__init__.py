"""
ストレージ関連パッケージ。

目的:
    - タスクDBの接続、セッション、SQLAlchemyモデルを1箇所へ集約する。
    - 永続化層の責務を `taskbell` 直下から切り離して辿りやすくする。
"""

from __future__ import annotations
