"""
タスク領域パッケージ。

目的:
    - タスクの値型、入力検証、述語組み立て、保存、業務手順をまとめる。
    - HTTP やイベント配信には依存しない。
"""

from __future__ import annotations
