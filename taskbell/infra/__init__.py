"""
インフラ補助パッケージ。

目的:
    - パス解決などの実行環境依存の補助機能を `taskbell` 直下から分離する。
"""

from __future__ import annotations
