# app/api/__init__.py
"""
API package.

- 不做重导出
- 路由由 `app/main.py` 直接 include（prep_tasks / inventory_lots / metrics）
"""

__all__ = []
