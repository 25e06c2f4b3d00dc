"""Mixins for the extension method Language Server."""

from __future__ import annotations

from .completion import CompletionMixin
from .documents import DocumentsMixin

__all__ = ["CompletionMixin", "DocumentsMixin"]
