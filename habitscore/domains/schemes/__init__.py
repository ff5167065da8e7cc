"""Scoring scheme management domain."""

from .models import (
    RuleCreateRequest,
    RuleUpdateRequest,
    RuleView,
    SchemeCreateRequest,
    SchemeView,
)
from .service import SchemeService

__all__ = [
    "RuleCreateRequest",
    "RuleUpdateRequest",
    "RuleView",
    "SchemeCreateRequest",
    "SchemeService",
    "SchemeView",
]
