"""
Error taxonomy.

TransportError is raised by the generation client. ParseError and SchemaError
are *returned* by the normalizer as tagged results. StorageError is only ever
logged: unreadable progress is reset to empty.
"""

from __future__ import annotations
from typing import Optional

NETWORK_MESSAGE = (
    "فشل توليد الخطبة. قد يكون هناك مشكلة في الشبكة أو في الرد من الخادم. "
    "يرجى المحاولة مرة أخرى."
)
FORMAT_MESSAGE = (
    "فشل توليد الخطبة بسبب خطأ في تنسيق الرد من الخادم. نرجو المحاولة مرة أخرى. "
    "(تفاصيل الخطأ: {detail})"
)


class MinbarError(Exception):
    pass


class TransportError(MinbarError):
    """The generation service could not be reached or returned nothing usable."""


class ValidationError(MinbarError):
    """The service answered, but not with a usable sermon."""


class ParseError(ValidationError):
    pass


class SchemaError(ValidationError):
    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"{path}: {detail}")


class StorageError(MinbarError):
    pass


def user_message(exc: Optional[BaseException]) -> str:
    if isinstance(exc, ValidationError):
        return FORMAT_MESSAGE.format(detail=str(exc))
    return NETWORK_MESSAGE
