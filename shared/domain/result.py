"""
Result type

Use cases return ``Ok(value)`` or ``Err(kind, message)`` instead of raising,
so business failures travel as values and only unexpected failures are
exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Generic, TypeVar, Union

T = TypeVar('T')


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    is_ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Err:
    kind: Enum
    message: str
    is_ok: ClassVar[bool] = False

    def to_dict(self) -> dict:
        return {'error': self.kind.value, 'detail': self.message}


Result = Union[Ok[T], Err]
