"""
Tagged outcomes for reconciliation operations.

    outcome = await reconciler.save_post(post)
    if isinstance(outcome, Err):
        notifier.alert(outcome.error.user_message)
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from unionclient.errors import ClientError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: ClientError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.error.user_message


Outcome = Union[Ok[Any], Err]
