from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING, Annotated, Any, Callable, TypeVar

from fastapi import Depends, FastAPI

T = TypeVar("T")


@cache
def _provider(tp: type[Any]) -> Callable[[], Any]:
    def provider() -> Any:
        raise RuntimeError(f"No {tp.__name__} is bound to this app")

    return provider


def bind(app: FastAPI, tp: type[T], value: T) -> None:
    """Make `Injected[tp]` resolve to `value` for every route of `app`."""
    app.dependency_overrides[_provider(tp)] = lambda: value


if TYPE_CHECKING:
    Injected = Annotated[T, "injected"]
else:

    class Injected:
        def __class_getitem__(cls, tp: type[Any]) -> Any:
            return Annotated[tp, Depends(_provider(tp))]
