"""Decorators that declare preview screenshot tests.

A preview test is a method marked with ``@preview_test`` and one or more
preview decorators::

    class ButtonScreenshots:
        @preview_test
        @preview(name="light")
        @preview(name="dark", ui_mode="night")
        def primary_button(self):
            ...

Decorators may be bundled with :func:`multipreview`, and a single method
parameter may drive fan-out with ``Annotated[T, PreviewParameter(provider=P)]``.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

PREVIEW_TEST_ATTR = "__preview_test__"
PREVIEWS_ATTR = "__previews__"

COMPOSE = "compose"
WEAR_TILE = "wear_tile"

F = TypeVar("F", bound=Callable[..., Any])


def preview_test(func: F) -> F:
    """Mark a method as a preview screenshot test."""
    setattr(func, PREVIEW_TEST_ATTR, True)
    return func


def is_preview_test(func: Any) -> bool:
    return bool(getattr(func, PREVIEW_TEST_ATTR, False))


class PreviewAnnotation:
    """One preview configuration; applying it to a function records it there."""

    def __init__(self, kind: str, parameters: dict[str, Any]):
        self.kind = kind
        self.parameters = dict(parameters)

    def __call__(self, func: F) -> F:
        _attach(func, [self])
        return func

    def __repr__(self) -> str:
        return f"PreviewAnnotation({self.kind!r}, {self.parameters!r})"


class Multipreview:
    """A composite of preview annotations applied together."""

    def __init__(self, *previews: "PreviewAnnotation | Multipreview"):
        self.previews = previews

    def flatten(self) -> list[PreviewAnnotation]:
        flat: list[PreviewAnnotation] = []
        for p in self.previews:
            if isinstance(p, Multipreview):
                flat.extend(p.flatten())
            else:
                flat.append(p)
        return flat

    def __call__(self, func: F) -> F:
        _attach(func, self.flatten())
        return func


def _attach(func: Any, annotations: list[PreviewAnnotation]) -> None:
    # Decorators apply bottom-up; prepend to keep declaration order
    existing: list[PreviewAnnotation] = list(getattr(func, PREVIEWS_ATTR, []))
    combined = annotations + existing
    kinds = {a.kind for a in combined}
    if len(kinds) > 1:
        raise TypeError(
            f"{getattr(func, '__qualname__', func)} mixes preview kinds {sorted(kinds)}; "
            "a method may carry either compose or wear tile previews, not both"
        )
    setattr(func, PREVIEWS_ATTR, combined)


def _params(name: Optional[str], params: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if name is not None:
        out["name"] = name
    out.update(params)
    return out


def preview(name: Optional[str] = None, **params: Any) -> PreviewAnnotation:
    """Declare a compose preview (device, font_scale, ui_mode, ...)."""
    return PreviewAnnotation(COMPOSE, _params(name, params))


def wear_tile_preview(name: Optional[str] = None, **params: Any) -> PreviewAnnotation:
    """Declare a wear tile preview."""
    return PreviewAnnotation(WEAR_TILE, _params(name, params))


def multipreview(*previews: PreviewAnnotation | Multipreview) -> Multipreview:
    return Multipreview(*previews)


def previews_of(func: Any) -> list[PreviewAnnotation]:
    return list(getattr(func, PREVIEWS_ATTR, []))


class PreviewParameter:
    """Marks a method parameter whose values come from ``provider``.

    Use inside ``typing.Annotated``; every keyword (``limit``, ...) becomes an
    annotation parameter handed to the renderer.
    """

    def __init__(self, provider: type, **params: Any):
        self.provider = provider
        self.params = params

    def annotation_parameters(self) -> dict[str, Any]:
        return {"provider": self.provider, **self.params}

    def __repr__(self) -> str:
        return f"PreviewParameter(provider={self.provider!r}, {self.params!r})"
