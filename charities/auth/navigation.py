from __future__ import annotations


class Navigator:
    """Collects client-side navigations requested while a page is handled.

    The auth container and the route guard push paths here; the request layer
    turns the latest one into a redirect response.
    """

    def __init__(self) -> None:
        self.history: list[str] = []

    def push(self, path: str) -> None:
        self.history.append(path)

    @property
    def target(self) -> str | None:
        return self.history[-1] if self.history else None


__all__ = ["Navigator"]
