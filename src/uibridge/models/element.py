"""Element description model returned by ``SelectorEngine.describe``."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ElementPosition(BaseModel):
    """Viewport-relative position and size."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class ElementInfo(BaseModel):
    """Side-effect-free snapshot of one element."""

    tag: str
    id: str | None = None
    classes: list[str] = Field(default_factory=list)
    text: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    position: ElementPosition = Field(default_factory=ElementPosition)
    visible: bool = False
    focusable: bool = False
