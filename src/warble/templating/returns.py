"""Template return type.

A frozen dataclass handlers return. The negotiation layer hands it to
the app's renderer.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Template:
    """Render a template with the configured engine.

    Usage::

        return Template("form.html", title="New contact", errors=errors)
    """

    name: str
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, name: str, /, **context: Any) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "context", context)
