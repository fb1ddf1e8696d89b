"""BaseService: shared foundation for infracanvas services.

Every service receives the resolved :class:`CanvasSettings` at
construction time; callers that do not pass one get code defaults.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infracanvas.config.settings import CanvasSettings


class BaseService:
    """Base for service-layer classes.

    Usage::

        class GenerateService(BaseService):
            def generate(self, nodes, edges) -> ServiceResult:
                provider = self._settings.generate.provider
                ...
    """

    def __init__(self, settings: CanvasSettings | None = None) -> None:
        if settings is None:
            from infracanvas.config.settings import CanvasSettings

            settings = CanvasSettings()
        self._settings = settings

    @property
    def settings(self) -> CanvasSettings:
        return self._settings
