"""The boundary between validated code text and a constructed callable.

The rendering host turns the code into a component with a runtime
function constructor. That step happens once per artifact: the first
``build()`` either returns the callable or raises, and every later call
returns the same callable or re-raises the same error without asking
the host again.

Hosts wrap a stored artifact (``GenerationOutcome.artifact`` or a
``JobStore.job_history`` entry) in :class:`CompiledComposition`; it is
re-exported from :mod:`video_codegen_mcp.pipeline`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from .errors import CompositionBuildError
from .models.generation import GeneratedCodeArtifact

logger = logging.getLogger(__name__)

# Positional parameters the code body is invoked with, in order.
HOST_PARAMETERS: tuple[str, ...] = ("React", "Remotion", "Components", "Theme", "images", "audioUrl")

CompositionFactory = Callable[[str, tuple[str, ...]], Callable[..., Any]]


class CompiledComposition:
    """An artifact paired with its lazily constructed host callable."""

    def __init__(self, artifact: GeneratedCodeArtifact, factory: CompositionFactory) -> None:
        self.artifact = artifact
        self._factory = factory
        self._lock = threading.Lock()
        self._callable: Callable[..., Any] | None = None
        self._error: CompositionBuildError | None = None

    @property
    def code(self) -> str:
        return self.artifact.code

    @property
    def is_built(self) -> bool:
        """True once construction has been attempted (successfully or not)."""
        return self._callable is not None or self._error is not None

    def build(self) -> Callable[..., Any]:
        """Construct the callable on first use and cache the outcome.

        Raises:
            CompositionBuildError: If the factory failed, now or on the
                first attempt.
        """
        with self._lock:
            if self._error is not None:
                raise self._error
            if self._callable is None:
                try:
                    self._callable = self._factory(self.artifact.code, HOST_PARAMETERS)
                except Exception as exc:
                    logger.error(
                        "Composition build failed for job %s v%d: %s",
                        self.artifact.job_id, self.artifact.version, exc,
                    )
                    self._error = CompositionBuildError(
                        f"Cannot construct composition for job {self.artifact.job_id}: {exc}"
                    )
                    raise self._error from exc
            return self._callable

    def __call__(self, *args: Any) -> Any:
        """Invoke the code body with the host's positional parameters."""
        if len(args) != len(HOST_PARAMETERS):
            raise TypeError(
                f"Composition expects {len(HOST_PARAMETERS)} arguments "
                f"({', '.join(HOST_PARAMETERS)}), got {len(args)}"
            )
        return self.build()(*args)
