"""
Shared types for the update pipeline.

UpdateParams is the immutable configuration of one run. ContainerRecord is
the per-run view of a container: the runtime snapshot plus what the pipeline
decided about it. Records are never mutated; each pipeline stage derives new
ones.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dockturn.container.container import Container
from dockturn.container.filters import no_filter


class StaleState(Enum):
    """Outcome of classifying one container."""
    STALE = "stale"
    NOT_STALE = "not_stale"
    MISSING_METADATA = "missing_metadata"
    PROBE_ERROR = "probe_error"


MISSING_METADATA_REASON = "no available image info"


class UpdateParams(BaseModel):
    """Configuration of a single update run"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    filter: Callable[[Any], bool] = no_filter
    no_restart: bool = False
    monitor_only: bool = False
    rolling_restart: bool = False
    cleanup: bool = False
    lifecycle_hooks: bool = False
    timeout: float = Field(10, gt=0)  # seconds, per stop call


@dataclass(frozen=True)
class ContainerRecord:
    """A container as seen by one update run."""
    container: Container
    state: StaleState
    newest_image_id: str = ""
    error: Optional[BaseException] = None
    linked: bool = False

    @property
    def id(self) -> str:
        return self.container.id

    @property
    def name(self) -> str:
        return self.container.name

    @property
    def image_id(self) -> str:
        return self.container.image_id

    @property
    def links(self) -> List[str]:
        return self.container.links

    @property
    def stale(self) -> bool:
        return self.state is StaleState.STALE

    @property
    def to_restart(self) -> bool:
        """Whether the container itself or one of its links is being restarted."""
        return self.stale or self.linked

    @property
    def failure_reason(self) -> Optional[str]:
        if self.state is StaleState.MISSING_METADATA:
            return MISSING_METADATA_REASON
        if self.state is StaleState.PROBE_ERROR:
            return str(self.error)
        return None


@dataclass(frozen=True)
class Failure:
    """One container that failed during a stop or restart phase."""
    container_id: str
    error: BaseException
