"""
Resource Registry

Owns the live chart resources of a grid: creates them on a surface host,
keeps them in display order, forwards shared analysis settings, and writes
the grid layout to the persistence store.

All mutation happens on the event loop thread. Suspension points are the
layout-settle delay, resource loads, and debounce timers.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Union

from .config import AnalysisSettings, GridConfig
from .constants import RESOURCE_ID_PREFIX, TIMEFRAMES, TimeframeSpec, get_timeframe
from .debounce import Debouncer
from .errors import ConfigurationError, DataFetchError
from .layout_codec import GridLayoutEntry, GridState, LayoutCodec
from .persistence import InMemoryStore, PersistenceStore
from .rendering import PanelElement, SurfaceHost
from .resource import ChartResource, LifecycleState

logger = logging.getLogger(__name__)

TimeframeArg = Union[TimeframeSpec, str]


def _id_suffix(resource_id: str) -> Optional[int]:
    """Numeric suffix of a generated id ("chart-12" -> 12), else None."""
    if not resource_id.startswith(RESOURCE_ID_PREFIX):
        return None
    suffix = resource_id[len(RESOURCE_ID_PREFIX):]
    return int(suffix) if suffix.isdigit() else None


class ResourceRegistry:
    """
    Dynamic collection of chart resources.

    Usage:
        registry = ResourceRegistry(SnapshotSurfaceHost(), source, JsonFileStore())
        await registry.restore()
        await registry.add_resource("4h")
        registry.broadcast_settings(comparison_window=3)
        await registry.close()
    """

    def __init__(
        self,
        host: SurfaceHost,
        source,
        store: Optional[PersistenceStore] = None,
        config: Optional[GridConfig] = None,
        settings: Optional[AnalysisSettings] = None,
    ):
        self.host = host
        self.source = source
        self.config = config or GridConfig()
        self.codec = LayoutCodec(store if store is not None else InMemoryStore(), self.config.storage_key)

        self._resources: Dict[str, ChartResource] = {}
        self._elements: Dict[str, PanelElement] = {}
        self._observers: Dict[str, List[Callable[[], None]]] = {}
        self._settings = settings or AnalysisSettings()
        self._next_seq = 1
        # Ids of resources still between mount and map insertion
        self._reserved: set = set()
        # Layout writes wait until restore has finished
        self._restoring = False
        self._persist_debouncer = Debouncer(self.config.persist_debounce, self.persist_layout)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, resource_id: str) -> bool:
        return resource_id in self._resources

    def get(self, resource_id: str) -> Optional[ChartResource]:
        return self._resources.get(resource_id)

    @property
    def resource_ids(self) -> List[str]:
        return list(self._resources)

    @property
    def resources(self) -> List[ChartResource]:
        return list(self._resources.values())

    @property
    def settings(self) -> AnalysisSettings:
        return self._settings

    @staticmethod
    def available_timeframes() -> List[TimeframeSpec]:
        return list(TIMEFRAMES)

    def _resolve_timeframe(self, timeframe: TimeframeArg) -> TimeframeSpec:
        if isinstance(timeframe, TimeframeSpec):
            return timeframe
        spec = get_timeframe(timeframe)
        if spec is None:
            raise ConfigurationError(f"Unknown timeframe: {timeframe!r}")
        return spec

    def _generate_id(self) -> str:
        while True:
            resource_id = f"{RESOURCE_ID_PREFIX}{self._next_seq}"
            self._next_seq += 1
            if resource_id not in self._resources and resource_id not in self._reserved:
                return resource_id

    # ------------------------------------------------------------------
    # Creation / removal
    # ------------------------------------------------------------------

    async def add_resource(
        self,
        timeframe: TimeframeArg,
        resource_id: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> str:
        """
        Create, load and place a new chart resource.

        Args:
            timeframe: TimeframeSpec or catalog id.
            resource_id: Explicit id (used when restoring); generated if None.
            width / height: Initial size; grid defaults if None.

        Returns:
            The resource id.

        Raises:
            ConfigurationError: Unknown timeframe, duplicate id or
                out-of-range size. Nothing is created.
            DataFetchError: The initial load failed after all retries. The
                resource has been rolled back.
        """
        spec = self._resolve_timeframe(timeframe)
        width = self.config.default_width if width is None else width
        height = self.config.default_height if height is None else height
        self.config.validate_dimensions(width, height)

        if resource_id is None:
            resource_id = self._generate_id()
        elif resource_id in self._resources or resource_id in self._reserved:
            raise ConfigurationError(f"Resource {resource_id} already exists")
        else:
            suffix = _id_suffix(resource_id)
            if suffix is not None and suffix >= self._next_seq:
                self._next_seq = suffix + 1

        self._reserved.add(resource_id)
        resource: Optional[ChartResource] = None
        element = self.host.mount(resource_id, width, height)
        try:
            await asyncio.sleep(self.config.layout_settle_delay)

            surface = self.host.create_surface(element)
            resource = ChartResource(
                resource_id,
                spec,
                surface,
                self.source,
                settings=self._settings,
                retry=self.config.retry,
                width=width,
                height=height,
            )
            self._resources[resource_id] = resource
            self._elements[resource_id] = element
            self._reserved.discard(resource_id)

            loaded = await resource.load()
            if resource.destroyed:
                logger.info(f"{resource_id} was removed while loading")
                return resource_id
            # A False result without FAILED means a newer load took over
            if not loaded and resource.state is LifecycleState.FAILED:
                raise DataFetchError(
                    f"Initial load of {spec.label} failed for {resource_id}: {resource.last_error}"
                ) from resource.last_error

            resource.adjust_to_container()
            self._subscribe_dimensions(resource_id, resource)
        except BaseException:
            self._reserved.discard(resource_id)
            self._rollback(resource_id, resource, element)
            raise

        logger.info(f"Added {resource_id} ({spec.label})")
        if not self._restoring:
            self.persist_layout()
        return resource_id

    def _rollback(self, resource_id: str, resource: Optional[ChartResource], element: PanelElement) -> None:
        if resource is not None and resource.destroyed and resource_id not in self._resources:
            # Already torn down by remove_resource
            return
        logger.warning(f"Rolling back creation of {resource_id}")
        if resource is not None:
            resource.destroy()
        self.host.unmount(element)
        self._release_observers(resource_id)
        if self._resources.get(resource_id) is resource:
            self._resources.pop(resource_id, None)
            self._elements.pop(resource_id, None)

    def _subscribe_dimensions(self, resource_id: str, resource: ChartResource) -> None:
        def apply_size(width: int, height: int) -> None:
            resource.resize(width, height)
            self.schedule_persist()

        debounced = Debouncer(self.config.resize_debounce, apply_size)
        unsubscribe = resource.surface.on_dimension_change(debounced)
        self._observers.setdefault(resource_id, []).extend([unsubscribe, debounced.cancel])

    def _release_observers(self, resource_id: str) -> None:
        for release in self._observers.pop(resource_id, []):
            release()

    def _find_element(self, resource_id: str) -> Optional[PanelElement]:
        element = self._elements.get(resource_id)
        if element is not None:
            return element
        logger.warning(f"No tracked element for {resource_id}; scanning host elements")
        for candidate in self.host.elements():
            if candidate.resource_id == resource_id:
                return candidate
        return None

    def remove_resource(self, resource_id: str) -> bool:
        """
        Destroy a resource and drop it from the grid.

        Returns:
            False (with a warning) for unknown ids.
        """
        resource = self._resources.get(resource_id)
        if resource is None:
            logger.warning(f"Cannot remove unknown resource {resource_id}")
            return False

        resource.destroy()

        element = self._find_element(resource_id)
        if element is not None:
            self.host.unmount(element)
        else:
            logger.warning(f"No rendering element found for {resource_id}")

        self._release_observers(resource_id)
        del self._resources[resource_id]
        self._elements.pop(resource_id, None)

        logger.info(f"Removed {resource_id}")
        self.persist_layout()
        return True

    # ------------------------------------------------------------------
    # Reconfiguration
    # ------------------------------------------------------------------

    async def reconfigure_timeframe(self, resource_id: str, timeframe_id: str) -> bool:
        """Switch a resource to another timeframe and reload it."""
        resource = self._resources.get(resource_id)
        if resource is None:
            logger.warning(f"Cannot reconfigure unknown resource {resource_id}")
            return False
        spec = get_timeframe(timeframe_id)
        if spec is None:
            logger.warning(f"Ignoring unknown timeframe {timeframe_id!r} for {resource_id}")
            return False

        loaded = await resource.reconfigure(timeframe=spec)
        if resource_id in self._resources:
            self.persist_layout()
        return loaded

    def broadcast_settings(self, **changes) -> AnalysisSettings:
        """
        Update the shared analysis settings and apply them to every resource.

        Raises:
            ConfigurationError: Unknown field or invalid value; nothing changes.
        """
        self._settings = self._settings.replace(**changes)
        for resource in self._resources.values():
            resource.apply_settings(self._settings)
        logger.info(f"Analysis settings updated: {changes}")
        return self._settings

    def fit_all(self) -> None:
        for resource in self._resources.values():
            resource.fit()

    async def reload_all(self) -> Dict[str, bool]:
        """Reload every resource concurrently; one failure does not stop the rest."""
        ids = list(self._resources)
        results = await asyncio.gather(
            *(self._resources[rid].load() for rid in ids),
            return_exceptions=True,
        )
        outcome = {}
        for rid, result in zip(ids, results):
            if isinstance(result, BaseException):
                logger.error(f"Reload of {rid} raised: {result}")
                outcome[rid] = False
            else:
                outcome[rid] = result
        return outcome

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def build_state(self) -> GridState:
        entries = []
        for order, (resource_id, resource) in enumerate(self._resources.items()):
            size = resource.surface.container_size() if not resource.destroyed else None
            width, height = size if size else (resource.width, resource.height)
            entries.append(GridLayoutEntry(
                resource_id=resource_id,
                timeframe_id=resource.timeframe.id,
                width=width,
                height=height,
                order=order,
            ))
        return GridState(entries=entries, columns=self.config.columns)

    def persist_layout(self) -> bool:
        self._persist_debouncer.cancel()
        return self.codec.save(self.build_state())

    def schedule_persist(self) -> None:
        """Write the layout once resize events have settled."""
        self._persist_debouncer()

    async def restore(self) -> List[str]:
        """
        Recreate the saved grid, or the default timeframes if nothing is saved.

        The saved layout is only rewritten once at least one resource came
        back, so an outage during startup does not erase it.

        Returns:
            Ids of the resources created.
        """
        self._restoring = True
        try:
            return await self._restore()
        finally:
            self._restoring = False

    async def _restore(self) -> List[str]:
        state = self.codec.load()
        if state is None or not state.entries:
            logger.info("No saved layout; creating default timeframes")
            created = await self._create_all(
                [(tf_id, None, None, None) for tf_id in self.config.default_timeframes]
            )
            self._reorder([rid for rid in created if rid in self._resources])
            if created:
                self.persist_layout()
            return created

        suffixes = [s for s in (_id_suffix(e.resource_id) for e in state.entries) if s is not None]
        if suffixes:
            self._next_seq = max(self._next_seq, max(suffixes) + 1)

        plans = []
        for entry in state.entries:
            if get_timeframe(entry.timeframe_id) is None:
                logger.warning(f"Skipping {entry.resource_id}: unknown timeframe {entry.timeframe_id!r}")
                continue
            plans.append((entry.timeframe_id, entry.resource_id, entry.width, entry.height))

        created = await self._create_all(plans)

        # Concurrent creation finishes in any order; put the saved order back
        saved_order = [rid for _, rid, _, _ in plans]
        self._reorder([rid for rid in saved_order if rid in self._resources])
        logger.info(f"Restored {len(created)}/{len(state.entries)} resources from saved layout")
        if created:
            self.persist_layout()
        else:
            logger.warning("No saved resources could be restored; keeping the saved layout")
        return [rid for rid in saved_order if rid in created]

    async def _create_all(self, plans) -> List[str]:
        results = await asyncio.gather(
            *(self._add_tolerant(tf_id, rid, w, h) for tf_id, rid, w, h in plans)
        )
        return [rid for rid in results if rid is not None]

    async def _add_tolerant(self, timeframe_id, resource_id, width, height) -> Optional[str]:
        try:
            return await self.add_resource(timeframe_id, resource_id, width, height)
        except Exception as e:
            logger.error(f"Could not create {resource_id or timeframe_id}: {e}")
            return None

    def _reorder(self, ordered_ids: List[str]) -> None:
        rest = [rid for rid in self._resources if rid not in ordered_ids]
        self._resources = {rid: self._resources[rid] for rid in ordered_ids + rest}

    async def close(self) -> None:
        """Destroy every resource without rewriting the saved layout."""
        self._persist_debouncer.cancel()
        for resource_id in list(self._resources):
            self._resources[resource_id].destroy()
            element = self._elements.pop(resource_id, None)
            if element is not None:
                self.host.unmount(element)
            self._release_observers(resource_id)
        self._resources.clear()
        logger.info("Registry closed")

    def summary(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in LifecycleState}
        for resource in self._resources.values():
            counts[resource.state.value] += 1
        return counts
