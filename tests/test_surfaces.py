"""
Tests for the snapshot and matplotlib rendering surfaces and the debouncer.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import Mock

import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend for testing

import pytest

from src.chart_grid.debounce import Debouncer
from src.chart_grid.matplotlib_surface import MatplotlibSurface, MatplotlibSurfaceHost
from src.chart_grid.rendering import PanelElement, RenderingSurface, SurfaceHost, VisibleRange
from src.chart_grid.surfaces import SnapshotSurface, SnapshotSurfaceHost

from conftest import flat_series, make_candle


class TestSnapshotSurface:

    def test_satisfies_protocols(self, host):
        element = host.mount("chart-1", 600, 400)
        assert isinstance(host, SurfaceHost)
        assert isinstance(host.create_surface(element), RenderingSurface)

    def test_snapshot_payload(self):
        surface = SnapshotSurface(PanelElement("chart-1", 600, 400))
        surface.set_candle_data([make_candle(0, 1, 3, 0.5, 2, volume=7)])
        surface.set_line_data([{"time": 1700000000, "value": 3}])
        surface.set_status("+1.00")
        surface.fit_visible_range()

        snap = surface.snapshot()
        assert snap["candles"][0] == {
            "time": 1700000000, "open": 1, "high": 3, "low": 0.5, "close": 2, "volume": 7,
        }
        assert snap["swingLine"] == [{"time": 1700000000, "value": 3}]
        assert snap["visibleRange"] == {"from": 1700000000, "to": 1700000000}
        assert snap["status"] == "+1.00"
        assert (snap["width"], snap["height"]) == (600, 400)

    def test_dimension_callbacks(self):
        surface = SnapshotSurface(PanelElement("chart-1", 600, 400))
        callback = Mock()
        unsubscribe = surface.on_dimension_change(callback)

        surface.notify_dimension_change(700, 500)
        unsubscribe()
        surface.notify_dimension_change(800, 500)

        callback.assert_called_once_with(700, 500)
        assert surface.container_size() == (800, 500)

    def test_released_surface_rejects_drawing(self):
        surface = SnapshotSurface(PanelElement("chart-1", 600, 400))
        surface.on_dimension_change(Mock())
        surface.release()
        surface.release()

        assert surface.subscriber_count == 0
        with pytest.raises(RuntimeError):
            surface.set_candle_data([])

    def test_host_unmount(self):
        host = SnapshotSurfaceHost()
        first = host.mount("chart-1", 600, 400)
        second = host.mount("chart-2", 600, 400)
        host.create_surface(first)

        host.unmount(first)
        host.unmount(first)

        assert host.elements() == [second]
        assert "chart-1" not in host.surfaces

    def test_elements_compare_by_identity(self):
        host = SnapshotSurfaceHost()
        host.mount("chart-1", 600, 400)
        host.unmount(PanelElement("chart-1", 600, 400))
        assert len(host.elements()) == 1


class TestMatplotlibSurface:

    @pytest.fixture
    def surface(self):
        surface = MatplotlibSurface(PanelElement("chart-1", 600, 400))
        yield surface
        surface.release()

    def test_draws_candles_and_wicks(self, surface):
        candles = [
            make_candle(0, 10, 12, 9, 11),    # bullish, both wicks
            make_candle(1, 11, 11, 10, 10),   # bearish, no wicks
        ]
        surface.set_candle_data(candles)

        assert len(surface.ax.patches) == 2
        assert len(surface._candle_artists) == 4

    def test_redraw_replaces_artists(self, surface):
        surface.set_candle_data(flat_series(10))
        surface.set_candle_data(flat_series(3))
        assert len(surface.ax.patches) == 3

    def test_line_replaced(self, surface):
        surface.set_line_data([{"time": 0, "value": 1}, {"time": 60, "value": 2}])
        surface.set_line_data([{"time": 0, "value": 1}])
        surface.set_line_data([])
        assert surface.ax.get_lines() == []

    def test_visible_range(self, surface):
        assert surface.get_visible_range() is None
        surface.set_candle_data(flat_series(5))
        surface.fit_visible_range()

        fitted = surface.get_visible_range()
        assert fitted.start < 1700000000 < 1700000000 + 4 * 60 < fitted.end

        surface.set_visible_range(VisibleRange(1700000060, 1700000120))
        assert surface.get_visible_range() == VisibleRange(1700000060, 1700000120)

    def test_resize_changes_container_size(self, surface):
        assert surface.container_size() == (600, 400)
        surface.resize(800, 300)
        assert surface.container_size() == (800, 300)

    def test_status_caption(self, surface):
        surface.set_status("+1.00")
        surface.set_status("Error: down", failed=True)
        assert surface._status_text.get_text() == "Error: down"
        assert surface._status_text.get_color() == surface.style.failure_color

    def test_resize_events_reach_subscribers(self, surface):
        callback = Mock()
        unsubscribe = surface.on_dimension_change(callback)

        surface.canvas.callbacks.process('resize_event', SimpleNamespace(width=640.0, height=480.0))
        unsubscribe()
        surface.canvas.callbacks.process('resize_event', SimpleNamespace(width=10.0, height=10.0))

        callback.assert_called_once_with(640, 480)

    def test_to_png(self, surface):
        surface.set_candle_data(flat_series(5))
        surface.set_status("+4.50")
        assert surface.to_png().startswith(b"\x89PNG")

    def test_release_disconnects(self):
        surface = MatplotlibSurface(PanelElement("chart-1", 600, 400))
        callback = Mock()
        surface.on_dimension_change(callback)
        surface.release()
        surface.canvas.callbacks.process('resize_event', SimpleNamespace(width=1.0, height=1.0))
        callback.assert_not_called()
        assert surface.released is True

    def test_host_tracks_surface(self):
        host = MatplotlibSurfaceHost()
        element = host.mount("chart-1", 600, 400)
        surface = host.create_surface(element)
        assert element.attrs["surface"] is surface
        host.unmount(element)
        assert host.elements() == []
        assert "surface" not in element.attrs


class TestDebouncer:

    def test_only_last_call_fires(self):
        func = Mock()

        async def scenario():
            debounced = Debouncer(0.01, func)
            debounced(1)
            debounced(2)
            debounced(3)
            assert debounced.pending
            await asyncio.sleep(0.05)
            return debounced

        debounced = asyncio.run(scenario())
        func.assert_called_once_with(3)
        assert not debounced.pending

    def test_cancel(self):
        func = Mock()

        async def scenario():
            debounced = Debouncer(0.01, func)
            debounced("x")
            debounced.cancel()
            await asyncio.sleep(0.03)

        asyncio.run(scenario())
        func.assert_not_called()

    def test_flush(self):
        func = Mock()

        async def scenario():
            debounced = Debouncer(10, func)
            debounced("now")
            debounced.flush()
            debounced.flush()

        asyncio.run(scenario())
        func.assert_called_once_with("now")
