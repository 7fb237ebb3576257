"""
Main entry point for the Chart Grid Server.

Usage:
    python -m src.grid_server.main
    python -m src.grid_server.main --data-file ./data/btcusdt-1m.csv --port 8080
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

import uvicorn

from . import api
from ..chart_grid.config import GridConfig
from ..chart_grid.persistence import JsonFileStore
from ..chart_grid.registry import ResourceRegistry
from ..chart_grid.surfaces import SnapshotSurfaceHost
from ..data.binance_client import BinanceClient
from ..data.market_data import FileMarketDataSource

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_registry(
    data_file: Optional[str] = None,
    symbol: str = "BTCUSDT",
    state_file: Optional[Path] = None,
    render_images: bool = False,
    config: Optional[GridConfig] = None,
) -> ResourceRegistry:
    """
    Assemble a registry from its collaborators.

    Args:
        data_file: OHLC CSV to serve instead of live Binance data.
        symbol: Binance symbol when no data file is given.
        state_file: Layout store path (default grid_state/layout.json).
        render_images: Use figure-backed surfaces so /image returns PNGs.
        config: Grid timing and sizing.
    """
    if data_file:
        source = FileMarketDataSource(data_file)
    else:
        source = BinanceClient(symbol)

    if render_images:
        from ..chart_grid.matplotlib_surface import MatplotlibSurfaceHost
        host = MatplotlibSurfaceHost()
    else:
        host = SnapshotSurfaceHost()

    return ResourceRegistry(host, source, JsonFileStore(state_file), config=config)


def serve(
    host: str = "127.0.0.1",
    port: int = 8000,
    data_file: Optional[str] = None,
    symbol: str = "BTCUSDT",
    state_file: Optional[Path] = None,
    render_images: bool = False,
) -> None:
    """Build the grid and run the API server until interrupted."""
    registry = build_registry(data_file, symbol, state_file, render_images)
    api.state = api.AppState(registry=registry)

    source_label = data_file or f"Binance {symbol}"
    logger.info(f"Chart grid server on http://{host}:{port}/ (data: {source_label})")

    uvicorn.run(
        api.app,
        host=host,
        port=port,
        log_level="info"
    )


def main():
    parser = argparse.ArgumentParser(
        description="Chart Grid Server - Multi-timeframe charts with swing structure"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--data-file",
        type=str,
        default=None,
        help="OHLC CSV to chart instead of live Binance data"
    )
    parser.add_argument(
        "--symbol",
        default="BTCUSDT",
        help="Binance symbol (default: BTCUSDT)"
    )
    parser.add_argument(
        "--state-file",
        type=str,
        default=None,
        help="Layout store file (default: grid_state/layout.json)"
    )
    parser.add_argument(
        "--render-images",
        action="store_true",
        help="Render charts with matplotlib so /image returns PNGs"
    )

    args = parser.parse_args()

    if args.data_file and not Path(args.data_file).exists():
        print(f"Error: Data file not found: {args.data_file}")
        return 1

    serve(
        host=args.host,
        port=args.port,
        data_file=args.data_file,
        symbol=args.symbol,
        state_file=Path(args.state_file) if args.state_file else None,
        render_images=args.render_images,
    )
    return 0


if __name__ == "__main__":
    main()
